"""
Image generators. Both implementations are best-effort and never raise.
"""

import httpx

from jot.config.logging import get_logger
from jot.config.settings import Settings

logger = get_logger(__name__)


def build_comic_prompt(reflection: str) -> str:
    return f"""You are the creative director for "jot", a daily comic strip for solo founders building in public.

Today's reflection:
---
{reflection}
---

Create a single black and white comic strip (1-6 panels, your choice) that
captures the emotional truth of this day rather than a literal retelling.
Simple expressive cartoon characters, clean lines, short punchy speech bubbles."""


class NoImageGenerator:
    """Used when no image backend is configured."""

    async def generate_image(self, content: str) -> str | None:
        return None


class FalImageGenerator:
    """Generates a comic through fal.ai's synchronous endpoint."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    async def generate_image(self, content: str) -> str | None:
        if not self.settings.fal_key:
            logger.info("FAL_KEY not configured, skipping image generation")
            return None

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.image_timeout_s, transport=self.transport
            ) as client:
                response = await client.post(
                    self.settings.fal_model_url,
                    headers={"Authorization": f"Key {self.settings.fal_key}"},
                    json={
                        "prompt": build_comic_prompt(content),
                        "aspect_ratio": "16:9",
                        "output_format": "png",
                    },
                )
                response.raise_for_status()
                images = response.json().get("images") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Image generation failed", error=str(e))
            return None

        if not images or not images[0].get("url"):
            logger.info("No image URL in response")
            return None
        return images[0]["url"]
