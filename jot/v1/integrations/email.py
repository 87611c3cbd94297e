"""
Email notifiers: Resend for delivery, console for local development.
"""

import html
import re
import uuid
from abc import ABC, abstractmethod
from datetime import date

import httpx

from jot.config.logging import get_logger
from jot.config.settings import Settings

logger = get_logger(__name__)

_HEADING = re.compile(r"^(#{1,3})\s+(.*)$")
_BOLD = re.compile(r"\*\*(.+?)\*\*")


def markdown_to_html(markdown: str) -> str:
    """Render the small markdown subset reflections use (headings, bullets, bold)."""
    blocks: list[str] = []
    in_list = False
    for raw in markdown.splitlines():
        line = raw.strip()
        if in_list and not line.startswith(("- ", "* ")):
            blocks.append("</ul>")
            in_list = False
        if not line:
            continue

        text = _BOLD.sub(r"<strong>\1</strong>", html.escape(line))
        heading = _HEADING.match(line)
        if heading:
            level = len(heading.group(1)) + 1
            inner = _BOLD.sub(r"<strong>\1</strong>", html.escape(heading.group(2)))
            blocks.append(f"<h{level}>{inner}</h{level}>")
        elif line.startswith(("- ", "* ")):
            if not in_list:
                blocks.append("<ul>")
                in_list = True
            blocks.append(f"<li>{text[2:]}</li>")
        else:
            blocks.append(f"<p>{text}</p>")
    if in_list:
        blocks.append("</ul>")
    return "\n".join(blocks)


class EmailNotifier(ABC):
    """Composes reflection and tips emails; subclasses deliver them."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @abstractmethod
    async def deliver(self, to: str, subject: str, body_text: str, body_html: str) -> str:
        """Send one message and return the provider message id."""

    async def send_reflection(
        self,
        to: str,
        owner_name: str | None,
        repo_name: str,
        work_date: date,
        content: str,
        image_url: str | None = None,
    ) -> str:
        formatted_date = work_date.strftime("%A, %B %d").replace(" 0", " ")
        subject = f"Your day in code: {repo_name}, {formatted_date}"
        greeting = f"Hey {owner_name}," if owner_name else "Hey,"

        parts = [
            f"<p>{html.escape(greeting)}</p>",
            f"<h1>{html.escape(repo_name)}</h1>",
            markdown_to_html(content),
        ]
        if image_url:
            parts.append(
                f'<p><img src="{html.escape(image_url, quote=True)}" '
                'alt="Today\'s comic" style="max-width:100%"></p>'
            )
        parts.append(
            f'<p><a href="{html.escape(self.settings.app_base_url, quote=True)}/dashboard">'
            "Open jot</a></p>"
        )
        body_text = f"{greeting}\n\n{content}\n"
        return await self.deliver(to, subject, body_text, "\n".join(parts))

    async def send_tips(self, to: str, owner_name: str | None) -> str:
        greeting = f"Hey {owner_name}," if owner_name else "Hey,"
        tips = [
            "Write commit messages for your future self; the reflections get sharper.",
            "Push before you stop for the night so the day is captured.",
            "Reply to the questions in your head before opening the editor tomorrow.",
        ]
        body_text = greeting + "\n\n" + "\n".join(f"- {t}" for t in tips) + "\n"
        body_html = "\n".join(
            [f"<p>{html.escape(greeting)}</p>", "<ul>"]
            + [f"<li>{html.escape(t)}</li>" for t in tips]
            + ["</ul>"]
        )
        return await self.deliver(to, "Getting the most out of jot", body_text, body_html)


class ConsoleNotifier(EmailNotifier):
    """Logs emails instead of sending them."""

    async def deliver(self, to: str, subject: str, body_text: str, body_html: str) -> str:
        message_id = f"console:{uuid.uuid4()}"
        logger.info(
            "Email (console backend)",
            email_to=to,
            email_subject=subject,
            email_body_text=body_text,
            message_id=message_id,
        )
        return message_id


class ResendNotifier(EmailNotifier):
    """Sends email through the Resend HTTP API."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(settings)
        self.transport = transport

    async def deliver(self, to: str, subject: str, body_text: str, body_html: str) -> str:
        if not self.settings.resend_api_key:
            raise RuntimeError("RESEND_API_KEY is not set")

        async with httpx.AsyncClient(
            timeout=self.settings.email_timeout_s, transport=self.transport
        ) as client:
            response = await client.post(
                self.settings.resend_api_url,
                headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
                json={
                    "from": self.settings.email_from,
                    "to": [to],
                    "subject": subject,
                    "text": body_text,
                    "html": body_html,
                },
            )
            response.raise_for_status()

        message_id = response.json().get("id", "")
        logger.info("Email sent", email_to=to, email_subject=subject, message_id=message_id)
        return message_id
