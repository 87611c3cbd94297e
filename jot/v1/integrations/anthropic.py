"""
Anthropic Messages API client implementing the content generator protocol.
"""

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from jot.config.logging import get_logger
from jot.config.settings import Settings
from jot.v1.core.exceptions import ContentGenerationError
from jot.v1.reflections.quiet import QuietTone, quiet_streak, quiet_tone, should_go_silent
from jot.v1.reflections.types import (
    Commit,
    GeneratedReflection,
    RecentReflection,
    ReflectionContext,
)

logger = get_logger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
SUMMARY_PREFIX = "SUMMARY:"
MAX_FILES_LISTED = 10

SUMMARY_INSTRUCTION = (
    "After the reflection, on its own final line, write `SUMMARY:` followed by "
    "one sentence describing the day."
)

QUIET_INSTRUCTIONS = {
    QuietTone.CHECK_IN: (
        "There were no commits today. Write a short, low-key check-in. Ask what "
        "happened offline: planning, debugging, rest. No guilt."
    ),
    QuietTone.NUDGE: (
        "This is the second quiet day in a row. Write a brief nudge that names "
        "the streak, connects it to the last day with real work, and asks what "
        "is blocking the next commit."
    ),
    QuietTone.SIGN_OFF: (
        "Several quiet days in a row. Write two or three terse sentences saying "
        "you'll stay out of the way and see them when they're back."
    ),
}


def format_commit_time(moment: datetime, timezone: str) -> str:
    try:
        local = moment.astimezone(ZoneInfo(timezone))
    except (ZoneInfoNotFoundError, ValueError):
        return moment.isoformat()
    return local.strftime("%I:%M %p on %A, %b %d").lstrip("0")


def _describe_commit(commit: Commit, timezone: str) -> str:
    lines = [
        f"### Commit: {commit.short_sha}",
        f"**Message:** {commit.message}",
        f"**Author:** {commit.author_name}",
        f"**Time:** {format_commit_time(commit.authored_at, timezone)}",
    ]
    if commit.additions is not None and commit.deletions is not None:
        lines.append(f"**Changes:** +{commit.additions} -{commit.deletions}")
    if commit.files:
        listed = ", ".join(commit.files[:MAX_FILES_LISTED])
        extra = len(commit.files) - MAX_FILES_LISTED
        if extra > 0:
            listed += f" (+{extra} more)"
        lines.append(f"**Files:** {listed}")
    return "\n".join(lines)


def build_reflection_prompt(context: ReflectionContext) -> str:
    commits = "\n---\n".join(_describe_commit(c, context.timezone) for c in context.commits)
    return f"""You are a blunt, direct co-founder reviewing a solo founder's day of work on their project "{context.repo_name}" ({context.work_date.isoformat()}).

Here are today's commits:

{commits}

Write an evening reflection in markdown that:
1. Summarizes what they actually accomplished (the substance, not just files touched)
2. Calls out anything that looks like scope creep, yak shaving, or distraction
3. Notes momentum: was this a focused day, scattered, or stuck on one thing too long?
4. Ends with 1-2 pointed questions to think about for tomorrow

Be direct. No fluff. No cheerleading unless they really earned it.

Format with these sections:
## What You Did
## Observations
## Questions for Tomorrow

Keep it concise.

{SUMMARY_INSTRUCTION}"""


def build_quiet_prompt(
    context: ReflectionContext, history: list[RecentReflection], tone: QuietTone
) -> str:
    recent = "\n".join(
        f"- {r.date.isoformat()}: {r.commit_count} commits. {r.summary or ''}".rstrip()
        for r in history
    )
    return f"""You are a co-founder checking in on a solo founder working on "{context.repo_name}" ({context.work_date.isoformat()}).

Recent reflections, most recent first:
{recent or "- none yet"}

{QUIET_INSTRUCTIONS[tone]}

Write in markdown. Keep it short.

{SUMMARY_INSTRUCTION}"""


def split_summary(text: str) -> GeneratedReflection:
    """Separate a trailing `SUMMARY:` line from the reflection body."""
    lines = text.strip().splitlines()
    for index in range(len(lines) - 1, -1, -1):
        line = lines[index].strip()
        if not line:
            continue
        if line.upper().startswith(SUMMARY_PREFIX):
            summary = line[len(SUMMARY_PREFIX) :].strip() or None
            body = "\n".join(lines[:index]).strip()
            return GeneratedReflection(content=body, summary=summary)
        break
    return GeneratedReflection(content=text.strip())


class AnthropicContentGenerator:
    """Writes reflections with Claude over the Messages API."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    async def generate(self, context: ReflectionContext) -> GeneratedReflection:
        return split_summary(await self._complete(build_reflection_prompt(context)))

    async def generate_quiet(
        self, context: ReflectionContext, recent_history: list[RecentReflection]
    ) -> GeneratedReflection | None:
        if should_go_silent(recent_history, self.settings.quiet_day_ceiling):
            return None

        streak = quiet_streak(recent_history)

        tone = quiet_tone(streak)
        logger.info("Writing quiet-day reflection", tone=tone.value, quiet_streak=streak)
        prompt = build_quiet_prompt(context, recent_history, tone)
        return split_summary(await self._complete(prompt))

    async def _complete(self, prompt: str) -> str:
        if not self.settings.anthropic_api_key:
            raise ContentGenerationError("ANTHROPIC_API_KEY is not set")

        async with httpx.AsyncClient(
            timeout=self.settings.anthropic_timeout_s, transport=self.transport
        ) as client:
            try:
                response = await client.post(
                    self.settings.anthropic_api_url,
                    headers={
                        "x-api-key": self.settings.anthropic_api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                    },
                    json={
                        "model": self.settings.anthropic_model,
                        "max_tokens": self.settings.anthropic_max_tokens,
                        "messages": [{"role": "user", "content": prompt}],
                    },
                )
            except httpx.HTTPError as e:
                raise ContentGenerationError(f"Anthropic request failed: {e}") from e

        if response.is_error:
            raise ContentGenerationError(
                f"Anthropic API error: {response.status_code}",
                upstream_status=response.status_code,
                details={"body": response.text[:500]},
            )

        blocks = response.json().get("content") or []
        text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        if not text.strip():
            raise ContentGenerationError("Anthropic returned an empty reflection")
        return text
