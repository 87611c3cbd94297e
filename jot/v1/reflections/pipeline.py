"""
Reflection pipeline executed by the worker for one claimed job.

Steps: idempotency check, commit fetch, content generation (normal or
quiet-day), best-effort image, persist, clear push signal, best-effort email.
Failures in fetch, generation or persistence propagate to the worker's retry
logic; image and email failures are logged and swallowed.
"""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import get_logger
from jot.config.settings import Settings
from jot.v1.accounts.store import NewReflection, RepositoryStore, RepoSnapshot
from jot.v1.core.registries import (
    CommitSource,
    ContentGenerator,
    ImageGenerator,
    Notifier,
)
from jot.v1.jobs.models import ReflectionJob
from jot.v1.reflections.quiet import quiet_streak, should_go_silent
from jot.v1.reflections.types import Commit, GeneratedReflection, ReflectionContext

logger = get_logger(__name__)


class PipelineOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    SILENCED = "silenced"


@dataclass
class PipelineResult:
    outcome: PipelineOutcome
    reflection_id: UUID | None = None
    commit_count: int = 0
    image_url: str | None = None
    notified: bool = False


class ReflectionPipeline:
    """Orchestrates the collaborators that turn commits into a reflection."""

    def __init__(
        self,
        settings: Settings,
        repo_store: RepositoryStore,
        commit_source: CommitSource,
        content_generator: ContentGenerator,
        image_generator: ImageGenerator,
        notifier: Notifier,
    ):
        self.settings = settings
        self.repo_store = repo_store
        self.commit_source = commit_source
        self.content_generator = content_generator
        self.image_generator = image_generator
        self.notifier = notifier

    async def execute(
        self, session: AsyncSession, job: ReflectionJob, repo: RepoSnapshot
    ) -> PipelineResult:
        log = logger.bind(
            job_id=str(job.id), repo_id=str(repo.repo_id), work_date=job.work_date.isoformat()
        )

        if await self.repo_store.reflection_exists(session, repo.repo_id, job.work_date):
            log.info("Reflection already exists, nothing to do")
            return PipelineResult(outcome=PipelineOutcome.ALREADY_EXISTS)

        since = await self._fetch_window_start(session, repo)
        log.info("Fetching commits", since=since.isoformat())

        commits = await self.commit_source.fetch_commits(
            repo.access_token, repo.full_name, since
        )

        if repo.has_push_signal and repo.last_push_at is None and commits:
            log.warning(
                "Webhook stale: push signal missing despite new commits",
                full_name=repo.full_name,
                commit_count=len(commits),
            )

        context = ReflectionContext(
            repo_name=repo.name,
            work_date=job.work_date,
            timezone=repo.timezone or self.settings.default_timezone,
            owner_name=repo.owner_name,
        )

        if not commits:
            generated = await self._generate_quiet(session, repo, context, log)
            if generated is None:
                return PipelineResult(outcome=PipelineOutcome.SILENCED)
        else:
            log.info("Generating reflection", commit_count=len(commits))
            context.commits = await self._fetch_details(repo, commits)
            generated = await self.content_generator.generate(context)

        image_url = await self._generate_image(generated.content, log)

        reflection_id = await self.repo_store.save_reflection(
            session,
            NewReflection(
                repo_id=repo.repo_id,
                date=job.work_date,
                content=generated.content,
                summary=generated.summary,
                commit_count=len(commits),
                commits_data=[c.to_record() for c in commits],
                comic_url=image_url,
            ),
        )
        if reflection_id is None:
            log.info("Reflection written concurrently, skipping duplicate")
            return PipelineResult(
                outcome=PipelineOutcome.ALREADY_EXISTS, commit_count=len(commits)
            )

        log.info("Reflection stored", reflection_id=str(reflection_id))

        await self.repo_store.clear_push_signal(session, repo.repo_id)

        notified = await self._notify(session, repo, job, generated, image_url, log)

        return PipelineResult(
            outcome=PipelineOutcome.CREATED,
            reflection_id=reflection_id,
            commit_count=len(commits),
            image_url=image_url,
            notified=notified,
        )

    async def _fetch_window_start(
        self, session: AsyncSession, repo: RepoSnapshot
    ) -> datetime:
        latest = await self.repo_store.latest_reflection(session, repo.repo_id)
        if latest is not None:
            return latest.created_at
        return datetime.now(UTC) - timedelta(hours=self.settings.commit_lookback_hours)

    async def _fetch_details(
        self, repo: RepoSnapshot, commits: list[Commit]
    ) -> list[Commit]:
        """Fetch commit details in small parallel batches."""
        selected = commits[: self.settings.max_commits_to_analyze]
        batch_size = max(1, self.settings.commit_detail_concurrency)

        detailed: list[Commit] = []
        for start in range(0, len(selected), batch_size):
            batch = selected[start : start + batch_size]
            detailed.extend(
                await asyncio.gather(
                    *(
                        self.commit_source.fetch_commit_detail(
                            repo.access_token, repo.full_name, c.sha
                        )
                        for c in batch
                    )
                )
            )
        return detailed

    async def _generate_quiet(
        self,
        session: AsyncSession,
        repo: RepoSnapshot,
        context: ReflectionContext,
        log,
    ) -> GeneratedReflection | None:
        history = await self.repo_store.recent_reflections(
            session, repo.repo_id, self.settings.recent_reflections_window
        )
        streak = quiet_streak(history)

        if should_go_silent(history, self.settings.quiet_day_ceiling):
            log.info("Quiet streak at ceiling, going silent", quiet_streak=streak)
            return None

        log.info("Quiet day", quiet_streak=streak)
        generated = await self.content_generator.generate_quiet(context, history)
        if generated is None:
            log.info("Quiet reflection suppressed by generator", quiet_streak=streak)
        return generated

    async def _generate_image(self, content: str, log) -> str | None:
        try:
            return await self.image_generator.generate_image(content)
        except Exception as e:
            log.warning("Image generation failed", error=str(e))
            return None

    async def _notify(
        self,
        session: AsyncSession,
        repo: RepoSnapshot,
        job: ReflectionJob,
        generated: GeneratedReflection,
        image_url: str | None,
        log,
    ) -> bool:
        if not repo.owner_email:
            log.info("Owner has no email address, skipping notification")
            return False

        try:
            await self.notifier.send_reflection(
                to=repo.owner_email,
                owner_name=repo.owner_name,
                repo_name=repo.name,
                work_date=job.work_date,
                content=generated.content,
                image_url=image_url,
            )
        except Exception as e:
            log.error("Failed to send reflection email", error=str(e))
            return False

        log.info("Reflection email sent")

        try:
            total = await self.repo_store.count_reflections(session, repo.repo_id)
            if total == self.settings.tips_email_after:
                await self.notifier.send_tips(repo.owner_email, repo.owner_name)
                log.info("Tips email sent")
        except Exception as e:
            log.error("Failed to send tips email", error=str(e))

        return True
