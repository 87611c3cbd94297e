"""
Scheduler: one fast pass over active repositories that enqueues pending jobs.
"""

from collections import Counter
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import bind_invocation_context, get_logger
from jot.config.settings import Settings
from jot.v1.accounts.store import RepositoryStore, RepoSnapshot
from jot.v1.jobs.eligibility import EligibilityEvaluator, SkipReason
from jot.v1.jobs.schemas import SchedulerRunResponse
from jot.v1.jobs.store import JobStore

logger = get_logger(__name__)


class ReflectionScheduler:
    """Decides which repositories need a reflection job and inserts it."""

    def __init__(
        self,
        settings: Settings,
        repo_store: RepositoryStore,
        job_store: JobStore,
        evaluator: EligibilityEvaluator | None = None,
    ):
        self.settings = settings
        self.repo_store = repo_store
        self.job_store = job_store
        self.evaluator = evaluator or EligibilityEvaluator(settings)

    async def run(
        self, session: AsyncSession, now: datetime | None = None
    ) -> SchedulerRunResponse:
        now = now or datetime.now(UTC)
        run_id = bind_invocation_context("scheduler")

        repos = await self.repo_store.list_active_snapshots(session)
        logger.info("Scheduler pass started", active_repos=len(repos))

        created = 0
        skip_reasons: Counter[str] = Counter()

        for repo in repos:
            try:
                outcome = await self._schedule_repo(session, repo, now)
            except Exception as e:
                await session.rollback()
                logger.error(
                    "Failed to evaluate repository",
                    repo_id=str(repo.repo_id),
                    full_name=repo.full_name,
                    error=str(e),
                    exc_info=True,
                )
                outcome = SkipReason.ERROR

            if outcome is None:
                created += 1
            else:
                skip_reasons[outcome.value] += 1

        already_queued = skip_reasons.get(SkipReason.ALREADY_QUEUED.value, 0)
        result = SchedulerRunResponse(
            run_id=run_id,
            repos_checked=len(repos),
            jobs_created=created,
            skipped=sum(skip_reasons.values()) - already_queued,
            already_queued=already_queued,
            skip_reasons=dict(skip_reasons),
        )

        logger.info(
            "Scheduler pass complete",
            jobs_created=result.jobs_created,
            skipped=result.skipped,
            already_queued=result.already_queued,
        )
        return result

    async def _schedule_repo(
        self, session: AsyncSession, repo: RepoSnapshot, now: datetime
    ) -> SkipReason | None:
        """Returns None when a job was created, else the reason it was not."""
        decision = self.evaluator.evaluate(repo, now)
        if not decision.eligible:
            return decision.reason

        work_date = decision.work_date

        if await self.repo_store.reflection_exists(session, repo.repo_id, work_date):
            return SkipReason.REFLECTION_EXISTS

        if await self.job_store.has_active_job(session, repo.repo_id, work_date):
            return SkipReason.ALREADY_QUEUED

        job_id = await self.job_store.insert_if_absent(session, repo.repo_id, work_date)
        if job_id is None:
            # Lost the race to a concurrent pass, or a terminal job holds the slot
            return SkipReason.ALREADY_QUEUED

        logger.info(
            "Created job",
            job_id=str(job_id),
            repo_id=str(repo.repo_id),
            full_name=repo.full_name,
            work_date=work_date.isoformat(),
        )
        return None
