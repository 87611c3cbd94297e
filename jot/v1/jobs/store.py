"""
Postgres-backed store for reflection jobs.

The claim uses SELECT ... FOR UPDATE SKIP LOCKED so any number of worker
processes can pull from the queue concurrently; the row lock is the only
synchronization between them.
"""

from datetime import UTC, date, datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import get_logger
from jot.config.settings import Settings
from jot.v1.jobs.models import ACTIVE_STATUSES, JobStatus, ReflectionJob
from jot.v1.jobs.schemas import JobStatsResponse

logger = get_logger(__name__)


class JobStore:
    """Queue operations over the reflection_jobs table."""

    def __init__(self, settings: Settings):
        self.settings = settings

    async def insert_if_absent(
        self, session: AsyncSession, repo_id: UUID, work_date: date
    ) -> UUID | None:
        """
        Insert a pending job for (repo, work_date).

        Returns the new job id, or None if a job for the pair already exists.
        Collisions with a concurrent scheduler are absorbed by ON CONFLICT.
        """
        stmt = (
            insert(ReflectionJob)
            .values(
                repo_id=repo_id,
                work_date=work_date,
                status=JobStatus.PENDING.value,
                attempts=0,
                max_attempts=self.settings.job_max_attempts,
            )
            .on_conflict_do_nothing(index_elements=["repo_id", "work_date"])
            .returning(ReflectionJob.id)
        )
        result = await session.execute(stmt)
        job_id = result.scalar_one_or_none()
        await session.commit()
        return job_id

    async def has_active_job(
        self, session: AsyncSession, repo_id: UUID, work_date: date
    ) -> bool:
        """Whether a pending or processing job exists for (repo, work_date)."""
        result = await session.execute(
            select(ReflectionJob.id)
            .where(
                and_(
                    ReflectionJob.repo_id == repo_id,
                    ReflectionJob.work_date == work_date,
                    ReflectionJob.status.in_(ACTIVE_STATUSES),
                )
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def claim_next(self, session: AsyncSession) -> ReflectionJob | None:
        """
        Atomically claim the oldest pending job.

        Rows locked by another claimant are skipped rather than waited on,
        so concurrent callers always receive distinct jobs.
        """
        now = datetime.now(UTC)

        result = await session.execute(
            select(ReflectionJob)
            .where(ReflectionJob.status == JobStatus.PENDING.value)
            .order_by(ReflectionJob.created_at, ReflectionJob.id)
            .limit(1)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        job = result.scalar_one_or_none()

        if job is None:
            await session.rollback()
            return None

        job.status = JobStatus.PROCESSING.value
        job.started_at = now
        job.attempts = job.attempts + 1
        await session.commit()

        logger.info(
            "Claimed job",
            job_id=str(job.id),
            repo_id=str(job.repo_id),
            work_date=job.work_date.isoformat(),
            attempt=job.attempts,
        )
        return job

    async def _finish_attempt(
        self, session: AsyncSession, job: ReflectionJob, **values
    ) -> bool:
        """
        Apply a post-claim transition.

        Only applies while the job is still processing under the attempt this
        worker claimed; a job reclaimed by the staleness sweep is left alone.
        """
        result = await session.execute(
            update(ReflectionJob)
            .where(
                and_(
                    ReflectionJob.id == job.id,
                    ReflectionJob.status == JobStatus.PROCESSING.value,
                    ReflectionJob.attempts == job.attempts,
                )
            )
            .values(**values)
        )
        await session.commit()

        applied = result.rowcount > 0
        if not applied:
            logger.warning(
                "Job ownership lost before outcome was recorded",
                job_id=str(job.id),
                attempt=job.attempts,
                intended_status=values.get("status"),
            )
        return applied

    async def mark_completed(self, session: AsyncSession, job: ReflectionJob) -> bool:
        return await self._finish_attempt(
            session,
            job,
            status=JobStatus.COMPLETED.value,
            completed_at=datetime.now(UTC),
        )

    async def mark_failed(
        self, session: AsyncSession, job: ReflectionJob, error: str
    ) -> bool:
        """Terminally fail a job, preserving the error for operators."""
        return await self._finish_attempt(
            session,
            job,
            status=JobStatus.FAILED.value,
            completed_at=datetime.now(UTC),
            last_error=error,
        )

    async def requeue(
        self, session: AsyncSession, job: ReflectionJob, error: str
    ) -> bool:
        """Return a failed attempt to pending; attempts is left as claimed."""
        return await self._finish_attempt(
            session,
            job,
            status=JobStatus.PENDING.value,
            started_at=None,
            last_error=error,
        )

    async def recover_stale(self, session: AsyncSession) -> list[UUID]:
        """Reset processing jobs whose worker has been gone too long."""
        stale_after = timedelta(minutes=self.settings.job_stale_after_minutes)
        cutoff = datetime.now(UTC) - stale_after

        result = await session.execute(
            update(ReflectionJob)
            .where(
                and_(
                    ReflectionJob.status == JobStatus.PROCESSING.value,
                    ReflectionJob.started_at < cutoff,
                )
            )
            .values(status=JobStatus.PENDING.value, started_at=None)
            .returning(ReflectionJob.id)
        )
        recovered = list(result.scalars().all())
        await session.commit()

        if recovered:
            logger.warning(
                "Recovered stale jobs",
                stale_job_count=len(recovered),
                stale_after_minutes=self.settings.job_stale_after_minutes,
            )
        return recovered

    async def get_job(self, session: AsyncSession, job_id: UUID) -> ReflectionJob | None:
        result = await session.execute(
            select(ReflectionJob).where(ReflectionJob.id == job_id)
        )
        return result.scalar_one_or_none()

    async def list_jobs(
        self,
        session: AsyncSession,
        statuses: list[JobStatus] | None = None,
        repo_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ReflectionJob], int]:
        """List jobs newest first, with the total matching count."""
        base_query = select(ReflectionJob)

        if statuses:
            base_query = base_query.where(
                ReflectionJob.status.in_([s.value for s in statuses])
            )
        if repo_id:
            base_query = base_query.where(ReflectionJob.repo_id == repo_id)

        count_result = await session.execute(
            select(func.count()).select_from(base_query.subquery())
        )
        total = count_result.scalar() or 0

        jobs_result = await session.execute(
            base_query.order_by(ReflectionJob.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(jobs_result.scalars().all()), total

    async def get_stats(self, session: AsyncSession) -> JobStatsResponse:
        """Queue statistics for operators and the health check."""
        status_result = await session.execute(
            select(ReflectionJob.status, func.count(ReflectionJob.id)).group_by(
                ReflectionJob.status
            )
        )
        by_status = dict(status_result.all())

        queue_depth = by_status.get(JobStatus.PENDING.value, 0) + by_status.get(
            JobStatus.PROCESSING.value, 0
        )

        stale_cutoff = datetime.now(UTC) - timedelta(
            minutes=self.settings.job_stale_after_minutes
        )
        stale_result = await session.execute(
            select(func.count(ReflectionJob.id)).where(
                ReflectionJob.status == JobStatus.PROCESSING.value,
                ReflectionJob.started_at < stale_cutoff,
            )
        )

        day_ago = datetime.now(UTC) - timedelta(days=1)
        failed_result = await session.execute(
            select(func.count(ReflectionJob.id)).where(
                ReflectionJob.status == JobStatus.FAILED.value,
                ReflectionJob.completed_at >= day_ago,
            )
        )

        return JobStatsResponse(
            total_jobs=sum(by_status.values()),
            by_status=by_status,
            queue_depth=queue_depth,
            stale_jobs=stale_result.scalar() or 0,
            failed_last_day=failed_result.scalar() or 0,
        )
