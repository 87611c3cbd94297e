"""
Time-bounded worker that drains the reflection job queue.

One invocation runs a staleness sweep, then claims and processes jobs one at a
time until the queue is empty or the time budget is spent. Workers share no
in-process state; the SKIP LOCKED claim is the only coordination between
concurrent invocations.
"""

import time
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import bind_invocation_context, get_logger
from jot.config.settings import Settings
from jot.v1.accounts.store import RepositoryStore
from jot.v1.jobs.models import ReflectionJob
from jot.v1.jobs.schemas import WorkerRunResponse
from jot.v1.jobs.store import JobStore
from jot.v1.reflections.pipeline import ReflectionPipeline

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

REPO_MISSING_ERROR = "Repository not found or inaccessible"


class ReflectionWorker:
    """Claims pending jobs and runs the reflection pipeline for each."""

    def __init__(
        self,
        settings: Settings,
        session_factory: SessionFactory,
        job_store: JobStore,
        repo_store: RepositoryStore,
        pipeline: ReflectionPipeline,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.job_store = job_store
        self.repo_store = repo_store
        self.pipeline = pipeline
        self.clock = clock

    async def run(self) -> WorkerRunResponse:
        run_id = bind_invocation_context("worker")
        started = self.clock()
        deadline = started + self.settings.worker_time_budget_s

        recovered = await self._recover_stale()

        processed = 0
        failed = 0

        while self.clock() < deadline:
            try:
                async with self.session_factory() as session:
                    job = await self.job_store.claim_next(session)
            except Exception as e:
                logger.error("Failed to claim job", error=str(e), exc_info=True)
                break

            if job is None:
                logger.info("Queue empty")
                break

            try:
                succeeded = await self._process(job)
            except Exception as e:
                # Left in processing; the next staleness sweep hands it back
                logger.error(
                    "Failed to record job outcome",
                    job_id=str(job.id),
                    error=str(e),
                    exc_info=True,
                )
                succeeded = False

            if succeeded:
                processed += 1
            else:
                failed += 1

        elapsed_ms = int((self.clock() - started) * 1000)
        if self.clock() >= deadline:
            logger.info("Time budget exhausted", budget_s=self.settings.worker_time_budget_s)

        logger.info(
            "Worker pass complete",
            processed=processed,
            failed=failed,
            recovered=recovered,
            elapsed_ms=elapsed_ms,
        )
        return WorkerRunResponse(
            run_id=run_id,
            processed=processed,
            failed=failed,
            recovered=recovered,
            elapsed_ms=elapsed_ms,
        )

    async def _recover_stale(self) -> int:
        try:
            async with self.session_factory() as session:
                return len(await self.job_store.recover_stale(session))
        except Exception as e:
            logger.error("Staleness sweep failed", error=str(e), exc_info=True)
            return 0

    async def _process(self, job: ReflectionJob) -> bool:
        """Run one claimed job and record its outcome. Returns success."""
        log = logger.bind(
            job_id=str(job.id),
            repo_id=str(job.repo_id),
            work_date=job.work_date.isoformat(),
            attempt=job.attempts,
        )

        async with self.session_factory() as session:
            try:
                repo = await self.repo_store.get_snapshot(session, job.repo_id)
            except Exception as e:
                await session.rollback()
                return await self._record_failure(session, job, str(e), log)

            if repo is None:
                log.error("Repository missing for job")
                await self.job_store.mark_failed(session, job, REPO_MISSING_ERROR)
                return False

            try:
                result = await self.pipeline.execute(session, job, repo)
            except Exception as e:
                await session.rollback()
                log.error("Pipeline failed", error=str(e), exc_info=True)
                return await self._record_failure(session, job, str(e), log)

            await self.job_store.mark_completed(session, job)
            log.info(
                "Job completed",
                outcome=result.outcome.value,
                commit_count=result.commit_count,
                notified=result.notified,
            )
            return True

    async def _record_failure(
        self, session: AsyncSession, job: ReflectionJob, error: str, log
    ) -> bool:
        if job.has_attempts_left():
            await self.job_store.requeue(session, job, error)
            log.warning(
                "Job requeued for retry",
                attempts_left=job.max_attempts - job.attempts,
            )
        else:
            await self.job_store.mark_failed(session, job, error)
            log.error("Job failed permanently", max_attempts=job.max_attempts)
        return False
