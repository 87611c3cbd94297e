"""
Cron entry points and job inspection endpoints.

Both the scheduler and the worker are invoked by an external cron over HTTP.
Every route here requires the cron bearer secret when one is configured.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import get_logger
from jot.config.settings import Settings, SettingsDep
from jot.infra.database import Database, get_database, get_session
from jot.v1.accounts.store import RepositoryStore
from jot.v1.core.exceptions import NotFoundError, create_success_response
from jot.v1.core.registries import (
    commit_source_registry,
    content_generator_registry,
    image_generator_registry,
    notifier_registry,
)
from jot.v1.core.security import CronAuthDep
from jot.v1.integrations.registry_init import COMMIT_SOURCE, CONTENT_GENERATOR
from jot.v1.jobs.models import JobStatus
from jot.v1.jobs.scheduler import ReflectionScheduler
from jot.v1.jobs.schemas import JobListResponse, JobResponse
from jot.v1.jobs.store import JobStore
from jot.v1.jobs.worker import ReflectionWorker
from jot.v1.reflections.pipeline import ReflectionPipeline

logger = get_logger(__name__)

cron_router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[CronAuthDep])
jobs_router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[CronAuthDep])


def build_pipeline(settings: Settings, repo_store: RepositoryStore) -> ReflectionPipeline:
    """Assemble the pipeline from the collaborators selected in settings."""
    return ReflectionPipeline(
        settings=settings,
        repo_store=repo_store,
        commit_source=commit_source_registry.get(COMMIT_SOURCE),
        content_generator=content_generator_registry.get(CONTENT_GENERATOR),
        image_generator=image_generator_registry.get(settings.image_backend.value),
        notifier=notifier_registry.get(settings.email_backend.value),
    )


def get_job_store(settings: Settings = SettingsDep) -> JobStore:
    return JobStore(settings)


def get_scheduler(
    settings: Settings = SettingsDep,
    job_store: JobStore = Depends(get_job_store),
) -> ReflectionScheduler:
    return ReflectionScheduler(settings, RepositoryStore(), job_store)


def get_worker(
    settings: Settings = SettingsDep,
    database: Database = Depends(get_database),
    job_store: JobStore = Depends(get_job_store),
) -> ReflectionWorker:
    repo_store = RepositoryStore()
    return ReflectionWorker(
        settings=settings,
        session_factory=database.session,
        job_store=job_store,
        repo_store=repo_store,
        pipeline=build_pipeline(settings, repo_store),
    )


@cron_router.api_route("/schedule-reflections", methods=["GET", "POST"], response_model=dict)
async def schedule_reflections(
    scheduler: ReflectionScheduler = Depends(get_scheduler),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Enqueue reflection jobs for every eligible repository."""
    result = await scheduler.run(session)
    return create_success_response(
        data=result.model_dump(),
        message=f"Scheduled {result.jobs_created} jobs",
    )


@cron_router.api_route("/process-jobs", methods=["GET", "POST"], response_model=dict)
async def process_jobs(
    worker: ReflectionWorker = Depends(get_worker),
) -> dict[str, Any]:
    """Drain the queue until it is empty or the time budget runs out."""
    result = await worker.run()
    return create_success_response(
        data=result.model_dump(),
        message=f"Processed {result.processed} jobs",
    )


@jobs_router.get("", response_model=dict)
async def list_jobs(
    status: list[JobStatus] | None = Query(default=None, description="Filter by status"),
    repo_id: UUID | None = Query(default=None, description="Filter by repository"),
    limit: int = Query(default=50, ge=1, le=500, description="Maximum results"),
    offset: int = Query(default=0, ge=0, description="Results offset"),
    job_store: JobStore = Depends(get_job_store),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """List jobs newest first."""
    jobs, total = await job_store.list_jobs(
        session, statuses=status, repo_id=repo_id, limit=limit, offset=offset
    )
    response = JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )
    return create_success_response(data=response.model_dump(mode="json"))


@jobs_router.get("/stats/overview", response_model=dict)
async def get_job_stats(
    job_store: JobStore = Depends(get_job_store),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Queue depth, per-status counts and stale jobs."""
    stats = await job_store.get_stats(session)
    return create_success_response(data=stats.model_dump())


@jobs_router.get("/{job_id}", response_model=dict)
async def get_job(
    job_id: UUID,
    job_store: JobStore = Depends(get_job_store),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    job = await job_store.get_job(session, job_id)
    if job is None:
        raise NotFoundError("Job not found", details={"job_id": str(job_id)})
    return create_success_response(
        data=JobResponse.model_validate(job).model_dump(mode="json")
    )
