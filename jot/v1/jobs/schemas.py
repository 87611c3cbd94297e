"""
Job queue Pydantic schemas.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class JobResponse(BaseModel):
    """Schema for job API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    repo_id: UUID
    work_date: date
    status: str
    attempts: int
    max_attempts: int
    last_error: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


class JobListResponse(BaseModel):
    """Schema for job list API response."""

    jobs: list[JobResponse]
    total: int
    limit: int
    offset: int


class JobStatsResponse(BaseModel):
    """Schema for job statistics."""

    total_jobs: int
    by_status: dict[str, int]
    queue_depth: int  # pending + processing
    stale_jobs: int
    failed_last_day: int


class SchedulerRunResponse(BaseModel):
    """Counts reported by one scheduler invocation."""

    run_id: str | None = None
    repos_checked: int = 0
    jobs_created: int = 0
    skipped: int = 0
    already_queued: int = 0
    skip_reasons: dict[str, int] = Field(
        default_factory=dict, description="Skipped repositories by veto reason"
    )


class WorkerRunResponse(BaseModel):
    """Counts reported by one worker invocation."""

    run_id: str | None = None
    processed: int = 0
    failed: int = 0
    recovered: int = 0
    elapsed_ms: int = 0
