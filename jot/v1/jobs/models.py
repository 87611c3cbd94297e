"""
Reflection job queue model.
"""

from datetime import UTC, datetime
from datetime import date as calendar_date
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    TIMESTAMP,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from jot.infra.database import Base


class JobStatus(str, Enum):
    """Job status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)


class ReflectionJob(Base):
    """
    One unit of reflection work for a repository and work-date.

    Lifecycle: pending -> processing -> completed | pending (retry) | failed.
    Only a claim moves a job into processing, and only a claim increments
    attempts. Completed and failed are terminal.
    """

    __tablename__ = "reflection_jobs"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    repo_id: Mapped[UUID] = mapped_column(
        PG_UUID,
        ForeignKey("repos.id", ondelete="CASCADE"),
        nullable=False,
        comment="Repository the reflection is for",
    )
    work_date: Mapped[calendar_date] = mapped_column(
        Date, nullable=False, comment="Logical day the reflection is attributed to"
    )

    # Job state
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=JobStatus.PENDING.value,
        server_default=JobStatus.PENDING.value,
        comment="Job status: pending|processing|completed|failed",
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Processing attempts started so far",
    )
    max_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3, server_default="3"
    )
    last_error: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Error message from the last failed attempt"
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
        default=lambda: datetime.now(UTC),
    )
    started_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("repo_id", "work_date", name="reflection_jobs_repo_id_work_date_key"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="reflection_jobs_status_check",
        ),
        Index(
            "idx_reflection_jobs_pending",
            "status",
            "created_at",
            postgresql_where=text("status = 'pending'"),
        ),
        Index(
            "idx_reflection_jobs_processing",
            "status",
            "started_at",
            postgresql_where=text("status = 'processing'"),
        ),
        Index(
            "idx_reflection_jobs_completed",
            "completed_at",
            postgresql_where=text("status = 'completed'"),
        ),
    )

    def has_attempts_left(self) -> bool:
        """Whether a failure of the current attempt may be retried."""
        return self.attempts < self.max_attempts
