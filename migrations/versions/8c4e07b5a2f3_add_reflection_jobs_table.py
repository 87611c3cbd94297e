"""add reflection_jobs table for the scheduler/worker queue

Revision ID: 8c4e07b5a2f3
Revises: 3a1f6c2d9b10
Create Date: 2026-02-03 18:41:27.094116

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8c4e07b5a2f3"
down_revision: Union[str, Sequence[str], None] = "3a1f6c2d9b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "reflection_jobs",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "repo_id",
            sa.UUID(as_uuid=True),
            sa.ForeignKey("repos.id", ondelete="CASCADE"),
            nullable=False,
            comment="Repository the reflection is for",
        ),
        sa.Column(
            "work_date",
            sa.Date,
            nullable=False,
            comment="Logical day the reflection is attributed to",
        ),
        sa.Column(
            "status",
            sa.Text,
            nullable=False,
            server_default="pending",
            comment="Job status: pending|processing|completed|failed",
        ),
        sa.Column(
            "attempts",
            sa.Integer,
            nullable=False,
            server_default="0",
            comment="Processing attempts started so far",
        ),
        sa.Column("max_attempts", sa.Integer, nullable=False, server_default="3"),
        sa.Column(
            "last_error",
            sa.Text,
            nullable=True,
            comment="Error message from the last failed attempt",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "repo_id", "work_date", name="reflection_jobs_repo_id_work_date_key"
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="reflection_jobs_status_check",
        ),
    )

    # Partial indexes for the claim query, the staleness sweep and cleanup
    op.create_index(
        "idx_reflection_jobs_pending",
        "reflection_jobs",
        ["status", "created_at"],
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index(
        "idx_reflection_jobs_processing",
        "reflection_jobs",
        ["status", "started_at"],
        postgresql_where=sa.text("status = 'processing'"),
    )
    op.create_index(
        "idx_reflection_jobs_completed",
        "reflection_jobs",
        ["completed_at"],
        postgresql_where=sa.text("status = 'completed'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("reflection_jobs")
