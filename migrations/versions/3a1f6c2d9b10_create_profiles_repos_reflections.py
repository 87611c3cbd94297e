"""create profiles, repos and reflections tables

Revision ID: 3a1f6c2d9b10
Revises:
Create Date: 2026-01-12 09:14:03.512207

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3a1f6c2d9b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "profiles",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("github_access_token", sa.Text, nullable=True),
        sa.Column(
            "subscription_status",
            sa.Text,
            nullable=False,
            server_default="trial",
        ),
        sa.Column("trial_ends_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "timezone",
            sa.Text,
            nullable=True,
            comment="IANA timezone, e.g. America/New_York",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "subscription_status IN ('trial', 'active', 'cancelled', 'past_due')",
            name="profiles_subscription_status_check",
        ),
    )

    op.create_table(
        "repos",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.UUID(as_uuid=True),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("github_repo_id", sa.BigInteger, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("full_name", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "last_push_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="Set by the push webhook, cleared after a reflection",
        ),
        sa.Column("webhook_id", sa.BigInteger, nullable=True),
        sa.Column("webhook_secret", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "github_repo_id", name="repos_user_github_repo_key"
        ),
    )
    op.create_index("idx_repos_github_repo_id", "repos", ["github_repo_id"])

    op.create_table(
        "reflections",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "repo_id",
            sa.UUID(as_uuid=True),
            sa.ForeignKey("repos.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("commit_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("commits_data", sa.JSON, nullable=True),
        sa.Column("comic_url", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("repo_id", "date", name="reflections_repo_id_date_key"),
    )
    op.create_index(
        "idx_reflections_repo_created", "reflections", ["repo_id", "created_at"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("reflections")
    op.drop_table("repos")
    op.drop_table("profiles")
