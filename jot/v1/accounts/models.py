"""
Profiles, tracked repositories and generated reflections.
"""

from datetime import date as calendar_date
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from jot.infra.database import Base


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration."""

    TRIAL = "trial"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Profile(Base, TimestampMixin):
    """Repository owner with subscription and delivery preferences."""

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    email: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str | None] = mapped_column(Text)
    github_access_token: Mapped[str | None] = mapped_column(Text)
    subscription_status: Mapped[str] = mapped_column(
        Text, nullable=False, default=SubscriptionStatus.TRIAL.value
    )
    trial_ends_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    timezone: Mapped[str | None] = mapped_column(
        Text, comment="IANA timezone, e.g. America/New_York"
    )

    repos: Mapped[list["Repo"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "subscription_status IN ('trial', 'active', 'cancelled', 'past_due')",
            name="profiles_subscription_status_check",
        ),
    )


class Repo(Base, TimestampMixin):
    """A GitHub repository tracked for daily reflections."""

    __tablename__ = "repos"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    github_repo_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Push-activity signal maintained by the GitHub webhook
    last_push_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    webhook_id: Mapped[int | None] = mapped_column(BigInteger)
    webhook_secret: Mapped[str | None] = mapped_column(Text)

    owner: Mapped["Profile"] = relationship(back_populates="repos")

    __table_args__ = (
        UniqueConstraint("user_id", "github_repo_id", name="repos_user_github_repo_key"),
    )


class Reflection(Base):
    """A generated reflection for one repository and work-date."""

    __tablename__ = "reflections"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    repo_id: Mapped[UUID] = mapped_column(
        PG_UUID, ForeignKey("repos.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[calendar_date] = mapped_column(Date, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text)
    commit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    commits_data: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    comic_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("repo_id", "date", name="reflections_repo_id_date_key"),
    )
