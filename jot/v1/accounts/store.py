"""
Repository/profile store backing the scheduler, worker and pipeline.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import get_logger
from jot.v1.accounts.models import Profile, Reflection, Repo
from jot.v1.reflections.types import RecentReflection

logger = get_logger(__name__)


@dataclass
class RepoSnapshot:
    """A repository joined with its owner's profile, read fresh per run."""

    repo_id: UUID
    name: str
    full_name: str
    owner_id: UUID
    owner_email: str | None
    owner_name: str | None
    access_token: str | None
    subscription_status: str
    trial_ends_at: datetime | None
    timezone: str | None
    last_push_at: datetime | None = None
    webhook_id: int | None = None

    @property
    def has_push_signal(self) -> bool:
        """Whether a webhook reports pushes for this repository."""
        return self.webhook_id is not None


@dataclass
class LatestReflection:
    date: date
    created_at: datetime


@dataclass
class NewReflection:
    """A reflection ready to be persisted."""

    repo_id: UUID
    date: date
    content: str
    summary: str | None
    commit_count: int
    commits_data: list[dict[str, Any]]
    comic_url: str | None = None


def _snapshot(repo: Repo, profile: Profile) -> RepoSnapshot:
    return RepoSnapshot(
        repo_id=repo.id,
        name=repo.name,
        full_name=repo.full_name,
        owner_id=profile.id,
        owner_email=profile.email,
        owner_name=profile.name,
        access_token=profile.github_access_token,
        subscription_status=profile.subscription_status,
        trial_ends_at=profile.trial_ends_at,
        timezone=profile.timezone,
        last_push_at=repo.last_push_at,
        webhook_id=repo.webhook_id,
    )


class RepositoryStore:
    """Reads repositories and owners; reads and writes reflections."""

    async def list_active_snapshots(self, session: AsyncSession) -> list[RepoSnapshot]:
        """All active repositories with their owner's profile."""
        result = await session.execute(
            select(Repo, Profile)
            .join(Profile, Repo.user_id == Profile.id)
            .where(Repo.is_active.is_(True))
            .order_by(Repo.created_at)
        )
        return [_snapshot(repo, profile) for repo, profile in result.all()]

    async def get_snapshot(
        self, session: AsyncSession, repo_id: UUID
    ) -> RepoSnapshot | None:
        """Resolve one repository, or None when it no longer exists."""
        result = await session.execute(
            select(Repo, Profile)
            .join(Profile, Repo.user_id == Profile.id)
            .where(Repo.id == repo_id)
        )
        row = result.first()
        if row is None:
            return None
        repo, profile = row
        return _snapshot(repo, profile)

    async def find_by_github_id(
        self, session: AsyncSession, github_repo_id: int
    ) -> Repo | None:
        """Find the active tracked repository for a GitHub repository id."""
        result = await session.execute(
            select(Repo)
            .where(Repo.github_repo_id == github_repo_id, Repo.is_active.is_(True))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def record_push(
        self, session: AsyncSession, repo_id: UUID, pushed_at: datetime | None = None
    ) -> None:
        """Set the push-activity signal."""
        await session.execute(
            update(Repo)
            .where(Repo.id == repo_id)
            .values(last_push_at=pushed_at or datetime.now(UTC))
        )
        await session.commit()

    async def clear_push_signal(self, session: AsyncSession, repo_id: UUID) -> None:
        """Reset last_push_at so the same inactivity window cannot retrigger."""
        await session.execute(
            update(Repo)
            .where(Repo.id == repo_id, Repo.last_push_at.is_not(None))
            .values(last_push_at=None)
        )
        await session.commit()

    async def reflection_exists(
        self, session: AsyncSession, repo_id: UUID, work_date: date
    ) -> bool:
        result = await session.execute(
            select(Reflection.id)
            .where(Reflection.repo_id == repo_id, Reflection.date == work_date)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def latest_reflection(
        self, session: AsyncSession, repo_id: UUID
    ) -> LatestReflection | None:
        result = await session.execute(
            select(Reflection.date, Reflection.created_at)
            .where(Reflection.repo_id == repo_id)
            .order_by(Reflection.date.desc())
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None
        return LatestReflection(date=row.date, created_at=row.created_at)

    async def recent_reflections(
        self, session: AsyncSession, repo_id: UUID, limit: int
    ) -> list[RecentReflection]:
        """Most recent reflections first."""
        result = await session.execute(
            select(
                Reflection.date,
                Reflection.commit_count,
                Reflection.summary,
                Reflection.content,
            )
            .where(Reflection.repo_id == repo_id)
            .order_by(Reflection.date.desc())
            .limit(limit)
        )
        return [
            RecentReflection(
                date=row.date,
                commit_count=row.commit_count or 0,
                summary=row.summary,
                content=row.content,
            )
            for row in result.all()
        ]

    async def save_reflection(
        self, session: AsyncSession, reflection: NewReflection
    ) -> UUID | None:
        """
        Insert a reflection unless one already exists for (repo, date).

        Returns the new id, or None when another writer got there first.
        """
        stmt = (
            insert(Reflection)
            .values(
                repo_id=reflection.repo_id,
                date=reflection.date,
                content=reflection.content,
                summary=reflection.summary,
                commit_count=reflection.commit_count,
                commits_data=reflection.commits_data,
                comic_url=reflection.comic_url,
            )
            .on_conflict_do_nothing(index_elements=["repo_id", "date"])
            .returning(Reflection.id)
        )
        result = await session.execute(stmt)
        reflection_id = result.scalar_one_or_none()
        await session.commit()
        return reflection_id

    async def count_reflections(self, session: AsyncSession, repo_id: UUID) -> int:
        result = await session.execute(
            select(func.count(Reflection.id)).where(Reflection.repo_id == repo_id)
        )
        return result.scalar() or 0
