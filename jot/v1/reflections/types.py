"""
Value types shared by the reflection pipeline and its collaborators.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass
class Commit:
    """A commit as returned by the commit source, optionally with diff stats."""

    sha: str
    message: str
    author_name: str
    authored_at: datetime
    url: str | None = None
    additions: int | None = None
    deletions: int | None = None
    files: list[str] = field(default_factory=list)

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def headline(self) -> str:
        return self.message.splitlines()[0] if self.message else ""

    def to_record(self) -> dict[str, Any]:
        """Raw metadata stored alongside a reflection."""
        return {
            "sha": self.sha,
            "message": self.message,
            "date": self.authored_at.isoformat(),
        }


@dataclass
class RecentReflection:
    """One prior reflection, most recent first in any list of history."""

    date: date
    commit_count: int
    summary: str | None = None
    content: str | None = None


@dataclass
class ReflectionContext:
    """Everything the content generator needs to write one reflection."""

    repo_name: str
    work_date: date
    timezone: str
    commits: list[Commit] = field(default_factory=list)
    owner_name: str | None = None


@dataclass
class GeneratedReflection:
    content: str
    summary: str | None = None
