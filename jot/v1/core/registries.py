from datetime import date, datetime
from typing import Generic, Protocol, TypeVar

from jot.v1.reflections.types import (
    Commit,
    GeneratedReflection,
    RecentReflection,
    ReflectionContext,
)

# Base registry implementation
T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}
        self._frozen = False

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name."""
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{name}' in {self.name.lower()} registry: "
                "registry is frozen in production mode"
            )
        self._implementations[name] = implementation

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise KeyError(
                f"No {self.name.lower()} implementation registered with name: {name}"
            )
        return self._implementations[name]

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen


# Commit Source - source-control host access
class CommitSource(Protocol):
    """Protocol for fetching commits from a source-control host."""

    async def fetch_commits(
        self, credential: str, full_name: str, since: datetime
    ) -> list[Commit]:
        """
        Fetch commits authored since `since` across all branches.

        Commits are deduplicated by sha and ordered newest first.
        """
        ...

    async def fetch_commit_detail(
        self, credential: str, full_name: str, sha: str
    ) -> Commit:
        """Fetch one commit including line stats and touched files."""
        ...


class CommitSourceRegistry(Registry[CommitSource]):
    """Registry for commit sources (github)."""

    def __init__(self):
        super().__init__("CommitSource")


# Content Generator - language model reflections
class ContentGenerator(Protocol):
    """Protocol for reflection writers."""

    async def generate(self, context: ReflectionContext) -> GeneratedReflection:
        """Write a reflection for a day with commits."""
        ...

    async def generate_quiet(
        self, context: ReflectionContext, recent_history: list[RecentReflection]
    ) -> GeneratedReflection | None:
        """
        Write a reflection for a day without commits.

        Returns None when enough quiet days have accumulated that the
        repository should go silent until activity resumes.
        """
        ...


class ContentGeneratorRegistry(Registry[ContentGenerator]):
    """Registry for content generators (anthropic)."""

    def __init__(self):
        super().__init__("ContentGenerator")


# Image Generator - best-effort illustrations
class ImageGenerator(Protocol):
    """Protocol for image generators. Failures return None instead of raising."""

    async def generate_image(self, content: str) -> str | None:
        ...


class ImageGeneratorRegistry(Registry[ImageGenerator]):
    """Registry for image generators (none, fal)."""

    def __init__(self):
        super().__init__("ImageGenerator")


# Notifier - email delivery
class Notifier(Protocol):
    """Protocol for reflection delivery."""

    async def send_reflection(
        self,
        to: str,
        owner_name: str | None,
        repo_name: str,
        work_date: date,
        content: str,
        image_url: str | None = None,
    ) -> str:
        """Send a reflection and return the provider message id."""
        ...

    async def send_tips(self, to: str, owner_name: str | None) -> str:
        """Send the one-time tips email."""
        ...


class NotifierRegistry(Registry[Notifier]):
    """Registry for notifiers (console, resend)."""

    def __init__(self):
        super().__init__("Notifier")


# Global registry instances (singletons)
commit_source_registry = CommitSourceRegistry()
content_generator_registry = ContentGeneratorRegistry()
image_generator_registry = ImageGeneratorRegistry()
notifier_registry = NotifierRegistry()
