"""
Register collaborator implementations with the global registries.
"""

from jot.config.logging import get_logger
from jot.config.settings import Settings
from jot.v1.core.registries import (
    commit_source_registry,
    content_generator_registry,
    image_generator_registry,
    notifier_registry,
)
from jot.v1.integrations.anthropic import AnthropicContentGenerator
from jot.v1.integrations.email import ConsoleNotifier, ResendNotifier
from jot.v1.integrations.fal import FalImageGenerator, NoImageGenerator
from jot.v1.integrations.github import GitHubCommitSource

logger = get_logger(__name__)

COMMIT_SOURCE = "github"
CONTENT_GENERATOR = "anthropic"


def register_integrations(settings: Settings) -> None:
    """Register every collaborator. A no-op once the registries are frozen."""
    if commit_source_registry.is_frozen():
        return

    commit_source_registry.register(COMMIT_SOURCE, GitHubCommitSource(settings))
    content_generator_registry.register(
        CONTENT_GENERATOR, AnthropicContentGenerator(settings)
    )
    image_generator_registry.register("none", NoImageGenerator())
    image_generator_registry.register("fal", FalImageGenerator(settings))
    notifier_registry.register("console", ConsoleNotifier(settings))
    notifier_registry.register("resend", ResendNotifier(settings))

    logger.info(
        "Integrations registered",
        image_backends=image_generator_registry.list(),
        email_backends=notifier_registry.list(),
    )


def freeze_registries() -> None:
    for registry in (
        commit_source_registry,
        content_generator_registry,
        image_generator_registry,
        notifier_registry,
    ):
        registry.freeze()
