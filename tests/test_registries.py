import pytest

from jot.config.settings import Settings
from jot.v1.core.registries import (
    Registry,
    commit_source_registry,
    content_generator_registry,
    image_generator_registry,
    notifier_registry,
)
from jot.v1.integrations.anthropic import AnthropicContentGenerator
from jot.v1.integrations.email import ConsoleNotifier, ResendNotifier
from jot.v1.integrations.fal import FalImageGenerator, NoImageGenerator
from jot.v1.integrations.github import GitHubCommitSource
from jot.v1.integrations.registry_init import (
    COMMIT_SOURCE,
    CONTENT_GENERATOR,
    register_integrations,
)
from jot.v1.jobs.routes import build_pipeline


def test_registry_basic_operations():
    """Test basic registry register, get, list operations."""
    registry = Registry[str]("Test")

    assert registry.list() == []

    registry.register("test_impl", "test_value")
    assert registry.get("test_impl") == "test_value"
    assert registry.list() == ["test_impl"]

    with pytest.raises(KeyError, match="No test implementation registered"):
        registry.get("nonexistent")


def test_frozen_registry_rejects_registration():
    registry = Registry[str]("Test")
    registry.register("first", "value")
    registry.freeze()

    assert registry.is_frozen()
    with pytest.raises(RuntimeError, match="registry is frozen"):
        registry.register("second", "value")
    assert registry.get("first") == "value"


def test_integrations_are_registered(test_settings):
    register_integrations(test_settings)

    assert isinstance(commit_source_registry.get(COMMIT_SOURCE), GitHubCommitSource)
    assert isinstance(
        content_generator_registry.get(CONTENT_GENERATOR), AnthropicContentGenerator
    )
    assert isinstance(image_generator_registry.get("none"), NoImageGenerator)
    assert isinstance(image_generator_registry.get("fal"), FalImageGenerator)
    assert isinstance(notifier_registry.get("console"), ConsoleNotifier)
    assert isinstance(notifier_registry.get("resend"), ResendNotifier)


def test_pipeline_uses_configured_backends(repo_store):
    settings = Settings(image_backend="fal", email_backend="resend", _env_file=None)
    register_integrations(settings)

    pipeline = build_pipeline(settings, repo_store)

    assert isinstance(pipeline.image_generator, FalImageGenerator)
    assert isinstance(pipeline.notifier, ResendNotifier)
    assert pipeline.repo_store is repo_store
