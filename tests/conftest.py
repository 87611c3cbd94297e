import os
import uuid
from collections.abc import AsyncGenerator, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jot.config.settings import Settings, get_settings
from jot.infra.database import Base, get_session
from jot.main import create_app
from jot.v1.accounts import models as account_models  # noqa: F401
from jot.v1.accounts.store import RepoSnapshot
from jot.v1.jobs import models as job_models  # noqa: F401
from tests.fakes import FakeJobStore, FakeRepoStore, FakeSession, FakeSessionFactory

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        cron_secret=None,
        default_timezone="America/New_York",
        _env_file=None,
    )


@pytest.fixture
def repo_store() -> FakeRepoStore:
    return FakeRepoStore()


@pytest.fixture
def job_store(test_settings) -> FakeJobStore:
    return FakeJobStore(test_settings)


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def fake_session(session_factory) -> FakeSession:
    return session_factory.session


@pytest.fixture
def make_snapshot():
    def _make(**overrides) -> RepoSnapshot:
        values = {
            "repo_id": uuid.uuid4(),
            "name": "widget",
            "full_name": "ada/widget",
            "owner_id": uuid.uuid4(),
            "owner_email": "ada@example.com",
            "owner_name": "Ada",
            "access_token": "gho_token",
            "subscription_status": "active",
            "trial_ends_at": None,
            "timezone": "America/New_York",
            "last_push_at": None,
            "webhook_id": None,
        }
        values.update(overrides)
        return RepoSnapshot(**values)

    return _make


# ---------------------------------------------------------------------------
# PostgreSQL-backed fixtures, skipped without DATABASE_URL
# ---------------------------------------------------------------------------


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    database_url = os.getenv("DATABASE_URL")

    if not database_url or "postgresql" not in database_url:
        pytest.skip("No PostgreSQL database available for testing")

    engine = create_async_engine(database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.execute(text("DELETE FROM reflection_jobs"))
        await conn.execute(text("DELETE FROM reflections"))
        await conn.execute(text("DELETE FROM repos"))
        await conn.execute(text("DELETE FROM profiles"))
    await engine.dispose()


@pytest.fixture
def pg_sessionmaker(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(pg_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with pg_sessionmaker() as session:
        yield session


@pytest.fixture
async def sample_repo(db_session: AsyncSession):
    """A tracked repository with an active owner."""
    from jot.v1.accounts.models import Profile, Repo

    profile = Profile(
        email=f"owner_{uuid.uuid4().hex[:8]}@example.com",
        name="Owner",
        github_access_token="gho_test",
        subscription_status="active",
        timezone="America/New_York",
    )
    db_session.add(profile)
    await db_session.flush()

    repo = Repo(
        user_id=profile.id,
        github_repo_id=int(uuid.uuid4().int % 10**9),
        name="widget",
        full_name="owner/widget",
        is_active=True,
    )
    db_session.add(repo)
    await db_session.commit()
    return repo


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------


@pytest.fixture
def simple_app():
    """Application with the database session replaced by a fake."""
    app = create_app()
    app.dependency_overrides[get_session] = lambda: FakeSession()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def simple_client(simple_app) -> Generator[TestClient, None, None]:
    with TestClient(simple_app) as test_client:
        yield test_client


@pytest.fixture
def secured_settings(test_settings) -> Settings:
    return test_settings.model_copy(update={"cron_secret": "s3cret"})


@pytest.fixture
def secured_app(simple_app, secured_settings):
    simple_app.dependency_overrides[get_settings] = lambda: secured_settings
    return simple_app
