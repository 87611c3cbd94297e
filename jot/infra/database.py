"""
Async engine and session handling.

Request handlers get one session per request through `get_session`. The worker
opens a short session per claim and per job through `Database.session`, so a
failed job never leaves a transaction open across the next claim.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from jot.config.settings import Settings, get_settings


class Base(DeclarativeBase):
    pass


class Database:
    """Owns the engine and the session factory."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = create_async_engine(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,
            # Shows up in pg_stat_activity next to the row locks workers hold
            connect_args={"server_settings": {"application_name": settings.app_name}},
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """A session that rolls back on error and always closes."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        await self.engine.dispose()


_database: Database | None = None


def get_database(settings: Settings = Depends(get_settings)) -> Database:
    """Process-wide Database, created on first use."""
    global _database
    if _database is None:
        _database = Database(settings)
    return _database


async def close_database() -> None:
    global _database
    if _database is not None:
        await _database.dispose()
        _database = None


async def get_session(
    database: Database = Depends(get_database),
) -> AsyncIterator[AsyncSession]:
    async with database.session() as session:
        yield session
