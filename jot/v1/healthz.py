from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from jot.config.logging import get_logger
from jot.config.settings import Settings, SettingsDep
from jot.infra.database import get_session
from jot.v1.core.exceptions import create_success_response
from jot.v1.jobs.store import JobStore

logger = get_logger(__name__)

router = APIRouter()


class DatabaseHealth(BaseModel):
    """Database health status."""

    connected: bool
    response_time_ms: float | None = None
    error: str | None = None


class QueueHealth(BaseModel):
    """Reflection queue status."""

    queue_depth: int = 0
    stale_jobs: int = 0
    failed_last_day: int = 0


@router.get("/healthz", response_model=dict)
async def health_check(
    settings: Settings = SettingsDep, session: AsyncSession = Depends(get_session)
):
    """Health check with database connectivity and queue status."""
    db_health = await _check_database_health(session)

    queue_health = None
    if db_health.connected:
        try:
            stats = await JobStore(settings).get_stats(session)
            queue_health = QueueHealth(
                queue_depth=stats.queue_depth,
                stale_jobs=stats.stale_jobs,
                failed_last_day=stats.failed_last_day,
            )
        except Exception as e:
            # Queue stats never fail the overall check
            logger.warning("Queue health check failed", error=str(e))

    health_data = {
        "ok": db_health.connected,
        "version": settings.version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
        "database": db_health.model_dump(),
        "queue": queue_health.model_dump() if queue_health else None,
    }

    return create_success_response(data=health_data)


async def _check_database_health(session: AsyncSession) -> DatabaseHealth:
    start_time = datetime.now(UTC)

    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        await session.rollback()
        return DatabaseHealth(connected=False, error=str(e))

    response_time_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
    return DatabaseHealth(connected=True, response_time_ms=round(response_time_ms, 2))
