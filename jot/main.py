from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from jot.config.logging import get_logger, setup_logging
from jot.config.settings import settings
from jot.infra.database import close_database
from jot.v1.core.exceptions import (
    JotException,
    RequestContextMiddleware,
    general_exception_handler,
    http_exception_handler,
    jot_exception_handler,
)
from jot.v1.healthz import router as health_router
from jot.v1.integrations.registry_init import freeze_registries, register_integrations
from jot.v1.jobs.routes import cron_router, jobs_router
from jot.v1.webhooks.routes import router as webhooks_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "API starting",
        environment=settings.environment,
        image_backend=settings.image_backend.value,
        email_backend=settings.email_backend.value,
        cron_auth=bool(settings.cron_secret),
    )
    yield
    await close_database()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Nightly reflections on a day's commits, driven by a Postgres job queue",
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url="/v1/redoc" if settings.debug else None,
    )

    app.add_middleware(RequestContextMiddleware)

    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(JotException, jot_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router, prefix="/v1", tags=["health"])
    app.include_router(cron_router, prefix="/v1")
    app.include_router(jobs_router, prefix="/v1")
    app.include_router(webhooks_router, prefix="/v1")

    register_integrations(settings)

    # Collaborators are fixed at startup outside development
    if settings.environment != "development":
        freeze_registries()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "jot.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
