"""
VR Therapy FastAPI Application Entry Point

Main application initialization with:
- Lifespan management (startup/shutdown)
- CORS configuration
- Error handling and rate limiting middleware
- Router registration
- Abandoned-session sweeper (when configured)

This is the production entry point for the VR therapy backend.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vrtherapy import __version__
from vrtherapy.api.middleware import (
    ErrorHandlerMiddleware,
    RateLimitMiddleware,
    register_exception_handlers,
)
from vrtherapy.api.v1.router import api_router
from vrtherapy.config import get_settings
from vrtherapy.config.logging_config import configure_logging, get_logger
from vrtherapy.infrastructure.database import get_db_manager, repositories_scope
from vrtherapy.infrastructure.metrics import metrics_router, update_system_info
from vrtherapy.infrastructure.monitoring import init_sentry
from vrtherapy.services.maintenance import AbandonedSessionSweeper

# Initialize settings and logging
settings = get_settings()
configure_logging(settings)
logger = get_logger(__name__)


def start_sweeper() -> Optional[asyncio.Task]:
    """Start the abandoned-session sweep if a timeout is configured."""
    timeout = settings.sessions.abandon_timeout_minutes
    if timeout is None:
        return None
    sweeper = AbandonedSessionSweeper(
        repositories_scope,
        timeout_minutes=timeout,
        interval_seconds=settings.sessions.sweep_interval_seconds,
    )
    return asyncio.create_task(sweeper.run())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of all services.
    """
    logger.info(
        "Starting VR therapy application",
        env=settings.env,
        version=__version__,
    )

    sweeper_task: Optional[asyncio.Task] = None
    try:
        init_sentry(settings, release=f"vrtherapy@{__version__}")
        update_system_info(settings.env, __version__)

        db = get_db_manager()
        await db.initialize()
        if settings.database.auto_create_schema:
            await db.create_schema()
        logger.info("Database connection initialized")

        sweeper_task = start_sweeper()

        yield

    finally:
        logger.info("Shutting down VR therapy application")

        if sweeper_task:
            sweeper_task.cancel()
            try:
                await sweeper_task
            except asyncio.CancelledError:
                pass

        await get_db_manager().close()

        logger.info("VR therapy application shutdown complete")


def create_application() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="VR Therapy API",
        description="VR exposure therapy sessions, VR runtime handshake and outcome analytics",
        version=__version__,
        docs_url="/docs" if not settings.is_production() else None,
        redoc_url="/redoc" if not settings.is_production() else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting runs inside the error handler so rejections carry a correlation ID
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    register_exception_handlers(app)

    app.include_router(
        api_router,
        prefix=f"/api/{settings.api_version}",
    )
    app.include_router(metrics_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint - basic info."""
        return {
            "name": "VR Therapy API",
            "version": __version__,
            "status": "operational",
        }

    return app


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vrtherapy.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.env == "development",
        log_level=settings.log_level.lower(),
    )
