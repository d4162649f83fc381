# ============================================================================
# TODO SERVICE - MAIN APPLICATION
# ============================================================================
# STATUS: Core - FastAPI application entry point
# PURPOSE: Wire database, startup migrations, health checks and background loops
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Todo Service Main Application

FastAPI application that:
1. Opens the database pool without waiting for the database
2. Applies migrations in the background with exponential backoff
3. Serves /health, /health/ready and /health/live
4. Runs the database monitor and the health report publisher

The HTTP server starts even when the database is down; /health/live
answers 200 throughout while /health reports the outage.

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8080
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, APP_NAME
from api.errors import install_error_handling
from core.config import Settings, get_settings
from core.logging import configure_logging, get_logger
from health import (
    HealthCheckExecutor,
    HealthHistory,
    HealthPublisherScheduler,
    HealthReportPublisher,
    health_router,
    set_health_services,
)
from health.checks import build_default_registry
from infrastructure import DatabaseInitializer
from repositories.database import init_pool, close_pool, TodoDatabase
from services import DatabaseHealthMonitor

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
    static_fields={
        "app": APP_NAME,
        "environment": os.environ.get("APP_ENV", "Production"),
    },
)
logger = get_logger(__name__)


def create_lifespan(settings: Settings):
    """Build the lifespan handler for ``settings``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Initializes services on startup, cleans up on shutdown.
        """
        logger.info(f"Starting {APP_NAME} v{__version__} (Build {BUILD_DATE})")

        pool = await init_pool(settings.database)
        database = TodoDatabase(
            pool,
            settings.database.connection_string,
            probe_timeout=settings.database.probe_timeout,
        )

        # Startup migrations run detached; the server never waits for them
        initializer = DatabaseInitializer(
            database,
            retry_count=settings.initializer.retry_count,
            base_delay=settings.initializer.base_delay_seconds,
        )
        initializer.start()

        registry = build_default_registry(settings, database, initializer)
        executor = HealthCheckExecutor(registry)
        history = HealthHistory(settings.publisher.history_size)
        set_health_services(
            executor,
            history,
            development=settings.environment.is_development,
        )
        logger.info(f"Health checks initialized ({len(registry)} checks registered)")

        monitor = DatabaseHealthMonitor(
            database,
            interval_seconds=settings.monitor.interval_seconds,
            failure_interval_seconds=settings.monitor.failure_interval_seconds,
            probe_timeout=settings.health.database_timeout,
        )
        scheduler = HealthPublisherScheduler(
            executor,
            HealthReportPublisher(history),
            delay_seconds=settings.publisher.delay_seconds,
            period_seconds=settings.publisher.period_seconds,
        )
        monitor.start()
        scheduler.start()

        app.state.database = database
        app.state.initializer = initializer
        app.state.monitor = monitor
        app.state.scheduler = scheduler

        yield

        # Shutdown
        logger.info(f"Shutting down {APP_NAME}...")

        await scheduler.stop()
        await monitor.stop()
        await initializer.stop()
        await close_pool()

        logger.info(f"{APP_NAME} stopped")

    return lifespan


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application."""
    settings = settings or get_settings()
    development = settings.environment.is_development

    app = FastAPI(
        title=APP_NAME,
        description="Todo service with health monitoring and startup resilience",
        version=__version__,
        lifespan=create_lifespan(settings),
    )

    install_error_handling(app, development=development)

    # Health check routes (/health, /health/ready, /health/live)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": APP_NAME,
            "version": __version__,
            "build_date": BUILD_DATE,
            "environment": settings.environment.environment,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8080"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
