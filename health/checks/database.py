# ============================================================================
# DATABASE HEALTH CHECKS
# ============================================================================
# STATUS: Infrastructure - PostgreSQL connectivity and schema checks
# PURPOSE: Database reachability, entity counts and migration state
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Database Health Checks

- DatabaseConnectivityCheck (database_health): bounded connectivity probe
  plus best-effort database name and todo/user counts
- DatabaseContextCheck (database_context): a session can be opened against
  the configured database; reflects the startup migration state
"""

import logging
import time
from typing import Any, Dict, Optional

from core.logging import ComponentType, get_logger
from health.core import (
    HealthCheckPlugin,
    HealthCheckResult,
    format_timestamp,
    utcnow,
)
from infrastructure.database_initializer import DatabaseInitializer, InitializationState


class DatabaseConnectivityCheck(HealthCheckPlugin):
    """
    PostgreSQL connectivity health check.

    ``responseTime`` (ms) and ``checkTime`` are always reported when the
    probe itself did not raise. The auxiliary counts are added only when
    every auxiliary query succeeds.
    """

    name = "database_health"

    def __init__(self, database, logger: Optional[logging.LoggerAdapter] = None):
        self.database = database
        self.logger = logger or get_logger(__name__, ComponentType.HEALTH)

    async def check(self) -> HealthCheckResult:
        self.logger.debug("Starting database health check")
        start_time = time.monotonic()

        try:
            can_connect = await self.database.can_connect()
        except Exception as e:
            self.logger.error(f"Database health check failed: {e!r}")
            return HealthCheckResult.from_exception(
                e,
                errorType=type(e).__name__,
                checkTime=format_timestamp(utcnow()),
            )

        response_ms = (time.monotonic() - start_time) * 1000
        data: Dict[str, Any] = {
            "responseTime": round(response_ms, 2),
            "checkTime": format_timestamp(utcnow()),
        }

        if not can_connect:
            self.logger.error(
                f"Failed to connect to the database. Response time: {response_ms:.2f}ms"
            )
            return HealthCheckResult.unhealthy("Unable to connect to the database", **data)

        try:
            session = await self.database.describe_session()
            auxiliary = {
                "databaseName": session.get("databaseName"),
                "todoCount": await self.database.count_todos(),
                "userCount": await self.database.count_users(),
            }
        except Exception as e:
            self.logger.warning(f"Failed to retrieve additional database information: {e!r}")
        else:
            data.update(auxiliary)

        self.logger.info(
            f"Successfully connected to the database. Response time: {response_ms:.2f}ms"
        )
        return HealthCheckResult.healthy(
            "Database is connected and functioning properly",
            **data,
        )


class DatabaseContextCheck(HealthCheckPlugin):
    """
    Database session health check.

    Unhealthy once the startup initializer has given up; Degraded while
    migrations are still pending or running.
    """

    name = "database_context"

    def __init__(
        self,
        database,
        initializer: Optional[DatabaseInitializer] = None,
        logger: Optional[logging.LoggerAdapter] = None,
    ):
        self.database = database
        self.initializer = initializer
        self.logger = logger or get_logger(__name__, ComponentType.HEALTH)

    async def check(self) -> HealthCheckResult:
        state = self.initializer.state if self.initializer else InitializationState.SUCCEEDED

        if state is InitializationState.FAILED:
            return HealthCheckResult.unhealthy(
                "Database initialization failed after all retries",
                initializerState=state.value,
                attempts=self.initializer.attempts,
            )

        try:
            session = await self.database.describe_session()
        except Exception as e:
            self.logger.warning(f"Database context check failed: {e!r}")
            return HealthCheckResult.from_exception(e, initializerState=state.value)

        if state is not InitializationState.SUCCEEDED:
            return HealthCheckResult.degraded(
                "Database migrations are in progress",
                initializerState=state.value,
                **session,
            )

        return HealthCheckResult.healthy(
            "Database context is available",
            initializerState=state.value,
            **session,
        )


__all__ = [
    "DatabaseConnectivityCheck",
    "DatabaseContextCheck",
]
