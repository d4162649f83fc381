# ============================================================================
# DATABASE INITIALIZER - STARTUP MIGRATIONS WITH RETRY
# ============================================================================
# STATUS: Infrastructure - Database initialization orchestrator
# PURPOSE: Apply schema migrations in the background with exponential backoff
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
DatabaseInitializer - startup migrations that never block the HTTP server.

Workflow:
1. start() launches run_once() as a detached asyncio task
2. Each attempt logs the redacted connection string and applies pending
   migrations (idempotent)
3. A failed attempt n waits base_delay * 2**n seconds before the next one
4. After retry_count retries the initializer gives up: ERROR log, state
   FAILED, process keeps serving

The state is read by DatabaseContextCheck:
    PENDING -> RUNNING -> SUCCEEDED | FAILED

Usage:
    initializer = DatabaseInitializer(db, retry_count=10, base_delay=1.0)
    initializer.start()            # returns immediately

    initializer.state              # InitializationState.RUNNING
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from core.errors import classify
from core.logging import ComponentType, get_logger, redact_connection_string
from health.core import format_timestamp, utcnow


class InitializationState(str, Enum):
    """Lifecycle of the startup initializer."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def retry_delays(retry_count: int, base_delay: float) -> List[float]:
    """Delay before each retry: base * 2**1 ... base * 2**retry_count."""
    return [base_delay * (2 ** attempt) for attempt in range(1, retry_count + 1)]


class DatabaseInitializer:
    """
    Applies database migrations at startup with exponential backoff.

    ``database`` is anything with ``connection_string`` and an async
    ``apply_pending_migrations()`` (repositories.database.TodoDatabase).
    """

    def __init__(
        self,
        database,
        retry_count: int = 10,
        base_delay: float = 1.0,
        logger: Optional[logging.LoggerAdapter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.database = database
        self.retry_count = retry_count
        self.base_delay = base_delay
        self.logger = logger or get_logger(__name__, ComponentType.INITIALIZER)
        self._sleep = sleep

        self._state = InitializationState.PENDING
        self._attempts = 0
        self._task: Optional[asyncio.Task] = None
        self._completed_at: Optional[datetime] = None
        self._applied: List[str] = []

    @property
    def state(self) -> InitializationState:
        return self._state

    @property
    def attempts(self) -> int:
        """Attempts made so far (initial try included)."""
        return self._attempts

    @property
    def applied_migrations(self) -> List[str]:
        return list(self._applied)

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self) -> asyncio.Task:
        """
        Launch run_once() in the background.

        Repeated calls return the task created by the first call.
        """
        if self._task is None:
            self._task = asyncio.create_task(
                self.run_once(self.retry_count, self.base_delay),
                name="database-initializer",
            )
        return self._task

    async def stop(self) -> None:
        """Cancel the background task if it is still running."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def run_once(
        self,
        retry_count: Optional[int] = None,
        base_delay: Optional[float] = None,
    ) -> InitializationState:
        """
        Apply migrations, retrying failed attempts with exponential backoff.

        Never raises for a failed attempt; returns the final state.
        """
        retry_count = self.retry_count if retry_count is None else retry_count
        base_delay = self.base_delay if base_delay is None else base_delay
        delays = retry_delays(retry_count, base_delay)

        self._state = InitializationState.RUNNING
        self._attempts = 0

        while True:
            self._attempts += 1
            try:
                await self._attempt()
            except Exception as e:
                retry_index = self._attempts - 1
                if retry_index >= len(delays):
                    self._give_up(e)
                    return self._state

                delay = delays[retry_index]
                self.logger.warning(
                    f"Database connection attempt {self._attempts} failed. "
                    f"Retrying in {delay:.1f} seconds. Error: {e}"
                )
                await self._sleep(delay)
                continue

            self._state = InitializationState.SUCCEEDED
            self._completed_at = utcnow()
            self.logger.info("Database migration completed successfully")
            return self._state

    async def _attempt(self) -> None:
        connection_string = self.database.connection_string
        if connection_string:
            self.logger.info(
                f"Connection string: {redact_connection_string(connection_string)}"
            )

        self.logger.info("Applying database migrations...")
        self._applied = await self.database.apply_pending_migrations()

    def _give_up(self, error: Exception) -> None:
        self._state = InitializationState.FAILED
        self._completed_at = utcnow()

        info = classify(error)
        inner = error.__cause__ or error.__context__
        message = f"{error} | Inner: {inner}" if inner else str(error)
        self.logger.error(
            f"Database initialization failed after {self._attempts} attempts "
            f"({info.kind.value}): {message}"
        )

    def to_dict(self) -> dict:
        """State summary for diagnostics."""
        return {
            "state": self._state.value,
            "attempts": self._attempts,
            "retry_count": self.retry_count,
            "applied_migrations": list(self._applied),
            "completed_at": format_timestamp(self._completed_at) if self._completed_at else None,
        }


__all__ = [
    "InitializationState",
    "DatabaseInitializer",
    "retry_delays",
]
