# ============================================================================
# DATABASE HEALTH MONITOR
# ============================================================================
# STATUS: Service - Background connectivity probe
# PURPOSE: Periodically log database reachability
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Database Health Monitor

Background loop that probes the database and logs the outcome:
- success: INFO, next probe after ``interval_seconds`` (default 5 min)
- failure: WARNING, next probe after ``failure_interval_seconds`` (1 min)

The cadence is two-level and does not compound; consecutive failures are
counted for diagnostics only.

Usage:
    monitor = DatabaseHealthMonitor(db)
    monitor.start()
    ...
    await monitor.stop()
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from core.errors import classify
from core.logging import ComponentType, get_logger
from health.core import HealthStatus


@dataclass
class MonitorState:
    """Outcome of the most recent probe."""
    last_status: Optional[HealthStatus] = None
    consecutive_failures: int = 0
    last_checked_at: Optional[datetime] = None


class DatabaseHealthMonitor:
    """Periodic database connectivity probe."""

    def __init__(
        self,
        database,
        interval_seconds: float = 300.0,
        failure_interval_seconds: float = 60.0,
        probe_timeout: float = 10.0,
        logger: Optional[logging.LoggerAdapter] = None,
    ):
        self.database = database
        self.interval_seconds = interval_seconds
        self.failure_interval_seconds = failure_interval_seconds
        self.probe_timeout = probe_timeout
        self.logger = logger or get_logger(__name__, ComponentType.MONITOR)

        self.state = MonitorState()
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def probe_once(self) -> float:
        """
        Probe the database once and update state.

        Returns:
            Seconds to wait before the next probe
        """
        now = datetime.now(timezone.utc)
        try:
            can_connect = await asyncio.wait_for(
                self.database.can_connect(),
                timeout=self.probe_timeout,
            )
            failure = None if can_connect else "connection check returned false"
        except Exception as e:
            info = classify(e)
            failure = f"{info.kind.value}: {info.user_message}"

        self.state.last_checked_at = now

        if failure is None:
            self.state.last_status = HealthStatus.HEALTHY
            self.state.consecutive_failures = 0
            self.logger.info(f"Database is connected and working correctly - {now.isoformat()}")
            return self.interval_seconds

        self.state.last_status = HealthStatus.UNHEALTHY
        self.state.consecutive_failures += 1
        self.logger.warning(
            f"Cannot connect to the database - {now.isoformat()} "
            f"({failure}, consecutive failures: {self.state.consecutive_failures})"
        )
        return self.failure_interval_seconds

    async def run(self) -> None:
        """Loop until stop() is called."""
        self.logger.info(
            f"Starting database monitor (interval={self.interval_seconds}s, "
            f"failure_interval={self.failure_interval_seconds}s)"
        )

        while not self._stop_event.is_set():
            try:
                delay = await self.probe_once()
            except Exception as e:
                self.logger.error(f"An error occurred while monitoring database health: {e!r}")
                delay = self.failure_interval_seconds

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass

        self.logger.info("Database monitor stopped")

    def start(self) -> asyncio.Task:
        """Run the loop as a background task (idempotent)."""
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self.run(), name="database-monitor")
        return self._task

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it."""
        self._stop_event.set()
        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=5.0)
            except asyncio.TimeoutError:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None


__all__ = [
    "MonitorState",
    "DatabaseHealthMonitor",
]
