# ============================================================================
# HEALTH PUBLISHER SCHEDULER
# ============================================================================
# STATUS: Infrastructure - Periodic health evaluation
# PURPOSE: Run the executor and publish its report on a fixed schedule
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Publisher Scheduler

Waits ``delay_seconds`` after start, then every ``period_seconds`` runs
all checks and hands the report to the publisher. Each tick is isolated:
an exception is logged and the loop continues. stop() also cancels checks
in flight so shutdown is prompt.
"""

import asyncio
import logging
from typing import Optional

from core.logging import ComponentType, get_logger
from health.executor import HealthCheckExecutor
from health.publisher import HealthReportPublisher
from health.registry import Predicate


class HealthPublisherScheduler:
    """Periodic executor -> publisher loop."""

    def __init__(
        self,
        executor: HealthCheckExecutor,
        publisher: HealthReportPublisher,
        delay_seconds: float = 10.0,
        period_seconds: float = 60.0,
        predicate: Optional[Predicate] = None,
        logger: Optional[logging.LoggerAdapter] = None,
    ):
        self.executor = executor
        self.publisher = publisher
        self.delay_seconds = delay_seconds
        self.period_seconds = period_seconds
        self.predicate = predicate
        self.logger = logger or get_logger(__name__, ComponentType.PUBLISHER)

        self.ticks = 0
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def tick(self) -> None:
        """Run checks once and publish the report."""
        report = await self.executor.run(self.predicate, cancel_event=self._stop_event)
        self.publisher.publish(report)
        self.ticks += 1

    async def _sleep(self, seconds: float) -> bool:
        """Wait, returning True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def run(self) -> None:
        """Loop until stop() is called."""
        self.logger.info(
            f"Starting health publisher (delay={self.delay_seconds}s, "
            f"period={self.period_seconds}s)"
        )

        if await self._sleep(self.delay_seconds):
            return

        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                self.logger.error(f"Health publisher tick failed: {e!r}")

            if await self._sleep(self.period_seconds):
                break

        self.logger.info("Health publisher stopped")

    def start(self) -> asyncio.Task:
        """Run the loop as a background task (idempotent)."""
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self.run(), name="health-publisher")
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
    "HealthPublisherScheduler",
]
