# ============================================================================
# HEALTH CHECK EXECUTOR
# ============================================================================
# STATUS: Infrastructure - Concurrent health check execution
# PURPOSE: Execute health checks with timeouts and aggregation
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Check Executor

Executes registered health checks with:
- Concurrent execution (one task per selected check)
- Per-check timeouts from the registration
- Failure status mapping from the registration
- Cooperative cancellation through an asyncio.Event
- Result aggregation with 'worst wins' semantics

The executor never raises for a failing check. A check that times out is
Unhealthy ("check timed out") regardless of its failure status; a check
that raises is classified and reported with its failure status.
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from core.logging import ComponentType, get_logger, log_context
from health.core import (
    HealthCheckResult,
    HealthReport,
    HealthReportEntry,
    HealthStatus,
)
from health.registry import HealthCheckRegistration, HealthCheckRegistry, Predicate

TIMED_OUT_DESCRIPTION = "check timed out"
CANCELLED_DESCRIPTION = "check cancelled"


class HealthCheckExecutor:
    """
    Executes health checks concurrently and builds a HealthReport.

    Usage:
        executor = HealthCheckExecutor(registry)
        report = await executor.run(tag_predicate("critical"))
    """

    def __init__(
        self,
        registry: HealthCheckRegistry,
        logger: Optional[logging.LoggerAdapter] = None,
    ):
        self.registry = registry
        self.logger = logger or get_logger(__name__, ComponentType.HEALTH)

    async def run(
        self,
        predicate: Optional[Predicate] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> HealthReport:
        """
        Execute the checks selected by ``predicate``.

        Args:
            predicate: Registration filter (None runs every check)
            cancel_event: When set, unfinished checks are cancelled and
                recorded as Unhealthy

        Returns:
            Fresh HealthReport
        """
        start_time = time.monotonic()
        registrations = self.registry.select(predicate)

        if not registrations:
            return HealthReport.from_entries({}, total_duration_ms=0.0)

        tasks: Dict[str, asyncio.Task] = {
            r.name: asyncio.create_task(self._execute_check(r), name=f"health:{r.name}")
            for r in registrations
        }

        try:
            await self._wait(tasks, cancel_event)
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        # Let cancelled checks settle
        await asyncio.gather(*tasks.values(), return_exceptions=True)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        entries: Dict[str, HealthReportEntry] = {}
        for registration in registrations:
            task = tasks[registration.name]
            if task.cancelled():
                entries[registration.name] = HealthReportEntry(
                    result=HealthCheckResult.unhealthy(CANCELLED_DESCRIPTION),
                    duration_ms=elapsed_ms,
                    tags=tuple(sorted(registration.tags)),
                )
            else:
                entries[registration.name] = task.result()

        report = HealthReport.from_entries(entries, total_duration_ms=elapsed_ms)
        self.logger.debug(
            f"Health run complete: {report.status.value} "
            f"({len(entries)} checks, {elapsed_ms:.1f}ms)"
        )
        return report

    async def run_single(self, name: str) -> Optional[HealthReport]:
        """
        Execute one check by name.

        Returns:
            Report with a single entry, or None for an unknown name
        """
        if name not in self.registry:
            return None
        return await self.run(lambda r: r.name == name)

    async def _wait(
        self,
        tasks: Dict[str, asyncio.Task],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        pending = set(tasks.values())
        if cancel_event is None:
            await asyncio.wait(pending)
            return

        waiter = asyncio.create_task(cancel_event.wait())
        try:
            while pending and not waiter.done():
                done, _ = await asyncio.wait(
                    pending | {waiter},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                pending -= done
        finally:
            waiter.cancel()

        if pending:
            self.logger.warning(f"Health run cancelled with {len(pending)} checks pending")

    async def _execute_check(
        self,
        registration: HealthCheckRegistration,
    ) -> HealthReportEntry:
        """Execute a single check with its timeout and failure mapping."""
        start_time = time.monotonic()

        with log_context(check_name=registration.name, component=ComponentType.HEALTH.value):
            try:
                result = await asyncio.wait_for(
                    registration.check.check(),
                    timeout=registration.timeout_seconds,
                )
                if result.status is HealthStatus.UNHEALTHY:
                    result = result.with_status(registration.failure_status)

            except asyncio.TimeoutError:
                self.logger.warning(
                    f"Health check {registration.name} timed out "
                    f"after {registration.timeout_seconds}s"
                )
                result = HealthCheckResult.unhealthy(
                    TIMED_OUT_DESCRIPTION,
                    timeoutSeconds=registration.timeout_seconds,
                )

            except Exception as e:
                self.logger.error(f"Health check {registration.name} raised: {e!r}")
                result = HealthCheckResult.from_exception(
                    e,
                    status=registration.failure_status,
                )

            duration_ms = (time.monotonic() - start_time) * 1000
            self.logger.debug(
                f"Health check {registration.name}: {result.status.value} "
                f"({duration_ms:.1f}ms)"
            )

        return HealthReportEntry(
            result=result,
            duration_ms=duration_ms,
            tags=tuple(sorted(registration.tags)),
        )


__all__ = [
    "HealthCheckExecutor",
    "TIMED_OUT_DESCRIPTION",
    "CANCELLED_DESCRIPTION",
]
