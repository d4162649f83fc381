# ============================================================================
# SYSTEM HEALTH CHECKS
# ============================================================================
# STATUS: Infrastructure - Process resource checks
# PURPOSE: Memory ceiling and startup grace period
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
System Health Checks

- SystemResourceCheck (system_health): resident memory against a ceiling
- ApplicationUptimeCheck (application_health): Degraded during the
  startup grace period
"""

import logging
import socket
import time
from typing import Optional

import psutil

from core.logging import ComponentType, get_logger
from health.core import HealthCheckPlugin, HealthCheckResult

BYTES_PER_MB = 1024 * 1024


def format_uptime(seconds: float) -> str:
    """Format seconds as dd.hh:mm:ss."""
    total = int(seconds)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{days:02d}.{hours:02d}:{minutes:02d}:{secs:02d}"


def process_uptime_seconds(process: psutil.Process) -> float:
    return max(0.0, time.time() - process.create_time())


class SystemResourceCheck(HealthCheckPlugin):
    """
    Process memory health check.

    Status:
        rss > limit                 -> Unhealthy
        rss > limit * ratio         -> Degraded
        otherwise                   -> Healthy

    The same data keys are reported in every branch.
    """

    name = "system_health"

    def __init__(
        self,
        memory_limit_mb: int = 1024,
        degraded_ratio: float = 0.8,
        process: Optional[psutil.Process] = None,
        logger: Optional[logging.LoggerAdapter] = None,
    ):
        self.memory_limit_mb = memory_limit_mb
        self.degraded_ratio = degraded_ratio
        self.process = process or psutil.Process()
        self.logger = logger or get_logger(__name__, ComponentType.HEALTH)

    async def check(self) -> HealthCheckResult:
        memory_used_mb = self.process.memory_info().rss // BYTES_PER_MB
        uptime = process_uptime_seconds(self.process)

        data = {
            "MemoryUsed_MB": memory_used_mb,
            "MemoryLimit_MB": self.memory_limit_mb,
            "Uptime": format_uptime(uptime),
            "ThreadCount": self.process.num_threads(),
            "ProcessId": self.process.pid,
            "MachineName": socket.gethostname(),
        }

        if memory_used_mb > self.memory_limit_mb:
            self.logger.warning(f"High memory usage detected: {memory_used_mb} MB")
            return HealthCheckResult.unhealthy(
                f"Memory usage ({memory_used_mb} MB) exceeds limit ({self.memory_limit_mb} MB)",
                **data,
            )

        if memory_used_mb > self.memory_limit_mb * self.degraded_ratio:
            return HealthCheckResult.degraded(
                f"Memory usage is high: {memory_used_mb} MB",
                **data,
            )

        return HealthCheckResult.healthy(
            f"System is healthy. Memory: {memory_used_mb} MB, "
            f"Uptime: {uptime / 3600:.1f} hours",
            **data,
        )


class ApplicationUptimeCheck(HealthCheckPlugin):
    """Degraded until the process has been up for the grace period."""

    name = "application_health"

    def __init__(
        self,
        grace_seconds: float = 10.0,
        process: Optional[psutil.Process] = None,
    ):
        self.grace_seconds = grace_seconds
        self.process = process or psutil.Process()

    async def check(self) -> HealthCheckResult:
        uptime = process_uptime_seconds(self.process)

        if uptime < self.grace_seconds:
            return HealthCheckResult.degraded("Application is starting up")

        return HealthCheckResult.healthy(
            f"Application running for {uptime / 60:.1f} minutes"
        )


__all__ = [
    "SystemResourceCheck",
    "ApplicationUptimeCheck",
    "format_uptime",
]
