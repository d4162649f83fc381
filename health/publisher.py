# ============================================================================
# HEALTH REPORT PUBLISHER
# ============================================================================
# STATUS: Infrastructure - Health report logging and history
# PURPOSE: Log each report at a status-derived severity, keep recent summaries
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Report Publisher

Writes a HealthReport to the log:
- one aggregate line (status, total duration)
- one line per entry (name, status, duration, description, error)
- one structured line per entry that carries data

Severity follows the status: Healthy -> INFO, Degraded -> WARNING,
Unhealthy -> ERROR. Every published report is also summarized into a
bounded in-memory HealthHistory (served by GET /health/history).

publish() never raises; a failure is logged at ERROR against the
publisher.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from core.logging import ComponentType, get_logger
from health.core import HealthReport, HealthStatus, format_timestamp

LEVEL_MAP = {
    HealthStatus.HEALTHY: logging.INFO,
    HealthStatus.DEGRADED: logging.WARNING,
    HealthStatus.UNHEALTHY: logging.ERROR,
}


@dataclass(frozen=True)
class HealthSnapshot:
    """Summary of one published report."""
    status: HealthStatus
    total_duration_ms: float
    generated_at: datetime
    entries: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_report(cls, report: HealthReport) -> "HealthSnapshot":
        return cls(
            status=report.status,
            total_duration_ms=report.total_duration_ms,
            generated_at=report.generated_at,
            entries={name: e.status.value for name, e in report.entries.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "duration": f"{self.total_duration_ms / 1000:.2f}",
            "timestamp": format_timestamp(self.generated_at),
            "checks": dict(self.entries),
        }


class HealthHistory:
    """Bounded ring buffer of report summaries, oldest first."""

    def __init__(self, max_entries: int = 50):
        self.max_entries = max_entries
        self._items: Deque[HealthSnapshot] = deque(maxlen=max_entries)

    def append(self, report: HealthReport) -> HealthSnapshot:
        snapshot = HealthSnapshot.from_report(report)
        self._items.append(snapshot)
        return snapshot

    def list(self) -> List[HealthSnapshot]:
        return list(self._items)

    def latest(self) -> Optional[HealthSnapshot]:
        return self._items[-1] if self._items else None

    def __len__(self) -> int:
        return len(self._items)


class HealthReportPublisher:
    """
    Logs health reports.

    Usage:
        publisher = HealthReportPublisher(history=HealthHistory(50))
        publisher.publish(report)
    """

    def __init__(
        self,
        history: Optional[HealthHistory] = None,
        logger: Optional[logging.LoggerAdapter] = None,
    ):
        self.history = history
        self.logger = logger or get_logger(__name__, ComponentType.PUBLISHER)

    def publish(self, report: HealthReport) -> None:
        """Log ``report`` and record it in the history."""
        try:
            self._log_report(report)
            if self.history is not None:
                self.history.append(report)
        except Exception as e:
            self.logger.error(f"Failed to publish health report: {e!r}")

    def _log_report(self, report: HealthReport) -> None:
        self.logger.log(
            LEVEL_MAP[report.status],
            f"System is in {report.status.value} state. "
            f"Duration: {report.total_duration_ms:.2f}ms",
        )

        for name, entry in report.entries.items():
            level = LEVEL_MAP[entry.status]
            result = entry.result
            message = (
                f"Health check {name} is in {entry.status.value} state "
                f"({entry.duration_ms:.2f}ms): {result.description}"
            )

            if result.error is not None:
                self.logger.log(
                    level,
                    f"{message} [{result.error.kind.value}]",
                    extra={"technical_details": result.error.technical_details},
                )
            else:
                self.logger.log(level, message)

            if result.data:
                self.logger.log(
                    level,
                    f"Additional data for health check {name}",
                    extra={"health_data": dict(result.data)},
                )


__all__ = [
    "LEVEL_MAP",
    "HealthSnapshot",
    "HealthHistory",
    "HealthReportPublisher",
]
