# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# STATUS: Infrastructure - Base classes for health checks
# PURPOSE: Health check plugin interface, result and report types
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Check Core Types

Defines the plugin interface and the result/report types for health checks.

Status Hierarchy (worst wins):
- Healthy: All systems operational
- Degraded: Operational with warnings (non-blocking issues)
- Unhealthy: Critical failure

Results and reports are immutable; every run of the executor produces a
fresh HealthReport.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from core.errors import ErrorInfo, classify


class HealthStatus(str, Enum):
    """Health check status values, ordered Healthy < Degraded < Unhealthy."""
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def aggregate(cls, statuses: Iterable["HealthStatus"]) -> "HealthStatus":
        """Aggregate multiple statuses (worst wins, Healthy when empty)."""
        return max(statuses, key=lambda s: s.severity, default=cls.HEALTHY)


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with a trailing Z."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class HealthCheckResult:
    """Result from a single health check."""
    status: HealthStatus
    description: Optional[str] = None
    data: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[ErrorInfo] = None

    @classmethod
    def healthy(cls, description: str = None, **data) -> "HealthCheckResult":
        """Create healthy result."""
        return cls(status=HealthStatus.HEALTHY, description=description, data=data)

    @classmethod
    def degraded(cls, description: str, **data) -> "HealthCheckResult":
        """Create degraded result."""
        return cls(status=HealthStatus.DEGRADED, description=description, data=data)

    @classmethod
    def unhealthy(cls, description: str, **data) -> "HealthCheckResult":
        """Create unhealthy result."""
        return cls(status=HealthStatus.UNHEALTHY, description=description, data=data)

    @classmethod
    def from_exception(
        cls,
        e: BaseException,
        description: str = None,
        status: HealthStatus = HealthStatus.UNHEALTHY,
        **data,
    ) -> "HealthCheckResult":
        """
        Create a failed result from an exception.

        The description is the classified user message unless one is given;
        exception text only reaches ``error.technical_details``.
        """
        info = classify(e)
        return cls(
            status=status,
            description=description or info.user_message,
            data=data,
            error=info,
        )

    def with_status(self, status: HealthStatus) -> "HealthCheckResult":
        """Copy of this result with a different status."""
        return replace(self, status=status)

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: Dict[str, Any] = {
            "status": self.status.value,
            "description": self.description,
            "error": self.error.to_dict() if self.error else None,
        }
        if include_details:
            result["data"] = dict(self.data)
            result["technical_details"] = (
                self.error.technical_details if self.error else None
            )
        return result


@dataclass(frozen=True)
class HealthReportEntry:
    """One check's outcome within a report."""
    result: HealthCheckResult
    duration_ms: float
    tags: Tuple[str, ...] = ()

    @property
    def status(self) -> HealthStatus:
        return self.result.status


@dataclass(frozen=True)
class HealthReport:
    """Aggregated result from one executor run."""
    status: HealthStatus
    total_duration_ms: float
    entries: Mapping[str, HealthReportEntry] = field(default_factory=dict)
    generated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_entries(
        cls,
        entries: Mapping[str, HealthReportEntry],
        total_duration_ms: float,
    ) -> "HealthReport":
        """Build a report whose status is the worst entry status."""
        return cls(
            status=HealthStatus.aggregate(e.status for e in entries.values()),
            total_duration_ms=total_duration_ms,
            entries=dict(entries),
        )

    def to_dict(self, include_details: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        checks = []
        for name, entry in self.entries.items():
            item = {"name": name}
            item.update(entry.result.to_dict(include_details=include_details))
            item["duration"] = f"{entry.duration_ms / 1000:.2f}"
            checks.append(item)

        return {
            "status": self.status.value,
            "duration": f"{self.total_duration_ms / 1000:.2f}",
            "timestamp": format_timestamp(self.generated_at),
            "checks": checks,
        }


class HealthCheckPlugin(ABC):
    """
    Base class for health checks.

    Subclass and implement check(). Registration (name, tags, timeout,
    failure status) lives in the registry table, not on the class.

    check() must not raise for ordinary failures: catch the exception and
    return HealthCheckResult.from_exception(e). asyncio.CancelledError is
    never caught.

    Example:
        class PostgresCheck(HealthCheckPlugin):
            name = "postgres"

            async def check(self) -> HealthCheckResult:
                try:
                    await db.can_connect()
                    return HealthCheckResult.healthy("Database is reachable")
                except Exception as e:
                    return HealthCheckResult.from_exception(e)
    """

    name: str = "unnamed"

    @abstractmethod
    async def check(self) -> HealthCheckResult:
        """
        Execute health check.

        Returns:
            HealthCheckResult with status and optional data
        """
        pass


__all__ = [
    "HealthStatus",
    "HealthCheckResult",
    "HealthReportEntry",
    "HealthReport",
    "HealthCheckPlugin",
    "utcnow",
    "format_timestamp",
]
