# ============================================================================
# HEALTH CHECK REGISTRY
# ============================================================================
# STATUS: Infrastructure - Health check registration table
# PURPOSE: Name, tags, timeout and failure status for each check
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Check Registry

Read-only table of health checks, built once at startup by an explicit
factory (health.checks.build_default_registry) and frozen before the first
request is served.

Usage:
    registry = HealthCheckRegistry()
    registry.register(
        DatabaseConnectivityCheck(db),
        tags=("database", "critical"),
        timeout_seconds=10.0,
    )
    registry.mark_initialized()

    # Readiness probe selection
    registrations = registry.select(tag_predicate("critical"))
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from health.core import HealthCheckPlugin, HealthStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthCheckRegistration:
    """One row of the registry table."""
    name: str
    check: HealthCheckPlugin
    tags: frozenset = frozenset()
    timeout_seconds: float = 10.0
    # Status reported when the check returns Unhealthy
    failure_status: HealthStatus = HealthStatus.UNHEALTHY


Predicate = Callable[[HealthCheckRegistration], bool]


def tag_predicate(tag: str) -> Predicate:
    """Select registrations carrying ``tag``."""
    def predicate(registration: HealthCheckRegistration) -> bool:
        return tag in registration.tags
    return predicate


def exclude_all(registration: HealthCheckRegistration) -> bool:
    """Select nothing (liveness)."""
    return False


class RegistryFrozenError(RuntimeError):
    """Raised when registering after the registry was initialized."""


class HealthCheckRegistry:
    """
    Registry for health checks.

    Registration order is preserved and is the order of entries in a report.
    """

    def __init__(self):
        self._registrations: Dict[str, HealthCheckRegistration] = {}
        self._initialized = False

    def register(
        self,
        check: HealthCheckPlugin,
        name: Optional[str] = None,
        tags: Iterable[str] = (),
        timeout_seconds: float = 10.0,
        failure_status: HealthStatus = HealthStatus.UNHEALTHY,
    ) -> HealthCheckRegistration:
        """
        Register a health check instance.

        Args:
            check: Plugin instance
            name: Registration name (defaults to check.name)
            tags: Tags used by predicates
            timeout_seconds: Per-check timeout
            failure_status: Status reported when the check is Unhealthy

        Raises:
            RegistryFrozenError: After mark_initialized()
            ValueError: If the name is already registered
        """
        if self._initialized:
            raise RegistryFrozenError(
                f"Cannot register '{name or check.name}': registry is frozen"
            )

        registration = HealthCheckRegistration(
            name=name or check.name,
            check=check,
            tags=frozenset(tags),
            timeout_seconds=timeout_seconds,
            failure_status=failure_status,
        )
        if registration.name in self._registrations:
            raise ValueError(f"Health check already registered: {registration.name}")

        self._registrations[registration.name] = registration
        logger.debug(
            f"Registered health check: {registration.name} "
            f"(tags={sorted(registration.tags)}, timeout={timeout_seconds}s)"
        )
        return registration

    def get(self, name: str) -> Optional[HealthCheckRegistration]:
        """Get registration by name."""
        return self._registrations.get(name)

    def get_all(self) -> List[HealthCheckRegistration]:
        """Get all registrations in registration order."""
        return list(self._registrations.values())

    def select(self, predicate: Optional[Predicate] = None) -> List[HealthCheckRegistration]:
        """Registrations matching ``predicate`` (all when None)."""
        if predicate is None:
            return self.get_all()
        return [r for r in self._registrations.values() if predicate(r)]

    @property
    def is_initialized(self) -> bool:
        """True once the registry is frozen."""
        return self._initialized

    def mark_initialized(self) -> None:
        """Freeze the registry."""
        self._initialized = True
        logger.info(f"Health check registry frozen with {len(self)} checks")

    def __len__(self) -> int:
        return len(self._registrations)

    def __contains__(self, name: str) -> bool:
        return name in self._registrations


__all__ = [
    "HealthCheckRegistration",
    "HealthCheckRegistry",
    "RegistryFrozenError",
    "Predicate",
    "tag_predicate",
    "exclude_all",
]
