# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# STATUS: Infrastructure - Health check system
# PURPOSE: Liveness/readiness probes and periodic health reporting
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Check Module

Health check system for the Todo service:
- /health/live: Process alive (instant, runs no checks)
- /health/ready: Checks tagged "critical"
- /health: Every registered check

Architecture:
- HealthCheckPlugin: Base class for health checks
- HealthCheckRegistry: Frozen table of (name, check, tags, timeout, failure status)
- HealthCheckExecutor: Concurrent execution with per-check timeouts
- HealthReportPublisher / HealthPublisherScheduler: periodic logging + history

Usage:
    from health import HealthCheckExecutor, health_router, set_health_services
    from health.checks import build_default_registry

    registry = build_default_registry(settings, db, initializer)
    set_health_services(HealthCheckExecutor(registry))
    app.include_router(health_router)
"""

from health.core import (
    HealthStatus,
    HealthCheckResult,
    HealthCheckPlugin,
    HealthReport,
    HealthReportEntry,
)
from health.registry import (
    HealthCheckRegistration,
    HealthCheckRegistry,
    RegistryFrozenError,
    tag_predicate,
    exclude_all,
)
from health.executor import HealthCheckExecutor
from health.publisher import HealthHistory, HealthReportPublisher
from health.scheduler import HealthPublisherScheduler
from health.router import health_router, set_health_services

__all__ = [
    # Core types
    "HealthStatus",
    "HealthCheckResult",
    "HealthCheckPlugin",
    "HealthReport",
    "HealthReportEntry",
    # Registry
    "HealthCheckRegistration",
    "HealthCheckRegistry",
    "RegistryFrozenError",
    "tag_predicate",
    "exclude_all",
    # Execution and publishing
    "HealthCheckExecutor",
    "HealthHistory",
    "HealthReportPublisher",
    "HealthPublisherScheduler",
    # Router
    "health_router",
    "set_health_services",
]
