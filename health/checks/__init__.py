# ============================================================================
# HEALTH CHECK PLUGINS
# ============================================================================
# STATUS: Infrastructure - Health check implementations
# PURPOSE: Concrete checks and the default registration table
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Check Plugins

Concrete health checks for the Todo service and the factory that builds
the default registry:

    name                 tags                     timeout  failure status
    database_health      database, critical       10s      Unhealthy
    database_context     database                 10s      Unhealthy
    system_health        system, performance      5s       Unhealthy
    application_health   application              2s       Unhealthy
    loki                 monitoring, loki         6s       Degraded

The loki registration bound is one second above the check's own 5s
request deadline.

Usage:
    registry = build_default_registry(settings, db, initializer)
"""

from typing import Optional

from core.config import Settings
from health.core import HealthStatus
from health.registry import HealthCheckRegistry
from health.checks.database import DatabaseConnectivityCheck, DatabaseContextCheck
from health.checks.system import ApplicationUptimeCheck, SystemResourceCheck
from health.checks.external import UrlReachabilityCheck

# The loki check gives up on its own first, so a hang maps to Degraded
EXTERNAL_TIMEOUT_MARGIN = 1.0


def build_default_registry(
    settings: Settings,
    database,
    initializer=None,
    registry: Optional[HealthCheckRegistry] = None,
) -> HealthCheckRegistry:
    """
    Register the default checks and freeze the registry.

    Args:
        settings: Application settings
        database: Data-access facade (repositories.database.TodoDatabase)
        initializer: Startup DatabaseInitializer, reflected by database_context
        registry: Registry to fill (a new one when None)
    """
    registry = registry or HealthCheckRegistry()
    health = settings.health

    registry.register(
        DatabaseConnectivityCheck(database),
        tags=("database", "critical"),
        timeout_seconds=health.database_timeout,
        failure_status=HealthStatus.UNHEALTHY,
    )
    registry.register(
        DatabaseContextCheck(database, initializer),
        tags=("database",),
        timeout_seconds=health.database_timeout,
    )
    registry.register(
        SystemResourceCheck(
            memory_limit_mb=health.memory_limit_mb,
            degraded_ratio=health.memory_degraded_ratio,
        ),
        tags=("system", "performance"),
        timeout_seconds=health.system_timeout,
        failure_status=HealthStatus.UNHEALTHY,
    )
    registry.register(
        ApplicationUptimeCheck(grace_seconds=health.startup_grace_seconds),
        tags=("application",),
        timeout_seconds=health.application_timeout,
    )
    registry.register(
        UrlReachabilityCheck(
            "loki",
            settings.environment.loki_health_url,
            timeout_seconds=health.external_timeout,
        ),
        tags=("monitoring", "loki"),
        timeout_seconds=health.external_timeout + EXTERNAL_TIMEOUT_MARGIN,
        failure_status=HealthStatus.DEGRADED,
    )

    registry.mark_initialized()
    return registry


__all__ = [
    "DatabaseConnectivityCheck",
    "DatabaseContextCheck",
    "SystemResourceCheck",
    "ApplicationUptimeCheck",
    "UrlReachabilityCheck",
    "build_default_registry",
]
