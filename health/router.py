# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# STATUS: Infrastructure - FastAPI health check endpoints
# PURPOSE: Liveness, readiness and full health endpoints
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Check Router

Endpoints:
    GET /health               - All registered checks
    GET /health/ready         - Checks tagged "critical" (readiness probe)
    GET /health/live          - Process is alive; runs no checks
    GET /health/history       - Recent published report summaries
    GET /health/checks/{name} - Single check

Response Codes:
    200 - Healthy or Degraded
    503 - Unhealthy
    404 - Unknown check name

Every response carries Cache-Control: no-store, no-cache and Pragma: no-cache.
In development mode each check entry also carries ``data`` and
``technical_details``.
"""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from core.logging import ComponentType, get_logger
from health.core import HealthReport, HealthStatus
from health.executor import HealthCheckExecutor
from health.publisher import HealthHistory
from health.registry import tag_predicate

logger = get_logger(__name__, ComponentType.HEALTH)

health_router = APIRouter(prefix="/health", tags=["Health"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache",
    "Pragma": "no-cache",
}

READINESS_TAG = "critical"

# Set by the application lifespan
_executor: Optional[HealthCheckExecutor] = None
_history: Optional[HealthHistory] = None
_development = False


def set_health_services(
    executor: HealthCheckExecutor,
    history: Optional[HealthHistory] = None,
    development: bool = False,
) -> None:
    """Set service instances for dependency injection."""
    global _executor, _history, _development
    _executor = executor
    _history = history
    _development = development


def status_to_http_code(status: HealthStatus) -> int:
    """Map health status to HTTP status code."""
    return 503 if status is HealthStatus.UNHEALTHY else 200


def _report_response(report: HealthReport) -> JSONResponse:
    return JSONResponse(
        status_code=status_to_http_code(report.status),
        content=report.to_dict(include_details=_development),
        headers=NO_CACHE_HEADERS,
    )


def _unavailable() -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"status": HealthStatus.UNHEALTHY.value, "message": "Health checks not initialized"},
        headers=NO_CACHE_HEADERS,
    )


@health_router.get("")
async def full_health_check():
    """Run every registered check."""
    if _executor is None:
        return _unavailable()

    report = await _executor.run()
    if report.status is not HealthStatus.HEALTHY:
        logger.warning(f"Health endpoint reporting {report.status.value}")
    return _report_response(report)


@health_router.get("/ready")
async def readiness_probe():
    """Run only checks tagged critical."""
    if _executor is None:
        return _unavailable()

    report = await _executor.run(tag_predicate(READINESS_TAG))
    return _report_response(report)


@health_router.get("/live")
async def liveness_probe():
    """
    Liveness probe.

    Never runs a check; answers as long as the event loop is responsive.
    """
    return JSONResponse(content={"status": "alive"}, headers=NO_CACHE_HEADERS)


@health_router.get("/history")
async def health_history():
    """Recently published reports, oldest first."""
    snapshots = _history.list() if _history is not None else []
    return JSONResponse(
        content={
            "max_entries": _history.max_entries if _history is not None else 0,
            "count": len(snapshots),
            "entries": [s.to_dict() for s in snapshots],
        },
        headers=NO_CACHE_HEADERS,
    )


@health_router.get("/checks/{check_name}")
async def single_health_check(check_name: str):
    """Run a single check by name."""
    if _executor is None:
        return _unavailable()

    report = await _executor.run_single(check_name)
    if report is None:
        return JSONResponse(
            status_code=404,
            content={"error": f"Health check not found: {check_name}"},
            headers=NO_CACHE_HEADERS,
        )
    return _report_response(report)


__all__ = [
    "health_router",
    "set_health_services",
    "status_to_http_code",
    "NO_CACHE_HEADERS",
]
