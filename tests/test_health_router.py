# ============================================================================
# HEALTH ROUTER TESTS
# ============================================================================
# STATUS: Tests - Health HTTP endpoints
# PURPOSE: Verify probe semantics, status codes, headers and response shape
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Router Tests

Covers:
1. /health/live answers 200 without running any check
2. /health/ready runs only checks tagged "critical"
3. Unhealthy -> 503, Degraded -> 200
4. Database unreachable: error object present, data and traces hidden
5. Initializer gave up: live stays 200, health and ready are 503
6. No-cache headers, development details, history, single check lookup

Run with:
    pytest tests/test_health_router.py -v
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import psycopg
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import health.router as router_module
from api.errors import install_error_handling
from health import (
    HealthCheckExecutor,
    HealthCheckPlugin,
    HealthCheckRegistry,
    HealthCheckResult,
    HealthHistory,
    HealthReport,
    HealthStatus,
    health_router,
    set_health_services,
)
from health.checks.database import DatabaseConnectivityCheck, DatabaseContextCheck
from infrastructure.database_initializer import InitializationState


# ============================================================================
# FIXTURES
# ============================================================================

class StaticCheck(HealthCheckPlugin):
    """Returns a fixed result and counts calls."""

    def __init__(self, name, result):
        self.name = name
        self.result = result
        self.calls = 0

    async def check(self):
        self.calls += 1
        return self.result


def _unreachable_database():
    db = MagicMock()
    db.can_connect = AsyncMock(side_effect=psycopg.OperationalError(
        "connection to server at \"db\" (10.0.0.5), port 5432 failed: Connection refused"
    ))
    db.describe_session = AsyncMock(side_effect=psycopg.OperationalError("Connection refused"))
    return db


def _client(registry, history=None, development=False):
    set_health_services(HealthCheckExecutor(registry), history, development=development)
    app = FastAPI()
    install_error_handling(app, development=development)
    app.include_router(health_router)
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_router_state():
    yield
    router_module._executor = None
    router_module._history = None
    router_module._development = False


@pytest.fixture
def mixed():
    """Healthy critical check plus a degraded non-critical one."""
    critical = StaticCheck("database_health", HealthCheckResult.healthy("connected", todoCount=3))
    optional = StaticCheck("loki", HealthCheckResult.degraded("loki returned status 503"))
    registry = HealthCheckRegistry()
    registry.register(critical, tags=("database", "critical"))
    registry.register(optional, tags=("monitoring",))
    registry.mark_initialized()
    return registry, critical, optional


# ============================================================================
# PROBES
# ============================================================================

class TestProbes:
    """live / ready / full."""

    def test_live_runs_no_checks(self, mixed):
        registry, critical, optional = mixed
        response = _client(registry).get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}
        assert critical.calls == 0
        assert optional.calls == 0

    def test_ready_runs_only_critical(self, mixed):
        registry, critical, optional = mixed
        response = _client(registry).get("/health/ready")

        assert response.status_code == 200
        assert [c["name"] for c in response.json()["checks"]] == ["database_health"]
        assert critical.calls == 1
        assert optional.calls == 0

    def test_degraded_is_200(self, mixed):
        registry, _, _ = mixed
        response = _client(registry).get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Degraded"
        assert {c["name"] for c in body["checks"]} == {"database_health", "loki"}

    def test_unhealthy_is_503(self):
        registry = HealthCheckRegistry()
        registry.register(StaticCheck("disk", HealthCheckResult.unhealthy("full")))
        response = _client(registry).get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "Unhealthy"

    def test_no_cache_headers(self, mixed):
        registry, _, _ = mixed
        client = _client(registry)

        for path in ("/health", "/health/ready", "/health/live", "/health/history"):
            response = client.get(path)
            assert "no-store" in response.headers["cache-control"]
            assert "no-cache" in response.headers["cache-control"]
            assert response.headers["pragma"] == "no-cache"

    def test_response_shape(self, mixed):
        registry, _, _ = mixed
        body = _client(registry).get("/health").json()

        assert set(body) == {"status", "duration", "timestamp", "checks"}
        assert body["timestamp"].endswith("Z")
        entry = body["checks"][0]
        assert set(entry) == {"name", "status", "description", "error", "duration"}
        assert entry["error"] is None


# ============================================================================
# DATABASE OUTAGE
# ============================================================================

class TestDatabaseOutage:
    """Database unreachable and initializer exhausted."""

    def _registry(self, initializer=None):
        db = _unreachable_database()
        registry = HealthCheckRegistry()
        registry.register(DatabaseConnectivityCheck(db), tags=("database", "critical"))
        registry.register(DatabaseContextCheck(db, initializer), tags=("database",))
        registry.mark_initialized()
        return registry

    def test_unreachable_database_production(self):
        response = _client(self._registry()).get("/health")

        assert response.status_code == 503
        entry = next(c for c in response.json()["checks"] if c["name"] == "database_health")
        assert entry["status"] == "Unhealthy"
        assert entry["error"]["kind"] == "connection_error"
        assert "data" not in entry
        assert "technical_details" not in entry
        assert "10.0.0.5" not in response.text
        assert "Traceback" not in response.text

    def test_unreachable_database_development(self):
        response = _client(self._registry(), development=True).get("/health")

        entry = next(c for c in response.json()["checks"] if c["name"] == "database_health")
        assert entry["data"]["errorType"] == "OperationalError"
        assert "OperationalError" in entry["technical_details"]

    def test_initializer_failed(self):
        initializer = MagicMock()
        initializer.state = InitializationState.FAILED
        initializer.attempts = 11
        client = _client(self._registry(initializer))

        assert client.get("/health/live").status_code == 200
        assert client.get("/health").status_code == 503
        assert client.get("/health/ready").status_code == 503

        context = next(
            c for c in client.get("/health").json()["checks"] if c["name"] == "database_context"
        )
        assert context["description"] == "Database initialization failed after all retries"


# ============================================================================
# HISTORY AND SINGLE CHECK
# ============================================================================

class TestHistoryAndSingleCheck:
    """History listing and per-check lookup."""

    def test_history(self, mixed):
        registry, _, _ = mixed
        history = HealthHistory(max_entries=5)
        history.append(HealthReport(
            status=HealthStatus.HEALTHY,
            total_duration_ms=10.0,
            generated_at=datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc),
        ))
        body = _client(registry, history=history).get("/health/history").json()

        assert body["max_entries"] == 5
        assert body["count"] == 1
        assert body["entries"][0]["status"] == "Healthy"
        assert body["entries"][0]["timestamp"] == "2026-10-18T12:00:00Z"

    def test_history_without_publisher(self, mixed):
        registry, _, _ = mixed
        body = _client(registry).get("/health/history").json()
        assert body["count"] == 0
        assert body["entries"] == []

    def test_single_check(self, mixed):
        registry, _, optional = mixed
        response = _client(registry).get("/health/checks/loki")

        assert response.status_code == 200
        assert response.json()["checks"][0]["name"] == "loki"
        assert optional.calls == 1

    def test_single_check_unknown(self, mixed):
        registry, _, _ = mixed
        response = _client(registry).get("/health/checks/nope")

        assert response.status_code == 404
        assert "nope" in response.json()["error"]

    def test_not_initialized(self):
        router_module._executor = None
        app = FastAPI()
        app.include_router(health_router)
        client = TestClient(app)

        assert client.get("/health").status_code == 503
        assert client.get("/health/ready").status_code == 503
        assert client.get("/health/live").status_code == 200
