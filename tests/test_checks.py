# ============================================================================
# HEALTH CHECK PLUGIN TESTS
# ============================================================================
# STATUS: Tests - Concrete health checks
# PURPOSE: Verify database, system, uptime and URL checks plus the default table
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Check Plugin Tests

Covers:
1. DatabaseConnectivityCheck: success, auxiliary failure, probe failure
2. DatabaseContextCheck: initializer state reflection
3. SystemResourceCheck: memory thresholds (850MB of 1024MB -> Degraded)
4. ApplicationUptimeCheck: startup grace period
5. UrlReachabilityCheck: 2xx, non-2xx, transport errors, hung requests
   (httpx.MockTransport)
6. build_default_registry: names, tags, timeouts, failure statuses

Run with:
    pytest tests/test_checks.py -v
"""

import asyncio
import logging
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import psycopg
import pytest

from core.config import Settings
from core.config.defaults import HealthCheckDefaults
from core.contracts import ErrorKind
from health.checks import build_default_registry
from health.checks.database import DatabaseConnectivityCheck, DatabaseContextCheck
from health.checks.external import UrlReachabilityCheck
from health.checks.system import (
    ApplicationUptimeCheck,
    SystemResourceCheck,
    format_uptime,
)
from health.core import HealthStatus
from health.executor import HealthCheckExecutor
from health.registry import tag_predicate
from infrastructure.database_initializer import InitializationState

MB = 1024 * 1024


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def database():
    """Healthy data-access mock."""
    db = MagicMock()
    db.connection_string = "postgresql://todo:secret@db:5432/todoapp"
    db.can_connect = AsyncMock(return_value=True)
    db.describe_session = AsyncMock(return_value={
        "databaseName": "todoapp",
        "user": "todo",
        "serverVersion": "16.2",
    })
    db.count_todos = AsyncMock(return_value=7)
    db.count_users = AsyncMock(return_value=3)
    return db


def _process(rss_mb=100, uptime_seconds=3600.0):
    process = MagicMock()
    process.memory_info.return_value = SimpleNamespace(rss=int(rss_mb * MB))
    process.create_time.return_value = time.time() - uptime_seconds
    process.num_threads.return_value = 12
    process.pid = 4242
    return process


def _initializer(state, attempts=1):
    initializer = MagicMock()
    initializer.state = state
    initializer.attempts = attempts
    return initializer


# ============================================================================
# DATABASE CONNECTIVITY
# ============================================================================

class TestDatabaseConnectivityCheck:
    """database_health"""

    def test_healthy_with_counts(self, database):
        result = asyncio.run(DatabaseConnectivityCheck(database).check())

        assert result.status == HealthStatus.HEALTHY
        assert result.data["todoCount"] == 7
        assert result.data["userCount"] == 3
        assert result.data["databaseName"] == "todoapp"
        assert "responseTime" in result.data
        assert result.data["checkTime"].endswith("Z")

    def test_auxiliary_failure_is_omitted_and_logged(self, database, caplog):
        database.count_users.side_effect = psycopg.OperationalError("relation does not exist")

        with caplog.at_level(logging.WARNING):
            result = asyncio.run(DatabaseConnectivityCheck(database).check())

        assert result.status == HealthStatus.HEALTHY
        assert "todoCount" not in result.data
        assert "userCount" not in result.data
        assert "responseTime" in result.data
        assert "checkTime" in result.data
        assert any(
            r.levelno == logging.WARNING and "additional database information" in r.getMessage()
            for r in caplog.records
        )

    def test_cannot_connect(self, database):
        database.can_connect.return_value = False
        result = asyncio.run(DatabaseConnectivityCheck(database).check())

        assert result.status == HealthStatus.UNHEALTHY
        assert result.description == "Unable to connect to the database"
        assert "responseTime" in result.data
        database.count_todos.assert_not_called()

    def test_probe_exception_is_classified(self, database):
        database.can_connect.side_effect = psycopg.OperationalError("connection refused")
        result = asyncio.run(DatabaseConnectivityCheck(database).check())

        assert result.status == HealthStatus.UNHEALTHY
        assert result.error.kind == ErrorKind.CONNECTION
        assert "todoCount" not in result.data
        assert result.data["errorType"] == "OperationalError"


# ============================================================================
# DATABASE CONTEXT
# ============================================================================

class TestDatabaseContextCheck:
    """database_context"""

    def test_healthy_after_migrations(self, database):
        check = DatabaseContextCheck(database, _initializer(InitializationState.SUCCEEDED))
        result = asyncio.run(check.check())

        assert result.status == HealthStatus.HEALTHY
        assert result.data["databaseName"] == "todoapp"

    @pytest.mark.parametrize("state", [InitializationState.PENDING, InitializationState.RUNNING])
    def test_degraded_while_migrating(self, database, state):
        result = asyncio.run(DatabaseContextCheck(database, _initializer(state)).check())
        assert result.status == HealthStatus.DEGRADED

    def test_unhealthy_when_initializer_gave_up(self, database):
        check = DatabaseContextCheck(database, _initializer(InitializationState.FAILED, attempts=11))
        result = asyncio.run(check.check())

        assert result.status == HealthStatus.UNHEALTHY
        assert result.data["attempts"] == 11
        database.describe_session.assert_not_called()

    def test_session_failure(self, database):
        database.describe_session.side_effect = psycopg.OperationalError("connection refused")
        result = asyncio.run(DatabaseContextCheck(database).check())

        assert result.status == HealthStatus.UNHEALTHY
        assert result.error.kind == ErrorKind.CONNECTION


# ============================================================================
# SYSTEM RESOURCES
# ============================================================================

class TestSystemResourceCheck:
    """system_health"""

    DATA_KEYS = {"MemoryUsed_MB", "MemoryLimit_MB", "Uptime", "ThreadCount", "ProcessId", "MachineName"}

    @pytest.mark.parametrize("rss_mb,expected", [
        (100, HealthStatus.HEALTHY),
        (819, HealthStatus.HEALTHY),
        (850, HealthStatus.DEGRADED),
        (1024, HealthStatus.DEGRADED),
        (1100, HealthStatus.UNHEALTHY),
    ])
    def test_memory_thresholds(self, rss_mb, expected):
        check = SystemResourceCheck(memory_limit_mb=1024, process=_process(rss_mb))
        result = asyncio.run(check.check())

        assert result.status == expected
        assert set(result.data) == self.DATA_KEYS

    def test_data_values(self):
        result = asyncio.run(SystemResourceCheck(process=_process(850, uptime_seconds=90061)).check())

        assert result.data["MemoryUsed_MB"] == 850
        assert result.data["MemoryLimit_MB"] == 1024
        assert result.data["ThreadCount"] == 12
        assert result.data["ProcessId"] == 4242
        assert result.data["Uptime"].startswith("01.01:01:0")

    def test_format_uptime(self):
        assert format_uptime(0) == "00.00:00:00"
        assert format_uptime(90061) == "01.01:01:01"


# ============================================================================
# APPLICATION UPTIME
# ============================================================================

class TestApplicationUptimeCheck:
    """application_health"""

    def test_starting_up(self):
        result = asyncio.run(ApplicationUptimeCheck(process=_process(uptime_seconds=2)).check())

        assert result.status == HealthStatus.DEGRADED
        assert result.description == "Application is starting up"

    def test_running(self):
        result = asyncio.run(ApplicationUptimeCheck(process=_process(uptime_seconds=600)).check())

        assert result.status == HealthStatus.HEALTHY
        assert result.description.startswith("Application running for 10.0 minutes")


# ============================================================================
# URL REACHABILITY
# ============================================================================

class TestUrlReachabilityCheck:
    """loki"""

    URL = "http://loki:3100/ready"

    def _check(self, handler):
        return UrlReachabilityCheck("loki", self.URL, timeout_seconds=1.0, transport=httpx.MockTransport(handler))

    def test_ready(self):
        result = asyncio.run(self._check(lambda request: httpx.Response(200, text="ready")).check())

        assert result.status == HealthStatus.HEALTHY
        assert result.data["status_code"] == 200

    def test_not_ready(self):
        result = asyncio.run(self._check(lambda request: httpx.Response(503)).check())

        assert result.status == HealthStatus.UNHEALTHY
        assert result.data["status_code"] == 503

    def test_connect_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = asyncio.run(self._check(handler).check())

        assert result.status == HealthStatus.UNHEALTHY
        assert result.error is not None
        assert result.error.kind == ErrorKind.CONNECTION

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        result = asyncio.run(self._check(handler).check())

        assert result.status == HealthStatus.UNHEALTHY
        assert "timed out" in result.description

    def test_unanswered_request_hits_overall_deadline(self):
        async def handler(request):
            await asyncio.Event().wait()

        check = UrlReachabilityCheck("loki", self.URL, timeout_seconds=0.1, transport=httpx.MockTransport(handler))
        result = asyncio.run(check.check())

        assert result.status == HealthStatus.UNHEALTHY
        assert "timed out" in result.description


# ============================================================================
# DEFAULT REGISTRY
# ============================================================================

class TestDefaultRegistry:
    """Default registration table."""

    def test_table(self, database):
        registry = build_default_registry(Settings(), database)
        rows = {
            r.name: (set(r.tags), r.timeout_seconds, r.failure_status)
            for r in registry.get_all()
        }

        assert rows == {
            "database_health": ({"database", "critical"}, 10.0, HealthStatus.UNHEALTHY),
            "database_context": ({"database"}, 10.0, HealthStatus.UNHEALTHY),
            "system_health": ({"system", "performance"}, 5.0, HealthStatus.UNHEALTHY),
            "application_health": ({"application"}, 2.0, HealthStatus.UNHEALTHY),
            "loki": ({"monitoring", "loki"}, 6.0, HealthStatus.DEGRADED),
        }

    def test_frozen_after_build(self, database):
        registry = build_default_registry(Settings(), database)
        assert registry.is_initialized

    def test_only_database_health_is_critical(self, database):
        registry = build_default_registry(Settings(), database)
        assert [r.name for r in registry.select(tag_predicate("critical"))] == ["database_health"]

    def test_loki_url_from_settings(self, database):
        registry = build_default_registry(Settings(), database)
        assert registry.get("loki").check.url == "http://localhost:3100/ready"

    def test_hung_loki_is_degraded(self, database):
        async def handler(request):
            await asyncio.Event().wait()

        settings = Settings(health=HealthCheckDefaults(external_timeout=0.2))
        registry = build_default_registry(settings, database)
        registry.get("loki").check.transport = httpx.MockTransport(handler)

        report = asyncio.run(HealthCheckExecutor(registry).run(tag_predicate("loki")))
        entry = report.entries["loki"]

        assert entry.status == HealthStatus.DEGRADED
        assert entry.result.description == "loki health check timed out"
        assert report.status == HealthStatus.DEGRADED
