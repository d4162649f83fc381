# ============================================================================
# HEALTH PUBLISHER TESTS
# ============================================================================
# STATUS: Tests - Report logging, history and scheduling
# PURPOSE: Verify severity mapping, history bounds and scheduler isolation
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Health Publisher Tests

Covers:
1. Aggregate and per-entry log levels follow the status
2. Data and technical details are attached as structured fields
3. publish() never raises
4. HealthHistory keeps the most recent N summaries
5. HealthPublisherScheduler ticks, survives failing ticks, and stops promptly

Run with:
    pytest tests/test_publisher.py -v
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import psycopg

from health.core import (
    HealthCheckResult,
    HealthReport,
    HealthReportEntry,
    HealthStatus,
)
from health.publisher import HealthHistory, HealthReportPublisher
from health.scheduler import HealthPublisherScheduler


# ============================================================================
# HELPERS
# ============================================================================

def _report(**results) -> HealthReport:
    entries = {
        name: HealthReportEntry(result=result, duration_ms=12.5)
        for name, result in results.items()
    }
    return HealthReport.from_entries(entries, total_duration_ms=40.0)


def _raised(exc):
    try:
        raise exc
    except Exception as e:
        return e


def _levels(logger: MagicMock):
    return [c.args[0] for c in logger.log.call_args_list]


def _messages(logger: MagicMock):
    return [c.args[1] for c in logger.log.call_args_list]


# ============================================================================
# PUBLISHER
# ============================================================================

class TestHealthReportPublisher:
    """Log lines and severities."""

    def test_healthy_report_logs_info(self):
        logger = MagicMock()
        HealthReportPublisher(logger=logger).publish(
            _report(application_health=HealthCheckResult.healthy("ok"))
        )

        assert _levels(logger) == [logging.INFO, logging.INFO]
        assert _messages(logger)[0] == "System is in Healthy state. Duration: 40.00ms"
        assert _messages(logger)[1] == (
            "Health check application_health is in Healthy state (12.50ms): ok"
        )

    def test_degraded_entry_logs_warning(self):
        logger = MagicMock()
        HealthReportPublisher(logger=logger).publish(
            _report(
                application_health=HealthCheckResult.healthy("ok"),
                loki=HealthCheckResult.degraded("loki returned status 503"),
            )
        )

        levels = _levels(logger)
        assert levels[0] == logging.WARNING
        assert logging.INFO in levels[1:]
        assert logging.WARNING in levels[1:]

    def test_unhealthy_entry_logs_error_with_details(self):
        logger = MagicMock()
        err = _raised(psycopg.OperationalError("connection refused"))
        HealthReportPublisher(logger=logger).publish(
            _report(database_health=HealthCheckResult.from_exception(err))
        )

        aggregate, entry = logger.log.call_args_list
        assert aggregate.args[0] == logging.ERROR
        assert entry.args[0] == logging.ERROR
        assert entry.args[1].endswith("[connection_error]")
        assert "OperationalError" in entry.kwargs["extra"]["technical_details"]

    def test_data_is_logged_as_structured_field(self):
        logger = MagicMock()
        HealthReportPublisher(logger=logger).publish(
            _report(system_health=HealthCheckResult.healthy("ok", MemoryUsed_MB=120))
        )

        data_call = logger.log.call_args_list[-1]
        assert data_call.args[1] == "Additional data for health check system_health"
        assert data_call.kwargs["extra"] == {"health_data": {"MemoryUsed_MB": 120}}

    def test_no_data_line_without_data(self):
        logger = MagicMock()
        HealthReportPublisher(logger=logger).publish(
            _report(application_health=HealthCheckResult.healthy("ok"))
        )
        assert not any("Additional data" in m for m in _messages(logger))

    def test_publish_never_raises(self):
        logger = MagicMock()
        history = MagicMock()
        history.append.side_effect = RuntimeError("history broken")
        publisher = HealthReportPublisher(history=history, logger=logger)

        publisher.publish(_report(application_health=HealthCheckResult.healthy("ok")))

        logger.error.assert_called_once()
        assert "Failed to publish health report" in logger.error.call_args.args[0]

    def test_records_reach_standard_logging(self, caplog):
        with caplog.at_level(logging.INFO, logger="health.publisher"):
            HealthReportPublisher().publish(
                _report(loki=HealthCheckResult.degraded("loki returned status 503"))
            )

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("System is in Degraded state" in r.getMessage() for r in warnings)
        assert all(r.extra.get("component") == "publisher" for r in caplog.records)


# ============================================================================
# HISTORY
# ============================================================================

class TestHealthHistory:
    """Bounded summaries."""

    def test_bounded(self):
        history = HealthHistory(max_entries=3)
        for _ in range(5):
            history.append(_report(a=HealthCheckResult.healthy("ok")))
        assert len(history) == 3

    def test_oldest_dropped_first(self):
        history = HealthHistory(max_entries=2)
        history.append(_report(a=HealthCheckResult.unhealthy("down")))
        history.append(_report(a=HealthCheckResult.degraded("slow")))
        history.append(_report(a=HealthCheckResult.healthy("ok")))

        assert [s.status for s in history.list()] == [HealthStatus.DEGRADED, HealthStatus.HEALTHY]
        assert history.latest().status == HealthStatus.HEALTHY

    def test_snapshot_dict(self):
        history = HealthHistory()
        snapshot = history.append(_report(
            database_health=HealthCheckResult.unhealthy("down"),
            loki=HealthCheckResult.degraded("slow"),
        ))

        body = snapshot.to_dict()
        assert body["status"] == "Unhealthy"
        assert body["duration"] == "0.04"
        assert body["checks"] == {"database_health": "Unhealthy", "loki": "Degraded"}
        assert body["timestamp"].endswith("Z")

    def test_empty(self):
        history = HealthHistory()
        assert history.latest() is None
        assert history.list() == []

    def test_publisher_appends(self):
        history = HealthHistory()
        HealthReportPublisher(history=history, logger=MagicMock()).publish(
            _report(a=HealthCheckResult.healthy("ok"))
        )
        assert len(history) == 1


# ============================================================================
# SCHEDULER
# ============================================================================

def _executor(report=None, side_effect=None):
    executor = MagicMock()
    executor.run = AsyncMock(return_value=report, side_effect=side_effect)
    return executor


class TestHealthPublisherScheduler:
    """Periodic executor -> publisher loop."""

    def test_tick_runs_and_publishes(self):
        report = _report(a=HealthCheckResult.healthy("ok"))
        executor = _executor(report)
        publisher = MagicMock()
        scheduler = HealthPublisherScheduler(executor, publisher, logger=MagicMock())

        asyncio.run(scheduler.tick())

        publisher.publish.assert_called_once_with(report)
        assert scheduler.ticks == 1
        assert executor.run.call_args.kwargs["cancel_event"] is scheduler._stop_event

    def test_loop_ticks_repeatedly(self):
        executor = _executor(_report(a=HealthCheckResult.healthy("ok")))
        publisher = MagicMock()

        async def scenario():
            scheduler = HealthPublisherScheduler(
                executor, publisher, delay_seconds=0, period_seconds=0.01, logger=MagicMock()
            )
            scheduler.start()
            await asyncio.sleep(0.1)
            await scheduler.stop()
            return scheduler

        scheduler = asyncio.run(scenario())
        assert scheduler.ticks >= 2
        assert publisher.publish.call_count == scheduler.ticks

    def test_failing_tick_does_not_stop_loop(self):
        report = _report(a=HealthCheckResult.healthy("ok"))
        executor = _executor(side_effect=[RuntimeError("boom"), report, report, report, report])
        publisher = MagicMock()
        logger = MagicMock()

        async def scenario():
            scheduler = HealthPublisherScheduler(
                executor, publisher, delay_seconds=0, period_seconds=0.01, logger=logger
            )
            scheduler.start()
            await asyncio.sleep(0.1)
            await scheduler.stop()

        asyncio.run(scenario())

        assert any("tick failed" in c.args[0] for c in logger.error.call_args_list)
        assert publisher.publish.call_count >= 1

    def test_stop_during_initial_delay(self):
        executor = _executor(_report(a=HealthCheckResult.healthy("ok")))

        async def scenario():
            scheduler = HealthPublisherScheduler(
                executor, MagicMock(), delay_seconds=60, logger=MagicMock()
            )
            scheduler.start()
            await asyncio.sleep(0.01)
            await asyncio.wait_for(scheduler.stop(), timeout=1.0)

        asyncio.run(scenario())
        executor.run.assert_not_called()

    def test_start_is_idempotent(self):
        async def scenario():
            scheduler = HealthPublisherScheduler(
                _executor(), MagicMock(), delay_seconds=60, logger=MagicMock()
            )
            first = scheduler.start()
            second = scheduler.start()
            await scheduler.stop()
            return first is second

        assert asyncio.run(scenario())
