from __future__ import annotations

import json
import logging

from codexcli.util.observability import (
    EventLogger,
    MetricsCollector,
    ObservabilityManager,
    create_observability_manager,
)


def test_metrics_collector_snapshot() -> None:
    metrics = MetricsCollector()
    metrics.increment("executions", 2)
    metrics.increment("remediations")
    metrics.record_duration("execution.duration", 1.5)
    metrics.record_duration("execution.duration", 0.5)

    snapshot = metrics.snapshot()

    assert snapshot["counters"] == {"executions": 2, "remediations": 1}
    assert snapshot["durations"]["execution.duration"]["count"] == 2.0
    assert snapshot["durations"]["execution.duration"]["avg_s"] == 1.0


def test_event_logger_emits_json(caplog) -> None:
    logger = EventLogger("test.events", context={"session": "abc"})
    caplog.set_level(logging.DEBUG, logger="test.events")

    logger.log("execution.failed", {"language": "python"})

    assert caplog.records
    payload = json.loads(caplog.records[-1].message)
    assert payload["event_type"] == "execution.failed"
    assert payload["payload"]["language"] == "python"
    assert payload["context"] == {"session": "abc"}


def test_track_duration_records_even_on_error() -> None:
    manager = ObservabilityManager(events=EventLogger("test.events"), metrics=MetricsCollector())

    try:
        with manager.track_duration("execution.duration"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert manager.metrics.durations["execution.duration"]


def test_default_manager_uses_event_logger(caplog) -> None:
    manager = create_observability_manager()
    caplog.set_level(logging.DEBUG, logger="codexcli.events")

    manager.log_event("provisioning.created", {"family": "node"})

    assert json.loads(caplog.records[-1].message)["event_type"] == "provisioning.created"


def test_execution_lifecycle_counters(caplog) -> None:
    manager = create_observability_manager({"session": "s1"})
    caplog.set_level(logging.DEBUG, logger="codexcli.events")

    manager.execution_started("python")
    manager.execution_finished("python", succeeded=False, diagnostic="boom")
    manager.remediation_attempted("python", "requests")
    manager.execution_started("python")
    manager.execution_finished("python", succeeded=True)

    counters = manager.metrics.snapshot()["counters"]
    assert counters == {
        "executions": 2,
        "executions.python": 2,
        "failures": 1,
        "remediations": 1,
    }
    events = [json.loads(record.message) for record in caplog.records]
    assert [event["event_type"] for event in events] == [
        "execution.started",
        "execution.failed",
        "remediation.attempted",
        "execution.started",
        "execution.succeeded",
    ]
    assert events[1]["payload"]["diagnostic"] == "boom"
    assert all(event["context"] == {"session": "s1"} for event in events)
