"""Structured execution events and metrics."""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Any, Iterator

from codexcli.util.logging import get_logger, normalize_level


@dataclass(frozen=True)
class LogEvent:
    """One machine-readable event.

    Attributes:
        event_type: Dotted event name, e.g. ``execution.failed``.
        timestamp: Unix timestamp in seconds.
        payload: Event data.
        context: Fields shared by every event of a logger.
    """

    event_type: str
    timestamp: float
    payload: dict[str, Any]
    context: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), sort_keys=True, default=str)


class EventLogger:
    """Write events as single-line JSON through a stdlib logger."""

    def __init__(self, logger_name: str, context: dict[str, Any] | None = None) -> None:
        self._logger = get_logger(logger_name)
        self._context = dict(context or {})

    def log(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        level: str = "DEBUG",
        context: dict[str, Any] | None = None,
    ) -> LogEvent:
        """Emit an event and return it.

        Args:
            event_type: Dotted event name.
            payload: Event data; values that are not JSON types are
                rendered with ``str``.
            level: Logging level name.
            context: Per-event additions to the shared context.
        """

        event = LogEvent(
            event_type=event_type,
            timestamp=time.time(),
            payload=payload,
            context={**self._context, **(context or {})},
        )
        self._logger.log(normalize_level(level), event.to_json())
        return event


@dataclass
class MetricsCollector:
    """In-memory counters and duration samples for one session."""

    counters: dict[str, int] = field(default_factory=dict)
    durations: dict[str, list[float]] = field(default_factory=dict)

    def increment(self, name: str, value: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + value

    def counter(self, name: str) -> int:
        return self.counters.get(name, 0)

    def record_duration(self, name: str, duration_s: float) -> None:
        self.durations.setdefault(name, []).append(duration_s)

    def snapshot(self) -> dict[str, Any]:
        """Return counters plus count, total, average and maximum per duration."""

        summary: dict[str, dict[str, float]] = {}
        for name, samples in self.durations.items():
            total = sum(samples)
            summary[name] = {
                "count": float(len(samples)),
                "total_s": total,
                "avg_s": total / len(samples) if samples else 0.0,
                "max_s": max(samples, default=0.0),
            }
        return {"counters": dict(self.counters), "durations": summary}


@dataclass(frozen=True)
class ObservabilityManager:
    """Records the lifecycle of fragment executions.

    Every execution attempt bumps ``executions`` (and a per-language
    ``executions.<tag>`` counter); failed attempts bump ``failures``;
    dependency installs bump ``remediations``.
    """

    events: EventLogger
    metrics: MetricsCollector

    def log_event(self, event_type: str, payload: dict[str, Any]) -> None:
        self.events.log(event_type, payload)

    def execution_started(self, language: str) -> None:
        self.metrics.increment("executions")
        self.metrics.increment(f"executions.{language}")
        self.events.log("execution.started", {"language": language})

    def execution_finished(
        self, language: str, *, succeeded: bool, diagnostic: str = ""
    ) -> None:
        if succeeded:
            self.events.log("execution.succeeded", {"language": language})
            return
        self.metrics.increment("failures")
        self.events.log(
            "execution.failed",
            {"language": language, "diagnostic": diagnostic},
            level="INFO",
        )

    def remediation_attempted(self, language: str, package: str) -> None:
        self.metrics.increment("remediations")
        self.events.log(
            "remediation.attempted",
            {"language": language, "package": package},
            level="INFO",
        )

    @contextmanager
    def track_duration(self, metric_name: str) -> Iterator[None]:
        """Record how long the block took, whether or not it raised."""

        start = time.perf_counter()
        try:
            yield
        finally:
            self.metrics.record_duration(metric_name, time.perf_counter() - start)


def create_observability_manager(context: dict[str, Any] | None = None) -> ObservabilityManager:
    """Create a manager that logs to ``codexcli.events``."""

    return ObservabilityManager(
        events=EventLogger("codexcli.events", context),
        metrics=MetricsCollector(),
    )
