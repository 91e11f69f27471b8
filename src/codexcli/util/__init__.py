"""Utility helpers package."""

from codexcli.util.logging import configure_logging, get_logger
from codexcli.util.observability import (
    EventLogger,
    MetricsCollector,
    ObservabilityManager,
    create_observability_manager,
)
from codexcli.util.retry import RetryPolicy

__all__ = [
    "EventLogger",
    "MetricsCollector",
    "ObservabilityManager",
    "RetryPolicy",
    "configure_logging",
    "create_observability_manager",
    "get_logger",
]
