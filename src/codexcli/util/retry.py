"""Bounded retry policy shared by provisioning, remediation and HTTP calls."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from codexcli.util.logging import get_logger

T = TypeVar("T")

_LOGGER = get_logger("codexcli.retry")


def _never(_exc: Exception) -> bool:
    return False


def _sleep(seconds: float) -> None:
    time.sleep(seconds)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry an operation a fixed number of times.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        delay_s: Base delay between attempts in seconds.
        backoff: Multiplier applied to the delay after every failed attempt.
            ``1.0`` gives a constant delay, ``2.0`` doubles it each time.
        retry_on: Predicate deciding whether an exception is retryable.
        sleep: Sleep function, replaceable in tests.
    """

    max_attempts: int = 1
    delay_s: float = 0.0
    backoff: float = 1.0
    retry_on: Callable[[Exception], bool] = _never
    sleep: Callable[[float], None] = field(default=_sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.delay_s < 0:
            raise ValueError("delay_s must not be negative.")

    def delay_for(self, attempt: int) -> float:
        """Return the delay to wait after the given (1-based) failed attempt."""

        return self.delay_s * (self.backoff ** (attempt - 1))

    def call(
        self,
        operation: Callable[[], T],
        *,
        before_retry: Callable[[Exception, int], None] | None = None,
        label: str = "operation",
    ) -> T:
        """Run ``operation`` until it succeeds or the attempts are exhausted.

        Args:
            operation: Zero-argument callable to run.
            before_retry: Optional hook invoked with the failure and the number
                of the attempt that failed, before the next attempt starts.
                Exceptions raised by the hook propagate and end the loop.
            label: Name used in log messages.

        Returns:
            The result of the first successful attempt.

        Raises:
            Exception: The last failure when it is not retryable or when no
                attempts remain.
        """

        attempt = 1
        while True:
            try:
                return operation()
            except Exception as exc:
                if attempt >= self.max_attempts or not self.retry_on(exc):
                    raise
                _LOGGER.warning(
                    "%s failed on attempt %s/%s: %s",
                    label,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if before_retry is not None:
                    before_retry(exc, attempt)
                delay = self.delay_for(attempt)
                if delay > 0:
                    self.sleep(delay)
                attempt += 1
