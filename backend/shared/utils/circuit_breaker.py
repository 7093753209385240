"""
Circuit breaker for provider adapters.

States:
  CLOSED    - normal operation, the provider is tried
  OPEN      - too many consecutive failures, the provider is skipped
  HALF_OPEN - after cooldown, one probe attempt is let through

All callers run on one event loop, so state is updated without a lock.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Any, Callable

from shared.utils.logging import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when the circuit is open and the provider should be skipped."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN. Retry after {retry_after:.0f}s.")


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Args:
        name: Identifier for logging.
        failure_threshold: Consecutive failures before opening the circuit.
        recovery_timeout_s: Seconds to wait in OPEN state before probing.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = max(1, failure_threshold)
        self.recovery_timeout_s = recovery_timeout_s
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: float = 0.0
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if self._clock() - self._last_failure_time >= self.recovery_timeout_s:
                return CircuitState.HALF_OPEN
        return self._state

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
        }

    def before_call(self) -> None:
        """Raise CircuitBreakerOpen if the provider must be skipped right now."""
        current = self.state
        if current == CircuitState.OPEN:
            retry_after = self.recovery_timeout_s - (self._clock() - self._last_failure_time)
            raise CircuitBreakerOpen(self.name, max(retry_after, 1.0))
        if current == CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise CircuitBreakerOpen(self.name, 5.0)
            self._probe_in_flight = True

    def record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("circuit_breaker_closed", name=self.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._probe_in_flight = False
        self._success_count += 1

    def record_failure(self, error: str = "") -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()
        was_probe = self._probe_in_flight
        self._probe_in_flight = False

        if was_probe:
            self._state = CircuitState.OPEN
            logger.warning("circuit_breaker_reopened", name=self.name, error=error)
        elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "circuit_breaker_opened",
                name=self.name,
                failures=self._failure_count,
                error=error,
            )

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._probe_in_flight = False
