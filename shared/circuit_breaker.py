"""
Circuit breaker for calls to the remote secret store.

After ``failure_threshold`` consecutive failures the breaker opens and
rejects calls without attempting them. Once ``recovery_timeout`` has passed
a single trial call is let through (half-open); its outcome closes or
re-opens the breaker. Concurrent callers arriving while the trial call runs
are rejected as if the breaker were still open.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Tuple, Type, Union

from shared.logging import get_logger


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenException(Exception):
    """Raised instead of calling through an open breaker."""
    pass


class CircuitBreaker:
    """Consecutive-failure circuit breaker for async calls.

    Exceptions matching ``expected_exception`` count as failures, and so does
    a call that is cancelled or times out while in flight. Anything else, such
    as a store answering "not found", leaves the breaker alone.
    """

    def __init__(self,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 expected_exception: Union[Type[BaseException], Tuple[Type[BaseException], ...]] = Exception,
                 name: str = "default",
                 clock: Callable[[], float] = time.monotonic):
        if failure_threshold <= 0:
            raise ValueError("failure_threshold must be positive")
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.name = name
        self._clock = clock
        self.logger = get_logger(f"auth.circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False
        self._rejected = 0

    @property
    def state(self) -> CircuitBreakerState:
        return self._state

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Run ``func`` unless the breaker is open."""
        trial = self._admit()
        try:
            result = await func(*args, **kwargs)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            # Hung call cut short by the caller's deadline
            self._on_failure()
            raise
        except self.expected_exception:
            self._on_failure()
            raise
        finally:
            if trial:
                self._trial_in_flight = False

        self._on_success()
        return result

    def _admit(self) -> bool:
        """Decide whether a call may proceed; True when it is the half-open trial call."""
        if self._state == CircuitBreakerState.OPEN:
            if self._clock() - self._opened_at < self.recovery_timeout:
                self._reject()
            self._state = CircuitBreakerState.HALF_OPEN
            self.logger.info("Circuit breaker half-open, allowing a trial call")

        if self._state == CircuitBreakerState.HALF_OPEN:
            if self._trial_in_flight:
                self._reject()
            self._trial_in_flight = True
            return True
        return False

    def _reject(self):
        self._rejected += 1
        raise CircuitBreakerOpenException(f"Circuit breaker '{self.name}' is open")

    def _on_success(self):
        if self._state == CircuitBreakerState.HALF_OPEN:
            self.logger.info("Circuit breaker closed after successful trial call")
        self._state = CircuitBreakerState.CLOSED
        self._consecutive_failures = 0

    def _on_failure(self):
        self._consecutive_failures += 1
        if (self._state == CircuitBreakerState.HALF_OPEN
                or self._consecutive_failures >= self.failure_threshold):
            if self._state != CircuitBreakerState.OPEN:
                self.logger.warning(
                    "Circuit breaker opened",
                    consecutive_failures=self._consecutive_failures,
                    threshold=self.failure_threshold
                )
            self._state = CircuitBreakerState.OPEN
            self._opened_at = self._clock()

    def get_state(self) -> Dict[str, Any]:
        """Snapshot for health and debugging output."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
            "rejected_calls": self._rejected,
        }

    def is_open(self) -> bool:
        """True while calls are being rejected without a trial call."""
        return (self._state == CircuitBreakerState.OPEN
                and self._clock() - self._opened_at < self.recovery_timeout)
