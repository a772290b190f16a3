"""
Circuit breaker guarding calls to uProduce.

The breaker is an explicit object created once in create_app() and stored in
app.config["CIRCUIT_BREAKER"]. Every remote call site must:

    1. call can_request() and fail fast with CircuitOpenError when it is False
    2. report the outcome with on_success() / on_failure(), including timeouts

States:
    CLOSED    - normal operation, every request allowed
    OPEN      - fast-fail until reset_timeout has elapsed since the last failure
    HALF_OPEN - one probe request allowed; its outcome closes or re-opens

Thread Safety:
    Flask serves requests on several threads, so every transition happens
    under a threading.Lock.
"""

from __future__ import annotations

import math
import threading
import time
from enum import Enum
from typing import Callable, Dict, Any, Optional

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker mode."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Attributes:
        failure_threshold: Consecutive failures that open the circuit (default 5)
        reset_timeout: Seconds the circuit stays open before a probe (default 30)
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Optional[Callable[[], float]] = None,
        name: str = "uproduce"
    ):
        """
        Initialize the breaker in the CLOSED state.

        Args:
            failure_threshold: Consecutive failures before opening
            reset_timeout: Seconds to wait after the last failure before probing
            clock: Monotonic time source (injectable for tests)
            name: Name used in log messages

        Raises:
            ValueError: If threshold or timeout are not positive
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if reset_timeout <= 0:
            raise ValueError("reset_timeout must be positive")

        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.name = name
        self._clock = clock or time.monotonic

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._probe_started_at: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit mode."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Consecutive failures since the last success."""
        return self._failure_count

    def can_request(self) -> bool:
        """
        Check whether a new remote call may be attempted.

        OPEN transitions to HALF_OPEN as a side effect once the reset timeout
        has elapsed; the caller that triggers the transition owns the probe.
        While a probe is in flight other callers are denied, unless the probe
        has been outstanding for longer than reset_timeout (it is then assumed
        lost and another caller may probe).

        Returns:
            True if the call should proceed
        """
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            now = self._clock()

            if self._state == CircuitState.OPEN:
                if now - self._last_failure_time > self.reset_timeout:
                    self._state = CircuitState.HALF_OPEN
                    self._probe_started_at = now
                    logger.info(f"Circuit '{self.name}' half-open, admitting probe request")
                    return True
                return False

            # HALF_OPEN
            if self._probe_started_at is None or now - self._probe_started_at > self.reset_timeout:
                self._probe_started_at = now
                return True
            return False

    def on_success(self) -> None:
        """Record a successful call: reset failures and close the circuit."""
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info(f"Circuit '{self.name}' closed after successful call")
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._probe_started_at = None

    def on_failure(self) -> None:
        """
        Record a failed call.

        Opens the circuit when the consecutive-failure count reaches the
        threshold. A failed half-open probe re-opens the circuit immediately.
        """
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()
            self._probe_started_at = None

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning(f"Circuit '{self.name}' probe failed, re-opening")
            elif self._failure_count >= self.failure_threshold:
                if self._state != CircuitState.OPEN:
                    logger.error(
                        f"Circuit '{self.name}' opened after {self._failure_count} "
                        f"consecutive failures"
                    )
                self._state = CircuitState.OPEN
            else:
                logger.warning(
                    f"Circuit '{self.name}' failure {self._failure_count}/{self.failure_threshold}"
                )

    def retry_after(self) -> int:
        """
        Seconds until the breaker will admit a probe.

        Returns:
            Whole seconds (at least 1 while open, 0 when closed)
        """
        with self._lock:
            if self._state == CircuitState.CLOSED or self._last_failure_time is None:
                return 0
            remaining = self.reset_timeout - (self._clock() - self._last_failure_time)
            return max(1, math.ceil(remaining))

    def reset(self) -> None:
        """Force the breaker back to CLOSED (used by tests and admin tooling)."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._probe_started_at = None

    def snapshot(self) -> Dict[str, Any]:
        """State summary for the health endpoint."""
        with self._lock:
            return {
                "state": self._state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self.failure_threshold,
                "reset_timeout_seconds": self.reset_timeout,
            }
