"""
Fixed-window rate limiter for the job-generating endpoints.

Each client key (the remote address) gets max_requests per window. Counters
live in process memory and reset on restart.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from .exceptions import RateLimitExceededError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class RateLimiter:
    """
    Thread-safe fixed-window request counter.

    Usage:
        limiter = RateLimiter(max_requests=10, window_seconds=60)
        limiter.check("203.0.113.7")   # raises RateLimitExceededError when over
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        clock: Optional[Callable[[], float]] = None
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic

        # client key -> (window start, request count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def check(self, client_key: str) -> None:
        """
        Count a request for client_key.

        Args:
            client_key: Identifier of the caller (usually its IP address)

        Raises:
            RateLimitExceededError: If the client has used up its window
        """
        with self._lock:
            now = self._clock()
            self._evict_expired(now)

            window_start, count = self._windows.get(client_key, (now, 0))
            if count >= self.max_requests:
                retry_after = max(1, math.ceil(window_start + self.window_seconds - now))
                logger.warning(f"Rate limit exceeded for {client_key} ({count} requests)")
                raise RateLimitExceededError(client_key, retry_after)

            self._windows[client_key] = (window_start, count + 1)

    def remaining(self, client_key: str) -> int:
        """Requests left for client_key in its current window."""
        with self._lock:
            now = self._clock()
            window = self._windows.get(client_key)
            if window is None or now - window[0] >= self.window_seconds:
                return self.max_requests
            return max(0, self.max_requests - window[1])

    def reset(self) -> None:
        """Drop all counters."""
        with self._lock:
            self._windows.clear()

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [
            key for key, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
