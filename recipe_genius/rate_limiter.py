"""
Fixed-window rate limiter.

Instances are created by the application factory and injected into routes,
so each app (and each test) gets its own counters. Expired windows are
swept at most once per window length, keeping memory bounded by the number
of clients seen in the last window.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Allow at most `limit` requests per key per `window_seconds`."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + window_seconds

    def is_allowed(self, key: str) -> bool:
        """Count one request for key; False once the window's budget is spent."""
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)

            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return True

            if window.count >= self.limit:
                logger.warning(f"Rate limit exceeded for {key} ({self.limit}/{self.window_seconds}s)")
                return False

            window.count += 1
            return True

    def remaining(self, key: str) -> int:
        """Requests left for key in the current window."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                return self.limit
            return max(0, self.limit - window.count)

    def cleanup(self) -> int:
        """Drop every expired window now. Returns how many were removed."""
        with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.window_seconds
        if expired:
            logger.debug(f"Evicted {len(expired)} expired rate-limit windows")
        return len(expired)

    def tracked_keys(self) -> int:
        """Number of keys currently holding a window."""
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
