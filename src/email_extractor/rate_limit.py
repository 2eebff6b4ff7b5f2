"""Fixed-window, per-client request counting."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from .errors import ConfigError
from .models import RateLimitDecision


@dataclass
class _Window:
    count: int
    started_at: float


class RateLimitStore:
    """Per-key fixed-window counters owned by one application instance."""

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1 or window_seconds <= 0:
            raise ConfigError("Rate limit and window must be positive.")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for key and decide whether it may proceed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.started_at > self.window_seconds:
                window = _Window(count=1, started_at=now)
                self._windows[key] = window
            else:
                window.count += 1
            reset_at = window.started_at + self.window_seconds
            if window.count > self.limit:
                return RateLimitDecision(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    reset_at=reset_at,
                    retry_after=math.ceil(reset_at - now),
                )
            return RateLimitDecision(
                allowed=True,
                limit=self.limit,
                remaining=self.limit - window.count,
                reset_at=reset_at,
            )

    def sweep(self) -> int:
        """Evict windows that started more than two windows ago."""
        now = self._clock()
        horizon = self.window_seconds * 2
        with self._lock:
            stale = [
                key
                for key, window in self._windows.items()
                if now - window.started_at > horizon
            ]
            for key in stale:
                del self._windows[key]
        return len(stale)
