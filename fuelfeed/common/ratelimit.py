"""Fixed-window request quota keyed by caller identity."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable


@dataclass
class RateLimitWindow:
    key: str
    count: int
    resets_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_in_s: float


class FixedWindowRateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_s: float,
        *,
        now_fn: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self.max_requests = max_requests
        self.window_s = float(window_s)
        self._now = now_fn
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def try_acquire(self, key: str) -> RateLimitDecision:
        with self._lock:
            now = float(self._now())
            window = self._windows.get(key)
            if window is None or now >= window.resets_at:
                window = RateLimitWindow(key=key, count=1, resets_at=now + self.window_s)
                self._windows[key] = window
                return RateLimitDecision(
                    allowed=True,
                    remaining=self.max_requests - 1,
                    reset_in_s=self.window_s,
                )

            reset_in = max(window.resets_at - now, 0.0)
            if window.count >= self.max_requests:
                return RateLimitDecision(allowed=False, remaining=0, reset_in_s=reset_in)

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.max_requests - window.count,
                reset_in_s=reset_in,
            )

    def window(self, key: str) -> RateLimitWindow | None:
        with self._lock:
            current = self._windows.get(key)
            return replace(current) if current is not None else None

    def prune(self) -> int:
        """Drop elapsed windows; they would be re-initialised lazily anyway."""
        with self._lock:
            now = float(self._now())
            expired = [key for key, window in self._windows.items() if now >= window.resets_at]
            for key in expired:
                del self._windows[key]
            return len(expired)
