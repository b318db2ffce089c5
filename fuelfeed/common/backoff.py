"""Exponential backoff policy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BackoffPolicy:
    base_s: float = 1.0
    max_s: float = 30.0

    def delay(self, attempt: int, hint: float | None = None) -> float:
        """Seconds to wait before retrying after ``attempt`` (0-based).

        A provider-supplied ``hint`` (e.g. Retry-After) takes precedence over
        the computed curve.
        """
        if hint is not None:
            return max(float(hint), 0.0)
        return min(self.base_s * (2 ** max(attempt, 0)), self.max_s)
