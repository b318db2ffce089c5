"""In-memory TTL cache with a stale-read path for failure fallback."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int


class TtlCache:
    """
    Expiring key/value store.

    Expiry is checked against the wall clock on every read, so no background
    sweep is needed. Expired entries stay readable through ``get_stale`` until
    ``prune`` removes them (``stale_retention_s=None`` keeps them until they
    are overwritten, invalidated or evicted).
    """

    def __init__(
        self,
        *,
        now_fn: Callable[[], float] = time.time,
        max_entries: int | None = None,
        stale_retention_s: float | None = None,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._now = now_fn
        self._max_entries = max_entries
        self._stale_retention_s = stale_retention_s
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(float(self._now())):
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def get_stale(self, key: str) -> Any | None:
        """Return the last value stored under ``key`` even if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl_s: float) -> None:
        with self._lock:
            expires_at = float(self._now()) + float(ttl_s)
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=expires_at)
            self._entries.move_to_end(key)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)

    def invalidate(self, key_or_prefix: str) -> int:
        """Remove one key, or every key sharing a prefix when it ends with ``*``."""
        with self._lock:
            if key_or_prefix.endswith("*"):
                prefix = key_or_prefix[:-1]
                doomed = [key for key in self._entries if key.startswith(prefix)]
            else:
                doomed = [key_or_prefix] if key_or_prefix in self._entries else []
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def prune(self) -> int:
        if self._stale_retention_s is None:
            return 0
        with self._lock:
            cutoff = float(self._now()) - self._stale_retention_s
            doomed = [key for key, entry in self._entries.items() if entry.expires_at < cutoff]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(size=len(self._entries), hits=self._hits, misses=self._misses)
