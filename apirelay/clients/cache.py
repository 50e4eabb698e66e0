"""In-memory TTL cache for successful read responses."""

import enum
import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any


class _Sentinel(enum.Enum):
    MISS = "miss"
    CLEARED_ALL = "all"


# Returned by get() when the key is absent or expired
MISS = _Sentinel.MISS
# Returned by clear() when every entry was removed
CLEARED_ALL = _Sentinel.CLEARED_ALL


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl_seconds: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl_seconds


def make_key(method: str, endpoint: str, payload: Any = None) -> str:
    """Build a cache key of the form METHOD:endpoint:<payload digest>."""
    canonical = json.dumps(payload, sort_keys=True, default=str)
    digest = hashlib.sha256(canonical.encode()).hexdigest()[:16]
    return f"{method.upper()}:{endpoint}:{digest}"


class ResponseCache:
    """Time-bounded memoization. Expired entries are evicted on lookup and
    by a sweep that runs at most once per check_period during set()."""

    def __init__(self, default_ttl: float = 300, check_period: float = 60):
        self.default_ttl = default_ttl
        self.check_period = check_period
        self._entries: dict[str, CacheEntry] = {}
        self._last_sweep = time.monotonic()

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return MISS
        if entry.expired(time.monotonic()):
            del self._entries[key]
            return MISS
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        now = time.monotonic()
        if now - self._last_sweep >= self.check_period:
            self.sweep()
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            stored_at=now,
            ttl_seconds=self.default_ttl if ttl is None else ttl,
        )

    def clear(self, pattern: str | None = None) -> int | _Sentinel:
        """Remove entries whose key contains pattern, or everything.

        Returns the number removed, or CLEARED_ALL when no pattern was given.
        """
        if pattern is None:
            self._entries.clear()
            return CLEARED_ALL
        doomed = [key for key in self._entries if pattern in key]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def sweep(self) -> int:
        now = time.monotonic()
        self._last_sweep = now
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
