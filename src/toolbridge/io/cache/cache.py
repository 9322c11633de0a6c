"""Response caching with TTL expiry.

Read-through cache for idempotent backend reads. Keys are derived from
(operation, endpoint, hashed arguments). Entries expire by age only: there is
no size-based eviction and no background sweep. A stale entry is removed by
the lookup that finds it.
"""

from __future__ import annotations

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import orjson

DEFAULT_TTL: float = 300.0  # 5 minutes
T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """A cached backend response with its creation time."""
    value: Any
    created_at: float

    def age(self, now: float) -> float:
        return now - self.created_at


def make_key(endpoint: str, operation: str = "GET", params: dict[str, Any] | None = None) -> str:
    """Deterministic key from operation, endpoint and arguments. Argument order never matters."""
    params_json = orjson.dumps(params or {}, option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS, default=str)
    params_hash = hashlib.md5(params_json, usedforsecurity=False).hexdigest()[:12]
    return f"{operation.upper()}:{endpoint}:{params_hash}"


class ResponseCache:
    """In-memory TTL cache.

    Entries are immutable once written; a concurrent duplicate write is an
    equally fresh overwrite. RLock guards the backing dict for callers that
    touch the cache from worker threads.

    Args:
        ttl: Entry lifetime in seconds; an entry is valid while its age is below ttl
        clock: Monotonic time source (tests inject a fake)

    Example:
        >>> cache = ResponseCache(ttl=60)
        >>> key = make_key("/space", "GET", {"limit": 25})
        >>> cache.set(key, {"results": []})
        >>> cache.get(key)
        {'results': []}
    """

    __slots__ = ("_entries", "_ttl", "_clock", "_lock", "_hits", "_misses")

    def __init__(self, ttl: float = DEFAULT_TTL, *, clock: Clock = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._entries: dict[str, CacheEntry] = {}
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired (expired entries are deleted)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.age(self._clock()) >= self._ttl:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        """Insert or overwrite, stamped with the current time."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, created_at=self._clock())

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        """Stored entries, including expired ones not yet looked up."""
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, object]:
        """Cache statistics for monitoring."""
        with self._lock:
            now = self._clock()
            expired = sum(1 for e in self._entries.values() if e.age(now) >= self._ttl)
            return {
                "total_entries": len(self._entries),
                "expired_entries": expired,
                "active_entries": len(self._entries) - expired,
                "hits": self._hits,
                "misses": self._misses,
                "ttl": self._ttl,
            }


async def cached_call(cache: ResponseCache | None, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
    """Read-through helper. Failures propagate and are never cached."""
    if cache is None:
        return await fetch()
    if (hit := cache.get(key)) is not None:
        return hit
    value = await fetch()
    cache.set(key, value)
    return value
