"""In-memory TTL cache.

Passed explicitly to whatever needs caching (API router, store fetchers)
instead of living as a module-level instance, so callers stay testable.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class MemoryCache:
    """Key/value store whose entries expire ``ttl`` seconds after being set."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}  # key -> (value, expires_at)

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        now = self._clock()
        self._prune(now)
        ttl = self.ttl_seconds if ttl is None else ttl
        self._entries[key] = (value, now + ttl)

    def _prune(self, now: float) -> None:
        """Drop every expired entry."""
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired cache entries")

    def expire(self, key: str) -> bool:
        """Drop one key; returns whether it was present."""
        return self._entries.pop(key, None) is not None

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """Drop every key matching the regex ``pattern`` (all keys when None)."""
        if pattern is None:
            count = len(self._entries)
            self._entries.clear()
            return count
        regex = re.compile(pattern)
        doomed = [k for k in self._entries if regex.search(k)]
        for k in doomed:
            del self._entries[k]
        return len(doomed)

    def stats(self) -> dict:
        return {"size": len(self._entries), "keys": sorted(self._entries)}


def cache_key(kind: str, params: dict) -> str:
    """``kind:a=1&b=2`` with parameters sorted by name."""
    query = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"{kind}:{query}"


def cached(cache: MemoryCache, key: str, fn: Callable[[], Any], ttl: Optional[float] = None) -> Any:
    """Return the cached value for ``key`` or compute, store and return it."""
    value = cache.get(key)
    if value is not None:
        logger.debug(f"Cache hit: {key}")
        return value
    value = fn()
    cache.set(key, value, ttl)
    return value
