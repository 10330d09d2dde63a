"""Category-aware TTL cache for upstream query results."""

import asyncio
import copy
import hashlib
import json
import logging
import re
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from . import config

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


@dataclass
class CacheEntry:
    key: str
    payload: Any
    created_at: float
    category: str


def _normalize_argument(value: Any) -> Any:
    if isinstance(value, str):
        return _WHITESPACE.sub(" ", value).strip().lower()
    if isinstance(value, (list, tuple)):
        return [_normalize_argument(item) for item in value]
    if isinstance(value, dict):
        return {k: _normalize_argument(v) for k, v in value.items()}
    return value


class CacheStore:
    """Result cache with a TTL per category.

    Payloads are deep-copied on the way in and out; callers never share
    the stored object. An entry is valid while ``now - created_at < ttl(category)``. Expired
    entries are dropped lazily on read and in bulk by ``sweep()``. Categories
    whose TTL is ``None`` are never stored.
    """

    def __init__(
        self,
        ttls: dict[str, float | None] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache store.

        Args:
            ttls: Seconds-to-live per category; ``None`` disables caching
            clock: Time source, injectable for tests
        """
        self.ttls = dict(config.CACHE_TTLS if ttls is None else ttls)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(operation: str, arguments: dict[str, Any]) -> str:
        """Hash the operation name and its normalized arguments."""
        normalized = _normalize_argument(arguments)
        key_str = f"{operation}|{json.dumps(normalized, sort_keys=True, default=str)}"
        return hashlib.md5(key_str.encode()).hexdigest()

    def ttl_for(self, category: str) -> float | None:
        return self.ttls.get(category)

    def is_cacheable(self, category: str) -> bool:
        return self.ttl_for(category) is not None

    def _is_valid(self, entry: CacheEntry, now: float) -> bool:
        ttl = self.ttl_for(entry.category)
        return ttl is not None and now - entry.created_at < ttl

    def get(self, key: str, category: str) -> Any | None:
        """
        Retrieve a cached payload if present and not expired.

        Returns:
            The payload, or None on a miss
        """
        if not self.is_cacheable(category):
            self.misses += 1
            return None

        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if not self._is_valid(entry, self._clock()):
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return copy.deepcopy(entry.payload)

    def put(self, key: str, payload: Any, category: str) -> None:
        """Store ``payload``, replacing any previous entry for ``key``."""
        if not self.is_cacheable(category):
            return
        self._entries[key] = CacheEntry(
            key=key, payload=copy.deepcopy(payload), created_at=self._clock(), category=category
        )

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if not self._is_valid(entry, now)
        ]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        by_category: dict[str, int] = {}
        valid_entries = 0
        memory_bytes = 0
        for entry in self._entries.values():
            by_category[entry.category] = by_category.get(entry.category, 0) + 1
            if self._is_valid(entry, now):
                valid_entries += 1
            memory_bytes += sys.getsizeof(json.dumps(entry.payload, default=str))

        lookups = self.hits + self.misses
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid_entries,
            "expired_entries": len(self._entries) - valid_entries,
            "entries_by_category": by_category,
            "approximate_memory_kb": round(memory_bytes / 1024, 2),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / lookups, 3) if lookups else 0.0,
            "ttl_seconds": dict(self.ttls),
        }


class CacheSweeper:
    """Background task that sweeps a CacheStore on a fixed interval."""

    def __init__(self, store: CacheStore, interval: float = config.CACHE_SWEEP_INTERVAL):
        self.store = store
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Non-blocking startup; a second call is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Cache sweeper started (interval: {self.interval}s)")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.store.sweep()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cache sweeper stopped")


# Global cache instance
_cache_store = CacheStore()


def get_cache_store() -> CacheStore:
    """Get the global cache store instance."""
    return _cache_store
