"""TTL-based read-through cache for async query producers."""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL = 300.0  # 5 minutes

Producer = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    """A single cache entry with TTL."""
    value: Any
    stored_at: float
    ttl: float  # TTL in seconds

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class CacheStore(Protocol):
    """Key/value storage behind a QueryCache."""

    def get(self, key: str) -> Optional[CacheEntry]: ...

    def set(self, key: str, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def keys(self) -> list[str]: ...

    def __len__(self) -> int: ...


class MemoryStore:
    """Unbounded in-process store."""

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class BoundedMemoryStore(MemoryStore):
    """In-process store that evicts the least recently used entry past max_entries."""

    def __init__(self, max_entries: int):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("cache_evicted", key=evicted)


class QueryCache:
    """Memoize async producer results under string keys for a bounded time.

    Concurrent misses on the same key are not collapsed: each caller awaits
    its own producer and whichever result is stored last wins. A failing
    producer never writes, so a previously stored entry survives it.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        if default_ttl < 0:
            raise ValueError("default_ttl must be non-negative")
        self._store = store if store is not None else MemoryStore()
        self.default_ttl = default_ttl
        self._clock = clock
        self.hits = 0
        self.misses = 0
        self.failures = 0

    def _resolve_ttl(self, ttl: Optional[float]) -> float:
        if ttl is None:
            return self.default_ttl
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        return ttl

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Get the entry for key if it is still fresh."""
        entry = self._store.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            return entry
        return None

    async def get_or_fetch(self, key: str, producer: Producer, ttl: Optional[float] = None) -> Any:
        """Return the fresh cached value for key, or await producer and store its result."""
        ttl = self._resolve_ttl(ttl)

        entry = self.peek(key)
        if entry is not None:
            self.hits += 1
            logger.debug("cache_hit", key=key)
            return entry.value

        self.misses += 1
        logger.debug("cache_miss", key=key)
        return await self._fetch(key, producer, ttl)

    async def refresh(self, key: str, producer: Producer, ttl: Optional[float] = None) -> Any:
        """Await producer regardless of freshness and overwrite the entry on success."""
        ttl = self._resolve_ttl(ttl)
        return await self._fetch(key, producer, ttl)

    async def _fetch(self, key: str, producer: Producer, ttl: float) -> Any:
        try:
            value = await producer()
        except Exception as e:
            self.failures += 1
            logger.warning("cache_producer_failed", key=key, error=str(e))
            raise

        self._store.set(key, CacheEntry(value=value, stored_at=self._clock(), ttl=ttl))
        return value

    def invalidate(self, key: str) -> None:
        """Invalidate a cache entry."""
        self._store.delete(key)

    def invalidate_by_pattern(self, pattern: str) -> int:
        """Invalidate every entry whose key contains pattern."""
        matched = [key for key in self._store.keys() if pattern in key]
        for key in matched:
            self._store.delete(key)
        if matched:
            logger.debug("cache_invalidated", pattern=pattern, count=len(matched))
        return len(matched)

    def clear_all(self) -> None:
        """Clear all cache entries."""
        self._store.clear()

    def keys(self) -> list[str]:
        return self._store.keys()

    def stats(self) -> dict:
        """Entry count and hit/miss counters."""
        return {
            "entries": len(self._store),
            "hits": self.hits,
            "misses": self.misses,
            "failures": self.failures,
        }

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return self.peek(key) is not None


def create_cache(
    default_ttl: float = DEFAULT_TTL,
    max_entries: int = 0,
    clock: Callable[[], float] = time.time,
) -> QueryCache:
    """Build a QueryCache, bounded when max_entries is positive."""
    store = BoundedMemoryStore(max_entries) if max_entries > 0 else MemoryStore()
    return QueryCache(store=store, default_ttl=default_ttl, clock=clock)
