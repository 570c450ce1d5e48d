"""
Unit tests for QueryCache.
"""

import asyncio

import pytest

from kakeibo.services.cache import (
    DEFAULT_TTL,
    BoundedMemoryStore,
    CacheEntry,
    MemoryStore,
    QueryCache,
    create_cache,
)

from .conftest import CountingProducer


class TestGetOrFetch:
    """Read-through behaviour of get_or_fetch."""

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, cache):
        producer = CountingProducer({"data": [{"id": "1"}]})

        first = await cache.get_or_fetch("tx_user1", producer, 60)
        second = await cache.get_or_fetch("tx_user1", producer, 60)

        assert first == {"data": [{"id": "1"}]}
        assert second is first
        assert producer.calls == 1

    @pytest.mark.asyncio
    async def test_zero_ttl_always_calls_producer(self, cache):
        producer = CountingProducer("value")

        for _ in range(3):
            await cache.get_or_fetch("k", producer, 0)

        assert producer.calls == 3

    @pytest.mark.asyncio
    async def test_value_is_returned_unchanged(self, cache):
        payload = {"rows": [1, 2, 3]}
        producer = CountingProducer(payload)

        await cache.get_or_fetch("k", producer, 10)
        cached = await cache.get_or_fetch("k", producer, 10)

        assert cached is payload

    @pytest.mark.asyncio
    async def test_ttl_expiry_scenario(self, cache, clock):
        """Fresh at +0.5s, expired at +1.5s for a 1 second TTL."""
        fetch_a = CountingProducer({"data": [{"id": "1"}]})

        first = await cache.get_or_fetch("tx_user1", fetch_a, 1.0)
        assert first == {"data": [{"id": "1"}]}
        assert fetch_a.calls == 1

        clock.advance(0.5)
        second = await cache.get_or_fetch("tx_user1", fetch_a, 1.0)
        assert second is first
        assert fetch_a.calls == 1

        clock.advance(1.0)
        await cache.get_or_fetch("tx_user1", fetch_a, 1.0)
        assert fetch_a.calls == 2

    @pytest.mark.asyncio
    async def test_entry_expires_exactly_at_ttl(self, cache, clock):
        producer = CountingProducer("v")

        await cache.get_or_fetch("k", producer, 5)
        clock.advance(5)
        await cache.get_or_fetch("k", producer, 5)

        assert producer.calls == 2

    @pytest.mark.asyncio
    async def test_default_ttl_is_five_minutes(self, cache, clock):
        producer = CountingProducer("v")

        await cache.get_or_fetch("k", producer)
        clock.advance(DEFAULT_TTL - 1)
        await cache.get_or_fetch("k", producer)
        assert producer.calls == 1

        clock.advance(1)
        await cache.get_or_fetch("k", producer)
        assert producer.calls == 2

    @pytest.mark.asyncio
    async def test_negative_ttl_is_rejected(self, cache):
        producer = CountingProducer("v")

        with pytest.raises(ValueError):
            await cache.get_or_fetch("k", producer, -1)

        assert producer.calls == 0

    def test_negative_default_ttl_is_rejected(self):
        with pytest.raises(ValueError):
            QueryCache(default_ttl=-5)


class TestProducerFailure:
    """Failures propagate verbatim and never write."""

    @pytest.mark.asyncio
    async def test_failure_propagates_same_exception(self, cache):
        error = RuntimeError("backend down")
        producer = CountingProducer(error=error)

        with pytest.raises(RuntimeError) as exc_info:
            await cache.get_or_fetch("k", producer, 10)

        assert exc_info.value is error
        assert "k" not in cache
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_failure_leaves_stale_entry_untouched(self, cache, clock):
        await cache.get_or_fetch("k", CountingProducer("old"), 1)
        clock.advance(2)

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", CountingProducer(error=RuntimeError("boom")), 1)

        # Still stored, still stale
        assert cache.keys() == ["k"]
        assert cache.peek("k") is None

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_fresh_data(self, cache):
        await cache.get_or_fetch("k", CountingProducer("good"), 60)

        with pytest.raises(RuntimeError):
            await cache.refresh("k", CountingProducer(error=RuntimeError("boom")), 60)

        assert cache.peek("k").value == "good"

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_other_keys(self, cache):
        await cache.get_or_fetch("a", CountingProducer("a-value"), 60)

        with pytest.raises(ValueError):
            await cache.get_or_fetch("b", CountingProducer(error=ValueError("bad")), 60)

        assert cache.peek("a").value == "a-value"
        assert cache.stats()["failures"] == 1

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self, cache):
        producer = CountingProducer(error=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", producer, 60)

        assert producer.calls == 1


class TestInvalidation:
    """invalidate, invalidate_by_pattern and clear_all."""

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(self, cache):
        producer = CountingProducer("v")

        await cache.get_or_fetch("k", producer, 60)
        cache.invalidate("k")
        await cache.get_or_fetch("k", producer, 60)

        assert producer.calls == 2

    def test_invalidate_absent_key_is_noop(self, cache):
        cache.invalidate("missing")
        cache.invalidate("missing")
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_invalidate_by_pattern(self, cache):
        for key in ("transactions_u1_0_20", "reports_transactions_u1_2024-06", "categories_u1"):
            await cache.get_or_fetch(key, CountingProducer(key), 60)

        removed = cache.invalidate_by_pattern("transactions")

        assert removed == 2
        assert cache.keys() == ["categories_u1"]

    @pytest.mark.asyncio
    async def test_invalidate_by_pattern_without_match(self, cache):
        await cache.get_or_fetch("categories_u1", CountingProducer("c"), 60)

        assert cache.invalidate_by_pattern("assets") == 0
        assert "categories_u1" in cache

    @pytest.mark.asyncio
    async def test_clear_all(self, cache):
        for key in ("a", "b", "c"):
            await cache.get_or_fetch(key, CountingProducer(key), 60)

        cache.clear_all()

        assert len(cache) == 0
        assert cache.keys() == []


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_ignores_freshness(self, cache):
        await cache.get_or_fetch("k", CountingProducer("old"), 60)
        producer = CountingProducer("new")

        value = await cache.refresh("k", producer, 60)

        assert value == "new"
        assert producer.calls == 1
        assert cache.peek("k").value == "new"


class TestConcurrentCallers:
    """No in-flight de-duplication; last write wins."""

    @pytest.mark.asyncio
    async def test_concurrent_misses_each_call_producer(self, cache):
        gate_first, gate_second = asyncio.Event(), asyncio.Event()
        started = []

        def slow_fetch(value, gate):
            async def producer():
                started.append(value)
                await gate.wait()
                return value
            return producer

        first = asyncio.create_task(cache.get_or_fetch("k", slow_fetch("first", gate_first), 1000))
        second = asyncio.create_task(cache.get_or_fetch("k", slow_fetch("second", gate_second), 1000))
        await asyncio.sleep(0)

        assert started == ["first", "second"]

        gate_second.set()
        assert await second == "second"
        gate_first.set()
        assert await first == "first"

        # The result processed last is the one stored
        assert cache.peek("k").value == "first"

    @pytest.mark.asyncio
    async def test_invalidate_during_fetch_does_not_cancel_write(self, cache):
        gate = asyncio.Event()

        async def producer():
            await gate.wait()
            return "late"

        task = asyncio.create_task(cache.get_or_fetch("k", producer, 60))
        await asyncio.sleep(0)
        cache.invalidate("k")
        gate.set()
        await task

        assert cache.peek("k").value == "late"


class TestStores:
    def test_cache_entry_freshness(self):
        entry = CacheEntry(value="v", stored_at=100.0, ttl=10.0)

        assert entry.is_fresh(109.9)
        assert not entry.is_fresh(110.0)

    def test_memory_store_operations(self):
        store = MemoryStore()
        entry = CacheEntry(value=1, stored_at=0, ttl=1)

        store.set("a", entry)
        assert store.get("a") is entry
        assert store.keys() == ["a"]

        store.delete("a")
        store.delete("a")
        assert store.get("a") is None
        assert len(store) == 0

    def test_bounded_store_evicts_least_recently_used(self):
        store = BoundedMemoryStore(max_entries=2)
        store.set("a", CacheEntry(value="a", stored_at=0, ttl=1))
        store.set("b", CacheEntry(value="b", stored_at=0, ttl=1))

        store.get("a")
        store.set("c", CacheEntry(value="c", stored_at=0, ttl=1))

        assert sorted(store.keys()) == ["a", "c"]

    def test_bounded_store_requires_capacity(self):
        with pytest.raises(ValueError):
            BoundedMemoryStore(max_entries=0)

    @pytest.mark.asyncio
    async def test_create_cache_bounded(self, clock):
        cache = create_cache(max_entries=1, clock=clock)

        await cache.get_or_fetch("a", CountingProducer("a"), 60)
        await cache.get_or_fetch("b", CountingProducer("b"), 60)

        assert cache.keys() == ["b"]

    def test_independent_instances(self, clock):
        first = QueryCache(clock=clock)
        second = QueryCache(clock=clock)

        assert first._store is not second._store


class TestStats:
    @pytest.mark.asyncio
    async def test_hit_and_miss_counters(self, cache):
        producer = CountingProducer("v")

        await cache.get_or_fetch("k", producer, 60)
        await cache.get_or_fetch("k", producer, 60)
        await cache.get_or_fetch("other", producer, 60)

        assert cache.stats() == {"entries": 2, "hits": 1, "misses": 2, "failures": 0}
