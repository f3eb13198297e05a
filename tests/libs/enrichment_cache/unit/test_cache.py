"""Tests for the enrichment result cache."""

import json
from unittest.mock import AsyncMock

import pytest

from enrichment_cache.cache import EnrichmentCache
from enrichment_cache.exceptions import CacheStorageError, InvalidTTLError
from enrichment_cache.keys import lock_key


@pytest.fixture
def cache(memory_store) -> EnrichmentCache:
    return EnrichmentCache(memory_store, default_ttl_seconds=100, key_prefix="ce")


class TestEnrichmentCache:
    @pytest.mark.asyncio
    async def test_round_trip(self, cache):
        await cache.set("ce:1:luffy", {"name": "Luffy", "trivia": ["Rubber"]})
        assert await cache.get("ce:1:luffy") == {"name": "Luffy", "trivia": ["Rubber"]}

    @pytest.mark.asyncio
    async def test_expired_entry_reads_as_miss(self, cache, clock):
        await cache.set("ce:1:luffy", {"name": "Luffy"}, ttl_seconds=10)
        clock.advance(11)
        assert await cache.get("ce:1:luffy") is None

    @pytest.mark.asyncio
    async def test_corrupt_entry_reads_as_miss(self, cache, memory_store):
        await memory_store.set("ce:1:luffy", "{not json")
        assert await cache.get("ce:1:luffy") is None

    @pytest.mark.asyncio
    async def test_non_object_entry_reads_as_miss(self, cache, memory_store):
        await memory_store.set("ce:1:luffy", json.dumps([1, 2]))
        assert await cache.get("ce:1:luffy") is None

    @pytest.mark.asyncio
    async def test_storage_errors_degrade_to_miss(self):
        store = AsyncMock()
        store.get.side_effect = CacheStorageError("down")
        store.set.side_effect = CacheStorageError("down")
        cache = EnrichmentCache(store)

        assert await cache.get("k") is None
        await cache.set("k", {"a": 1})  # logged, not raised

    @pytest.mark.asyncio
    async def test_disabled_cache_never_hits(self, memory_store):
        cache = EnrichmentCache(memory_store, enabled=False)
        await cache.set("k", {"a": 1})
        assert await cache.get("k") is None
        assert await memory_store.get("k") is None

    @pytest.mark.asyncio
    async def test_negative_ttl_rejected(self, cache):
        with pytest.raises(InvalidTTLError):
            await cache.set("k", {"a": 1}, ttl_seconds=-5)

    def test_negative_default_ttl_rejected(self, memory_store):
        with pytest.raises(InvalidTTLError):
            EnrichmentCache(memory_store, default_ttl_seconds=-1)

    @pytest.mark.asyncio
    async def test_invalidate(self, cache):
        await cache.set("ce:1:luffy", {"a": 1})
        assert await cache.invalidate("ce:1:luffy") is True
        assert await cache.invalidate("ce:1:luffy") is False

    @pytest.mark.asyncio
    async def test_statistics_ignore_locks_and_count_expired(self, cache, memory_store, clock):
        await cache.set("ce:1:a", {"a": 1}, ttl_seconds=10)
        await cache.set("ce:1:b", {"b": 1}, ttl_seconds=1000)
        await memory_store.set(lock_key("ce:1:a"), "lock", ttl_seconds=1000)
        clock.advance(20)

        stats = await cache.statistics()

        assert stats.total_entries == 2
        assert stats.valid_entries == 1
        assert stats.expired_entries == 1

    @pytest.mark.asyncio
    async def test_sweep_expired(self, cache, clock):
        await cache.set("ce:1:a", {"a": 1}, ttl_seconds=1)
        clock.advance(2)
        assert await cache.sweep_expired() == 1
