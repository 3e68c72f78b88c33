"""Tests for the response cache."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from paygate.app.exceptions import StoreError
from paygate.app.services.models import CacheHit, CacheMiss, ResponseFormat
from paygate.app.services.response_cache import CacheManager


def _failing_store():
    store = MagicMock()
    store.get = AsyncMock(side_effect=StoreError("down"))
    store.set = AsyncMock(side_effect=StoreError("down"))
    return store


class TestCacheKey:
    """Tests for cache key construction."""

    def test_key_format(self, store):
        cache = CacheManager(store, version=1)
        key = cache.make_key("/x", [("b", "2"), ("a", "1")], ResponseFormat.JSON)
        assert key == "cache:v1:/x:a=1&b=2:json"

    def test_parameter_order_does_not_matter(self, store):
        cache = CacheManager(store)
        first = cache.make_key("/x", [("a", "1"), ("b", "2")], ResponseFormat.HTML)
        second = cache.make_key("/x", [("b", "2"), ("a", "1")], ResponseFormat.HTML)
        assert first == second

    def test_format_and_version_are_part_of_the_key(self, store):
        v1 = CacheManager(store, version=1)
        v2 = CacheManager(store, version=2)
        assert v1.make_key("/x", [], ResponseFormat.JSON) == "cache:v1:/x::json"
        assert v1.make_key("/x", [], ResponseFormat.MARKDOWN) == "cache:v1:/x::markdown"
        assert v2.make_key("/x", [], ResponseFormat.JSON) == "cache:v2:/x::json"

    def test_parameter_names_sort_case_insensitively(self, store):
        cache = CacheManager(store)
        key = cache.make_key("/x", [("B", "2"), ("a", "1")], ResponseFormat.JSON)
        assert key == "cache:v1:/x:a=1&B=2:json"

    def test_repeated_keys_keep_their_relative_order(self, store):
        cache = CacheManager(store)
        key = cache.make_key("/s", [("tag", "b"), ("q", "1"), ("tag", "a")], ResponseFormat.JSON)
        assert key == "cache:v1:/s:q=1&tag=b&tag=a:json"


class TestCacheManager:
    """Tests for cache reads and writes."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, store):
        cache = CacheManager(store, ttl_seconds=60)
        assert await cache.get("k") == CacheMiss()
        assert await cache.set("k", "body") is True
        assert await cache.get("k") == CacheHit(value="body")

    @pytest.mark.asyncio
    async def test_entries_expire(self, store, clock):
        cache = CacheManager(store, ttl_seconds=60)
        await cache.set("k", "body")
        clock.advance(61)
        assert await cache.get("k") == CacheMiss()

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_caching(self, store):
        cache = CacheManager(store, ttl_seconds=0)
        assert not cache.enabled
        assert await cache.set("k", "body") is True
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_empty_value_is_a_miss(self, store):
        await store.set("k", "")
        assert await CacheManager(store).get("k") == CacheMiss()

    @pytest.mark.asyncio
    async def test_store_failures_are_swallowed(self):
        cache = CacheManager(_failing_store())
        assert await cache.get("k") == CacheMiss()
        assert await cache.set("k", "body") is False
