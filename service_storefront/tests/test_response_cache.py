"""
Unit tests for the response cache.
"""

import pytest

from service_storefront.app.caching.response_cache import (
    CATALOG_PREFIX,
    ResponseCache,
    make_catalog_key,
    make_product_key,
)
from shared.test_helpers import FakeClock


class TestCacheKeys:
    """Cache key derivation."""

    def test_distinct_query_shapes_do_not_collide(self):
        keys = {
            make_catalog_key(False, 10, 0),
            make_catalog_key(True, 10, 0),
            make_catalog_key(False, 5, 0),
            make_catalog_key(False, 10, 5),
            make_product_key(10),
        }
        assert len(keys) == 5

    def test_keys_are_deterministic(self):
        assert make_catalog_key(False, 10, 0) == make_catalog_key(False, 10, 0)
        assert make_catalog_key(True, 10, 0) == "catalog:products:all:limit=10:offset=0"

    def test_keys_carry_catalog_prefix(self):
        assert make_catalog_key(False, 1, 0).startswith(CATALOG_PREFIX)
        assert make_product_key(3).startswith(CATALOG_PREFIX)


class TestResponseCache:
    """Test cases for ResponseCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return ResponseCache("catalog", ttl_seconds=300, clock=clock)

    def test_miss_then_hit(self, cache):
        assert cache.get("catalog:a") == (None, False)

        cache.put("catalog:a", [{"id": 1}])

        assert cache.get("catalog:a") == ([{"id": 1}], True)

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.put("catalog:a", {"id": 1})

        clock.advance(299)
        assert cache.get("catalog:a")[1] is True

        clock.advance(1)
        assert cache.get("catalog:a") == (None, False)

    def test_returned_payload_is_a_copy(self, cache):
        payload = {"products": [{"id": 1, "name": "Rice"}]}
        cache.put("catalog:a", payload)
        payload["products"][0]["name"] = "changed"

        cached, _ = cache.get("catalog:a")
        cached["products"][0]["name"] = "mutated"

        assert cache.get("catalog:a")[0]["products"][0]["name"] == "Rice"

    def test_invalidate_prefix(self, cache):
        cache.put("catalog:products:active", [1])
        cache.put("catalog:product:1", {"id": 1})
        cache.put("other:key", "kept")

        removed = cache.invalidate(CATALOG_PREFIX)

        assert removed == 2
        assert cache.get("catalog:products:active")[1] is False
        assert cache.get("catalog:product:1")[1] is False
        assert cache.get("other:key") == ("kept", True)

    def test_invalidate_bumps_generation(self, cache):
        before = cache.generation
        cache.invalidate(CATALOG_PREFIX)
        assert cache.generation == before + 1

    def test_stale_fill_is_discarded(self, cache):
        generation = cache.generation
        # A write lands between the read's store query and its cache fill
        cache.invalidate(CATALOG_PREFIX)

        stored = cache.put("catalog:products:active", ["pre-write"], generation)

        assert stored is False
        assert cache.get("catalog:products:active") == (None, False)

    def test_current_generation_fill_is_stored(self, cache):
        assert cache.put("catalog:a", [1], cache.generation) is True
        assert cache.get("catalog:a") == ([1], True)

    def test_stats(self, cache, clock):
        cache.put("catalog:a", 1)
        cache.put("catalog:b", 2)
        cache.get("catalog:a")
        cache.get("catalog:missing")
        clock.advance(301)

        stats = cache.get_stats()

        assert stats["name"] == "catalog"
        assert stats["entries"] == 0
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_ratio"] == 0.5
        assert stats["ttl_seconds"] == 300
