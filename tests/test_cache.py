"""Test the response cache."""

from bamboohr.sdk._cache import MISS, ResponseCache, build_cache_key


class TestCacheKey:
    """Test request fingerprints."""

    def test_key_includes_method_and_endpoint(self):
        assert build_cache_key("get", "/datasets") == "GET:/datasets:"

    def test_body_serialized_deterministically(self):
        first = build_cache_key("POST", "/datasets/employee", {"fields": ["a"], "groupBy": ["b"]})
        second = build_cache_key("POST", "/datasets/employee", {"groupBy": ["b"], "fields": ["a"]})
        assert first == second

    def test_different_queries_differ(self):
        assert build_cache_key("GET", "/x?a=1") != build_cache_key("GET", "/x?a=2")


class TestResponseCache:
    """Test TTL expiry and housekeeping."""

    def test_hit_within_ttl(self, clock):
        cache = ResponseCache(1_000, clock)
        cache.set("k", {"value": 1})
        clock.advance(999)
        assert cache.get("k") == {"value": 1}

    def test_expired_at_boundary(self, clock):
        """Test an entry is gone once now reaches its expiry time."""
        cache = ResponseCache(1_000, clock)
        cache.set("k", {"value": 1})
        clock.advance(1_000)
        assert cache.get("k") is MISS
        assert len(cache) == 0

    def test_none_is_cacheable(self, clock):
        cache = ResponseCache(1_000, clock)
        cache.set("k", None)
        assert cache.get("k") is None

    def test_set_overwrites_and_refreshes(self, clock):
        cache = ResponseCache(1_000, clock)
        cache.set("k", "old")
        clock.advance(800)
        cache.set("k", "new")
        clock.advance(800)
        assert cache.get("k") == "new"

    def test_clear(self, clock):
        cache = ResponseCache(1_000, clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.get("a") is MISS
        assert len(cache) == 0

    def test_live_keys_skip_expired(self, clock):
        cache = ResponseCache(1_000, clock)
        cache.set("old", 1)
        clock.advance(600)
        cache.set("new", 2)
        clock.advance(600)
        assert cache.live_keys() == ["new"]
