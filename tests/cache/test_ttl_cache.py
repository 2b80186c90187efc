"""Tests for the TTL/LRU cache."""

import pytest

from ct_app.cache import TTLCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestTTLCache:
    """Test suite for TTLCache."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cache = TTLCache("test", max_items=3, default_ttl_seconds=10, clock=self.clock)

    def test_get_and_set(self):
        self.cache.set("a", {"value": 1})
        assert self.cache.get("a") == {"value": 1}
        assert self.cache.get("missing") is None
        assert self.cache.get("missing", "fallback") == "fallback"

    def test_entries_expire(self):
        self.cache.set("a", 1)
        self.clock.advance(9)
        assert self.cache.get("a") == 1

        self.clock.advance(1)
        assert self.cache.get("a") is None
        assert len(self.cache) == 0

    def test_per_entry_ttl(self):
        self.cache.set("short", 1, ttl_seconds=1)
        self.cache.set("long", 2)
        self.clock.advance(5)

        assert self.cache.get("short") is None
        assert self.cache.get("long") == 2

    def test_zero_ttl_is_not_stored(self):
        self.cache.set("a", 1, ttl_seconds=0)
        assert len(self.cache) == 0

    def test_lru_eviction(self):
        for key in ("a", "b", "c"):
            self.cache.set(key, key)

        self.cache.get("a")
        self.cache.set("d", "d")

        assert self.cache.get("b") is None
        assert self.cache.get("a") == "a"
        assert self.cache.stats()["evictions"] == 1

    def test_invalidate_prefix(self):
        self.cache.set("analysis:s1:x", 1)
        self.cache.set("analysis:s1:y", 2)
        self.cache.set("analysis:s2:x", 3)

        assert self.cache.invalidate_prefix("analysis:s1:") == 2
        assert self.cache.get("analysis:s2:x") == 3

    def test_delete_and_clear(self):
        self.cache.set("a", 1)
        assert self.cache.delete("a") is True
        assert self.cache.delete("a") is False

        self.cache.set("b", 2)
        self.cache.clear()
        assert len(self.cache) == 0

    def test_stats(self):
        self.cache.set("a", 1)
        self.cache.get("a")
        self.cache.get("b")

        stats = self.cache.stats()
        assert stats["name"] == "test"
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1
        assert stats["hit_rate"] == 0.5

    def test_no_expiry(self):
        cache = TTLCache("forever", default_ttl_seconds=None, clock=self.clock)
        cache.set("a", 1)
        self.clock.advance(10 ** 6)
        assert cache.get("a") == 1

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            TTLCache("bad", max_items=0)
