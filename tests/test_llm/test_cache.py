"""
Tests for the TTL response cache.

Time is driven by an injected fake clock, so expiry is exact.
"""

from __future__ import annotations

import pytest

from relay.llm.cache import DEFAULT_TTL_SECONDS, ResponseCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResponseCache(ttl_seconds=DEFAULT_TTL_SECONDS, clock=clock)


# ===========================================================================
# Key Generation
# ===========================================================================


class TestMakeKey:

    def test_deterministic(self):
        k1 = ResponseCache.make_key("openai", "gpt-4-turbo", 500, 0.7, "hi")
        k2 = ResponseCache.make_key("openai", "gpt-4-turbo", 500, 0.7, "hi")
        assert k1 == k2
        assert len(k1) == 64

    def test_defaults_collide_with_unset(self):
        assert ResponseCache.make_key(None, None, None, None, "hi") == \
            ResponseCache.make_key("auto", "default", 0, 0.7, "hi")

    def test_auto_differs_from_pinned(self):
        assert ResponseCache.make_key(None, None, None, 0.7, "hi") != \
            ResponseCache.make_key("openai", None, None, 0.7, "hi")

    @pytest.mark.parametrize("changed", [
        ("claude", None, None, 0.7, "hi"),
        (None, "gpt-3.5-turbo", None, 0.7, "hi"),
        (None, None, 200, 0.7, "hi"),
        (None, None, None, 0.0, "hi"),
        (None, None, None, 0.7, "hello"),
    ])
    def test_every_field_participates(self, changed):
        base = ResponseCache.make_key(None, None, None, 0.7, "hi")
        assert ResponseCache.make_key(*changed) != base

    def test_integer_and_float_temperature_share_key(self):
        assert ResponseCache.make_key(None, None, None, 1, "hi") == \
            ResponseCache.make_key(None, None, None, 1.0, "hi")
        assert ResponseCache.make_key(None, None, None, 0, "hi") == \
            ResponseCache.make_key(None, None, None, 0.0, "hi")

    def test_zero_temperature_not_replaced(self):
        assert ResponseCache.make_key(None, None, None, 0.0, "hi") != \
            ResponseCache.make_key(None, None, None, 0.7, "hi")


# ===========================================================================
# TTL
# ===========================================================================


class TestTTL:

    def test_hit_within_ttl(self, cache, clock):
        cache.put("k", "response")
        clock.advance(DEFAULT_TTL_SECONDS - 1)
        assert cache.get("k") == "response"

    def test_expired_exactly_at_ttl(self, cache, clock):
        cache.put("k", "response")
        clock.advance(DEFAULT_TTL_SECONDS)
        assert "k" not in cache
        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.stats.expired == 1

    def test_put_refreshes_timestamp(self, cache, clock):
        cache.put("k", "old")
        clock.advance(DEFAULT_TTL_SECONDS - 10)
        cache.put("k", "new")
        clock.advance(20)
        assert cache.get("k") == "new"

    def test_hit_does_not_refresh_timestamp(self, cache, clock):
        cache.put("k", "response")
        clock.advance(DEFAULT_TTL_SECONDS - 1)
        assert cache.get("k") == "response"
        clock.advance(1)
        assert cache.get("k") is None

    def test_sweep(self, cache, clock):
        cache.put("old", 1)
        clock.advance(DEFAULT_TTL_SECONDS - 5)
        cache.put("fresh", 2)
        clock.advance(10)
        assert cache.sweep() == 1
        assert len(cache) == 1
        assert cache.get("fresh") == 2


# ===========================================================================
# Capacity & Maintenance
# ===========================================================================


class TestCapacity:

    def test_lru_eviction(self, clock):
        cache = ResponseCache(max_entries=2, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")           # a is now most recent
        cache.put("c", 3)
        assert "b" not in cache
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.stats.evicted == 1

    def test_overwrite_does_not_evict(self, clock):
        cache = ResponseCache(max_entries=2, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("a", 10)
        assert len(cache) == 2
        assert cache.get("b") == 2
        assert cache.stats.evicted == 0

    def test_clear_returns_count(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.clear() == 2
        assert cache.get("a") is None
        assert cache.clear() == 0

    def test_invalidate(self, cache):
        cache.put("a", 1)
        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False


class TestStats:

    def test_hits_and_misses(self, cache):
        cache.put("a", 1)
        cache.get("a")
        cache.get("missing")
        report = cache.snapshot()
        assert report["hits"] == 1
        assert report["misses"] == 1
        assert report["hit_rate"] == 0.5
        assert report["stores"] == 1
        assert report["entries"] == 1

    def test_expired_read_counts_as_miss(self, cache, clock):
        cache.put("a", 1)
        clock.advance(DEFAULT_TTL_SECONDS)
        cache.get("a")
        assert cache.stats.misses == 1
        assert cache.stats.hits == 0

    def test_describe(self, cache, clock):
        cache.put("abcdefghijklmnopqrstuvwxyz", "r", provider="claude", model="m")
        clock.advance(5)
        [entry] = cache.describe()
        assert entry["fingerprint"] == "abcdefghijkl"
        assert entry["provider"] == "claude"
        assert entry["age_seconds"] == 5.0
        assert entry["stale"] is False
