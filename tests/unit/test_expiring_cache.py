"""Unit tests for src/core/expiring_cache.py."""

import pytest

from src.core.expiring_cache import ExpiringCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_cache(ttl: float = 60.0):
    clock = FakeClock()
    return ExpiringCache(default_ttl=ttl, clock=clock), clock


class TestExpiringCache:
    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            ExpiringCache(default_ttl=0)

    def test_get_before_deadline(self):
        cache, clock = _make_cache()
        cache.set("k", "v")
        clock.advance(59.9)
        assert cache.get("k") == "v"

    def test_never_returned_at_deadline(self):
        cache, clock = _make_cache()
        cache.set("k", "v")
        clock.advance(60)
        assert cache.get("k") is None
        # Lazily evicted on that access
        assert len(cache) == 0

    def test_per_entry_ttl_overrides_default(self):
        cache, clock = _make_cache(ttl=60)
        cache.set("short", "a", ttl=5)
        cache.set("long", "b")
        clock.advance(10)
        assert cache.get("short") is None
        assert cache.get("long") == "b"

    def test_set_replaces_value_and_deadline(self):
        cache, clock = _make_cache()
        cache.set("k", "old")
        clock.advance(50)
        cache.set("k", "new")
        clock.advance(50)
        assert cache.get("k") == "new"

    def test_purge_expired(self):
        cache, clock = _make_cache()
        cache.set("a", 1, ttl=1)
        cache.set("b", 2, ttl=100)
        clock.advance(2)
        assert cache.purge_expired() == 1
        assert len(cache) == 1
