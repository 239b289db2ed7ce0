"""Tests for the TTL cache."""

import pytest

from src.utils.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for expiry, eviction and basic access."""

    def setup_method(self) -> None:
        self.clock = FakeClock()
        self.cache = TTLCache(ttl_seconds=10, max_entries=3, clock=self.clock)

    def test_set_and_get(self) -> None:
        self.cache.set("a", 1)
        assert self.cache.get("a") == 1
        assert "a" in self.cache

    def test_missing_returns_default(self) -> None:
        assert self.cache.get("missing") is None
        assert self.cache.get("missing", "fallback") == "fallback"

    def test_entry_expires(self) -> None:
        self.cache.set("a", 1)
        self.clock.now = 10.0
        assert self.cache.get("a") is None
        assert len(self.cache) == 0

    def test_per_entry_ttl(self) -> None:
        self.cache.set("short", 1, ttl=1)
        self.cache.set("long", 2)
        self.clock.now = 5.0
        assert "short" not in self.cache
        assert self.cache.get("long") == 2

    def test_oldest_evicted_when_full(self) -> None:
        for key in ("a", "b", "c", "d"):
            self.cache.set(key, key)
        assert len(self.cache) == 3
        assert "a" not in self.cache
        assert self.cache.get("d") == "d"

    def test_reset_moves_entry_to_newest(self) -> None:
        for key in ("a", "b", "c"):
            self.cache.set(key, key)
        self.cache.set("a", "again")
        self.cache.set("d", "d")
        assert "b" not in self.cache
        assert self.cache.get("a") == "again"

    def test_expire_counts_removed(self) -> None:
        self.cache.set("a", 1, ttl=1)
        self.cache.set("b", 2, ttl=1)
        self.cache.set("c", 3)
        self.clock.now = 2.0
        assert self.cache.expire() == 2
        assert len(self.cache) == 1

    def test_delete_and_clear(self) -> None:
        self.cache.set("a", 1)
        assert self.cache.delete("a") is True
        assert self.cache.delete("a") is False
        self.cache.set("b", 2)
        self.cache.clear()
        assert len(self.cache) == 0

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            TTLCache(max_entries=0)
