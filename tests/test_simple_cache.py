"""Unit tests for the in-memory SimpleTTLCache."""

import re
import threading

import pytest

from app.utils.simple_cache import MISSING, SimpleTTLCache


def test_set_then_get_returns_value_before_ttl(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("user:1", {"id": "1"}, ttl_ms=10_000)

    clock.advance(9_999)

    assert cache.get("user:1") == {"id": "1"}


def test_get_after_ttl_returns_missing_and_purges(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("user:1", {"id": "1"}, ttl_ms=10_000)

    clock.advance(10_001)

    assert cache.get("user:1") is MISSING
    assert len(cache) == 0
    assert cache.stats()["expirations"] == 1


def test_entry_is_still_served_exactly_at_expiry(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("k", "v", ttl_ms=5_000)

    clock.advance(5_000)

    assert cache.get("k") == "v"


def test_none_is_cached_distinctly_from_missing(clock) -> None:
    cache = SimpleTTLCache(clock=clock)

    assert cache.get("user:404") is MISSING

    cache.set("user:404", None, ttl_ms=10_000)

    assert cache.get("user:404") is None
    assert "user:404" in cache


def test_delete_removes_entry_before_ttl(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("user:42", {"id": "42"}, ttl_ms=10_000)

    cache.delete("user:42")
    cache.delete("user:42")

    assert cache.get("user:42") is MISSING


def test_fifo_eviction_drops_oldest_inserted(clock) -> None:
    cache = SimpleTTLCache(max_entries=3, clock=clock)
    for key in ("k1", "k2", "k3"):
        cache.set(key, key, ttl_ms=60_000)

    # Reads do not refresh position (FIFO, not LRU)
    assert cache.get("k1") == "k1"

    cache.set("k4", "k4", ttl_ms=60_000)

    assert cache.get("k1") is MISSING
    assert [cache.get(k) for k in ("k2", "k3", "k4")] == ["k2", "k3", "k4"]
    assert len(cache) == 3
    assert cache.stats()["evictions"] == 1


def test_overwrite_at_capacity_does_not_evict(clock) -> None:
    cache = SimpleTTLCache(max_entries=2, clock=clock)
    cache.set("a", 1, ttl_ms=60_000)
    cache.set("b", 2, ttl_ms=60_000)

    cache.set("a", 10, ttl_ms=60_000)

    assert cache.get("a") == 10
    assert cache.get("b") == 2
    assert cache.stats()["evictions"] == 0


def test_overwrite_moves_key_to_tail(clock) -> None:
    cache = SimpleTTLCache(max_entries=2, clock=clock)
    cache.set("a", 1, ttl_ms=60_000)
    cache.set("b", 2, ttl_ms=60_000)
    cache.set("a", 10, ttl_ms=60_000)

    cache.set("c", 3, ttl_ms=60_000)

    assert cache.get("b") is MISSING
    assert cache.get("a") == 10
    assert cache.get("c") == 3


def test_capacity_never_exceeded(clock) -> None:
    cache = SimpleTTLCache(max_entries=10, clock=clock)
    for i in range(100):
        cache.set(f"k{i}", i, ttl_ms=60_000)
        assert len(cache) <= 10


def test_non_positive_ttl_is_ignored(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("k", "v", ttl_ms=0)

    assert cache.get("k") is MISSING


def test_invalidate_pattern_with_regex(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("user:7", "u7", ttl_ms=60_000)
    cache.set("pinned:7", ["p"], ttl_ms=60_000)
    cache.set("user:77", "u77", ttl_ms=60_000)

    removed = cache.invalidate_pattern(re.compile(r":7$"))

    assert removed == 2
    assert cache.get("user:7") is MISSING
    assert cache.get("pinned:7") is MISSING
    assert cache.get("user:77") == "u77"


def test_invalidate_pattern_with_callable(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("user:1", 1, ttl_ms=60_000)
    cache.set("user:2", 2, ttl_ms=60_000)

    removed = cache.invalidate_pattern(lambda key: key.startswith("user:"))

    assert removed == 2
    assert len(cache) == 0


def test_invalidate_pattern_keeps_keys_when_predicate_raises(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("good", 1, ttl_ms=60_000)
    cache.set("bad", 2, ttl_ms=60_000)

    def predicate(key: str) -> bool:
        if key == "bad":
            raise RuntimeError("boom")
        return True

    assert cache.invalidate_pattern(predicate) == 1
    assert cache.get("bad") == 2


def test_hit_and_miss_counters(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.get("missing")
    cache.set("k", "v", ttl_ms=1_000)
    cache.get("k")

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1


def test_clear_resets_state(clock) -> None:
    cache = SimpleTTLCache(clock=clock)
    cache.set("a", 1, ttl_ms=1_000)
    cache.get("a")

    cache.clear()

    stats = cache.stats()
    assert stats["entries"] == 0
    assert stats["hits"] == 0


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        SimpleTTLCache(max_entries=0)


def test_thread_safety_under_concurrent_sets() -> None:
    cache = SimpleTTLCache(max_entries=1000)
    total_keys = 50

    def _writer(idx: int) -> None:
        cache.set(f"k-{idx}", idx, ttl_ms=30_000)

    threads = [threading.Thread(target=_writer, args=(i,)) for i in range(total_keys)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.stats()["entries"] == total_keys
    assert cache.get("k-0") == 0
    assert cache.get("k-49") == 49
