import pytest

from fuelfeed.common.cache import TtlCache


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_value_readable_until_ttl_and_gone_strictly_after():
    clock = FakeClock()
    cache = TtlCache(now_fn=clock)
    cache.set("k", "v", ttl_s=10)

    clock.now = 9.999
    assert cache.get("k") == "v"
    clock.now = 10.0
    assert cache.get("k") == "v"
    clock.now = 10.001
    assert cache.get("k") is None


def test_miss_returns_none_and_counts():
    cache = TtlCache(now_fn=FakeClock())
    assert cache.get("absent") is None
    cache.set("k", 1, ttl_s=5)
    assert cache.get("k") == 1

    stats = cache.stats()
    assert (stats.size, stats.hits, stats.misses) == (1, 1, 1)


def test_get_stale_returns_expired_value():
    clock = FakeClock()
    cache = TtlCache(now_fn=clock)
    cache.set("k", [1, 2], ttl_s=1)
    clock.now = 100

    assert cache.get("k") is None
    assert cache.get_stale("k") == [1, 2]
    assert cache.get_stale("other") is None


def test_invalidate_exact_and_prefix():
    cache = TtlCache(now_fn=FakeClock())
    cache.set("stations:provider:baserow", 1, ttl_s=60)
    cache.set("stations:provider:fairfuel", 2, ttl_s=60)
    cache.set("stations:dataset", 3, ttl_s=60)

    assert cache.invalidate("stations:dataset") == 1
    assert cache.invalidate("stations:dataset") == 0
    assert cache.invalidate("stations:provider:*") == 2
    assert cache.stats().size == 0


def test_invalidated_entry_is_not_stale_readable():
    cache = TtlCache(now_fn=FakeClock())
    cache.set("k", 1, ttl_s=60)
    cache.invalidate("k")
    assert cache.get_stale("k") is None


def test_lru_eviction_when_capacity_reached():
    cache = TtlCache(now_fn=FakeClock(), max_entries=2)
    cache.set("a", 1, ttl_s=60)
    cache.set("b", 2, ttl_s=60)
    assert cache.get("a") == 1
    cache.set("c", 3, ttl_s=60)

    assert cache.get_stale("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_prune_respects_stale_retention():
    clock = FakeClock()
    cache = TtlCache(now_fn=clock, stale_retention_s=30)
    cache.set("old", 1, ttl_s=10)
    cache.set("fresh", 2, ttl_s=100)

    clock.now = 35
    assert cache.prune() == 0
    clock.now = 41
    assert cache.prune() == 1
    assert cache.get_stale("old") is None
    assert cache.get("fresh") == 2


def test_prune_without_retention_keeps_everything():
    clock = FakeClock()
    cache = TtlCache(now_fn=clock)
    cache.set("k", 1, ttl_s=1)
    clock.now = 10_000
    assert cache.prune() == 0
    assert cache.get_stale("k") == 1


def test_clear_empties_cache():
    cache = TtlCache(now_fn=FakeClock())
    cache.set("k", 1, ttl_s=1)
    cache.clear()
    assert cache.stats().size == 0


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        TtlCache(max_entries=0)
