"""Tests for spot_allocator.common.cache.TTLCache."""

import threading
from unittest.mock import MagicMock

from spot_allocator.common.cache import PLACEMENT_SCORES, REGIONS, ZONES, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_fetches_once_while_fresh():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    fetch = MagicMock(return_value=["us-east-1"])

    assert cache.get_or_fetch(REGIONS, "all", 60, fetch) == ["us-east-1"]
    clock.now += 59
    assert cache.get_or_fetch(REGIONS, "all", 60, fetch) == ["us-east-1"]
    assert fetch.call_count == 1
    assert len(cache) == 1


def test_refetches_when_expired():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    fetch = MagicMock(side_effect=[["a"], ["b"]])

    assert cache.get_or_fetch(REGIONS, "all", 60, fetch) == ["a"]
    clock.now += 60
    assert cache.get_or_fetch(REGIONS, "all", 60, fetch) == ["b"]
    assert fetch.call_count == 2


def test_ttl_is_decided_per_lookup():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    fetch = MagicMock(side_effect=[1, 2])

    cache.get_or_fetch(ZONES, "us-east-1", 3600, fetch)
    clock.now += 100
    assert cache.get_or_fetch(ZONES, "us-east-1", 3600, fetch) == 1
    assert cache.get_or_fetch(ZONES, "us-east-1", 50, fetch) == 2


def test_zero_ttl_bypasses_cache():
    cache = TTLCache()
    fetch = MagicMock(side_effect=[1, 2])

    assert cache.get_or_fetch(ZONES, "us-east-1", 0, fetch) == 1
    assert cache.get_or_fetch(ZONES, "us-east-1", 0, fetch) == 2
    assert len(cache) == 0


def test_keys_are_separate_by_kind_and_scope():
    cache = TTLCache()
    cache.get_or_fetch(PLACEMENT_SCORES, "us-east-1", 60, lambda: "p-east")
    cache.get_or_fetch(PLACEMENT_SCORES, "us-west-2", 60, lambda: "p-west")
    cache.get_or_fetch(ZONES, "us-east-1", 60, lambda: "z-east")

    assert cache.get_or_fetch(PLACEMENT_SCORES, "us-east-1", 60, lambda: "x") == "p-east"
    assert cache.get_or_fetch(PLACEMENT_SCORES, "us-west-2", 60, lambda: "x") == "p-west"
    assert cache.get_or_fetch(ZONES, "us-east-1", 60, lambda: "x") == "z-east"
    assert len(cache) == 3


def test_failed_fetch_is_not_cached():
    cache = TTLCache()
    fetch = MagicMock(side_effect=[RuntimeError("boom"), "ok"])

    try:
        cache.get_or_fetch(REGIONS, "all", 60, fetch)
    except RuntimeError:
        pass
    assert len(cache) == 0
    assert cache.get_or_fetch(REGIONS, "all", 60, fetch) == "ok"


def test_invalidate():
    cache = TTLCache()
    cache.get_or_fetch(PLACEMENT_SCORES, "us-east-1", 60, lambda: 1)
    cache.get_or_fetch(PLACEMENT_SCORES, "us-west-2", 60, lambda: 2)
    cache.get_or_fetch(ZONES, "us-east-1", 60, lambda: 3)

    cache.invalidate(PLACEMENT_SCORES, "us-east-1")
    assert len(cache) == 2
    cache.invalidate(scope="us-east-1")
    assert len(cache) == 1
    cache.invalidate()
    assert len(cache) == 0


def test_concurrent_access():
    cache = TTLCache()
    errors = []

    def worker(n):
        try:
            for i in range(200):
                cache.get_or_fetch(ZONES, f"region-{i % 10}", 60, lambda: n)
        except Exception as e:  # pragma: no cover
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(cache) == 10
