import asyncio
import gc
from datetime import timedelta

from aqi_api.services.cache_service import FreshnessCache
from aqi_api.services.geo_service import Coordinate

from tests.conftest import DELHI, MUMBAI


def _cache(clock, minutes=60) -> FreshnessCache:
    return FreshnessCache(timedelta(minutes=minutes), clock=clock)


def test_put_then_get_round_trip(clock):
    cache = _cache(clock)
    asyncio.run(cache.put(DELHI, "reading", clock()))

    assert cache.get(DELHI, 10) == "reading"
    assert len(cache) == 1


def test_nearby_query_hits_within_radius(clock):
    cache = _cache(clock)
    asyncio.run(cache.put(DELHI, "delhi", clock()))
    nearby = Coordinate(DELHI.latitude + 0.01, DELHI.longitude)

    assert cache.get(nearby, 5) == "delhi"
    assert cache.get(nearby, 0.5) is None
    assert cache.get(MUMBAI, 10) is None


def test_nearest_entry_wins(clock):
    cache = _cache(clock)
    near = Coordinate(DELHI.latitude + 0.01, DELHI.longitude)
    far = Coordinate(DELHI.latitude + 0.05, DELHI.longitude)
    asyncio.run(cache.put(far, "far", clock()))
    asyncio.run(cache.put(near, "near", clock()))

    assert cache.get(DELHI, 10) == "near"


def test_expired_entry_is_a_miss_but_not_removed(clock):
    cache = _cache(clock)
    asyncio.run(cache.put(DELHI, "old", clock()))
    clock.advance(minutes=61)

    assert cache.get(DELHI, 10) is None
    assert cache.peek(DELHI).value == "old"


def test_freshness_uses_observation_time(clock):
    cache = _cache(clock)
    asyncio.run(cache.put(DELHI, "stale", clock() - timedelta(minutes=90)))

    assert cache.get(DELHI, 10) is None


def test_put_overwrites(clock):
    cache = _cache(clock)
    asyncio.run(cache.put(DELHI, "first", clock()))
    asyncio.run(cache.put(DELHI, "second", clock()))

    assert cache.get(DELHI, 10) == "second"
    assert len(cache) == 1


def test_get_or_fetch_calls_fetch_once_for_concurrent_callers(clock):
    cache = _cache(clock)
    calls = []

    async def fetch():
        calls.append(1)
        await asyncio.sleep(0.01)
        return "fresh", clock()

    async def scenario():
        return await asyncio.gather(*(cache.get_or_fetch(DELHI, 10, fetch) for _ in range(5)))

    results = asyncio.run(scenario())

    assert len(calls) == 1
    assert [value for value, _ in results] == ["fresh"] * 5
    assert sum(1 for _, from_cache in results if not from_cache) == 1


def test_get_or_fetch_skips_uncacheable_values(clock):
    cache = _cache(clock)

    async def fetch():
        return "degraded", clock()

    value, from_cache = asyncio.run(cache.get_or_fetch(DELHI, 10, fetch, cacheable=lambda v: v != "degraded"))

    assert (value, from_cache) == ("degraded", False)
    assert cache.peek(DELHI) is None


def test_get_or_fetch_refetches_when_cached_value_rejected(clock):
    cache = _cache(clock)
    asyncio.run(cache.put(DELHI, [1, 2], clock()))

    async def fetch():
        return [1, 2, 3, 4], clock()

    value, from_cache = asyncio.run(cache.get_or_fetch(DELHI, 10, fetch, accept=lambda v: len(v) >= 4))

    assert value == [1, 2, 3, 4]
    assert not from_cache
    assert cache.get(DELHI, 10) == [1, 2, 3, 4]


def test_stale_exact_entry_does_not_hide_fresh_neighbour(clock):
    cache = _cache(clock)
    asyncio.run(cache.put(DELHI, "stale", clock() - timedelta(minutes=90)))
    neighbour = Coordinate(DELHI.latitude + 0.001, DELHI.longitude)
    asyncio.run(cache.put(neighbour, "fresh", clock()))

    assert cache.get(DELHI, 10) == "fresh"
    assert cache.peek(DELHI).value == "stale"


def test_locks_are_released_once_unused(clock):
    cache = _cache(clock)
    for step in range(50):
        asyncio.run(cache.put(Coordinate(10 + step * 0.1, 77.0), step, clock()))
    gc.collect()

    assert len(cache) == 50
    assert len(cache._locks) == 0
