"""In-process freshness cache keyed by location."""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

from .geo_service import Coordinate, haversine_km

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
LocationKey = Tuple[float, float]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: LocationKey
    coordinate: Coordinate
    value: T
    observed_at: datetime
    cached_at: datetime


class FreshnessCache(Generic[T]):
    """
    Most recent value per location, served while younger than the window.

    Lookups resolve to the nearest fresh entry within a radius, so queries a
    few metres apart share an entry. Expired entries are left in place and
    skipped, so a stale entry never hides a fresh neighbour. Writes to one
    location are serialized by a per-key lock; different locations never wait
    on each other.
    """

    def __init__(
        self,
        freshness_window: timedelta,
        clock: Callable[[], datetime] = _utcnow,
        key_decimals: int = 4,
    ):
        self.freshness_window = freshness_window
        self._clock = clock
        self._key_decimals = key_decimals
        self._entries: Dict[LocationKey, CacheEntry[T]] = {}
        # A lock lives only while some caller holds or awaits it
        self._locks: weakref.WeakValueDictionary[LocationKey, asyncio.Lock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._entries)

    def _key(self, coordinate: Coordinate) -> LocationKey:
        return coordinate.key(self._key_decimals)

    def lock_for(self, coordinate: Coordinate) -> asyncio.Lock:
        key = self._key(coordinate)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def peek(self, coordinate: Coordinate) -> Optional[CacheEntry[T]]:
        """Stored entry for exactly this location, fresh or not."""
        return self._entries.get(self._key(coordinate))

    def _nearest_fresh(self, coordinate: Coordinate, radius_km: float) -> Optional[CacheEntry[T]]:
        exact = self._entries.get(self._key(coordinate))
        if exact is not None and self.is_fresh(exact):
            return exact

        best: Optional[CacheEntry[T]] = None
        best_distance = radius_km
        for entry in list(self._entries.values()):
            if not self.is_fresh(entry):
                continue
            distance = haversine_km(coordinate, entry.coordinate)
            if distance <= best_distance:
                best, best_distance = entry, distance
        return best

    def is_fresh(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.observed_at <= self.freshness_window

    def get(
        self,
        coordinate: Coordinate,
        radius_km: float,
        accept: Optional[Callable[[T], bool]] = None,
    ) -> Optional[T]:
        entry = self._nearest_fresh(coordinate, radius_km)
        if entry is None:
            LOGGER.debug("No fresh cache entry within %.1f km of %s", radius_km, coordinate)
            return None
        if accept is not None and not accept(entry.value):
            return None
        return entry.value

    def _store(self, coordinate: Coordinate, value: T, observed_at: datetime) -> None:
        key = self._key(coordinate)
        self._entries[key] = CacheEntry(
            key=key,
            coordinate=coordinate,
            value=value,
            observed_at=observed_at,
            cached_at=self._clock(),
        )

    async def put(self, coordinate: Coordinate, value: T, observed_at: datetime) -> None:
        """Unconditional overwrite, last write wins."""
        async with self.lock_for(coordinate):
            self._store(coordinate, value, observed_at)

    async def get_or_fetch(
        self,
        coordinate: Coordinate,
        radius_km: float,
        fetch: Callable[[], Awaitable[Tuple[T, datetime]]],
        accept: Optional[Callable[[T], bool]] = None,
        cacheable: Optional[Callable[[T], bool]] = None,
    ) -> Tuple[T, bool]:
        """
        Cached value, or the result of fetch() stored under this location.

        Concurrent callers for the same location wait for the first fetch
        instead of each calling out. Values rejected by `cacheable` are
        returned but not stored. Returns (value, served_from_cache).
        """
        cached = self.get(coordinate, radius_km, accept)
        if cached is not None:
            return cached, True

        async with self.lock_for(coordinate):
            cached = self.get(coordinate, radius_km, accept)
            if cached is not None:
                return cached, True
            value, observed_at = await fetch()
            if cacheable is None or cacheable(value):
                self._store(coordinate, value, observed_at)
            return value, False
