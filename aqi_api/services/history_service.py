"""Reading persistence contract and historical aggregation."""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import numpy as np

from ..schemas.aqi import NormalizedReading
from ..schemas.history import (
    HistoricalAggregate,
    HistoryResponse,
    HistorySummary,
    HistorySummaryResponse,
    ThresholdExceedance,
)
from .conversion_service import round_half_up
from .geo_service import Coordinate, find_city, haversine_km

LOGGER = logging.getLogger(__name__)

AGGREGATIONS = ("daily", "hourly")
MAX_HISTORY_DAYS = 90
MAX_SUMMARY_DAYS = 365
NEAREST_RADIUS_KM = 50.0
# Readings this far from a city centre count towards its summary
CITY_RADIUS_KM = 25.0
SUMMARY_TREND_THRESHOLD = 5


class ReadingStore(Protocol):
    async def save(self, reading: NormalizedReading) -> None:
        ...

    async def query_recent(
        self, coordinate: Coordinate, window: timedelta, radius_km: float
    ) -> List[NormalizedReading]:
        ...


class InMemoryReadingStore:
    """Per-process reading log with bounded retention."""

    def __init__(
        self,
        retention: timedelta = timedelta(days=MAX_HISTORY_DAYS),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.retention = retention
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._readings: List[NormalizedReading] = []

    def __len__(self) -> int:
        return len(self._readings)

    async def save(self, reading: NormalizedReading) -> None:
        # Oldest-first by arrival, so checking the head is enough to trigger a sweep
        if self._readings and self._readings[0].observed_at < self._clock() - self.retention:
            self.cleanup_old_readings()
        self._readings.append(reading)

    async def query_recent(
        self, coordinate: Coordinate, window: timedelta, radius_km: float
    ) -> List[NormalizedReading]:
        since = self._clock() - window
        matches = [
            reading
            for reading in self._readings
            if reading.observed_at >= since
            and haversine_km(coordinate, Coordinate(reading.latitude, reading.longitude)) <= radius_km
        ]
        return sorted(matches, key=lambda reading: reading.observed_at)

    def cleanup_old_readings(self) -> int:
        cutoff = self._clock() - self.retention
        kept = [reading for reading in self._readings if reading.observed_at >= cutoff]
        removed = len(self._readings) - len(kept)
        self._readings = kept
        if removed:
            LOGGER.info("Cleaned up %d old readings", removed)
        return removed


def _period_start(observed_at: datetime, aggregation: str) -> datetime:
    observed_at = observed_at.astimezone(timezone.utc)
    if aggregation == "daily":
        return observed_at.replace(hour=0, minute=0, second=0, microsecond=0)
    return observed_at.replace(minute=0, second=0, microsecond=0)


def aggregate_readings(readings: List[NormalizedReading], aggregation: str = "daily") -> List[HistoricalAggregate]:
    """Group readings by UTC day or hour and summarize each group."""
    if aggregation not in AGGREGATIONS:
        raise ValueError(f"aggregation must be one of {AGGREGATIONS}")

    groups: Dict[datetime, List[NormalizedReading]] = defaultdict(list)
    for reading in readings:
        groups[_period_start(reading.observed_at, aggregation)].append(reading)

    aggregates = []
    for period_start in sorted(groups):
        group = groups[period_start]
        values = np.array([reading.aqi for reading in group])
        most_common, _ = Counter(reading.category for reading in group).most_common(1)[0]
        aggregates.append(
            HistoricalAggregate(
                period_start=period_start,
                avg_aqi=round_half_up(float(values.mean())),
                min_aqi=int(values.min()),
                max_aqi=int(values.max()),
                category=most_common,
                data_points=len(group),
            )
        )
    return aggregates


def summarize_daily(aggregates: List[HistoricalAggregate]) -> Optional[HistorySummary]:
    """
    Summary over daily aggregates.

    The trend compares the mean of the first and second half of the period;
    a difference beyond ±5 AQI counts as increasing or decreasing.
    """
    if not aggregates:
        return None

    values = np.array([aggregate.avg_aqi for aggregate in aggregates], dtype=float)
    half = len(values) // 2
    trend = "stable"
    if half:
        diff = float(values[half:].mean() - values[:half].mean())
        if diff > SUMMARY_TREND_THRESHOLD:
            trend = "increasing"
        elif diff < -SUMMARY_TREND_THRESHOLD:
            trend = "decreasing"

    counts = Counter(aggregate.category for aggregate in aggregates)
    total = len(aggregates)
    above = {limit: int((values > limit).sum()) for limit in (100, 200, 300)}

    return HistorySummary(
        avg_aqi=round_half_up(float(values.mean())),
        min_aqi=int(values.min()),
        max_aqi=int(values.max()),
        trend=trend,
        most_common_category=counts.most_common(1)[0][0],
        category_distribution={category: round_half_up(count / total * 100) for category, count in counts.items()},
        threshold_exceedance=ThresholdExceedance(
            days_above_100=above[100],
            days_above_200=above[200],
            days_above_300=above[300],
            percent_above_100=round_half_up(above[100] / total * 100),
            percent_above_200=round_half_up(above[200] / total * 100),
            percent_above_300=round_half_up(above[300] / total * 100),
        ),
    )


class HistoryService:
    def __init__(self, store: ReadingStore, clock: Optional[Callable[[], datetime]] = None):
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_history(
        self,
        coordinate: Coordinate,
        days: int = 7,
        aggregation: str = "daily",
        radius_km: float = 10.0,
    ) -> HistoryResponse:
        if not 1 <= days <= MAX_HISTORY_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_HISTORY_DAYS}")
        if aggregation not in AGGREGATIONS:
            raise ValueError(f"aggregation must be one of {AGGREGATIONS}")

        readings = await self._store.query_recent(coordinate, timedelta(days=days), radius_km)
        LOGGER.info("History for %s: %d readings over %d days", coordinate, len(readings), days)
        return HistoryResponse(
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            days=days,
            aggregation=aggregation,
            data=aggregate_readings(readings, aggregation),
        )

    async def get_city_summary(self, city_name: str, days: int = 30) -> HistorySummaryResponse:
        if not 1 <= days <= MAX_SUMMARY_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_SUMMARY_DAYS}")
        city = find_city(city_name)
        if city is None:
            raise LookupError(f"City {city_name!r} not found")

        centre = Coordinate(city.latitude, city.longitude)
        readings = await self._store.query_recent(centre, timedelta(days=days), CITY_RADIUS_KM)
        now = self._clock()
        LOGGER.info("Summary for %s: %d readings over %d days", city.name, len(readings), days)
        return HistorySummaryResponse(
            location_name=city.name,
            days=days,
            period_from=(now - timedelta(days=days)).date(),
            period_to=now.date(),
            summary=summarize_daily(aggregate_readings(readings, "daily")),
            data_points=len(readings),
        )

    async def get_nearest(
        self, coordinate: Coordinate, radius_km: float = NEAREST_RADIUS_KM
    ) -> Optional[Tuple[NormalizedReading, float]]:
        """Latest stored reading at the closest location within the radius, with its distance."""
        readings = await self._store.query_recent(coordinate, timedelta(days=MAX_HISTORY_DAYS), radius_km)
        if not readings:
            return None

        def _rank(reading: NormalizedReading) -> Tuple[float, float]:
            distance = haversine_km(coordinate, Coordinate(reading.latitude, reading.longitude))
            return round(distance, 3), -reading.observed_at.timestamp()

        nearest = min(readings, key=_rank)
        return nearest, haversine_km(coordinate, Coordinate(nearest.latitude, nearest.longitude))
