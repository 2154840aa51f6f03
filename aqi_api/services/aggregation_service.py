"""Current-reading pipeline: cache, provider fallback chain, synthetic last resort."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from ..exceptions import ProviderUnavailable
from ..schemas.aqi import DataQuality, NormalizedReading
from .cache_service import FreshnessCache
from .conversion_service import categorize_aqi, overall_index
from .geo_service import Coordinate, nearest_reference_city
from .history_service import ReadingStore
from .provider_service import AirQualityProvider, RawReading
from .synthetic_service import SyntheticDataGenerator

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_raw_reading(
    raw: RawReading,
    coordinate: Coordinate,
    provider: AirQualityProvider,
    quality: DataQuality,
) -> Optional[NormalizedReading]:
    """
    Turn a provider's raw reading into a NormalizedReading.

    Returns None when the reading is unusable: no PM2.5 and no native index
    the provider can map onto the unified scale.
    """
    approximate = False
    aqi: Optional[int] = None
    if raw.concentrations.pm25 is not None:
        aqi = overall_index(raw.concentrations)
    elif provider.cross_scale and raw.native_index is not None:
        aqi = provider.convert_native_index(raw.native_index)
        approximate = True
    if aqi is None:
        return None

    location_name = raw.location_name or nearest_reference_city(coordinate)[0].name
    return NormalizedReading(
        latitude=coordinate.latitude,
        longitude=coordinate.longitude,
        aqi=aqi,
        category=categorize_aqi(aqi),
        pollutants=raw.concentrations,
        source_id=provider.name,
        quality=quality,
        approximate=approximate,
        observed_at=raw.observed_at,
        location_name=location_name,
    )


class AirQualityService:
    """
    Produces one NormalizedReading per coordinate.

    Providers are tried in their static priority order and the first usable
    reading wins. Partial data from a higher-priority source is kept over a
    fuller reading from a lower one; readings are never merged across sources
    since their measurement methods differ.
    """

    def __init__(
        self,
        providers: Sequence[AirQualityProvider],
        cache: FreshnessCache[NormalizedReading],
        synthetic: SyntheticDataGenerator,
        store: Optional[ReadingStore] = None,
        offline: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.providers: List[AirQualityProvider] = sorted(providers, key=lambda p: p.priority)
        self.cache = cache
        self.synthetic = synthetic
        self.store = store
        self.offline = offline or not self.providers
        self._clock = clock

    async def get_current(self, coordinate: Coordinate, radius_km: float = 10.0) -> NormalizedReading:
        """Never raises for missing data; degrades to a tagged synthetic reading."""
        # Degraded readings are not cached so a recovered provider is used on the next request
        reading, from_cache = await self.cache.get_or_fetch(
            coordinate,
            radius_km,
            lambda: self._fetch_and_record(coordinate),
            cacheable=lambda r: r.quality is not DataQuality.SYNTHETIC_DEGRADED,
        )
        if from_cache:
            LOGGER.info("Serving cached %s reading for %s", reading.source_id, coordinate)
        return reading

    async def _fetch_and_record(self, coordinate: Coordinate) -> Tuple[NormalizedReading, datetime]:
        reading = await self.fetch_reading(coordinate)
        if self.store is not None and reading.quality.is_real:
            try:
                await self.store.save(reading)
            except Exception as exc:
                LOGGER.error("Failed to save reading for %s: %s", coordinate, exc, exc_info=True)
        return reading, reading.observed_at

    async def fetch_reading(self, coordinate: Coordinate) -> NormalizedReading:
        """Run the fallback chain without touching the cache."""
        if self.offline:
            LOGGER.info("Offline mode, using synthetic data for %s", coordinate)
            return self.synthetic.current_reading(coordinate, DataQuality.SYNTHETIC_OFFLINE, now=self._clock())

        for provider in self.providers:
            quality = DataQuality.REAL_PRIMARY if provider.priority == 0 else DataQuality.REAL_SECONDARY
            try:
                raw = await provider.fetch_current(coordinate)
            except ProviderUnavailable as exc:
                LOGGER.warning("Falling back from %s (%s)", exc.provider, exc.cause.value)
                continue

            try:
                reading = normalize_raw_reading(raw, coordinate, provider, quality)
            except ValueError as exc:
                LOGGER.error("Unusable reading from %s: %s", provider.name, exc, exc_info=True)
                continue
            if reading is None:
                LOGGER.warning("Falling back from %s: reading has no usable index", provider.name)
                continue

            LOGGER.info(
                "Reading for %s from %s: AQI %d%s",
                coordinate,
                provider.name,
                reading.aqi,
                " (approximate)" if reading.approximate else "",
            )
            return reading

        LOGGER.warning("All providers failed for %s, using synthetic data", coordinate)
        return self.synthetic.current_reading(coordinate, DataQuality.SYNTHETIC_DEGRADED, now=self._clock())
