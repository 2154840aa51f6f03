"""Hourly AQI forecasts with summary statistics."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from ..exceptions import ProviderUnavailable
from ..schemas.aqi import DataQuality
from ..schemas.forecast import DailyForecast, Forecast, ForecastPoint, ForecastSummary, HourlyForecast
from .cache_service import FreshnessCache
from .conversion_service import categorize_aqi, overall_index, round_half_up
from .geo_service import Coordinate, nearest_reference_city
from .provider_service import AirQualityProvider, RawReading
from .synthetic_service import SyntheticDataGenerator

LOGGER = logging.getLogger(__name__)

MAX_FORECAST_HOURS = 96
MAX_FORECAST_DAYS = 4
PROVIDER_CONFIDENCE = 0.85
SYNTHETIC_MODEL = "synthetic-sinusoidal"
TREND_THRESHOLD = 10
PEAK_AQI = 150


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def forecast_point_from_raw(raw: RawReading, hours_ahead: int) -> ForecastPoint:
    """Normalize one provider forecast entry on its own; neighbours play no part."""
    aqi = overall_index(raw.concentrations)
    return ForecastPoint(
        timestamp=raw.observed_at,
        hours_ahead=hours_ahead,
        aqi=aqi,
        confidence=PROVIDER_CONFIDENCE,
        category=categorize_aqi(aqi),
        pollutants=raw.concentrations,
    )


def summarize_forecast(points: List[ForecastPoint]) -> ForecastSummary:
    """
    Summary statistics derived from a forecast series.

    The trend compares the mean of the first and last quarter of the series;
    a difference beyond ±10 AQI counts as worsening or improving.
    """
    if not points:
        raise ValueError("cannot summarize an empty forecast")

    values = np.array([point.aqi for point in points], dtype=float)
    quarter = max(1, len(points) // 4)
    diff = float(values[-quarter:].mean() - values[:quarter].mean())

    if diff > TREND_THRESHOLD:
        trend = "worsening"
    elif diff < -TREND_THRESHOLD:
        trend = "improving"
    else:
        trend = "stable"

    most_common, _ = Counter(point.category for point in points).most_common(1)[0]
    peak_hours = sorted({point.timestamp.hour for point in points if point.aqi > PEAK_AQI})

    return ForecastSummary(
        avg_aqi=round_half_up(float(values.mean())),
        min_aqi=int(values.min()),
        max_aqi=int(values.max()),
        trend=trend,
        trend_change=round_half_up(diff),
        most_common_category=most_common,
        peak_pollution_hours=peak_hours,
        avg_confidence=int(round(np.mean([point.confidence for point in points]) * 100)),
    )


def group_forecast_by_day(points: List[ForecastPoint], days: int) -> List[DailyForecast]:
    """Daily summaries of an hourly series, first `days` UTC dates only."""
    by_day: Dict[date, List[ForecastPoint]] = {}
    for point in points:
        by_day.setdefault(point.timestamp.astimezone(timezone.utc).date(), []).append(point)

    daily = []
    for day, day_points in list(by_day.items())[:days]:
        values = [point.aqi for point in day_points]
        most_common, _ = Counter(point.category for point in day_points).most_common(1)[0]
        daily.append(
            DailyForecast(
                day=day,
                avg_aqi=round_half_up(float(np.mean(values))),
                min_aqi=min(values),
                max_aqi=max(values),
                category=most_common,
                hourly=[
                    HourlyForecast(hour=point.timestamp.hour, aqi=point.aqi, category=point.category)
                    for point in day_points
                ],
            )
        )
    return daily


class ForecastService:
    def __init__(
        self,
        provider: Optional[AirQualityProvider],
        cache: FreshnessCache[Forecast],
        synthetic: SyntheticDataGenerator,
        offline: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.provider = provider
        self.cache = cache
        self.synthetic = synthetic
        self.offline = offline or provider is None
        self._clock = clock

    async def get_forecast(self, coordinate: Coordinate, hours: int = 24, radius_km: float = 10.0) -> Forecast:
        if not 1 <= hours <= MAX_FORECAST_HOURS:
            raise ValueError(f"hours must be between 1 and {MAX_FORECAST_HOURS}")

        forecast, from_cache = await self.cache.get_or_fetch(
            coordinate,
            radius_km,
            lambda: self._build_forecast(coordinate, hours),
            accept=lambda cached: len(cached.points) >= hours,
            cacheable=lambda built: built.quality is not DataQuality.SYNTHETIC_DEGRADED,
        )
        if from_cache:
            LOGGER.info("Serving cached %s forecast for %s", forecast.model, coordinate)

        if len(forecast.points) > hours:
            points = forecast.points[:hours]
            forecast = forecast.model_copy(update={"points": points, "summary": summarize_forecast(points)})
        return forecast

    async def get_daily_forecast(
        self, coordinate: Coordinate, days: int = 3, radius_km: float = 10.0
    ) -> Tuple[Forecast, List[DailyForecast]]:
        if not 1 <= days <= MAX_FORECAST_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_FORECAST_DAYS}")
        forecast = await self.get_forecast(coordinate, days * 24, radius_km)
        return forecast, group_forecast_by_day(forecast.points, days)

    async def _build_forecast(self, coordinate: Coordinate, hours: int) -> Tuple[Forecast, datetime]:
        generated_at = self._clock()
        if self.offline:
            return self._synthetic_forecast(coordinate, hours, DataQuality.SYNTHETIC_OFFLINE, generated_at)

        try:
            raws = await self.provider.fetch_forecast(coordinate, hours)
        except ProviderUnavailable as exc:
            LOGGER.warning("Forecast falling back from %s (%s)", exc.provider, exc.cause.value)
            return self._synthetic_forecast(coordinate, hours, DataQuality.SYNTHETIC_DEGRADED, generated_at)

        # Callers get exactly `hours` points. A short real series is not padded
        # or truncated, so e.g. a 96-hour request degrades when OWM's list
        # (which starts at the current hour) runs one point short.
        if len(raws) < hours:
            LOGGER.warning(
                "%s returned %d forecast points, %d requested; using synthetic series",
                self.provider.name,
                len(raws),
                hours,
            )
            return self._synthetic_forecast(coordinate, hours, DataQuality.SYNTHETIC_DEGRADED, generated_at)

        try:
            points = [forecast_point_from_raw(raw, index) for index, raw in enumerate(raws, start=1)]
        except ValueError as exc:
            LOGGER.warning("Unusable forecast from %s: %s", self.provider.name, exc)
            return self._synthetic_forecast(coordinate, hours, DataQuality.SYNTHETIC_DEGRADED, generated_at)

        quality = DataQuality.REAL_PRIMARY if self.provider.priority == 0 else DataQuality.REAL_SECONDARY
        forecast = Forecast(
            location_name=nearest_reference_city(coordinate)[0].name,
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            points=points,
            summary=summarize_forecast(points),
            model=self.provider.name,
            quality=quality,
            generated_at=generated_at,
        )
        return forecast, generated_at

    def _synthetic_forecast(
        self, coordinate: Coordinate, hours: int, quality: DataQuality, generated_at: datetime
    ) -> Tuple[Forecast, datetime]:
        points = self.synthetic.forecast_points(coordinate, hours, start=generated_at)
        forecast = Forecast(
            location_name=nearest_reference_city(coordinate)[0].name,
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            points=points,
            summary=summarize_forecast(points),
            model=SYNTHETIC_MODEL,
            quality=quality,
            generated_at=generated_at,
        )
        return forecast, generated_at
