"""Synthetic readings and forecast series for offline and degraded operation.

Values are built around the baseline AQI of the nearest reference city and are
always tagged with a synthetic DataQuality so they never pass for real data.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import numpy as np

from ..schemas.aqi import DataQuality, NormalizedReading, PollutantConcentrations
from ..schemas.forecast import ForecastPoint
from .conversion_service import MAX_AQI, MIN_AQI, categorize_aqi
from .geo_service import Coordinate, nearest_reference_city

LOGGER = logging.getLogger(__name__)

SYNTHETIC_SOURCE_ID = "synthetic"
# Current readings stay within baseline ± CURRENT_NOISE
CURRENT_NOISE = 20
FORECAST_AMPLITUDE = 30.0
FORECAST_NOISE = 10.0
FORECAST_FLOOR = 10
FORECAST_CEILING = 450


class SyntheticDataGenerator:
    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)

    def _pollutants_for(self, aqi: int) -> PollutantConcentrations:
        noise = self._rng.uniform(0.0, 1.0, size=6)
        return PollutantConcentrations(
            pm25=round(aqi * 0.6 + noise[0] * 10, 1),
            pm10=round(aqi * 1.2 + noise[1] * 15, 1),
            no2=round(aqi * 0.4 + noise[2] * 8, 1),
            so2=round(aqi * 0.2 + noise[3] * 5, 1),
            co=round(aqi * 0.01 + noise[4] * 0.5, 2),
            o3=round(aqi * 0.3 + noise[5] * 6, 1),
        )

    def current_reading(
        self,
        coordinate: Coordinate,
        quality: DataQuality,
        now: Optional[datetime] = None,
    ) -> NormalizedReading:
        if quality.is_real:
            raise ValueError(f"synthetic readings cannot be tagged {quality.value}")

        city, distance = nearest_reference_city(coordinate)
        offset = int(self._rng.integers(-CURRENT_NOISE, CURRENT_NOISE + 1))
        aqi = max(MIN_AQI, min(MAX_AQI, city.baseline_aqi + offset))
        LOGGER.info(
            "Synthetic reading (%s) for %s based on %s (%.1f km away): AQI %d",
            quality.value,
            coordinate,
            city.name,
            distance,
            aqi,
        )

        return NormalizedReading(
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            aqi=aqi,
            category=categorize_aqi(aqi),
            pollutants=self._pollutants_for(aqi),
            source_id=SYNTHETIC_SOURCE_ID,
            quality=quality,
            observed_at=now or datetime.now(timezone.utc),
            location_name=city.name,
        )

    def forecast_points(
        self,
        coordinate: Coordinate,
        hours: int,
        start: Optional[datetime] = None,
    ) -> List[ForecastPoint]:
        """Sinusoidal drift around the city baseline, confidence falling with horizon."""
        city, _ = nearest_reference_city(coordinate)
        start = start or datetime.now(timezone.utc)

        points = []
        for i in range(1, hours + 1):
            variation = math.sin(i / 12) * FORECAST_AMPLITUDE + self._rng.uniform(-FORECAST_NOISE, FORECAST_NOISE)
            aqi = max(FORECAST_FLOOR, min(FORECAST_CEILING, int(round(city.baseline_aqi + variation))))
            points.append(
                ForecastPoint(
                    timestamp=start + timedelta(hours=i),
                    hours_ahead=i,
                    aqi=aqi,
                    confidence=round(0.75 - (i / hours) * 0.2, 4),
                    category=categorize_aqi(aqi),
                )
            )
        return points
