"""Historical aggregate models."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from .aqi import AQICategory


class HistoricalAggregate(BaseModel):
    period_start: datetime
    avg_aqi: int
    min_aqi: int
    max_aqi: int
    category: AQICategory
    data_points: int


class HistoryResponse(BaseModel):
    latitude: float
    longitude: float
    days: int
    aggregation: str
    data: List[HistoricalAggregate]


class ThresholdExceedance(BaseModel):
    days_above_100: int
    days_above_200: int
    days_above_300: int
    percent_above_100: int
    percent_above_200: int
    percent_above_300: int


class HistorySummary(BaseModel):
    """Statistics over daily averages."""

    avg_aqi: int
    min_aqi: int
    max_aqi: int
    trend: str
    most_common_category: AQICategory
    # Percentage of days per category
    category_distribution: Dict[AQICategory, int]
    threshold_exceedance: ThresholdExceedance


class HistorySummaryResponse(BaseModel):
    location_name: str
    days: int
    period_from: date
    period_to: date
    summary: Optional[HistorySummary] = None
    data_points: int
