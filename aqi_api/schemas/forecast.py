"""Forecast models."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .aqi import AQICategory, DataQuality, PollutantConcentrations


class ForecastPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    hours_ahead: int = Field(ge=1)
    aqi: int
    confidence: float = Field(ge=0.0, le=1.0)
    category: AQICategory
    pollutants: Optional[PollutantConcentrations] = None


class ForecastSummary(BaseModel):
    avg_aqi: int
    min_aqi: int
    max_aqi: int
    trend: str
    trend_change: int
    most_common_category: AQICategory
    peak_pollution_hours: List[int]
    avg_confidence: int


class Forecast(BaseModel):
    location_name: Optional[str] = None
    latitude: float
    longitude: float
    points: List[ForecastPoint]
    summary: ForecastSummary
    model: str
    quality: DataQuality
    generated_at: datetime


class HourlyForecast(BaseModel):
    hour: int
    aqi: int
    category: AQICategory


class DailyForecast(BaseModel):
    day: date
    avg_aqi: int
    min_aqi: int
    max_aqi: int
    category: AQICategory
    hourly: List[HourlyForecast]


class DailyForecastResponse(BaseModel):
    location_name: Optional[str] = None
    latitude: float
    longitude: float
    model: str
    quality: DataQuality
    days: List[DailyForecast]
