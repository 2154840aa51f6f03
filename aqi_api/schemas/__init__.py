"""Pydantic models shared by services and routes."""

from .aqi import (
    AQICategory,
    AQIResponse,
    DataQuality,
    LocationInfo,
    NearestReadingResponse,
    NormalizedReading,
    PollutantConcentrations,
)
from .forecast import DailyForecast, DailyForecastResponse, Forecast, ForecastPoint, ForecastSummary, HourlyForecast
from .history import HistoricalAggregate, HistoryResponse, HistorySummary, HistorySummaryResponse, ThresholdExceedance

__all__ = [
    "AQICategory",
    "AQIResponse",
    "DataQuality",
    "LocationInfo",
    "NearestReadingResponse",
    "NormalizedReading",
    "PollutantConcentrations",
    "DailyForecast",
    "DailyForecastResponse",
    "Forecast",
    "ForecastPoint",
    "ForecastSummary",
    "HourlyForecast",
    "HistoricalAggregate",
    "HistoryResponse",
    "HistorySummary",
    "HistorySummaryResponse",
    "ThresholdExceedance",
]
