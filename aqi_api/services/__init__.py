"""Service layer for business logic."""

from .aggregation_service import AirQualityService
from .cache_service import FreshnessCache
from .conversion_service import categorize_aqi, overall_index, sub_index
from .forecast_service import ForecastService, summarize_forecast
from .geo_service import Coordinate, find_city, haversine_km
from .history_service import HistoryService, InMemoryReadingStore
from .provider_service import build_providers
from .synthetic_service import SyntheticDataGenerator

__all__ = [
    "AirQualityService",
    "FreshnessCache",
    "categorize_aqi",
    "overall_index",
    "sub_index",
    "ForecastService",
    "summarize_forecast",
    "Coordinate",
    "find_city",
    "haversine_km",
    "HistoryService",
    "InMemoryReadingStore",
    "build_providers",
    "SyntheticDataGenerator",
]
