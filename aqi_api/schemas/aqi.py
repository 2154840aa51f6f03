"""Current-reading models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict


class AQICategory(str, Enum):
    GOOD = "GOOD"
    SATISFACTORY = "SATISFACTORY"
    MODERATE = "MODERATE"
    POOR = "POOR"
    VERY_POOR = "VERY_POOR"
    SEVERE = "SEVERE"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class DataQuality(str, Enum):
    REAL_PRIMARY = "real-primary"
    REAL_SECONDARY = "real-secondary"
    SYNTHETIC_DEGRADED = "synthetic-degraded"
    SYNTHETIC_OFFLINE = "synthetic-offline"

    @property
    def is_real(self) -> bool:
        return self in (DataQuality.REAL_PRIMARY, DataQuality.REAL_SECONDARY)


class PollutantConcentrations(BaseModel):
    """Concentrations in µg/m³ (CO in mg/m³). None means not reported."""

    model_config = ConfigDict(frozen=True)

    pm25: Optional[float] = None
    pm10: Optional[float] = None
    no2: Optional[float] = None
    so2: Optional[float] = None
    co: Optional[float] = None
    o3: Optional[float] = None
    nh3: Optional[float] = None

    def present(self) -> Dict[str, float]:
        return {name: value for name, value in self.model_dump().items() if value is not None}


class NormalizedReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    aqi: int
    category: AQICategory
    pollutants: PollutantConcentrations
    source_id: str
    quality: DataQuality
    # Index came from a cross-scale conversion rather than concentrations
    approximate: bool = False
    observed_at: datetime
    location_name: Optional[str] = None


class AQIResponse(BaseModel):
    reading: NormalizedReading
    category_label: str
    is_real_data: bool
    data_age_minutes: int


class NearestReadingResponse(BaseModel):
    reading: NormalizedReading
    category_label: str
    distance_km: float
    data_age_minutes: int


class LocationInfo(BaseModel):
    name: str
    state: str
    latitude: float
    longitude: float
