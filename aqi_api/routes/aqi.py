"""AQI endpoints."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..config import Settings
from ..dependencies import (
    check_radius,
    get_air_quality_service,
    get_app_settings,
    get_history_service,
    parse_coordinate,
)
from ..schemas.aqi import AQIResponse, LocationInfo, NearestReadingResponse
from ..services.aggregation_service import AirQualityService
from ..services.geo_service import search_cities
from ..services.history_service import NEAREST_RADIUS_KM, HistoryService

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/aqi", tags=["aqi"])

MIN_SEARCH_LENGTH = 2


def _age_minutes(observed_at: datetime) -> int:
    age = datetime.now(timezone.utc) - observed_at
    return max(0, int(age.total_seconds() // 60))


@router.get("", response_model=AQIResponse)
async def get_current_aqi(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: Optional[float] = None,
    service: AirQualityService = Depends(get_air_quality_service),
    settings: Settings = Depends(get_app_settings),
):
    coordinate = parse_coordinate(lat, lng)
    radius_km = check_radius(radius, settings)

    reading = await service.get_current(coordinate, radius_km)
    return AQIResponse(
        reading=reading,
        category_label=reading.category.label,
        is_real_data=reading.quality.is_real,
        data_age_minutes=_age_minutes(reading.observed_at),
    )


@router.get("/locations", response_model=List[LocationInfo])
async def search_locations(q: Optional[str] = None):
    if q is None or len(q.strip()) < MIN_SEARCH_LENGTH:
        raise HTTPException(
            status_code=400, detail=f"Search term must be at least {MIN_SEARCH_LENGTH} characters long"
        )
    return [
        LocationInfo(name=city.name, state=city.state, latitude=city.latitude, longitude=city.longitude)
        for city in search_cities(q)
    ]


@router.get("/nearest", response_model=NearestReadingResponse)
async def get_nearest_reading(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: Optional[float] = None,
    service: HistoryService = Depends(get_history_service),
    settings: Settings = Depends(get_app_settings),
):
    coordinate = parse_coordinate(lat, lng)
    radius_km = NEAREST_RADIUS_KM if radius is None else check_radius(radius, settings)

    nearest = await service.get_nearest(coordinate, radius_km)
    if nearest is None:
        raise HTTPException(status_code=404, detail=f"No stored readings within {radius_km:g} km")

    reading, distance_km = nearest
    return NearestReadingResponse(
        reading=reading,
        category_label=reading.category.label,
        distance_km=round(distance_km, 2),
        data_age_minutes=_age_minutes(reading.observed_at),
    )
