"""Forecast endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_forecast_service, resolve_location
from ..schemas.forecast import DailyForecastResponse, Forecast
from ..services.forecast_service import ForecastService

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/forecast", tags=["forecast"])


@router.get("", response_model=Forecast)
async def get_forecast(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    city: Optional[str] = None,
    hours: int = 24,
    service: ForecastService = Depends(get_forecast_service),
):
    coordinate = resolve_location(lat, lng, city)
    try:
        return await service.get_forecast(coordinate, hours)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/daily", response_model=DailyForecastResponse)
async def get_daily_forecast(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    city: Optional[str] = None,
    days: int = 3,
    service: ForecastService = Depends(get_forecast_service),
):
    coordinate = resolve_location(lat, lng, city)
    try:
        forecast, daily = await service.get_daily_forecast(coordinate, days)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return DailyForecastResponse(
        location_name=forecast.location_name,
        latitude=forecast.latitude,
        longitude=forecast.longitude,
        model=forecast.model,
        quality=forecast.quality,
        days=daily,
    )
