"""Historical aggregate endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..config import Settings
from ..dependencies import check_radius, get_app_settings, get_history_service, parse_coordinate
from ..schemas.history import HistoryResponse, HistorySummaryResponse
from ..services.history_service import HistoryService

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=HistoryResponse)
async def get_history(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    days: int = 7,
    aggregation: str = "daily",
    radius: Optional[float] = None,
    service: HistoryService = Depends(get_history_service),
    settings: Settings = Depends(get_app_settings),
):
    coordinate = parse_coordinate(lat, lng)
    radius_km = check_radius(radius, settings)
    try:
        return await service.get_history(coordinate, days, aggregation, radius_km)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/summary", response_model=HistorySummaryResponse)
async def get_history_summary(
    city: Optional[str] = None,
    days: int = 30,
    service: HistoryService = Depends(get_history_service),
):
    if not city:
        raise HTTPException(status_code=400, detail="city is a required parameter")
    try:
        return await service.get_city_summary(city, days)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
