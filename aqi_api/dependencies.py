"""FastAPI dependencies resolving the per-process service instances."""

from typing import Optional

from fastapi import HTTPException, Request

from .config import Settings
from .exceptions import InvalidCoordinate
from .services.aggregation_service import AirQualityService
from .services.forecast_service import ForecastService
from .services.geo_service import Coordinate, find_city
from .services.history_service import HistoryService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_air_quality_service(request: Request) -> AirQualityService:
    return request.app.state.air_quality_service


def get_forecast_service(request: Request) -> ForecastService:
    return request.app.state.forecast_service


def get_history_service(request: Request) -> HistoryService:
    return request.app.state.history_service


def parse_coordinate(lat: Optional[float], lng: Optional[float]) -> Coordinate:
    if lat is None or lng is None:
        raise HTTPException(status_code=400, detail="lat and lng are required parameters")
    try:
        return Coordinate.parse(lat, lng)
    except InvalidCoordinate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def resolve_location(lat: Optional[float], lng: Optional[float], city: Optional[str]) -> Coordinate:
    """Coordinate from a city name, or from lat/lng when no city is given."""
    if city:
        match = find_city(city)
        if match is None:
            raise HTTPException(status_code=404, detail=f"City {city!r} not found")
        return Coordinate(match.latitude, match.longitude)
    if lat is None and lng is None:
        raise HTTPException(status_code=400, detail="Either coordinates (lat, lng) or city name is required")
    return parse_coordinate(lat, lng)


def check_radius(radius: Optional[float], settings: Settings) -> float:
    if radius is None:
        return settings.default_radius_km
    if not 0 < radius <= settings.max_radius_km:
        raise HTTPException(
            status_code=400, detail=f"radius must be between 0 and {settings.max_radius_km:g} km"
        )
    return radius
