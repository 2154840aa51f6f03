"""Coordinates, great-circle distance and reference-location lookup."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..constants import KNOWN_CITIES, REFERENCE_CITIES, ReferenceCity
from ..exceptions import InvalidCoordinate

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidCoordinate("latitude must be between -90 and 90")
        if not -180.0 <= self.longitude <= 180.0:
            raise InvalidCoordinate("longitude must be between -180 and 180")

    @classmethod
    def parse(cls, lat, lng) -> "Coordinate":
        try:
            latitude = float(lat)
            longitude = float(lng)
        except (TypeError, ValueError) as exc:
            raise InvalidCoordinate("latitude and longitude must be numeric") from exc
        # NaN fails the range checks in __post_init__
        return cls(latitude, longitude)

    def key(self, decimals: int = 4) -> Tuple[float, float]:
        # 4 decimals is roughly 11 m at the equator
        return (round(self.latitude, decimals), round(self.longitude, decimals))


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    d_lat = math.radians(b.latitude - a.latitude)
    d_lng = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude)) * math.cos(math.radians(b.latitude)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def nearest_reference_city(
    coordinate: Coordinate, cities: Iterable[ReferenceCity] = REFERENCE_CITIES
) -> Tuple[ReferenceCity, float]:
    """Closest reference city and its distance in km."""
    best: Optional[Tuple[ReferenceCity, float]] = None
    for city in cities:
        distance = haversine_km(coordinate, Coordinate(city.latitude, city.longitude))
        if best is None or distance < best[1]:
            best = (city, distance)
    if best is None:
        raise ValueError("no reference cities configured")
    return best


def find_city(name: str, cities: Iterable[ReferenceCity] = KNOWN_CITIES) -> Optional[ReferenceCity]:
    """Exact (case-insensitive) name match first, then a partial match."""
    needle = name.lower().strip()
    if not needle:
        return None
    cities = list(cities)
    for city in cities:
        if needle == city.name.lower() or needle in (alias.lower() for alias in city.aliases):
            return city
    for city in cities:
        candidate = city.name.lower()
        if needle in candidate or candidate in needle:
            return city
    return None


def search_cities(
    query: str, limit: int = 10, cities: Iterable[ReferenceCity] = KNOWN_CITIES
) -> List[ReferenceCity]:
    """Cities whose name, alias or state contains `query`, sorted by name."""
    needle = query.lower().strip()
    matches = [
        city
        for city in cities
        if needle in city.name.lower()
        or needle in city.state.lower()
        or any(needle in alias.lower() for alias in city.aliases)
    ]
    return sorted(matches, key=lambda city: city.name)[:limit]
