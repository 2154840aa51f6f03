"""Provider adapters for external air-quality APIs.

Every adapter turns its source's response into a RawReading shaped for the
breakpoint converter. Network errors, timeouts, bad payloads and auth/quota
rejections all surface as ProviderUnavailable, with the cause logged here.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type

import httpx

from ..config import Settings
from ..exceptions import ProviderUnavailable, UnavailableCause
from ..schemas.aqi import PollutantConcentrations
from .conversion_service import convert_us_aqi_to_indian
from .geo_service import Coordinate

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawReading:
    concentrations: PollutantConcentrations
    observed_at: datetime
    # Source-native index, for adapters that report no concentrations
    native_index: Optional[float] = None
    location_name: Optional[str] = None


class AirQualityProvider(ABC):
    name: str = ""
    # Reports its own index scale instead of (or besides) concentrations
    cross_scale: bool = False
    supports_forecast: bool = False

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        priority: int = 0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.priority = priority
        self._client = client

    @abstractmethod
    async def fetch_current(self, coordinate: Coordinate) -> RawReading:
        ...

    async def fetch_forecast(self, coordinate: Coordinate, hours: int) -> List[RawReading]:
        raise self._unavailable(UnavailableCause.UNSUPPORTED, "forecast not offered by this source")

    def convert_native_index(self, value: float) -> Optional[int]:
        """Native index on the unified scale, or None when the source has no such mapping."""
        return None

    def _unavailable(self, cause: UnavailableCause, detail: str) -> ProviderUnavailable:
        LOGGER.warning("Provider %s unavailable (%s): %s", self.name, cause.value, detail)
        return ProviderUnavailable(self.name, cause, detail)

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
        except httpx.TimeoutException as exc:
            raise self._unavailable(UnavailableCause.TIMEOUT, f"no response within {self.timeout}s") from exc
        except httpx.RequestError as exc:
            raise self._unavailable(UnavailableCause.NETWORK, str(exc) or type(exc).__name__) from exc

        if response.status_code in (401, 403):
            raise self._unavailable(UnavailableCause.AUTH, f"HTTP {response.status_code}")
        if response.status_code == 429:
            raise self._unavailable(UnavailableCause.QUOTA, "rate limit reached")
        if response.status_code >= 400:
            raise self._unavailable(
                UnavailableCause.NETWORK, f"HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise self._unavailable(UnavailableCause.MALFORMED, "response is not JSON") from exc
        if not isinstance(payload, dict) or not payload:
            raise self._unavailable(UnavailableCause.MALFORMED, "empty response body")
        return payload


def _concentration(value: Any, field: str, provider: str, scale: float = 1.0) -> Optional[float]:
    """Finite, non-negative concentration or None."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        LOGGER.warning("%s sent non-numeric %s=%r, ignoring", provider, field, value)
        return None
    if not math.isfinite(number):
        LOGGER.warning("%s sent non-finite %s=%s, ignoring", provider, field, number)
        return None
    if number < 0:
        LOGGER.warning("%s sent negative %s=%s, ignoring", provider, field, number)
        return None
    return number * scale


class OpenWeatherMapProvider(AirQualityProvider):
    """OpenWeatherMap Air Pollution API (concentrations in µg/m³)."""

    name = "openweathermap"
    supports_forecast = True

    COMPONENTS = {
        "pm2_5": "pm25",
        "pm10": "pm10",
        "no2": "no2",
        "so2": "so2",
        "co": "co",
        "o3": "o3",
        "nh3": "nh3",
    }

    def _params(self, coordinate: Coordinate) -> Dict[str, Any]:
        return {"lat": coordinate.latitude, "lon": coordinate.longitude, "appid": self.api_key}

    def _parse_item(self, item: Any) -> RawReading:
        if not isinstance(item, dict) or not isinstance(item.get("components"), dict):
            raise self._unavailable(UnavailableCause.MALFORMED, "entry without components")
        components = item["components"]

        values: Dict[str, Optional[float]] = {}
        for source_key, field in self.COMPONENTS.items():
            # CO arrives in µg/m³, the CO table is in mg/m³
            scale = 0.001 if field == "co" else 1.0
            values[field] = _concentration(components.get(source_key), field, self.name, scale)

        try:
            observed_at = datetime.fromtimestamp(int(item["dt"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            raise self._unavailable(UnavailableCause.MALFORMED, "entry without a valid dt") from exc

        return RawReading(concentrations=PollutantConcentrations(**values), observed_at=observed_at)

    def _items(self, payload: Dict[str, Any]) -> List[Any]:
        items = payload.get("list")
        if not isinstance(items, list) or not items:
            raise self._unavailable(UnavailableCause.MALFORMED, "no entries in 'list'")
        return items

    async def fetch_current(self, coordinate: Coordinate) -> RawReading:
        payload = await self._get_json("air_pollution", self._params(coordinate))
        return self._parse_item(self._items(payload)[0])

    async def fetch_forecast(self, coordinate: Coordinate, hours: int) -> List[RawReading]:
        payload = await self._get_json("air_pollution/forecast", self._params(coordinate))
        return [self._parse_item(item) for item in self._items(payload)[:hours]]


class IQAirProvider(AirQualityProvider):
    """IQAir AirVisual nearest-city API. Reports US AQI, few concentrations."""

    name = "iqair"
    cross_scale = True

    AUTH_MESSAGES = {"incorrect_api_key", "api_key_expired", "permission_denied", "feature_not_available"}
    QUOTA_MESSAGES = {"call_limit_reached", "too_many_requests"}

    def convert_native_index(self, value: float) -> int:
        return convert_us_aqi_to_indian(value)

    async def fetch_current(self, coordinate: Coordinate) -> RawReading:
        payload = await self._get_json(
            "nearest_city",
            {"lat": coordinate.latitude, "lon": coordinate.longitude, "key": self.api_key},
        )

        if payload.get("status") != "success":
            message = str((payload.get("data") or {}).get("message", payload.get("status")))
            if message in self.AUTH_MESSAGES:
                raise self._unavailable(UnavailableCause.AUTH, message)
            if message in self.QUOTA_MESSAGES:
                raise self._unavailable(UnavailableCause.QUOTA, message)
            raise self._unavailable(UnavailableCause.MALFORMED, f"status={payload.get('status')!r}: {message}")

        data = payload.get("data") or {}
        try:
            pollution = data["current"]["pollution"]
            us_aqi = float(pollution["aqius"])
        except (KeyError, TypeError, ValueError) as exc:
            raise self._unavailable(UnavailableCause.MALFORMED, "missing current.pollution.aqius") from exc
        if not math.isfinite(us_aqi) or us_aqi < 0:
            raise self._unavailable(UnavailableCause.MALFORMED, f"unusable aqius={us_aqi}")

        # Paid tiers add per-pollutant blocks; everything else stays unavailable
        def _block(key: str) -> Any:
            block = pollution.get(key)
            if isinstance(block, dict):
                return block.get("conc", block.get("v"))
            return None

        concentrations = PollutantConcentrations(
            pm25=_concentration(_block("p2"), "pm25", self.name),
            pm10=_concentration(_block("p1"), "pm10", self.name),
        )

        return RawReading(
            concentrations=concentrations,
            observed_at=_parse_timestamp(pollution.get("ts")),
            native_index=us_aqi,
            location_name=data.get("city"),
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            LOGGER.debug("Unparseable timestamp %r, using now", value)
    return datetime.now(timezone.utc)


PROVIDERS: Dict[str, Type[AirQualityProvider]] = {
    OpenWeatherMapProvider.name: OpenWeatherMapProvider,
    IQAirProvider.name: IQAirProvider,
}


def build_providers(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> List[AirQualityProvider]:
    """Adapters in configured priority order. Sources without a key are left out."""
    base_urls = {
        OpenWeatherMapProvider.name: settings.openweather_base_url,
        IQAirProvider.name: settings.iqair_base_url,
    }

    providers: List[AirQualityProvider] = []
    for priority, name in enumerate(settings.provider_order):
        provider_cls = PROVIDERS.get(name)
        if provider_cls is None:
            LOGGER.warning("Unknown provider %r in provider_order, skipping", name)
            continue
        api_key = settings.api_key_for(name)
        if not api_key:
            LOGGER.info("No API key configured for %s, provider disabled", name)
            continue
        providers.append(
            provider_cls(
                api_key=api_key,
                base_url=base_urls[name],
                timeout=settings.provider_timeout_seconds,
                client=client,
                priority=priority,
            )
        )
    return providers
