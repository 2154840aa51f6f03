from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from aqi_api.exceptions import ProviderUnavailable, UnavailableCause
from aqi_api.schemas.aqi import PollutantConcentrations
from aqi_api.services.geo_service import Coordinate
from aqi_api.services.provider_service import AirQualityProvider, RawReading
from aqi_api.services.conversion_service import convert_us_aqi_to_indian

NOW = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)
DELHI = Coordinate(28.6139, 77.2090)
MUMBAI = Coordinate(19.0760, 72.8777)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeProvider(AirQualityProvider):
    """Scripted adapter that counts its calls."""

    def __init__(
        self,
        name: str,
        priority: int = 0,
        reading: Optional[RawReading] = None,
        forecast: Optional[List[RawReading]] = None,
        cause: Optional[UnavailableCause] = None,
        cross_scale: bool = False,
    ):
        super().__init__(api_key="test", base_url="http://fake", priority=priority)
        self.name = name
        self.cross_scale = cross_scale
        self.reading = reading
        self.forecast = forecast
        self.cause = cause
        self.current_calls = 0
        self.forecast_calls = 0

    async def fetch_current(self, coordinate: Coordinate) -> RawReading:
        self.current_calls += 1
        if self.cause is not None:
            raise ProviderUnavailable(self.name, self.cause, "scripted failure")
        return self.reading

    async def fetch_forecast(self, coordinate: Coordinate, hours: int) -> List[RawReading]:
        self.forecast_calls += 1
        if self.cause is not None or self.forecast is None:
            raise ProviderUnavailable(self.name, self.cause or UnavailableCause.UNSUPPORTED, "scripted failure")
        return self.forecast[:hours]

    def convert_native_index(self, value: float) -> int:
        return convert_us_aqi_to_indian(value)


def raw_reading(observed_at: datetime = NOW, native_index: Optional[float] = None, **concentrations) -> RawReading:
    return RawReading(
        concentrations=PollutantConcentrations(**concentrations),
        observed_at=observed_at,
        native_index=native_index,
    )


def raw_forecast(hours: int, pm25: float = 45.0, start: datetime = NOW) -> List[RawReading]:
    return [raw_reading(observed_at=start + timedelta(hours=i), pm25=pm25 + i) for i in range(1, hours + 1)]


@pytest.fixture
def clock():
    return FakeClock()
