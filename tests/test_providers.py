import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from aqi_api.config import Settings
from aqi_api.exceptions import ProviderUnavailable, UnavailableCause
from aqi_api.services.provider_service import IQAirProvider, OpenWeatherMapProvider, build_providers

from tests.conftest import DELHI

OWM_ITEM = {
    "dt": 1762160400,
    "main": {"aqi": 3},
    "components": {"co": 1200.0, "no2": 20.0, "o3": 30.0, "so2": 5.0, "pm2_5": 35.0, "pm10": 40.0, "nh3": 2.0},
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _owm(handler) -> OpenWeatherMapProvider:
    return OpenWeatherMapProvider("owm-key", "http://owm.test/data/2.5", client=_client(handler))


def _iqair(handler) -> IQAirProvider:
    return IQAirProvider("iq-key", "http://iqair.test/v2", client=_client(handler), priority=1)


def _unavailable(provider, coro_factory) -> ProviderUnavailable:
    with pytest.raises(ProviderUnavailable) as info:
        asyncio.run(coro_factory(provider))
    return info.value


def test_openweathermap_current_reading():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"list": [OWM_ITEM]})

    raw = asyncio.run(_owm(handler).fetch_current(DELHI))

    assert seen["path"] == "/data/2.5/air_pollution"
    assert seen["params"]["appid"] == "owm-key"
    assert raw.concentrations.pm25 == 35.0
    assert raw.concentrations.pm10 == 40.0
    # µg/m³ -> mg/m³
    assert raw.concentrations.co == pytest.approx(1.2)
    assert raw.observed_at == datetime.fromtimestamp(1762160400, tz=timezone.utc)


def test_openweathermap_drops_negative_values():
    item = {"dt": 1762160400, "components": {"pm2_5": 12.0, "no2": -4.0}}
    raw = asyncio.run(_owm(lambda request: httpx.Response(200, json={"list": [item]})).fetch_current(DELHI))

    assert raw.concentrations.pm25 == 12.0
    assert raw.concentrations.no2 is None
    assert raw.concentrations.so2 is None


def test_openweathermap_forecast_is_truncated_to_hours():
    items = [dict(OWM_ITEM, dt=OWM_ITEM["dt"] + 3600 * i) for i in range(10)]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("air_pollution/forecast")
        return httpx.Response(200, json={"list": items})

    raws = asyncio.run(_owm(handler).fetch_forecast(DELHI, 4))

    assert len(raws) == 4
    assert raws[-1].observed_at > raws[0].observed_at


@pytest.mark.parametrize(
    "status, cause",
    [
        (401, UnavailableCause.AUTH),
        (403, UnavailableCause.AUTH),
        (429, UnavailableCause.QUOTA),
        (503, UnavailableCause.NETWORK),
    ],
)
def test_http_errors_map_to_causes(status, cause):
    provider = _owm(lambda request: httpx.Response(status, text="nope"))
    error = _unavailable(provider, lambda p: p.fetch_current(DELHI))

    assert error.provider == "openweathermap"
    assert error.cause is cause


def test_timeout_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    error = _unavailable(_owm(handler), lambda p: p.fetch_current(DELHI))
    assert error.cause is UnavailableCause.TIMEOUT


def test_connection_error_is_network():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    error = _unavailable(_owm(handler), lambda p: p.fetch_current(DELHI))
    assert error.cause is UnavailableCause.NETWORK


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json={}),
        httpx.Response(200, json={"list": []}),
        httpx.Response(200, json={"list": [{"dt": 1}]}),
    ],
)
def test_malformed_payloads(response):
    error = _unavailable(_owm(lambda request: response), lambda p: p.fetch_current(DELHI))
    assert error.cause is UnavailableCause.MALFORMED


def test_iqair_reports_native_us_index():
    payload = {
        "status": "success",
        "data": {
            "city": "Delhi",
            "current": {"pollution": {"ts": "2025-11-03T08:00:00.000Z", "aqius": 180, "mainus": "p2"}},
        },
    }
    provider = _iqair(lambda request: httpx.Response(200, json=payload))
    raw = asyncio.run(provider.fetch_current(DELHI))

    assert provider.cross_scale
    assert raw.native_index == 180
    assert raw.concentrations.pm25 is None
    assert raw.location_name == "Delhi"
    assert raw.observed_at == datetime(2025, 11, 3, 8, 0, tzinfo=timezone.utc)
    assert provider.convert_native_index(raw.native_index) == 270


@pytest.mark.parametrize(
    "message, cause",
    [
        ("incorrect_api_key", UnavailableCause.AUTH),
        ("call_limit_reached", UnavailableCause.QUOTA),
        ("city_not_found", UnavailableCause.MALFORMED),
    ],
)
def test_iqair_failure_statuses(message, cause):
    payload = {"status": "fail", "data": {"message": message}}
    error = _unavailable(_iqair(lambda request: httpx.Response(200, json=payload)), lambda p: p.fetch_current(DELHI))
    assert error.cause is cause


def test_iqair_has_no_forecast():
    provider = _iqair(lambda request: httpx.Response(500))
    error = _unavailable(provider, lambda p: p.fetch_forecast(DELHI, 24))
    assert error.cause is UnavailableCause.UNSUPPORTED


def test_build_providers_follows_order_and_skips_missing_keys():
    settings = Settings(openweather_api_key="owm", iqair_api_key="iq", provider_order=["iqair", "openweathermap"])
    providers = build_providers(settings)

    assert [p.name for p in providers] == ["iqair", "openweathermap"]
    assert [p.priority for p in providers] == [0, 1]

    settings = Settings(openweather_api_key="owm", iqair_api_key="placeholder_iqair_key")
    assert [p.name for p in build_providers(settings)] == ["openweathermap"]


def test_offline_mode_without_keys():
    assert Settings(openweather_api_key="", iqair_api_key="").offline_mode
    assert Settings(openweather_api_key="owm", use_real_data=False).offline_mode
    assert not Settings(openweather_api_key="owm", iqair_api_key="").offline_mode


def test_non_finite_concentrations_are_dropped():
    body = b'{"list": [{"dt": 1762160400, "components": {"pm2_5": NaN, "pm10": 40.0, "no2": Infinity}}]}'
    provider = _owm(lambda request: httpx.Response(200, content=body, headers={"content-type": "application/json"}))
    raw = asyncio.run(provider.fetch_current(DELHI))

    assert raw.concentrations.pm25 is None
    assert raw.concentrations.no2 is None
    assert raw.concentrations.pm10 == 40.0


@pytest.mark.parametrize("aqius", [b"NaN", b"Infinity", b"-5"])
def test_iqair_rejects_unusable_native_index(aqius):
    body = b'{"status": "success", "data": {"city": "Delhi", "current": {"pollution": {"aqius": ' + aqius + b"}}}}"
    provider = _iqair(lambda request: httpx.Response(200, content=body, headers={"content-type": "application/json"}))
    error = _unavailable(provider, lambda p: p.fetch_current(DELHI))

    assert error.cause is UnavailableCause.MALFORMED


def test_concentration_only_provider_has_no_native_mapping():
    provider = OpenWeatherMapProvider("owm-key", "http://owm.test/data/2.5")
    assert provider.convert_native_index(120) is None
