import logging

import pytest

from aqi_api.exceptions import NoBreakpointMatch
from aqi_api.schemas.aqi import AQICategory, PollutantConcentrations
from aqi_api.services.conversion_service import (
    BREAKPOINT_TABLES,
    Breakpoint,
    categorize_aqi,
    convert_us_aqi_to_indian,
    dominant_pollutant,
    overall_index,
    round_half_up,
    sub_index,
    sub_indices,
    validate_breakpoint_table,
)


def test_pm25_and_pm10_reading_is_satisfactory():
    aqi = overall_index(PollutantConcentrations(pm25=35, pm10=40))

    assert aqi == 59
    assert categorize_aqi(aqi) is AQICategory.SATISFACTORY


def test_overall_index_requires_pm25():
    with pytest.raises(ValueError):
        overall_index(PollutantConcentrations(pm10=80, no2=30))


def test_overall_index_takes_worst_pollutant():
    concentrations = PollutantConcentrations(pm25=10, no2=200)

    assert overall_index(concentrations) == round(sub_index(200, BREAKPOINT_TABLES["no2"]))
    assert dominant_pollutant(concentrations) == "no2"


def test_overall_index_is_clamped_to_at_least_one():
    assert overall_index(PollutantConcentrations(pm25=0)) == 1


def test_shared_boundary_resolves_to_lower_segment():
    assert sub_index(30, BREAKPOINT_TABLES["pm25"]) == 50
    assert sub_index(60, BREAKPOINT_TABLES["pm25"]) == 100


def test_concentration_above_last_segment_is_500():
    assert sub_index(900, BREAKPOINT_TABLES["pm25"]) == 500
    assert overall_index(PollutantConcentrations(pm25=2000)) == 500


def test_negative_concentration_has_no_breakpoint():
    with pytest.raises(NoBreakpointMatch):
        sub_index(-1, BREAKPOINT_TABLES["pm25"])


def test_negative_pollutant_is_skipped_and_logged(caplog):
    with caplog.at_level(logging.ERROR):
        values = sub_indices({"pm25": 40.0, "so2": -3.0})

    assert set(values) == {"pm25"}
    assert "so2" in caplog.text


def test_nh3_has_no_table():
    assert sub_indices({"pm25": 20.0, "nh3": 400.0}).keys() == {"pm25"}


@pytest.mark.parametrize("pollutant", sorted(BREAKPOINT_TABLES))
def test_sub_index_is_monotonic(pollutant):
    table = BREAKPOINT_TABLES[pollutant]
    top = table[-1].c_high * 1.2
    steps = [top * i / 400 for i in range(401)]
    values = [sub_index(c, table) for c in steps]

    assert all(b >= a for a, b in zip(values, values[1:]))


def test_validate_rejects_gap():
    table = [Breakpoint(0, 30, 0, 50), Breakpoint(31, 500, 51, 500)]
    with pytest.raises(ValueError):
        validate_breakpoint_table("broken", table)


def test_validate_rejects_table_short_of_500():
    with pytest.raises(ValueError):
        validate_breakpoint_table("short", [Breakpoint(0, 30, 0, 50)])


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, AQICategory.GOOD),
        (50, AQICategory.GOOD),
        (51, AQICategory.SATISFACTORY),
        (100, AQICategory.SATISFACTORY),
        (101, AQICategory.MODERATE),
        (201, AQICategory.POOR),
        (301, AQICategory.VERY_POOR),
        (401, AQICategory.SEVERE),
        (650, AQICategory.SEVERE),
    ],
)
def test_categorize_aqi(value, expected):
    assert categorize_aqi(value) is expected


def test_category_label():
    assert AQICategory.VERY_POOR.label == "Very Poor"


@pytest.mark.parametrize(
    "us_aqi, expected",
    [(80, 80), (120, 160), (180, 270), (240, 319), (450, 450), (700, 500)],
)
def test_us_aqi_conversion(us_aqi, expected):
    assert convert_us_aqi_to_indian(us_aqi) == expected


def test_halves_round_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.4999) == 2
    assert overall_index(PollutantConcentrations(pm25=1, pm10=40.5)) == 41
    assert convert_us_aqi_to_indian(250) == 333
