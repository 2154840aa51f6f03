"""Pollutant concentration to Indian National AQI conversion."""

import logging
import math
from typing import Dict, List, Mapping, NamedTuple, Optional

from ..exceptions import NoBreakpointMatch
from ..schemas.aqi import AQICategory, PollutantConcentrations

LOGGER = logging.getLogger(__name__)

MIN_AQI = 1
MAX_AQI = 500


class Breakpoint(NamedTuple):
    c_low: float
    c_high: float
    i_low: int
    i_high: int


# Segments share their boundary concentration; the lower segment wins on ties.
# Units: µg/m³, except CO in mg/m³.
BREAKPOINT_TABLES: Dict[str, List[Breakpoint]] = {
    "pm25": [
        Breakpoint(0, 30, 0, 50),
        Breakpoint(30, 60, 51, 100),
        Breakpoint(60, 90, 101, 200),
        Breakpoint(90, 120, 201, 300),
        Breakpoint(120, 250, 301, 400),
        Breakpoint(250, 500, 401, 500),
    ],
    "pm10": [
        Breakpoint(0, 50, 0, 50),
        Breakpoint(50, 100, 51, 100),
        Breakpoint(100, 250, 101, 200),
        Breakpoint(250, 350, 201, 300),
        Breakpoint(350, 430, 301, 400),
        Breakpoint(430, 500, 401, 500),
    ],
    "no2": [
        Breakpoint(0, 40, 0, 50),
        Breakpoint(40, 80, 51, 100),
        Breakpoint(80, 180, 101, 200),
        Breakpoint(180, 280, 201, 300),
        Breakpoint(280, 400, 301, 400),
        Breakpoint(400, 500, 401, 500),
    ],
    "so2": [
        Breakpoint(0, 40, 0, 50),
        Breakpoint(40, 80, 51, 100),
        Breakpoint(80, 380, 101, 200),
        Breakpoint(380, 800, 201, 300),
        Breakpoint(800, 1600, 301, 400),
        Breakpoint(1600, 2000, 401, 500),
    ],
    "co": [
        Breakpoint(0, 1.0, 0, 50),
        Breakpoint(1.0, 2.0, 51, 100),
        Breakpoint(2.0, 10, 101, 200),
        Breakpoint(10, 17, 201, 300),
        Breakpoint(17, 34, 301, 400),
        Breakpoint(34, 50, 401, 500),
    ],
    "o3": [
        Breakpoint(0, 50, 0, 50),
        Breakpoint(50, 100, 51, 100),
        Breakpoint(100, 168, 101, 200),
        Breakpoint(168, 208, 201, 300),
        Breakpoint(208, 748, 301, 400),
        Breakpoint(748, 1000, 401, 500),
    ],
}


def validate_breakpoint_table(name: str, table: List[Breakpoint]) -> None:
    """Raise ValueError unless the table covers 0..max contiguously and monotonically."""
    if not table:
        raise ValueError(f"{name}: breakpoint table is empty")
    if table[0].c_low != 0:
        raise ValueError(f"{name}: table must start at concentration 0")

    previous: Optional[Breakpoint] = None
    for segment in table:
        if segment.c_high <= segment.c_low or segment.i_high <= segment.i_low:
            raise ValueError(f"{name}: segment {segment} is not increasing")
        if previous is not None:
            if segment.c_low != previous.c_high:
                raise ValueError(f"{name}: gap or overlap between {previous} and {segment}")
            if segment.i_low < previous.i_high:
                raise ValueError(f"{name}: index decreases between {previous} and {segment}")
        previous = segment

    if table[-1].i_high != MAX_AQI:
        raise ValueError(f"{name}: table must reach index {MAX_AQI}")


for _name, _table in BREAKPOINT_TABLES.items():
    validate_breakpoint_table(_name, _table)


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (40.5 -> 41)."""
    return int(math.floor(value + 0.5))


def sub_index(concentration: float, table: List[Breakpoint]) -> float:
    """
    Sub-index of one pollutant via piecewise linear interpolation.

    Concentrations above the last segment map to 500. Anything else that
    matches no segment (negative input) raises NoBreakpointMatch.
    """
    c = float(concentration)
    for bp in table:
        if bp.c_low <= c <= bp.c_high:
            return (bp.i_high - bp.i_low) / (bp.c_high - bp.c_low) * (c - bp.c_low) + bp.i_low

    if c > table[-1].c_high:
        return float(MAX_AQI)
    raise NoBreakpointMatch(f"concentration {c} outside table {table[0]}..{table[-1]}")


def sub_indices(concentrations: Mapping[str, Optional[float]]) -> Dict[str, float]:
    """Sub-index per reported pollutant. Pollutants without a table are skipped."""
    result: Dict[str, float] = {}
    for pollutant, value in concentrations.items():
        if value is None or pollutant not in BREAKPOINT_TABLES:
            continue
        try:
            result[pollutant] = sub_index(value, BREAKPOINT_TABLES[pollutant])
        except NoBreakpointMatch:
            LOGGER.error("Breakpoint invariant violated for %s=%s", pollutant, value, exc_info=True)
    return result


def overall_index(concentrations: PollutantConcentrations) -> int:
    """Overall AQI: the worst sub-index, rounded and clamped to 1..500."""
    present = concentrations.present()
    if "pm25" not in present:
        raise ValueError("PM2.5 concentration is required to compute the AQI")

    values = sub_indices(present)
    worst = max(values.values(), default=float(MIN_AQI))
    return max(MIN_AQI, min(MAX_AQI, round_half_up(worst)))


def dominant_pollutant(concentrations: PollutantConcentrations) -> Optional[str]:
    values = sub_indices(concentrations.present())
    if not values:
        return None
    return max(values, key=values.get)


def categorize_aqi(aqi_value: float) -> AQICategory:
    """Map an index value onto the six NAQI buckets. Above 500 stays SEVERE."""
    if aqi_value <= 50:
        return AQICategory.GOOD
    if aqi_value <= 100:
        return AQICategory.SATISFACTORY
    if aqi_value <= 200:
        return AQICategory.MODERATE
    if aqi_value <= 300:
        return AQICategory.POOR
    if aqi_value <= 400:
        return AQICategory.VERY_POOR
    return AQICategory.SEVERE


def convert_us_aqi_to_indian(us_aqi: float) -> int:
    """
    Approximate US AQI -> Indian AQI conversion.

    Hand-tuned multipliers, not a breakpoint mapping, and not monotonic across
    the 200/201 boundary. Readings produced with it are flagged approximate.
    """
    us = float(us_aqi)
    if us <= 100:
        value = us
    elif us <= 150:
        value = us * 1.33
    elif us <= 200:
        value = us * 1.5
    elif us <= 300:
        value = us * 1.33
    else:
        value = min(us, MAX_AQI)
    return max(MIN_AQI, min(MAX_AQI, round_half_up(value)))
