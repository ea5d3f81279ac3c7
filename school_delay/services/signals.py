"""Weather signals derived from observations and NOAA forecast prose.

Everything here is pure and tolerant of missing input: absent data yields
``None`` or ``0`` rather than an exception.
"""
from __future__ import annotations

import re
from typing import Iterable, Optional

from school_delay.models import (
    WEATHER_FRIGID,
    WEATHER_HEAVY_SNOW,
    WEATHER_ICE,
    WEATHER_NONE,
    WEATHER_SNOW,
    WEATHER_WIND,
    CurrentConditions,
    Forecast,
    ForecastPeriod,
    WeatherSignal,
)
from school_delay.rounding import round_half_up

RELEVANT_PERIODS = 4

_SNOW_AMOUNT = re.compile(r"(\d+(?:\.\d+)?)\s*(?:to\s*(\d+(?:\.\d+)?))?\s*inch")
_WIND_SPEED = re.compile(r"(\d+)\s*(?:to\s*(\d+))?\s*mph", re.IGNORECASE)
_ICE = re.compile(r"\bice\b|freezing rain|freezing drizzle|sleet")

_SNOWFALL_KEYWORDS = (
    (("heavy snow", "blizzard"), 6.0),
    (("moderate snow",), 3.0),
    (("light snow",), 1.5),
    (("snow shower",), 1.0),
    (("flurries", "dusting"), 0.5),
)


def calculate_wind_chill(temp_f: Optional[float], wind_mph: Optional[float]) -> Optional[int | float]:
    """NWS wind chill in °F; the air temperature when it is mild or calm."""
    if temp_f is None:
        return None
    wind = wind_mph or 0
    if temp_f > 50 or wind <= 3:
        return temp_f
    factor = wind**0.16
    return round_half_up(35.74 + 0.6215 * temp_f - 35.75 * factor + 0.4275 * temp_f * factor)


def period_text(periods: Iterable[ForecastPeriod]) -> str:
    return " ".join(period.text for period in periods)


def forecast_text(forecast: Optional[Forecast], periods: int = RELEVANT_PERIODS) -> str:
    if not forecast or not forecast.periods:
        return ""
    return period_text(forecast.periods[:periods])


def mentions_ice(text: str) -> bool:
    return bool(_ICE.search(text or ""))


def parse_snow_amount(text: str) -> Optional[float]:
    """Explicit "N inches" / "N to M inches" amount, taking the upper bound of a range."""
    match = _SNOW_AMOUNT.search((text or "").lower())
    if not match:
        return None
    upper = match.group(2) or match.group(1)
    return float(upper)


def estimate_snowfall(text: str) -> float:
    text = (text or "").lower()
    amount = parse_snow_amount(text)
    if amount is not None:
        return amount
    for keywords, inches in _SNOWFALL_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return inches
    return 0.0


def parse_wind_speed(text: Optional[str]) -> int:
    """Upper bound of a NOAA wind string such as ``"10 to 15 mph"``."""
    if not text:
        return 0
    match = _WIND_SPEED.search(text)
    if not match:
        return 0
    return int(match.group(2) or match.group(1))


def determine_weather_type(text: str, wind_chill: Optional[float]) -> str:
    text = (text or "").lower()
    if mentions_ice(text):
        return WEATHER_ICE
    if "snow" in text or "flurries" in text:
        amount = parse_snow_amount(text)
        if amount is not None and amount >= 6:
            return WEATHER_HEAVY_SNOW
        if "heavy snow" in text or "blizzard" in text:
            return WEATHER_HEAVY_SNOW
        return WEATHER_SNOW
    if wind_chill is not None and wind_chill <= 0:
        return WEATHER_FRIGID
    if "high wind" in text or "strong wind" in text:
        return WEATHER_WIND
    return WEATHER_NONE


def signal_from_text(
    text: str, temperature_f: Optional[float], wind_mph: Optional[float]
) -> WeatherSignal:
    wind_chill = calculate_wind_chill(temperature_f, wind_mph)
    return WeatherSignal(
        temperature_f=temperature_f,
        wind_chill_f=wind_chill,
        snowfall_estimate_in=estimate_snowfall(text),
        weather_type=determine_weather_type(text, wind_chill),
    )


def extract_signal(current: Optional[CurrentConditions], forecast: Optional[Forecast]) -> WeatherSignal:
    temperature = current.temperature_f if current else None
    wind = current.wind_speed_mph if current else None
    return signal_from_text(forecast_text(forecast), temperature, wind)
