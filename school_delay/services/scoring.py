from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from school_delay.config import ENV_PREFIX, app_config
from school_delay.models import Alert, CurrentConditions, Forecast, ScoringFactor
from school_delay.rounding import clamp
from school_delay.services.signals import (
    RELEVANT_PERIODS,
    calculate_wind_chill,
    mentions_ice,
    parse_snow_amount,
)

WINTER_ALERT_KEYWORDS = ("winter", "snow", "ice", "blizzard", "freeze", "cold")


@dataclass
class ScoringConfig:
    """Point table and thresholds for the additive heuristic.

    Values can be overridden via a config mapping, a JSON config file, or
    environment variables prefixed with ``SCHOOLDELAY_SCORING_``.
    """

    alert_extreme_points: int = 50
    alert_severe_points: int = 40
    alert_moderate_points: int = 25
    alert_other_points: int = 15

    extreme_cold_threshold: float = -10.0  # wind chill, °F
    very_cold_threshold: float = 0.0
    cold_threshold: float = 10.0
    extreme_cold_points: int = 40
    very_cold_points: int = 25
    cold_points: int = 10

    heavy_snow_inches: float = 6.0
    moderate_snow_inches: float = 3.0
    light_snow_inches: float = 1.0
    heavy_snow_points: int = 45
    moderate_snow_points: int = 30
    light_snow_points: int = 15

    ice_points: int = 35
    heavy_snow_mention_points: int = 25
    light_snow_mention_points: int = 5
    snow_mention_points: int = 15

    min_probability: int = 0
    max_probability: int = 95
    forecast_periods: int = RELEVANT_PERIODS

    # Blending with the historical matcher.
    historical_weight: float = 0.4
    global_match_limit: int = 8
    school_match_limit: int = 5
    school_min_matches: int = 2
    disruption_threshold: int = 40

    @classmethod
    def from_sources(
        cls,
        *,
        config_path: Optional[str] = None,
        env: Mapping[str, str] | None = None,
        config_data: Mapping[str, float] | None = None,
    ) -> "ScoringConfig":
        """Load configuration from defaults, file overrides, and environment.

        ``config_path`` should point to a JSON file where keys mirror the
        dataclass fields. Environment variables use uppercase names prefixed
        with ``SCHOOLDELAY_SCORING_`` (e.g., ``SCHOOLDELAY_SCORING_ICE_POINTS``).
        Unknown keys and unparseable values are ignored.
        """

        env = dict(env or os.environ)
        data: Dict[str, object] = {}

        if config_data:
            data.update({k: v for k, v in config_data.items() if v is not None})

        if config_path:
            path = Path(config_path)
            if path.exists():
                loaded = json.loads(path.read_text())
                data.update({k: v for k, v in loaded.items() if v is not None})

        prefix = f"{ENV_PREFIX}SCORING_"
        for key, value in env.items():
            if key.startswith(prefix):
                data[key.removeprefix(prefix).lower()] = value

        kwargs = {}
        for item in fields(cls):
            if item.name not in data:
                continue
            try:
                number = float(data[item.name])
            except (TypeError, ValueError):
                continue
            kwargs[item.name] = int(number) if isinstance(item.default, int) else number
        return cls(**kwargs)


@dataclass
class HeuristicScore:
    probability: int
    factors: List[ScoringFactor] = field(default_factory=list)


def dedupe_factors(factors: Iterable[ScoringFactor]) -> List[ScoringFactor]:
    seen = set()
    unique: List[ScoringFactor] = []
    for factor in factors:
        if factor.description in seen:
            continue
        seen.add(factor.description)
        unique.append(factor)
    return unique


def is_winter_alert(alert: Alert) -> bool:
    event = (alert.event or "").lower()
    return any(keyword in event for keyword in WINTER_ALERT_KEYWORDS)


def alert_factor(alert: Alert, config: ScoringConfig) -> ScoringFactor:
    severity = (alert.severity or "").lower()
    if severity == "extreme":
        return ScoringFactor(f"{alert.event} (Extreme)", config.alert_extreme_points)
    if severity == "severe":
        return ScoringFactor(f"{alert.event} (Severe)", config.alert_severe_points)
    if severity == "moderate":
        return ScoringFactor(alert.event, config.alert_moderate_points)
    return ScoringFactor(alert.event, config.alert_other_points)


def cold_factor(wind_chill: Optional[float], config: ScoringConfig) -> Optional[ScoringFactor]:
    if wind_chill is None:
        return None
    if wind_chill <= config.extreme_cold_threshold:
        return ScoringFactor(f"Extreme cold (wind chill {wind_chill:g}°F)", config.extreme_cold_points)
    if wind_chill <= config.very_cold_threshold:
        return ScoringFactor(f"Very cold (wind chill {wind_chill:g}°F)", config.very_cold_points)
    if wind_chill <= config.cold_threshold:
        return ScoringFactor(f"Cold temperatures (wind chill {wind_chill:g}°F)", config.cold_points)
    return None


def snow_amount_factor(amount: Optional[float], config: ScoringConfig) -> Optional[ScoringFactor]:
    if amount is None:
        return None
    if amount >= config.heavy_snow_inches:
        return ScoringFactor(f"Heavy snow forecast ({amount:g}+ inches)", config.heavy_snow_points)
    if amount >= config.moderate_snow_inches:
        return ScoringFactor(f"Moderate snow forecast ({amount:g} inches)", config.moderate_snow_points)
    if amount >= config.light_snow_inches:
        return ScoringFactor(f"Light snow forecast ({amount:g} inches)", config.light_snow_points)
    return None


def ice_factor(config: ScoringConfig) -> ScoringFactor:
    return ScoringFactor("Ice/freezing rain in forecast", config.ice_points)


def _snow_mention_factor(text: str, config: ScoringConfig) -> Optional[ScoringFactor]:
    if "snow" not in text and "flurries" not in text:
        return None
    if "heavy" in text:
        return ScoringFactor("Heavy snow mentioned", config.heavy_snow_mention_points)
    if "light" in text or "flurries" in text:
        return ScoringFactor("Light snow/flurries possible", config.light_snow_mention_points)
    return ScoringFactor("Snow in forecast", config.snow_mention_points)


def _period_factors(text: str, config: ScoringConfig) -> List[ScoringFactor]:
    factors: List[ScoringFactor] = []
    amount = parse_snow_amount(text)
    amount_factor = snow_amount_factor(amount, config)
    if amount_factor:
        factors.append(amount_factor)
    if mentions_ice(text):
        factors.append(ice_factor(config))
    if amount is None:
        mention = _snow_mention_factor(text, config)
        if mention:
            factors.append(mention)
    return factors


def total_probability(factors: Sequence[ScoringFactor], config: ScoringConfig) -> int:
    return clamp(sum(factor.impact for factor in factors), config.min_probability, config.max_probability)


def score_conditions(
    current: Optional[CurrentConditions],
    forecast: Optional[Forecast],
    alerts: Optional[Sequence[Alert]] = None,
    *,
    config: Optional[ScoringConfig] = None,
) -> HeuristicScore:
    """Apply the additive rule table to current conditions, forecast and alerts.

    Every matched rule adds its points, including one per winter alert and one
    per forecast period, so the raw sum is clamped to ``max_probability``.
    Factors with a repeated description are reported once.
    """

    config = config or ScoringConfig.from_sources(config_data=app_config.scoring)
    factors: List[ScoringFactor] = []

    for alert in alerts or []:
        if is_winter_alert(alert):
            factors.append(alert_factor(alert, config))

    if current is not None and current.temperature_f is not None:
        wind_chill = calculate_wind_chill(current.temperature_f, current.wind_speed_mph)
        factor = cold_factor(wind_chill, config)
        if factor:
            factors.append(factor)

    if forecast is not None:
        for period in forecast.periods[: config.forecast_periods]:
            factors.extend(_period_factors(period.text, config))

    return HeuristicScore(probability=total_probability(factors, config), factors=dedupe_factors(factors))
