"""Monday-to-Friday outlook built from the NOAA period forecast."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from school_delay.models import (
    STATUS_CLOSED,
    STATUS_DELAY,
    STATUS_OPEN,
    WEATHER_ICE,
    Alert,
    Forecast,
    ForecastPeriod,
    HistoricalMatch,
    ScoringFactor,
    WeatherSignal,
)
from school_delay.services.blending import historical_factor, split_probability
from school_delay.services.matching import find_matches
from school_delay.services.predictor import PredictionEngine, query_from_signal
from school_delay.services.scoring import (
    ScoringConfig,
    cold_factor,
    ice_factor,
    snow_amount_factor,
    total_probability,
)
from school_delay.services.signals import (
    calculate_wind_chill,
    estimate_snowfall,
    determine_weather_type,
    parse_wind_speed,
    period_text,
)
from school_delay.rounding import clamp, round_half_up

STATUS_UNKNOWN = "unknown"
SCHOOL_DAYS = 5


@dataclass
class DayPeriods:
    day: Optional[ForecastPeriod] = None
    night: Optional[ForecastPeriod] = None
    previous_night: Optional[ForecastPeriod] = None

    @property
    def available(self) -> bool:
        return self.day is not None or self.night is not None


@dataclass
class DayOutlook:
    date: str
    day: str
    predicted_status: str
    probability: int = 0
    delay_probability: int = 0
    closure_probability: int = 0
    factors: List[str] = field(default_factory=list)
    temperature_high: Optional[float] = None
    temperature_low: Optional[float] = None
    feels_like_low: Optional[float] = None
    wind_mph: int = 0
    snowfall: float = 0.0
    weather_type: Optional[str] = None
    forecast: str = "Forecast not yet available"
    alerts: List[str] = field(default_factory=list)
    schools: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "day": self.day,
            "temperature": {"high": self.temperature_high, "low": self.temperature_low},
            "feels_like_low": self.feels_like_low,
            "wind_mph": self.wind_mph,
            "snowfall": self.snowfall,
            "weather_type": self.weather_type,
            "forecast": self.forecast,
            "alerts": self.alerts,
            "school_prediction": {
                "predicted_status": self.predicted_status,
                "probability": self.probability,
                "delay_probability": self.delay_probability,
                "closure_probability": self.closure_probability,
                "factors": self.factors,
            },
            "schools": self.schools,
        }


def week_start(today: date) -> date:
    """Monday of the current school week; on weekends, the coming Monday."""
    weekday = today.weekday()
    if weekday == 5:
        return today + timedelta(days=2)
    if weekday == 6:
        return today + timedelta(days=1)
    return today - timedelta(days=weekday)


def periods_for(periods: Sequence[ForecastPeriod], target: date) -> DayPeriods:
    previous = target - timedelta(days=1)
    found = DayPeriods()
    for period in periods:
        start = period.start_date
        if start == target and period.is_daytime and found.day is None:
            found.day = period
        elif start == target and not period.is_daytime and found.night is None:
            found.night = period
        elif start == previous and not period.is_daytime and found.previous_night is None:
            found.previous_night = period
    return found


def day_signal(periods: DayPeriods) -> WeatherSignal:
    """Signal for one school day: overnight low, strongest wind, day+night forecast text."""
    high = periods.day.temperature if periods.day else None
    low_period = periods.night or periods.previous_night
    low = low_period.temperature if low_period else high
    wind = max(
        parse_wind_speed(periods.day.wind_speed) if periods.day else 0,
        parse_wind_speed(periods.night.wind_speed) if periods.night else 0,
    )
    text = period_text(p for p in (periods.day, periods.night) if p is not None)
    feels_like = calculate_wind_chill(low, wind)
    return WeatherSignal(
        temperature_f=low,
        wind_chill_f=feels_like,
        snowfall_estimate_in=estimate_snowfall(text),
        weather_type=determine_weather_type(text, feels_like),
    )


def tomorrow_signal(forecast: Optional[Forecast], tomorrow: date) -> Optional[WeatherSignal]:
    if forecast is None or not forecast.periods:
        return None
    periods = periods_for(forecast.periods, tomorrow)
    if not periods.available:
        return None
    return day_signal(periods)


def predicted_status(probability: int, delay: int, closure: int) -> str:
    if probability >= 70:
        return STATUS_CLOSED if closure > delay else STATUS_DELAY
    if probability >= 40:
        return STATUS_DELAY
    return STATUS_OPEN


def _alerts_covering(alerts: Sequence[Alert], target: date) -> List[str]:
    covering = []
    for alert in alerts:
        onset = (alert.onset or "")[:10]
        expires = (alert.expires or "")[:10]
        if onset and expires and onset <= target.isoformat() <= expires:
            covering.append(alert.event)
    return covering


class WeeklyOutlook:
    def __init__(self, engine: PredictionEngine, *, config: Optional[ScoringConfig] = None) -> None:
        self.engine = engine
        self.config = config or engine.config

    def _day_probability(self, signal: WeatherSignal) -> tuple[int, Optional[HistoricalMatch], List[ScoringFactor]]:
        factors: List[ScoringFactor] = []
        for factor in (
            cold_factor(signal.wind_chill_f, self.config),
            snow_amount_factor(signal.snowfall_estimate_in, self.config),
        ):
            if factor:
                factors.append(factor)
        if signal.weather_type == WEATHER_ICE:
            factors.append(ice_factor(self.config))

        probability = total_probability(factors, self.config)
        match = find_matches(
            query_from_signal(signal), self.engine.history.all(), limit=self.config.global_match_limit
        )
        if match is not None:
            weight = self.config.historical_weight
            probability = round_half_up(probability * (1 - weight) + match.disruption_rate * weight)
            factors.append(historical_factor(match, weight))
        probability = clamp(probability, self.config.min_probability, self.config.max_probability)
        return probability, match, factors

    def outlook_for(self, target: date, forecast: Forecast, alerts: Sequence[Alert] = ()) -> DayOutlook:
        periods = periods_for(forecast.periods, target)
        outlook = DayOutlook(date=target.isoformat(), day=target.strftime("%A"), predicted_status=STATUS_UNKNOWN)
        if not periods.available:
            outlook.factors = ["Forecast data not available for this day"]
            return outlook

        signal = day_signal(periods)
        probability, match, factors = self._day_probability(signal)
        delay, closure = split_probability(probability, match)

        adjustments = self.engine.school_adjustments(delay, closure, query_from_signal(signal))
        schools = []
        for school in self.engine.schools:
            adjustment = adjustments[school.historical_name]
            schools.append(
                {
                    "code": school.code,
                    "name": school.short_name,
                    "predicted_status": predicted_status(
                        adjustment.delay_probability + adjustment.closure_probability,
                        adjustment.delay_probability,
                        adjustment.closure_probability,
                    ),
                    "delay_probability": adjustment.delay_probability,
                    "closure_probability": adjustment.closure_probability,
                    "historical_matches": adjustment.historical_matches,
                }
            )

        first = periods.day or periods.night
        outlook.predicted_status = predicted_status(probability, delay, closure)
        outlook.probability = probability
        outlook.delay_probability = delay
        outlook.closure_probability = closure
        outlook.factors = [factor.description for factor in factors]
        outlook.temperature_high = periods.day.temperature if periods.day else None
        outlook.temperature_low = signal.temperature_f
        outlook.feels_like_low = signal.wind_chill_f
        outlook.wind_mph = max(
            parse_wind_speed(periods.day.wind_speed) if periods.day else 0,
            parse_wind_speed(periods.night.wind_speed) if periods.night else 0,
        )
        outlook.snowfall = signal.snowfall_estimate_in
        outlook.weather_type = signal.weather_type
        outlook.forecast = first.short_forecast or "Unknown"
        outlook.alerts = _alerts_covering(alerts, target)
        outlook.schools = schools
        return outlook

    def generate(self, forecast: Forecast, alerts: Sequence[Alert] = (), *, today: date) -> Dict[str, Any]:
        start = week_start(today)
        days = [
            self.outlook_for(start + timedelta(days=offset), forecast, alerts).to_dict()
            for offset in range(SCHOOL_DAYS)
        ]
        return {
            "location": forecast.location,
            "week_of": start.isoformat(),
            "days": days,
            "disclaimer": (
                "Predictions are estimates based on NOAA forecast data and historical patterns. "
                "Always check official school district announcements."
            ),
        }
