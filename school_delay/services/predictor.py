from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from school_delay.config import app_config
from school_delay.models import (
    Alert,
    CurrentConditions,
    Forecast,
    HistoricalMatch,
    HistoricalRecord,
    Prediction,
    SchoolPrediction,
    SchoolStatus,
    WeatherSignal,
)
from school_delay.schools import SchoolMeta, all_schools
from school_delay.services.adjustment import SchoolAdjustment, adjust_for_school
from school_delay.services.blending import blend
from school_delay.services.matching import MatchQuery, find_matches
from school_delay.services.scoring import ScoringConfig, score_conditions
from school_delay.services.signals import extract_signal
from school_delay.storage import HistoricalKey, Repository

DEFAULT_TEMPERATURE_F = 32.0


def query_from_signal(signal: WeatherSignal) -> MatchQuery:
    """Historical lookup for a signal; missing readings default to freezing."""
    temperature = signal.temperature_f if signal.temperature_f is not None else DEFAULT_TEMPERATURE_F
    feels_like = signal.wind_chill_f if signal.wind_chill_f is not None else temperature
    return MatchQuery(
        temperature=temperature,
        feels_like=feels_like,
        snowfall=signal.snowfall_estimate_in,
        weather_type=signal.weather_type,
    )


def _forecast_source(forecast: Optional[Forecast], hourly: Optional[Forecast]) -> Optional[Forecast]:
    if forecast is not None and forecast.periods:
        return forecast
    return hourly


def calculate_delay_probability(
    current: Optional[CurrentConditions],
    forecast: Optional[Forecast],
    hourly: Optional[Forecast] = None,
    alerts: Optional[Sequence[Alert]] = None,
    *,
    history: Iterable[HistoricalRecord] = (),
    config: Optional[ScoringConfig] = None,
) -> Prediction:
    """District-wide prediction: heuristic score blended with similar past days.

    The hourly forecast stands in for the period forecast when the latter is
    unavailable. Never raises on missing input.
    """
    config = config or ScoringConfig.from_sources(config_data=app_config.scoring)
    source = _forecast_source(forecast, hourly)
    signal = extract_signal(current, source)
    score = score_conditions(current, source, alerts, config=config)
    match = find_matches(query_from_signal(signal), history, limit=config.global_match_limit)
    prediction = blend(score, match, config=config)
    prediction.signal = signal
    return prediction


class PredictionEngine:
    """Binds the pure pipeline to a historical record store and the school roster."""

    def __init__(
        self,
        history: Repository[HistoricalKey, HistoricalRecord],
        *,
        schools: Optional[Sequence[SchoolMeta]] = None,
        config: Optional[ScoringConfig] = None,
    ) -> None:
        self.history = history
        self.schools = list(schools) if schools is not None else all_schools()
        self.config = config or ScoringConfig.from_sources(config_data=app_config.scoring)

    def calculate_delay_probability(
        self,
        current: Optional[CurrentConditions],
        forecast: Optional[Forecast],
        hourly: Optional[Forecast] = None,
        alerts: Optional[Sequence[Alert]] = None,
    ) -> Prediction:
        return calculate_delay_probability(
            current, forecast, hourly, alerts, history=self.history.all(), config=self.config
        )

    def get_historical_prediction(
        self, temperature: float, feels_like: float, snowfall: float, weather_type: str = ""
    ) -> Optional[HistoricalMatch]:
        query = MatchQuery(temperature, feels_like, snowfall or 0.0, weather_type or "")
        return find_matches(query, self.history.all(), limit=self.config.global_match_limit)

    def match_for_signal(self, signal: WeatherSignal) -> Optional[HistoricalMatch]:
        return find_matches(query_from_signal(signal), self.history.all(), limit=self.config.global_match_limit)

    def get_school_historical_prediction(
        self,
        school_name: str,
        temperature: float,
        feels_like: float,
        snowfall: float,
        weather_type: str = "",
    ) -> Optional[HistoricalMatch]:
        records = [record for record in self.history.all() if record.school == school_name]
        if not records:
            return None
        query = MatchQuery(temperature, feels_like, snowfall or 0.0, weather_type or "")
        return find_matches(query, records, limit=self.config.school_match_limit)

    def school_adjustments(
        self, delay_probability: int, closure_probability: int, query: MatchQuery
    ) -> Dict[str, SchoolAdjustment]:
        """Per-school probabilities keyed by the school's historical name."""
        adjustments: Dict[str, SchoolAdjustment] = {}
        records = self.history.all()
        for school in self.schools:
            school_records = [record for record in records if record.school == school.historical_name]
            school_match = (
                find_matches(query, school_records, limit=self.config.school_match_limit)
                if school_records
                else None
            )
            adjustments[school.historical_name] = adjust_for_school(
                delay_probability,
                closure_probability,
                school_match,
                min_matches=self.config.school_min_matches,
                weight=self.config.historical_weight,
            )
        return adjustments

    def predict_schools(
        self,
        prediction: Prediction,
        statuses: Optional[Mapping[str, SchoolStatus]] = None,
    ) -> List[SchoolPrediction]:
        statuses = statuses or {}
        query = query_from_signal(prediction.signal or WeatherSignal())
        adjustments = self.school_adjustments(
            prediction.delay_probability, prediction.closure_probability, query
        )
        results: List[SchoolPrediction] = []
        for school in self.schools:
            adjustment = adjustments[school.historical_name]
            status = statuses.get(school.code)
            results.append(
                SchoolPrediction(
                    code=school.code,
                    name=school.name,
                    short_name=school.short_name,
                    website=school.website,
                    delay_probability=adjustment.delay_probability,
                    closure_probability=adjustment.closure_probability,
                    risk_tier=adjustment.risk_tier,
                    historical_matches=adjustment.historical_matches,
                    current_status=status.status if status else "unknown",
                    status_source=status.source if status else "unavailable",
                    last_checked=status.last_checked if status else None,
                )
            )
        return results
