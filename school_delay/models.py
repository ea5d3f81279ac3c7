from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

STATUS_OPEN = "open"
STATUS_DELAY = "delay"
STATUS_CLOSED = "closed"
STATUS_EARLY_DISMISSAL = "early-dismissal"
STATUS_FLEXIBLE = "flexible-instruction"
SCHOOL_STATUSES = (STATUS_OPEN, STATUS_DELAY, STATUS_CLOSED, STATUS_EARLY_DISMISSAL, STATUS_FLEXIBLE)


def normalize_status(raw: Optional[str]) -> Optional[str]:
    """Map a free-text status onto the canonical vocabulary, or None if unrecognized."""
    if not raw:
        return None
    status = raw.strip().lower()
    if status == STATUS_CLOSED or "closed" in status or "remote" in status:
        return STATUS_CLOSED
    if "delay" in status:
        return STATUS_DELAY
    if "early dismissal" in status or "early-dismissal" in status:
        return STATUS_EARLY_DISMISSAL
    if "flexible" in status:
        return STATUS_FLEXIBLE
    if status == STATUS_OPEN:
        return STATUS_OPEN
    return None


WEATHER_ICE = "ice"
WEATHER_HEAVY_SNOW = "heavy snow"
WEATHER_SNOW = "snow"
WEATHER_FRIGID = "frigid temperature"
WEATHER_WIND = "wind"
WEATHER_NONE = "none"

SOURCE_LIVE = "live"
SOURCE_BACKTEST = "backtest"


@dataclass(frozen=True)
class HistoricalRecord:
    """A past school day: the weather that morning and what the school did.

    Records are append-only and keyed by ``(school, date)``.
    """

    school: str
    date: str
    status: str
    temperature: float
    feels_like: float
    snowfall: float = 0.0
    type: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.school, self.date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "school": self.school,
            "date": self.date,
            "status": self.status,
            "temperature": self.temperature,
            "feels_like": self.feels_like,
            "snowfall": self.snowfall,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoricalRecord":
        status = normalize_status(data.get("status"))
        if status is None:
            raise ValueError(f"unrecognized status {data.get('status')!r}")
        # Older exports spell the field ``feelsLike``.
        feels_like = data.get("feels_like", data.get("feelsLike"))
        temperature = data.get("temperature")
        return cls(
            school=data["school"],
            date=str(data["date"]),
            status=status,
            temperature=float(temperature) if temperature is not None else 32.0,
            feels_like=float(feels_like) if feels_like is not None else float(temperature or 32.0),
            snowfall=max(0.0, float(data.get("snowfall") or 0.0)),
            type=data.get("type") or "",
        )


@dataclass
class CurrentConditions:
    """Latest station observation, normalized to imperial units."""

    temperature_f: Optional[float] = None
    wind_speed_mph: Optional[float] = None
    wind_direction: Optional[float] = None
    description: Optional[str] = None
    station: Optional[str] = None
    location: Optional[str] = None
    timestamp: Optional[str] = None
    humidity: Optional[float] = None
    dewpoint_f: Optional[float] = None
    visibility_m: Optional[float] = None
    pressure_pa: Optional[float] = None


@dataclass
class ForecastPeriod:
    name: str = ""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    temperature: Optional[float] = None
    temperature_unit: str = "F"
    wind_speed: str = ""
    wind_direction: Optional[str] = None
    short_forecast: str = ""
    detailed_forecast: str = ""
    is_daytime: bool = True
    precipitation_chance: Optional[float] = None

    @property
    def text(self) -> str:
        return (self.detailed_forecast or self.short_forecast or "").lower()

    @property
    def start_date(self) -> Optional[date]:
        if not self.start_time:
            return None
        try:
            return datetime.fromisoformat(self.start_time).date()
        except ValueError:
            return None


@dataclass
class Forecast:
    periods: List[ForecastPeriod] = field(default_factory=list)
    location: Optional[str] = None
    updated: Optional[str] = None


@dataclass
class Alert:
    event: str = ""
    severity: str = ""
    id: Optional[str] = None
    certainty: Optional[str] = None
    urgency: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    instruction: Optional[str] = None
    onset: Optional[str] = None
    expires: Optional[str] = None
    areas: str = ""


@dataclass
class SchoolStatus:
    status: str
    source: str
    last_checked: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "source": self.source, "last_checked": self.last_checked}


@dataclass(frozen=True)
class WeatherSignal:
    temperature_f: Optional[float] = None
    wind_chill_f: Optional[float] = None
    snowfall_estimate_in: float = 0.0
    weather_type: str = WEATHER_NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature_f,
            "wind_chill": self.wind_chill_f,
            "snowfall": self.snowfall_estimate_in,
            "type": self.weather_type,
        }


@dataclass(frozen=True)
class ScoringFactor:
    description: str
    impact: int

    def to_dict(self) -> Dict[str, Any]:
        return {"factor": self.description, "impact": self.impact}


@dataclass(frozen=True)
class MatchedRecord:
    record: HistoricalRecord
    similarity: int

    def to_dict(self) -> Dict[str, Any]:
        return {**self.record.to_dict(), "similarity": self.similarity}


@dataclass
class HistoricalMatch:
    """Aggregate outcome of the closest past weather days."""

    match_count: int
    closed_count: int
    delay_count: int
    disruption_rate: int
    closure_rate: int
    delay_rate: int
    top_matches: List[MatchedRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_count": self.match_count,
            "closed_count": self.closed_count,
            "delay_count": self.delay_count,
            "disruption_rate": self.disruption_rate,
            "closure_rate": self.closure_rate,
            "delay_rate": self.delay_rate,
            "top_matches": [match.to_dict() for match in self.top_matches],
        }


@dataclass
class Prediction:
    probability: int
    delay_probability: int
    closure_probability: int
    status: str
    recommendation: str
    factors: List[ScoringFactor] = field(default_factory=list)
    historical_match: Optional[HistoricalMatch] = None
    signal: Optional[WeatherSignal] = None
    disclaimer: str = (
        "This is an estimate based on weather conditions. Always check official school "
        "district announcements for actual delay/closure information."
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability": self.probability,
            "delay_probability": self.delay_probability,
            "closure_probability": self.closure_probability,
            "status": self.status,
            "recommendation": self.recommendation,
            "factors": [factor.to_dict() for factor in self.factors],
            "historical_match": self.historical_match.to_dict() if self.historical_match else None,
            "signal": self.signal.to_dict() if self.signal else None,
            "disclaimer": self.disclaimer,
        }


@dataclass
class SchoolPrediction:
    code: str
    name: str
    short_name: str
    delay_probability: int
    closure_probability: int
    risk_tier: str
    historical_matches: int = 0
    current_status: str = "unknown"
    status_source: str = "unavailable"
    last_checked: Optional[str] = None
    website: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "short_name": self.short_name,
            "website": self.website,
            "delay_probability": self.delay_probability,
            "closure_probability": self.closure_probability,
            "risk_tier": self.risk_tier,
            "historical_matches": self.historical_matches,
            "current_status": self.current_status,
            "status_source": self.status_source,
            "last_checked": self.last_checked,
        }


@dataclass
class PredictionLogEntry:
    """A per-school prediction for one date.

    Entries start pending (``actual_status`` is None) and are resolved exactly
    once, when the real outcome for ``date`` becomes known.
    """

    date: str
    school: str
    delay_probability: int
    closure_probability: int
    predicted_disruption: bool
    actual_status: Optional[str] = None
    correct: Optional[bool] = None
    source: str = SOURCE_LIVE

    @property
    def key(self) -> Tuple[str, str]:
        return (self.date, self.school)

    @property
    def is_resolved(self) -> bool:
        return self.correct is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "school": self.school,
            "delay_probability": self.delay_probability,
            "closure_probability": self.closure_probability,
            "predicted_disruption": self.predicted_disruption,
            "actual_status": self.actual_status,
            "correct": self.correct,
            "source": self.source,
        }
