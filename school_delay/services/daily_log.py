"""Once-a-day run: record what every school did today and the weather behind it."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from school_delay.config import NonWeatherClosure, app_config
from school_delay.logging import bound_context, get_logger
from school_delay.models import STATUS_OPEN, WEATHER_NONE, HistoricalRecord, WeatherSignal, normalize_status
from school_delay.services.feeds import FeedError, FeedSnapshot, gather_inputs
from school_delay.services.noaa import NoaaClient
from school_delay.services.predictor import PredictionEngine, query_from_signal
from school_delay.services.school_status import SchoolStatusService
from school_delay.services.signals import extract_signal
from school_delay.services.tracking import AccuracyTracker
from school_delay.services.weekly import tomorrow_signal

logger = get_logger(__name__)

WINTER_MONTHS = (11, 12, 1, 2, 3)
DEFAULT_TEMPERATURE_F = 32.0

SKIP_EXISTS = "Record already exists for today"
SKIP_UNKNOWN = "Unknown status"
SKIP_OUT_OF_SEASON = "School is open (outside winter season, no disruption to log)"


def is_winter_season(day: date) -> bool:
    return day.month in WINTER_MONTHS


def non_weather_closure(
    closures: Sequence[NonWeatherClosure], day: str, school: str
) -> Optional[NonWeatherClosure]:
    for closure in closures:
        if closure.applies_to(day, school):
            return closure
    return None


def build_record(school: str, day: str, status: str, signal: WeatherSignal) -> HistoricalRecord:
    temperature = signal.temperature_f if signal.temperature_f is not None else DEFAULT_TEMPERATURE_F
    if signal.wind_chill_f is not None:
        feels_like = signal.wind_chill_f
    else:
        feels_like = temperature
    if signal.weather_type and signal.weather_type != WEATHER_NONE:
        weather_type = signal.weather_type
    else:
        weather_type = "normal" if status == STATUS_OPEN else "unknown"
    return HistoricalRecord(
        school=school,
        date=day,
        status=status,
        temperature=float(temperature),
        feels_like=float(feels_like),
        snowfall=signal.snowfall_estimate_in,
        type=weather_type,
    )


@dataclass
class LogRunResult:
    date: str
    logged: List[HistoricalRecord] = field(default_factory=list)
    skipped: List[Dict[str, str]] = field(default_factory=list)
    errors: List[FeedError] = field(default_factory=list)
    predictions: Optional[Dict[str, int]] = None
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "logged": [record.to_dict() for record in self.logged],
            "skipped": self.skipped,
            "errors": [error.to_dict() for error in self.errors],
            "predictions": self.predictions,
            "summary": self.summary,
        }


class DailyWeatherLog:
    """Appends today's outcomes to history and rolls the prediction log forward."""

    def __init__(
        self,
        engine: PredictionEngine,
        tracker: AccuracyTracker,
        noaa: NoaaClient,
        status_service: SchoolStatusService,
        *,
        closures: Optional[Sequence[NonWeatherClosure]] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.engine = engine
        self.tracker = tracker
        self.noaa = noaa
        self.status_service = status_service
        self.closures = list(closures) if closures is not None else list(app_config.non_weather_closures)
        self._today = today

    def log_weather_data(self, *, force_log: bool = False, dry_run: bool = False) -> LogRunResult:
        today = self._today()
        day = today.isoformat()
        with bound_context(run_id=uuid.uuid4().hex[:12], run_date=day, dry_run=dry_run):
            result = self._run(today, force_log=force_log, dry_run=dry_run)
            logger.info("daily_log.finished", **{k: v for k, v in result.summary.items() if k != "weather"})
        return result

    def preview(self) -> LogRunResult:
        return self.log_weather_data(force_log=True, dry_run=True)

    def _run(self, today: date, *, force_log: bool, dry_run: bool) -> LogRunResult:
        day = today.isoformat()
        result = LogRunResult(date=day)

        snapshot = gather_inputs(self.noaa, self.status_service, include_hourly=False)
        result.errors.extend(snapshot.errors)
        if not snapshot.has_weather:
            result.errors.append(FeedError("no_weather_data", "Could not fetch weather data from NOAA"))

        signal = extract_signal(snapshot.current, snapshot.forecast)
        winter = is_winter_season(today)

        raw_statuses: Dict[str, Optional[str]] = {}
        for school in self.engine.schools:
            name = school.historical_name
            info = snapshot.statuses.get(school.code)
            raw_statuses[name] = info.status if info else None

            if self.engine.history.find_by_key((name, day)) is not None:
                self._skip(result, name, SKIP_EXISTS)
                continue
            closure = non_weather_closure(self.closures, day, name)
            if closure is not None:
                self._skip(result, name, f"Non-weather closure: {closure.reason}")
                continue
            status = normalize_status(raw_statuses[name])
            if status is None:
                self._skip(result, name, SKIP_UNKNOWN)
                continue
            if status == STATUS_OPEN and not winter and not force_log:
                self._skip(result, name, SKIP_OUT_OF_SEASON)
                continue

            record = build_record(name, day, status, signal)
            if not dry_run:
                self.engine.history.append(record)
            result.logged.append(record)
            logger.info("daily_log.logged", school=name, status=status, type=record.type)

        if not dry_run:
            try:
                result.predictions = self._track(today, raw_statuses, snapshot)
            except Exception as exc:
                logger.exception("daily_log.tracking_failed")
                result.errors.append(FeedError("prediction_tracking", str(exc)))

        result.summary = {
            "total_schools": len(self.engine.schools),
            "recorded": len(result.logged),
            "skipped": len(result.skipped),
            "weather": signal.to_dict(),
            "dry_run": dry_run,
        }
        return result

    def _track(self, today: date, raw_statuses: Dict[str, Optional[str]], snapshot: FeedSnapshot) -> Dict[str, int]:
        resolved = self.tracker.resolve_predictions(today.isoformat(), raw_statuses)

        tomorrow = today + timedelta(days=1)
        prediction = self.engine.calculate_delay_probability(
            snapshot.current, snapshot.forecast, None, snapshot.alerts
        )
        # Per-school history is matched on tomorrow's forecast when NOAA has it.
        signal = tomorrow_signal(snapshot.forecast, tomorrow) or prediction.signal or WeatherSignal()
        adjustments = self.engine.school_adjustments(
            prediction.delay_probability, prediction.closure_probability, query_from_signal(signal)
        )
        saved = self.tracker.save_predictions(tomorrow.isoformat(), adjustments)
        return {"resolved": resolved, "saved_for_tomorrow": saved}

    @staticmethod
    def _skip(result: LogRunResult, school: str, reason: str) -> None:
        result.skipped.append({"school": school, "reason": reason})
        logger.info("daily_log.skip", school=school, reason=reason)
