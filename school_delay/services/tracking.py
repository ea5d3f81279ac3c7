"""Prediction log bookkeeping: save tomorrow's calls, grade them, report accuracy."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from school_delay.logging import get_logger
from school_delay.models import (
    SOURCE_BACKTEST,
    SOURCE_LIVE,
    STATUS_OPEN,
    HistoricalRecord,
    PredictionLogEntry,
    ScoringFactor,
    normalize_status,
)
from school_delay.rounding import round_half_up
from school_delay.services.adjustment import SchoolAdjustment
from school_delay.services.blending import split_probability
from school_delay.services.scoring import (
    ScoringConfig,
    cold_factor,
    ice_factor,
    snow_amount_factor,
    total_probability,
)
from school_delay.storage import LogKey, Repository

logger = get_logger(__name__)

ACCURACY_WINDOW = 30

STATUS_ACTIVE = "active"
STATUS_COLLECTING = "collecting"
STATUS_NO_DATA = "no-data"

# Alert points assumed for backtests, where the alerts that were active on the
# day are unknown. Keyed by how severe the stored conditions were.
BACKTEST_ALERT_SEVERE = 30
BACKTEST_ALERT_MODERATE = 20
BACKTEST_ALERT_MINOR = 15


@dataclass
class AccuracyReport:
    total: int
    correct: int
    accuracy: int
    status: str
    streak: int = 0
    pending_count: int = 0
    total_resolved: int = 0
    last_resolved_date: Optional[str] = None
    live_count: int = 0
    backtest_count: int = 0
    live_accuracy: Optional[int] = None
    backtest_accuracy: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "correct": self.correct,
            "accuracy": self.accuracy,
            "status": self.status,
            "streak": self.streak,
            "pending_count": self.pending_count,
            "total_resolved": self.total_resolved,
            "last_resolved_date": self.last_resolved_date,
            "live_count": self.live_count,
            "backtest_count": self.backtest_count,
            "live_accuracy": self.live_accuracy,
            "backtest_accuracy": self.backtest_accuracy,
        }


@dataclass
class SeedResult:
    seeded: int = 0
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0

    @property
    def accuracy(self) -> Optional[int]:
        graded = self.correct + self.incorrect
        if not graded:
            return None
        return round_half_up(100 * self.correct / graded)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seeded": self.seeded,
            "correct": self.correct,
            "incorrect": self.incorrect,
            "skipped": self.skipped,
            "accuracy": self.accuracy,
        }


def _percent(entries: List[PredictionLogEntry]) -> Optional[int]:
    if not entries:
        return None
    return round_half_up(100 * sum(1 for entry in entries if entry.correct) / len(entries))


def estimated_alert_points(record: HistoricalRecord, config: ScoringConfig) -> int:
    snow = record.snowfall
    feels_like = record.feels_like
    weather_type = (record.type or "").lower()
    if snow >= config.heavy_snow_inches or feels_like <= config.extreme_cold_threshold:
        return BACKTEST_ALERT_SEVERE
    if snow >= config.moderate_snow_inches or "ice" in weather_type or feels_like <= config.very_cold_threshold:
        return BACKTEST_ALERT_MODERATE
    if snow >= config.light_snow_inches or feels_like <= config.cold_threshold or "frigid" in weather_type:
        return BACKTEST_ALERT_MINOR
    return 0


def simulate_probability(record: HistoricalRecord, config: ScoringConfig) -> Tuple[int, int, int]:
    """Re-score a stored day from its metrics alone; returns ``(probability, delay, closure)``."""
    factors: List[ScoringFactor] = []
    for factor in (cold_factor(record.feels_like, config), snow_amount_factor(record.snowfall, config)):
        if factor:
            factors.append(factor)
    weather_type = (record.type or "").lower()
    if "ice" in weather_type or "freezing rain" in weather_type:
        factors.append(ice_factor(config))
    alert_points = estimated_alert_points(record, config)
    if alert_points:
        factors.append(ScoringFactor("Estimated weather alert", alert_points))

    probability = total_probability(factors, config)
    delay, closure = split_probability(probability)
    return probability, delay, closure


class AccuracyTracker:
    """Owns the prediction log; entries go pending -> resolved and never back."""

    def __init__(self, log: Repository[LogKey, PredictionLogEntry], *, config: Optional[ScoringConfig] = None) -> None:
        self.log = log
        self.config = config or ScoringConfig()

    def resolve_predictions(self, today: str, actual_statuses: Mapping[str, Optional[str]]) -> int:
        """Grade pending entries dated ``today`` against the statuses observed today.

        ``actual_statuses`` maps school name to its raw status. Entries whose
        status is missing or unrecognized stay pending.
        """
        resolved = 0
        for entry in self.log.all():
            if entry.date != today or entry.is_resolved:
                continue
            actual = normalize_status(actual_statuses.get(entry.school))
            if actual is None:
                continue
            entry.actual_status = actual
            entry.correct = entry.predicted_disruption == (actual != STATUS_OPEN)
            self.log.update_by_key(entry.key, entry)
            resolved += 1
            logger.info(
                "tracking.resolved",
                date=today,
                school=entry.school,
                actual=actual,
                correct=entry.correct,
            )
        return resolved

    def save_predictions(self, target_date: str, predictions: Mapping[str, SchoolAdjustment]) -> int:
        saved = 0
        for school, prediction in predictions.items():
            if self.log.find_by_key((target_date, school)) is not None:
                continue
            entry = PredictionLogEntry(
                date=target_date,
                school=school,
                delay_probability=prediction.delay_probability,
                closure_probability=prediction.closure_probability,
                predicted_disruption=prediction.combined >= self.config.disruption_threshold,
                source=SOURCE_LIVE,
            )
            if self.log.append(entry):
                saved += 1
        logger.info("tracking.saved", date=target_date, saved=saved)
        return saved

    def accuracy_report(self, *, window: int = ACCURACY_WINDOW) -> AccuracyReport:
        entries = sorted(self.log.all(), key=lambda entry: entry.date)
        resolved = [entry for entry in entries if entry.is_resolved]
        pending = len(entries) - len(resolved)

        if not resolved:
            return AccuracyReport(
                total=0,
                correct=0,
                accuracy=0,
                status=STATUS_COLLECTING if pending else STATUS_NO_DATA,
                pending_count=pending,
            )

        recent = resolved[-window:]
        correct = sum(1 for entry in recent if entry.correct)

        streak = 0
        for entry in reversed(resolved):
            if not entry.correct:
                break
            streak += 1

        live = [entry for entry in recent if entry.source != SOURCE_BACKTEST]
        backtest = [entry for entry in recent if entry.source == SOURCE_BACKTEST]
        return AccuracyReport(
            total=len(recent),
            correct=correct,
            accuracy=round_half_up(100 * correct / len(recent)),
            status=STATUS_ACTIVE,
            streak=streak,
            pending_count=pending,
            total_resolved=len(resolved),
            last_resolved_date=resolved[-1].date,
            live_count=len(live),
            backtest_count=len(backtest),
            live_accuracy=_percent(live),
            backtest_accuracy=_percent(backtest),
        )

    def seed_from_history(self, records: Iterable[HistoricalRecord]) -> SeedResult:
        """Add resolved backtest entries simulated from historical records.

        Dates already present in the log for a school are left alone, so
        seeding twice adds nothing the second time.
        """
        result = SeedResult()
        new_entries: List[PredictionLogEntry] = []
        seen = set()
        for record in records:
            key = (record.date, record.school)
            actual = normalize_status(record.status)
            if key in seen or actual is None or self.log.find_by_key(key) is not None:
                result.skipped += 1
                continue
            seen.add(key)

            probability, delay, closure = simulate_probability(record, self.config)
            # Backtests grade the combined probability, not max(delay, closure).
            predicted = probability >= self.config.disruption_threshold
            correct = predicted == (actual != STATUS_OPEN)
            new_entries.append(
                PredictionLogEntry(
                    date=record.date,
                    school=record.school,
                    delay_probability=delay,
                    closure_probability=closure,
                    predicted_disruption=predicted,
                    actual_status=actual,
                    correct=correct,
                    source=SOURCE_BACKTEST,
                )
            )
            if correct:
                result.correct += 1
            else:
                result.incorrect += 1

        new_entries.sort(key=lambda entry: (entry.date, entry.school))
        result.seeded = self.log.extend(new_entries)
        logger.info("tracking.seeded", **result.to_dict())
        return result
