"""Nearest-neighbour lookup over past (weather -> outcome) school days."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from school_delay.models import (
    STATUS_CLOSED,
    STATUS_DELAY,
    WEATHER_NONE,
    HistoricalMatch,
    HistoricalRecord,
    MatchedRecord,
)
from school_delay.rounding import round_half_up

CATEGORY_ICE = "ice"
CATEGORY_HEAVY_SNOW = "heavy-snow"
CATEGORY_LIGHT_SNOW = "light-snow"
CATEGORY_COLD_ONLY = "cold-only"

MAX_SNOW_DIFF = 5.0
MIN_SIMILARITY = 5
GLOBAL_LIMIT = 8
SCHOOL_LIMIT = 5
TOP_MATCHES = 3


@dataclass(frozen=True)
class MatchQuery:
    temperature: float
    feels_like: float
    snowfall: float = 0.0
    weather_type: str = ""

    @property
    def category(self) -> str:
        return categorize(self.snowfall, self.weather_type)


def categorize(snow: Optional[float], weather_type: Optional[str]) -> str:
    text = (weather_type or "").lower()
    amount = snow or 0.0
    if "ice" in text or "freezing" in text:
        return CATEGORY_ICE
    if amount >= 3:
        return CATEGORY_HEAVY_SNOW
    if amount >= 1 or "snow" in text or "flurr" in text:
        return CATEGORY_LIGHT_SNOW
    return CATEGORY_COLD_ONLY


def _closeness(diff: float, tiers) -> int:
    for limit, points in tiers:
        if diff <= limit:
            return points
    return 0


_TEMPERATURE_TIERS = ((5, 3), (10, 2), (15, 1))
_SNOW_TIERS = ((0.5, 4), (1, 3), (2, 2), (3, 1))
_OPPOSITES = {(CATEGORY_COLD_ONLY, CATEGORY_HEAVY_SNOW), (CATEGORY_HEAVY_SNOW, CATEGORY_COLD_ONLY)}


def _type_text(value: Optional[str]) -> str:
    text = (value or "").lower().strip()
    return "" if text == WEATHER_NONE else text


def similarity(record: HistoricalRecord, query: MatchQuery) -> Optional[int]:
    """Similarity of a past day to the query, or None when it is disqualified.

    A snowfall difference above five inches disqualifies the record outright,
    whatever the other fields say.
    """
    snow_diff = abs(record.snowfall - query.snowfall)
    if snow_diff > MAX_SNOW_DIFF:
        return None

    score = 0
    record_category = categorize(record.snowfall, record.type)
    if record_category == query.category:
        score += 4
    elif (query.category, record_category) in _OPPOSITES:
        score -= 6
    else:
        score -= 2

    score += _closeness(abs(record.temperature - query.temperature), _TEMPERATURE_TIERS)
    score += _closeness(abs(record.feels_like - query.feels_like), _TEMPERATURE_TIERS)
    score += _closeness(snow_diff, _SNOW_TIERS)

    current_type = _type_text(query.weather_type)
    record_type = _type_text(record.type)
    if current_type and record_type:
        if current_type == record_type:
            score += 2
        elif current_type in record_type or record_type in current_type:
            score += 1
    return score


def rank_matches(query: MatchQuery, records: Iterable[HistoricalRecord]) -> List[MatchedRecord]:
    scored = []
    for record in records:
        score = similarity(record, query)
        if score is None or score < MIN_SIMILARITY:
            continue
        scored.append(MatchedRecord(record=record, similarity=score))
    # sorted() is stable: ties keep store order
    return sorted(scored, key=lambda match: match.similarity, reverse=True)


def _rate(count: int, total: int) -> int:
    return round_half_up(100 * count / total)


def find_matches(
    query: MatchQuery, records: Iterable[HistoricalRecord], *, limit: int = GLOBAL_LIMIT
) -> Optional[HistoricalMatch]:
    """Aggregate outcomes of the ``limit`` most similar past days, or None if nothing qualifies."""
    matches = rank_matches(query, records)[:limit]
    if not matches:
        return None

    closed = sum(1 for match in matches if match.record.status == STATUS_CLOSED)
    delayed = sum(1 for match in matches if match.record.status == STATUS_DELAY)
    total = len(matches)
    return HistoricalMatch(
        match_count=total,
        closed_count=closed,
        delay_count=delayed,
        disruption_rate=_rate(closed + delayed, total),
        closure_rate=_rate(closed, total),
        delay_rate=_rate(delayed, total),
        top_matches=matches[:TOP_MATCHES],
    )
