from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from school_delay.models import HistoricalMatch
from school_delay.rounding import round_half_up
from school_delay.services.blending import risk_tier

MIN_SCHOOL_MATCHES = 2
SCHOOL_WEIGHT = 0.4


@dataclass(frozen=True)
class SchoolAdjustment:
    delay_probability: int
    closure_probability: int
    risk_tier: str
    historical_matches: int = 0

    @property
    def combined(self) -> int:
        return max(self.delay_probability, self.closure_probability)


def adjust_for_school(
    delay_probability: int,
    closure_probability: int,
    school_match: Optional[HistoricalMatch],
    *,
    min_matches: int = MIN_SCHOOL_MATCHES,
    weight: float = SCHOOL_WEIGHT,
) -> SchoolAdjustment:
    """Pull the district-wide probabilities toward one school's own track record.

    With fewer than ``min_matches`` similar days for the school its history is
    too thin to trust, and the global numbers pass through unchanged.
    """
    delay, closure = delay_probability, closure_probability
    matches = school_match.match_count if school_match else 0
    if school_match is not None and matches >= min_matches:
        delay = round_half_up(delay_probability * (1 - weight) + school_match.delay_rate * weight)
        closure = round_half_up(closure_probability * (1 - weight) + school_match.closure_rate * weight)
    return SchoolAdjustment(
        delay_probability=delay,
        closure_probability=closure,
        risk_tier=risk_tier(max(delay, closure)),
        historical_matches=matches,
    )
