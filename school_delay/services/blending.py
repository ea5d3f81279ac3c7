from __future__ import annotations

from typing import List, Optional, Tuple

from school_delay.models import HistoricalMatch, Prediction, ScoringFactor
from school_delay.rounding import clamp, round_half_up
from school_delay.services.scoring import HeuristicScore, ScoringConfig

TIER_HIGH = "high"
TIER_MODERATE = "moderate"
TIER_LOW = "low"
TIER_MINIMAL = "minimal"

TIER_BANDS = ((70, TIER_HIGH), (40, TIER_MODERATE), (15, TIER_LOW))

# (lower bound of the probability band, delay percent, closure percent)
SPLIT_TABLE = ((85, 35, 65), (70, 45, 55), (55, 55, 45), (40, 65, 35), (0, 75, 25))

RECOMMENDATIONS = {
    TIER_MODERATE: "Moderate chance of delay. Check school district communications.",
    TIER_LOW: "Low chance of delay. Normal schedule expected.",
    TIER_MINIMAL: "No significant weather concerns. Normal schedule expected.",
}
HIGH_CLOSURE_RECOMMENDATION = "High likelihood of closure. Monitor local announcements."
HIGH_DELAY_RECOMMENDATION = "High likelihood of delay. Monitor local announcements."


def risk_tier(probability: int) -> str:
    for floor, tier in TIER_BANDS:
        if probability >= floor:
            return tier
    return TIER_MINIMAL


def recommendation_for(tier: str, *, delay_probability: int, closure_probability: int) -> str:
    if tier == TIER_HIGH:
        if closure_probability > delay_probability:
            return HIGH_CLOSURE_RECOMMENDATION
        return HIGH_DELAY_RECOMMENDATION
    return RECOMMENDATIONS[tier]


def split_probability(probability: int, match: Optional[HistoricalMatch] = None) -> Tuple[int, int]:
    """Divide a disruption probability into ``(delay, closure)`` components.

    Past outcomes decide the ratio when similar days were disrupted at all;
    otherwise more severe days lean further toward closure.
    """
    if match is not None and match.disruption_rate > 0:
        closure = round_half_up(probability * match.closure_rate / match.disruption_rate)
        delay = round_half_up(probability * match.delay_rate / match.disruption_rate)
        return delay, closure
    for floor, delay_percent, closure_percent in SPLIT_TABLE:
        if probability >= floor:
            break
    delay = round_half_up(probability * delay_percent / 100)
    closure = round_half_up(probability * closure_percent / 100)
    return delay, closure


def historical_factor(match: HistoricalMatch, weight: float) -> ScoringFactor:
    return ScoringFactor(
        f"Historical pattern ({match.match_count} similar days: "
        f"{match.closed_count} closed, {match.delay_count} delayed)",
        round_half_up(match.disruption_rate * weight),
    )


def blend_probability(heuristic: int, match: Optional[HistoricalMatch], config: ScoringConfig) -> int:
    probability = heuristic
    if match is not None:
        weight = config.historical_weight
        probability = round_half_up(heuristic * (1 - weight) + match.disruption_rate * weight)
    return clamp(probability, config.min_probability, config.max_probability)


def blend(
    score: HeuristicScore,
    match: Optional[HistoricalMatch],
    *,
    config: Optional[ScoringConfig] = None,
) -> Prediction:
    config = config or ScoringConfig()
    factors: List[ScoringFactor] = list(score.factors)
    if match is not None:
        factors.append(historical_factor(match, config.historical_weight))

    probability = blend_probability(score.probability, match, config)
    delay, closure = split_probability(probability, match)
    tier = risk_tier(probability)
    return Prediction(
        probability=probability,
        delay_probability=delay,
        closure_probability=closure,
        status=tier,
        recommendation=recommendation_for(tier, delay_probability=delay, closure_probability=closure),
        factors=factors,
        historical_match=match,
    )
