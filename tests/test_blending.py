from school_delay.models import HistoricalMatch
from school_delay.services.blending import (
    HIGH_CLOSURE_RECOMMENDATION,
    HIGH_DELAY_RECOMMENDATION,
    blend,
    recommendation_for,
    risk_tier,
    split_probability,
)
from school_delay.services.scoring import HeuristicScore, ScoringConfig


def make_match(disruption=60, closure=40, delay=20, count=5):
    return HistoricalMatch(
        match_count=count,
        closed_count=2,
        delay_count=1,
        disruption_rate=disruption,
        closure_rate=closure,
        delay_rate=delay,
    )


def test_blend_with_history():
    prediction = blend(HeuristicScore(probability=50), make_match(), config=ScoringConfig())

    assert prediction.probability == 54
    assert prediction.closure_probability == 36
    assert prediction.delay_probability == 18
    assert prediction.status == "moderate"
    assert prediction.factors[-1].impact == 24
    assert prediction.factors[-1].description.startswith("Historical pattern (5 similar days")


def test_blend_without_history_keeps_heuristic():
    prediction = blend(HeuristicScore(probability=80), None, config=ScoringConfig())

    assert prediction.probability == 80
    assert (prediction.delay_probability, prediction.closure_probability) == (36, 44)
    assert prediction.status == "high"
    assert prediction.recommendation == HIGH_CLOSURE_RECOMMENDATION
    assert prediction.historical_match is None


def test_history_with_no_disruptions_uses_split_table():
    prediction = blend(HeuristicScore(probability=40), make_match(0, 0, 0), config=ScoringConfig())

    assert prediction.probability == 24
    assert (prediction.delay_probability, prediction.closure_probability) == (18, 6)


def test_split_table_bands():
    assert split_probability(80) == (36, 44)
    assert split_probability(60) == (33, 27)
    assert split_probability(20) == (15, 5)
    assert split_probability(0) == (0, 0)


def test_split_rounds_exact_halves_up():
    # 70 * 45% = 31.5 and 70 * 55% = 38.5
    assert split_probability(70) == (32, 39)
    assert split_probability(85) == (30, 55)
    assert split_probability(50) == (33, 18)


def test_risk_tiers():
    assert risk_tier(95) == "high"
    assert risk_tier(70) == "high"
    assert risk_tier(69) == "moderate"
    assert risk_tier(40) == "moderate"
    assert risk_tier(39) == "low"
    assert risk_tier(15) == "low"
    assert risk_tier(14) == "minimal"


def test_high_tier_recommendation_follows_larger_component():
    assert recommendation_for("high", delay_probability=30, closure_probability=50) == HIGH_CLOSURE_RECOMMENDATION
    assert recommendation_for("high", delay_probability=50, closure_probability=50) == HIGH_DELAY_RECOMMENDATION
