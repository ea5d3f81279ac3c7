from school_delay.models import HistoricalMatch
from school_delay.services.adjustment import adjust_for_school


def make_match(count, closure_rate, delay_rate):
    return HistoricalMatch(
        match_count=count,
        closed_count=0,
        delay_count=0,
        disruption_rate=closure_rate + delay_rate,
        closure_rate=closure_rate,
        delay_rate=delay_rate,
    )


def test_school_history_pulls_probabilities():
    adjustment = adjust_for_school(30, 20, make_match(4, 75, 25))

    assert adjustment.delay_probability == 28
    assert adjustment.closure_probability == 42
    assert adjustment.combined == 42
    assert adjustment.risk_tier == "moderate"
    assert adjustment.historical_matches == 4


def test_thin_history_passes_global_values_through():
    adjustment = adjust_for_school(30, 20, make_match(1, 100, 0))

    assert (adjustment.delay_probability, adjustment.closure_probability) == (30, 20)
    assert adjustment.historical_matches == 1
    assert adjustment.risk_tier == "low"


def test_no_history():
    adjustment = adjust_for_school(5, 3, None)

    assert (adjustment.delay_probability, adjustment.closure_probability) == (5, 3)
    assert adjustment.historical_matches == 0
    assert adjustment.risk_tier == "minimal"
