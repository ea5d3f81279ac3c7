import os

from school_delay.models import Alert, CurrentConditions, Forecast, ForecastPeriod, ScoringFactor
from school_delay.services.scoring import (
    ScoringConfig,
    dedupe_factors,
    score_conditions,
)


def make_forecast(*texts):
    return Forecast(periods=[ForecastPeriod(detailed_forecast=text) for text in texts])


def test_cold_and_heavy_snow_add_up():
    current = CurrentConditions(temperature_f=5, wind_speed_mph=20)
    forecast = make_forecast("Snow. Total accumulation of 6 to 8 inches of snow.")

    result = score_conditions(current, forecast, [], config=ScoringConfig())

    assert result.probability == 85
    impacts = {factor.description: factor.impact for factor in result.factors}
    assert impacts["Extreme cold (wind chill -15°F)"] == 40
    assert impacts["Heavy snow forecast (8+ inches)"] == 45


def test_probability_is_capped_below_certainty():
    alerts = [
        Alert(event="Winter Storm Warning", severity="Extreme"),
        Alert(event="Blizzard Warning", severity="Severe"),
    ]
    current = CurrentConditions(temperature_f=-10, wind_speed_mph=25)
    forecast = make_forecast("Heavy snow, 10 to 14 inches. Freezing rain.")

    result = score_conditions(current, forecast, alerts, config=ScoringConfig())

    assert result.probability == 95


def test_no_inputs_scores_zero():
    result = score_conditions(None, None, None, config=ScoringConfig())
    assert result.probability == 0
    assert result.factors == []


def test_non_winter_alerts_are_ignored():
    alerts = [Alert(event="Flood Watch", severity="Severe")]
    result = score_conditions(None, None, alerts, config=ScoringConfig())
    assert result.probability == 0


def test_each_winter_alert_contributes():
    alerts = [
        Alert(event="Winter Weather Advisory", severity="Moderate"),
        Alert(event="Extreme Cold Warning", severity="Minor"),
    ]
    result = score_conditions(None, None, alerts, config=ScoringConfig())
    assert result.probability == 25 + 15


def test_snow_tier_is_monotonic():
    config = ScoringConfig()
    previous = -1
    for inches in (0, 1, 2, 3, 5, 6, 8, 12):
        forecast = make_forecast(f"Snow accumulation of {inches} inches.")
        probability = score_conditions(None, forecast, config=config).probability
        assert probability >= previous
        previous = probability


def test_snow_mention_without_amount():
    config = ScoringConfig()
    assert score_conditions(None, make_forecast("Chance of snow showers."), config=config).probability == 15
    assert score_conditions(None, make_forecast("Light snow likely."), config=config).probability == 5
    assert score_conditions(None, make_forecast("Heavy snow at times."), config=config).probability == 25


def test_repeated_factor_descriptions_are_reported_once():
    forecast = make_forecast("Freezing rain.", "Sleet and freezing rain.")
    result = score_conditions(None, forecast, config=ScoringConfig())

    descriptions = [factor.description for factor in result.factors]
    assert descriptions.count("Ice/freezing rain in forecast") == 1


def test_dedupe_keeps_first_occurrence():
    factors = [ScoringFactor("Snow", 15), ScoringFactor("Cold", 10), ScoringFactor("Snow", 30)]
    assert dedupe_factors(factors) == [ScoringFactor("Snow", 15), ScoringFactor("Cold", 10)]


def test_config_from_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("SCHOOLDELAY_SCORING_ICE_POINTS", "50")
    monkeypatch.setenv("SCHOOLDELAY_SCORING_HISTORICAL_WEIGHT", "0.5")

    config = ScoringConfig.from_sources(env=os.environ)

    assert config.ice_points == 50
    assert config.historical_weight == 0.5
    assert config.heavy_snow_points == 45


def test_config_file_and_mapping(tmp_path):
    path = tmp_path / "scoring.json"
    path.write_text('{"cold_points": 12, "max_probability": 90}')

    config = ScoringConfig.from_sources(
        config_path=str(path),
        env={"UNRELATED": "1"},
        config_data={"cold_points": 11, "light_snow_points": 20},
    )

    assert config.cold_points == 12
    assert config.light_snow_points == 20
    assert config.max_probability == 90
