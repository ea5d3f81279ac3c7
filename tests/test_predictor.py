from school_delay.models import (
    CurrentConditions,
    Forecast,
    ForecastPeriod,
    HistoricalRecord,
    SchoolStatus,
    WeatherSignal,
)
from school_delay.schools import SchoolMeta
from school_delay.services.blending import HIGH_CLOSURE_RECOMMENDATION
from school_delay.services.predictor import PredictionEngine, calculate_delay_probability
from school_delay.services.scoring import ScoringConfig
from school_delay.storage import InMemoryHistoricalStore

SCHOOLS = [
    SchoolMeta("IASD", "Indiana Area School District", "Indiana Area", "Indiana"),
    SchoolMeta("HCSD", "Homer-Center School District", "Homer-Center", "Homer-Center"),
]

CURRENT = CurrentConditions(temperature_f=5, wind_speed_mph=20)
FORECAST = Forecast(periods=[ForecastPeriod(detailed_forecast="Snow. 6 to 8 inches of snow.")])


def storm_days(school="Indiana", count=3):
    return [
        HistoricalRecord(school, f"2024-01-{day:02d}", "closed", 5.0, -15.0, 8.0, "heavy snow")
        for day in range(10, 10 + count)
    ]


def make_engine(records=()):
    return PredictionEngine(InMemoryHistoricalStore(records), schools=SCHOOLS, config=ScoringConfig())


def test_heuristic_only_prediction():
    prediction = calculate_delay_probability(CURRENT, FORECAST, config=ScoringConfig())

    assert prediction.probability == 85
    assert prediction.status == "high"
    assert prediction.closure_probability == 55
    assert prediction.delay_probability == 30
    assert prediction.recommendation == HIGH_CLOSURE_RECOMMENDATION
    assert prediction.historical_match is None
    assert prediction.signal.wind_chill_f == -15
    assert prediction.signal.snowfall_estimate_in == 8


def test_hourly_forecast_fills_in_for_missing_forecast():
    prediction = calculate_delay_probability(CURRENT, None, FORECAST, [], config=ScoringConfig())
    assert prediction.probability == 85


def test_no_data_at_all_is_a_quiet_prediction():
    prediction = calculate_delay_probability(None, None, None, None, config=ScoringConfig())

    assert prediction.probability == 0
    assert prediction.status == "minimal"
    assert prediction.factors == []


def test_history_is_blended_in():
    engine = make_engine(storm_days())

    prediction = engine.calculate_delay_probability(CURRENT, FORECAST)

    assert prediction.historical_match.match_count == 3
    assert prediction.probability == 91
    assert prediction.closure_probability == 91
    assert prediction.delay_probability == 0
    assert prediction.factors[-1].description.startswith("Historical pattern (3 similar days: 3 closed")


def test_historical_lookups():
    engine = make_engine(storm_days() + storm_days("Homer-Center", count=1))

    assert engine.get_historical_prediction(5, -15, 8, "heavy snow").match_count == 4
    assert engine.get_school_historical_prediction("Indiana", 5, -15, 8, "heavy snow").match_count == 3
    assert engine.get_school_historical_prediction("Purchase Line", 5, -15, 8, "heavy snow") is None
    assert engine.get_historical_prediction(60, 60, 0, "") is None


def test_per_school_predictions():
    engine = make_engine(storm_days())
    prediction = engine.calculate_delay_probability(CURRENT, FORECAST)
    statuses = {"IASD": SchoolStatus("closed", "WTAE", "2025-01-13T11:00:00+00:00")}

    schools = {school.code: school for school in engine.predict_schools(prediction, statuses)}

    indiana = schools["IASD"]
    assert indiana.historical_matches == 3
    assert indiana.closure_probability == 95
    assert indiana.delay_probability == 0
    assert indiana.risk_tier == "high"
    assert indiana.current_status == "closed"
    assert indiana.status_source == "WTAE"

    homer = schools["HCSD"]
    assert homer.historical_matches == 0
    assert homer.closure_probability == prediction.closure_probability
    assert homer.current_status == "unknown"
    assert homer.status_source == "unavailable"


def test_signal_lookup_without_wind_chill_uses_temperature():
    # only close enough when feels-like is taken from the 60F temperature
    engine = make_engine([HistoricalRecord("Indiana", "2024-03-01", "delay", 60.0, 60.0, 0.75, "ice")])

    match = engine.match_for_signal(WeatherSignal(temperature_f=60))

    assert match.match_count == 1
    assert engine.get_historical_prediction(60, 32, 0, "none") is None
