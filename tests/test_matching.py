from school_delay.models import HistoricalRecord
from school_delay.services.matching import MatchQuery, categorize, find_matches, similarity


def make_record(school="Indiana Area", date="2024-01-16", status="closed", **kwargs):
    values = {"temperature": 20.0, "feels_like": 10.0, "snowfall": 4.0, "type": "snow"}
    values.update(kwargs)
    return HistoricalRecord(school=school, date=date, status=status, **values)


QUERY = MatchQuery(temperature=20, feels_like=10, snowfall=4, weather_type="snow")


def test_categorize_examples():
    assert categorize(0, "clear") == "cold-only"
    assert categorize(4, "snow") == "heavy-snow"
    assert categorize(2, "") == "light-snow"
    assert categorize(0, "ice") == "ice"
    assert categorize(0, "freezing rain") == "ice"
    assert categorize(0, "flurries") == "light-snow"
    assert categorize(None, None) == "cold-only"


def test_identical_day_scores_highest():
    assert similarity(make_record(), QUERY) == 4 + 3 + 3 + 4 + 2


def test_large_snow_difference_disqualifies_exact_match():
    record = make_record(snowfall=10.0)
    query = MatchQuery(temperature=20, feels_like=10, snowfall=4.5, weather_type="snow")
    assert similarity(record, query) is None
    assert find_matches(query, [record]) is None


def test_opposite_categories_never_match():
    record = make_record(snowfall=0.0, type="frigid temperature")
    assert similarity(record, QUERY) < 5
    assert find_matches(QUERY, [record]) is None


def test_none_type_is_treated_as_missing():
    record = make_record(snowfall=0.0, type="none", temperature=30, feels_like=30)
    query = MatchQuery(temperature=30, feels_like=30, snowfall=0, weather_type="none")
    # no type bonus when either side is "none"
    assert similarity(record, query) == 4 + 3 + 3 + 4


def test_rates_are_rounded_percentages():
    records = [
        make_record(date="2024-01-01", status="closed"),
        make_record(date="2024-01-02", status="closed"),
        make_record(date="2024-01-03", status="delay"),
        make_record(date="2024-01-04", status="open"),
        make_record(date="2024-01-05", status="open"),
    ]

    match = find_matches(QUERY, records)

    assert match.match_count == 5
    assert match.closed_count == 2
    assert match.delay_count == 1
    assert match.disruption_rate == 60
    assert match.closure_rate == 40
    assert match.delay_rate == 20


def test_limit_and_top_matches():
    records = [make_record(date=f"2024-01-{day:02d}") for day in range(1, 13)]

    match = find_matches(QUERY, records, limit=8)
    assert match.match_count == 8
    assert len(match.top_matches) == 3

    school_match = find_matches(QUERY, records, limit=5)
    assert school_match.match_count == 5


def test_ties_keep_store_order():
    records = [make_record(school=name) for name in ("Homer-Center", "Blairsville-Saltsburg", "Marion Center")]
    match = find_matches(QUERY, records)
    assert [item.record.school for item in match.top_matches] == [
        "Homer-Center",
        "Blairsville-Saltsburg",
        "Marion Center",
    ]


def test_closer_days_rank_first():
    far = make_record(date="2024-01-01", temperature=32, feels_like=24)
    near = make_record(date="2024-01-02")
    match = find_matches(QUERY, [far, near])
    assert match.top_matches[0].record.date == "2024-01-02"
