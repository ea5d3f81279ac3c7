from school_delay.models import HistoricalRecord, PredictionLogEntry
from school_delay.services.adjustment import SchoolAdjustment
from school_delay.services.scoring import ScoringConfig
from school_delay.services.tracking import AccuracyTracker, simulate_probability
from school_delay.storage import InMemoryPredictionLog


def make_entry(date, school="Indiana Area", predicted=True, actual=None, correct=None, source="live"):
    return PredictionLogEntry(
        date=date,
        school=school,
        delay_probability=40 if predicted else 5,
        closure_probability=20 if predicted else 2,
        predicted_disruption=predicted,
        actual_status=actual,
        correct=correct,
        source=source,
    )


def make_tracker(entries=()):
    return AccuracyTracker(InMemoryPredictionLog(entries), config=ScoringConfig())


def test_empty_log_reports_no_data():
    report = make_tracker().accuracy_report()

    assert report.status == "no-data"
    assert report.total == 0
    assert report.accuracy == 0


def test_pending_only_reports_collecting():
    report = make_tracker([make_entry("2025-01-10")]).accuracy_report()

    assert report.status == "collecting"
    assert report.pending_count == 1


def test_resolution_happens_once():
    tracker = make_tracker([make_entry("2025-01-10"), make_entry("2025-01-10", school="Homer-Center")])

    resolved = tracker.resolve_predictions("2025-01-10", {"Indiana Area": "2-hour delay", "Homer-Center": None})
    assert resolved == 1

    entry = tracker.log.find_by_key(("2025-01-10", "Indiana Area"))
    assert entry.actual_status == "delay"
    assert entry.correct is True

    resolved_again = tracker.resolve_predictions("2025-01-10", {"Indiana Area": "open"})
    assert resolved_again == 0
    assert tracker.log.find_by_key(("2025-01-10", "Indiana Area")).actual_status == "delay"
    assert tracker.log.find_by_key(("2025-01-10", "Homer-Center")).is_resolved is False


def test_resolution_ignores_other_dates():
    tracker = make_tracker([make_entry("2025-01-11")])
    assert tracker.resolve_predictions("2025-01-10", {"Indiana Area": "closed"}) == 0


def test_missed_call_is_incorrect():
    tracker = make_tracker([make_entry("2025-01-10", predicted=False)])
    tracker.resolve_predictions("2025-01-10", {"Indiana Area": "closed"})
    assert tracker.log.find_by_key(("2025-01-10", "Indiana Area")).correct is False


def test_accuracy_and_streak():
    entries = [
        make_entry("2025-01-06", actual="open", correct=False, predicted=True),
        make_entry("2025-01-07", actual="delay", correct=True),
        make_entry("2025-01-08", actual="closed", correct=True),
        make_entry("2025-01-09", actual="open", correct=True, predicted=False, source="backtest"),
        make_entry("2025-01-10"),
    ]
    report = make_tracker(entries).accuracy_report()

    assert report.status == "active"
    assert report.total == 4
    assert report.correct == 3
    assert report.accuracy == 75
    assert report.streak == 3
    assert report.pending_count == 1
    assert report.last_resolved_date == "2025-01-09"
    assert report.live_count == 3
    assert report.backtest_count == 1
    assert report.live_accuracy == 67
    assert report.backtest_accuracy == 100


def test_accuracy_window_uses_most_recent_entries():
    entries = [make_entry(f"2024-12-{day:02d}", actual="open", correct=False) for day in range(1, 11)]
    entries += [make_entry(f"2025-01-{day:02d}", actual="delay", correct=True) for day in range(1, 31)]

    report = make_tracker(entries).accuracy_report()

    assert report.total == 30
    assert report.accuracy == 100
    assert report.total_resolved == 40


def test_save_predictions_skips_existing_keys():
    tracker = make_tracker([make_entry("2025-01-11", school="Indiana Area")])
    predictions = {
        "Indiana Area": SchoolAdjustment(60, 30, "moderate"),
        "Homer-Center": SchoolAdjustment(20, 10, "low"),
        "Marion Center": SchoolAdjustment(30, 45, "moderate"),
    }

    assert tracker.save_predictions("2025-01-11", predictions) == 2
    assert tracker.save_predictions("2025-01-11", predictions) == 0

    assert tracker.log.find_by_key(("2025-01-11", "Homer-Center")).predicted_disruption is False
    assert tracker.log.find_by_key(("2025-01-11", "Marion Center")).predicted_disruption is True
    assert tracker.log.find_by_key(("2025-01-11", "Indiana Area")).delay_probability == 40


def test_simulated_probability_for_a_stored_day():
    record = HistoricalRecord(
        school="Indiana Area", date="2024-01-16", status="closed", temperature=5, feels_like=-15, snowfall=8, type="snow"
    )
    probability, delay, closure = simulate_probability(record, ScoringConfig())

    # extreme cold 40 + heavy snow 45 + estimated severe alert 30, capped
    assert probability == 95
    assert (delay, closure) == (33, 62)


def test_seed_from_history_is_repeatable():
    records = [
        HistoricalRecord("Indiana Area", "2024-01-16", "closed", 5, -15, 8, "heavy snow"),
        HistoricalRecord("Indiana Area", "2024-01-17", "open", 35, 30, 0, "normal"),
        HistoricalRecord("Indiana Area", "2024-01-18", "open", 20, 12, 1, "snow"),
        HistoricalRecord("Homer-Center", "2024-01-18", "mystery", 20, 12, 1, "snow"),
    ]
    tracker = make_tracker()

    first = tracker.seed_from_history(records)
    assert first.seeded == 3
    assert first.skipped == 1
    assert first.correct == 3
    assert first.accuracy == 100

    second = tracker.seed_from_history(records)
    assert second.seeded == 0
    assert second.skipped == 4

    report = tracker.accuracy_report()
    assert report.backtest_count == 3
    assert report.live_count == 0
    assert all(entry.source == "backtest" for entry in tracker.log.all())
