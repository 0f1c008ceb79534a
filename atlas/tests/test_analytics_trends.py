"""Pure trend math: slopes, predictions, period labels, ranking, bucketing."""

from datetime import datetime, timedelta, timezone

import pytest

from atlas.features.analytics import trends


def test_calculate_trend_mean_relative_change():
    assert trends.calculate_trend([20, 22, 24]) == pytest.approx((0.1 + 2 / 22) / 2)


def test_calculate_trend_short_series():
    assert trends.calculate_trend([]) == 0.0
    assert trends.calculate_trend([5]) == 0.0


def test_calculate_trend_skips_zero_predecessor_but_keeps_denominator():
    # steps: 0->10 skipped, 10->20 = +1.0; averaged over 2 steps
    assert trends.calculate_trend([0, 10, 20]) == pytest.approx(0.5)


@pytest.mark.parametrize(
    "value, label",
    [(0.051, "up"), (0.05, "stable"), (-0.05, "stable"), (-0.051, "down"), (0.0, "stable")],
)
def test_classify_trend(value, label):
    assert trends.classify_trend(value) == label


def test_predict_next_velocity():
    # newest first, as the repository returns it
    [prediction] = trends.predict_next("velocity", [24, 22, 20], 0.75)
    assert prediction.metric == "velocity"
    assert prediction.trend == "up"
    assert prediction.confidence == 0.75
    assert prediction.prediction == pytest.approx(24 * (1 + (0.1 + 2 / 22) / 2))
    assert prediction.prediction == pytest.approx(26.3, abs=0.1)


def test_predict_next_needs_three_points():
    assert trends.predict_next("velocity", [24, 22], 0.75) == []
    assert trends.predict_next("risk", [], 0.7) == []


def test_predict_next_downward_risk():
    [prediction] = trends.predict_next("risk", [40, 60, 80], 0.7)
    assert prediction.trend == "down"
    assert prediction.prediction < 40


def test_period_label_same_day():
    start = datetime(2025, 1, 15, 0, 0, tzinfo=timezone.utc)
    assert trends.period_label(start, start + timedelta(hours=23)) == "2025-01-15"


def test_period_label_same_month():
    assert trends.period_label(
        datetime(2025, 1, 1, tzinfo=timezone.utc), datetime(2025, 1, 31, tzinfo=timezone.utc)
    ) == "Jan 2025"


def test_period_label_spanning_months():
    assert trends.period_label(
        datetime(2024, 12, 20, tzinfo=timezone.utc), datetime(2025, 2, 3, tzinfo=timezone.utc)
    ) == "Dec 2024 - Feb 2025"


def test_period_label_uses_utc_day():
    tz = timezone(timedelta(hours=-5))
    start = datetime(2025, 1, 15, 20, 0, tzinfo=tz)  # 2025-01-16 01:00 UTC
    end = datetime(2025, 1, 16, 10, 0, tzinfo=timezone.utc)
    assert trends.period_label(start, end) == "2025-01-16"


def test_top_queries_ties_keep_first_seen_order():
    ranked = trends.top_queries(["b", "a", "a", "c", "b", "d"])
    assert [(q.query, q.count) for q in ranked] == [("b", 2), ("a", 2), ("c", 1), ("d", 1)]


def test_top_queries_limit():
    ranked = trends.top_queries([f"q{i}" for i in range(15)], limit=10)
    assert len(ranked) == 10
    assert ranked[0].query == "q0"


def test_bucket_by_day_is_sparse_and_ordered():
    stamps = [
        datetime(2025, 3, 1, 9, tzinfo=timezone.utc),
        datetime(2025, 3, 1, 17, tzinfo=timezone.utc),
        datetime(2025, 3, 4, 8, tzinfo=timezone.utc),
    ]
    points = trends.bucket_by_day(stamps, lambda ts: ts)
    assert [(p.period, p.value) for p in points] == [("2025-03-01", 2), ("2025-03-04", 1)]


def test_mean_of_empty_is_zero():
    assert trends.mean([]) == 0
    assert trends.mean([2, 4]) == 3
