"""
atlas/features/analytics/trends.py

Pure helpers for analytics snapshots: bucketing, trend slope, predictions,
period labels and frequency ranking.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from atlas.models.analytics import Prediction, TopQuery, TrendDirection, TrendPoint

T = TypeVar("T")

MIN_PREDICTION_POINTS = 3
TREND_UP_THRESHOLD = 0.05
TREND_DOWN_THRESHOLD = -0.05


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence."""
    return sum(values) / len(values) if values else 0


def utc_day(ts: datetime) -> str:
    """Calendar day (YYYY-MM-DD) of a timestamp in UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date().isoformat()


def bucket_by_day(items: Iterable[T], timestamp_of: Callable[[T], datetime]) -> List[TrendPoint]:
    """
    Count items per UTC calendar day.

    Sparse: days without items are absent. Buckets keep first-seen order,
    which is chronological when items arrive in ascending time order.
    """
    counts: Dict[str, int] = {}
    for item in items:
        day = utc_day(timestamp_of(item))
        counts[day] = counts.get(day, 0) + 1
    return [TrendPoint(period=day, value=count) for day, count in counts.items()]


def sprint_series(items: Iterable[T], sprint_of: Callable[[T], Optional[str]], value_of: Callable[[T], float]) -> List[TrendPoint]:
    """One point per record, labelled by sprint (empty label when unknown)."""
    return [TrendPoint(period=sprint_of(item) or "", value=value_of(item)) for item in items]


def calculate_trend(values: Sequence[float]) -> float:
    """
    Mean relative step change across a chronological series.

    Steps whose predecessor is 0 contribute nothing but still count in the
    denominator (len - 1). Fewer than 2 values gives 0.
    """
    if len(values) < 2:
        return 0.0
    total = 0.0
    for previous, current in zip(values, values[1:]):
        if previous != 0:
            total += (current - previous) / previous
    return total / (len(values) - 1)


def classify_trend(trend: float) -> TrendDirection:
    if trend > TREND_UP_THRESHOLD:
        return "up"
    if trend < TREND_DOWN_THRESHOLD:
        return "down"
    return "stable"


def predict_next(metric: str, newest_first: Sequence[float], confidence: float) -> List[Prediction]:
    """
    Extrapolate the next value of a metric.

    Args:
        metric: label for the prediction ("velocity", "risk")
        newest_first: recent values, most recent first
        confidence: fixed confidence attached to the prediction

    Returns:
        A single-element list, or [] when fewer than 3 points exist.
    """
    if len(newest_first) < MIN_PREDICTION_POINTS:
        return []
    chronological = list(reversed(newest_first))
    trend = calculate_trend(chronological)
    return [
        Prediction(
            metric=metric,
            prediction=chronological[-1] * (1 + trend),
            confidence=confidence,
            trend=classify_trend(trend),
        )
    ]


def period_label(start: datetime, end: datetime) -> str:
    """
    Human label for a date range.

    Same UTC day -> "2025-01-15"; same month -> "Jan 2025";
    otherwise "Jan 2025 - Mar 2025".
    """
    start_day, end_day = utc_day(start), utc_day(end)
    if start_day == end_day:
        return start_day
    start_month = _month_label(start)
    end_month = _month_label(end)
    if start_month == end_month:
        return start_month
    return f"{start_month} - {end_month}"


_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _month_label(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return f"{_MONTHS[ts.month - 1]} {ts.year}"


def top_queries(queries: Iterable[str], limit: int = 10) -> List[TopQuery]:
    """Most frequent exact strings; ties keep first-seen order."""
    counts: Dict[str, int] = {}
    for query in queries:
        counts[query] = counts.get(query, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [TopQuery(query=query, count=count) for query, count in ranked[:limit]]
