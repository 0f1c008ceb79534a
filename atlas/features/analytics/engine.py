"""
atlas/features/analytics/engine.py

Analytics snapshot engine.

generate_snapshot dispatches on the snapshot type, computes metrics, trends
and predictions from the repository, stores the snapshot and returns it.
Repository errors are not caught here.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from atlas.core.config import settings
from atlas.core.logging import log_event
from atlas.features.analytics import trends as trend_math
from atlas.features.analytics.records import QueryLog, UserActivity
from atlas.features.analytics.repository import AnalyticsRepository
from atlas.models.analytics import (
    ActivityType,
    AnalyticsMetrics,
    AnalyticsSnapshot,
    AnalyticsType,
    DocumentUsage,
    MostViewedDoc,
    Prediction,
    QueryType,
    TeamMetricType,
    TeamPerformance,
    TrendPoint,
    UserEngagement,
)

VELOCITY_CONFIDENCE = 0.75
RISK_CONFIDENCE = 0.70

ENGAGEMENT_WINDOWS_DAYS = (1, 7, 30)

BranchResult = Tuple[AnalyticsMetrics, List[TrendPoint], List[Prediction]]


def _empty() -> BranchResult:
    return AnalyticsMetrics(), [], []


def _utc(ts: Optional[datetime]) -> datetime:
    if ts is None:
        return datetime.now(timezone.utc)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _enum_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else str(value)


class AnalyticsEngine:
    """Computes and records analytics snapshots over an AnalyticsRepository."""

    def __init__(self, repository: AnalyticsRepository):
        self.repository = repository

    # ------------------------------------------------------------------
    # Recorders
    # ------------------------------------------------------------------

    def track_activity(
        self,
        user_id: str,
        activity_type: Union[ActivityType, str],
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        duration: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> UserActivity:
        activity = UserActivity(
            user_id=user_id,
            activity_type=_enum_value(activity_type),
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata,
            duration=duration,
            timestamp=_utc(now),
        )
        return self.repository.add_activity(activity)

    def track_query(
        self,
        user_id: str,
        query: str,
        query_type: Union[QueryType, str],
        response_time: Optional[float] = None,
        result_count: Optional[int] = None,
        documents_referenced: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> QueryLog:
        record = QueryLog(
            user_id=user_id,
            query=query,
            query_type=_enum_value(query_type),
            response_time=response_time,
            result_count=result_count,
            documents_referenced=documents_referenced or [],
            timestamp=_utc(now),
        )
        return self.repository.add_query(record)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def generate_snapshot(
        self,
        snapshot_type: Union[AnalyticsType, str],
        start_date: datetime,
        end_date: datetime,
        user_id: Optional[str] = None,
        team_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AnalyticsSnapshot:
        """
        Compute, store and return one snapshot.

        Team-scoped types (TEAM_PERFORMANCE, RISK_TRENDS, VELOCITY_TRENDS)
        without a team_id produce empty metrics, trends and predictions.
        Unknown types fall back to system-wide totals.
        """
        start, end = _utc(start_date), _utc(end_date)
        type_value = _enum_value(snapshot_type)

        branch = {
            AnalyticsType.USER_ENGAGEMENT.value: self._user_engagement,
            AnalyticsType.TEAM_PERFORMANCE.value: self._team_performance,
            AnalyticsType.DOCUMENT_USAGE.value: self._document_usage,
            AnalyticsType.QUERY_PATTERNS.value: self._query_patterns,
            AnalyticsType.RISK_TRENDS.value: self._risk_trends,
            AnalyticsType.VELOCITY_TRENDS.value: self._velocity_trends,
        }.get(type_value)

        if branch is None:
            metrics, trends, predictions = self._system_overview(start, end)
        else:
            metrics, trends, predictions = branch(start, end, user_id, team_id)

        snapshot = AnalyticsSnapshot(
            id=uuid4().hex,
            user_id=user_id,
            team_id=team_id,
            snapshot_type=type_value,
            period=trend_math.period_label(start, end),
            start_date=start,
            end_date=end,
            metrics=metrics.as_payload(),
            trends=trends,
            predictions=predictions,
            created_at=_utc(now),
        )
        saved = self.repository.save_snapshot(snapshot)

        log_event(
            "info",
            "analytics.snapshot",
            user_id=user_id,
            team_id=team_id,
            event_type="analytics.snapshot_generated",
            extra={
                "snapshot_type": type_value,
                "period": snapshot.period,
                "trend_points": len(trends),
                "predictions": len(predictions),
            },
        )
        return saved

    def list_snapshots(
        self,
        user_id: Optional[str] = None,
        team_id: Optional[str] = None,
        snapshot_type: Optional[Union[AnalyticsType, str]] = None,
    ) -> List[AnalyticsSnapshot]:
        return self.repository.list_snapshots(
            user_id=user_id,
            team_id=team_id,
            snapshot_type=_enum_value(snapshot_type) if snapshot_type is not None else None,
        )

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def _user_engagement(self, start, end, user_id, team_id) -> BranchResult:
        activities = self.repository.list_activities(start, end, user_id=user_id)
        daily, weekly, monthly = (self._active_users(end, days) for days in ENGAGEMENT_WINDOWS_DAYS)
        metrics = AnalyticsMetrics(
            total_activities=len(activities),
            active_users=len({a.user_id for a in activities}),
            user_engagement=UserEngagement(
                daily_active_users=daily,
                weekly_active_users=weekly,
                monthly_active_users=monthly,
            ),
        )
        return metrics, trend_math.bucket_by_day(activities, lambda a: a.timestamp), []

    def _team_performance(self, start, end, user_id, team_id) -> BranchResult:
        if not team_id:
            return _empty()
        metrics = self.repository.list_team_metrics(team_id, start, end)
        velocity = [m for m in metrics if m.metric_type == TeamMetricType.VELOCITY.value]
        completion = [m for m in metrics if m.metric_type == TeamMetricType.COMPLETION_RATE.value]
        risk_scores = self.repository.list_risk_scores(team_id, start, end)

        performance = TeamPerformance(
            average_velocity=trend_math.mean([m.value for m in velocity]),
            completion_rate=trend_math.mean([m.value for m in completion]),
            risk_score=trend_math.mean([r.overall_risk_score for r in risk_scores]),
        )
        trends = trend_math.sprint_series(velocity, lambda m: m.sprint, lambda m: m.value)
        return AnalyticsMetrics(team_performance=performance), trends, self._predict_velocity(team_id)

    def _document_usage(self, start, end, user_id, team_id) -> BranchResult:
        uploads = self.repository.list_documents(start, end, user_id=user_id)
        views = self.repository.list_activities(
            start, end, user_id=user_id, activity_type=ActivityType.DOCUMENT_VIEW.value
        )
        most_viewed = self.repository.most_accessed_documents(
            end, user_id=user_id, limit=settings.ANALYTICS_TOP_N
        )
        metrics = AnalyticsMetrics(
            document_usage=DocumentUsage(
                total_uploads=len(uploads),
                total_views=len(views),
                most_viewed_docs=[MostViewedDoc(name=d.original_name, views=d.access_count) for d in most_viewed],
            )
        )
        # Upload trend covers every user, as the system-wide usage curve.
        all_uploads = self.repository.list_documents(start, end)
        return metrics, trend_math.bucket_by_day(all_uploads, lambda d: d.uploaded_at), []

    def _query_patterns(self, start, end, user_id, team_id) -> BranchResult:
        queries = self.repository.list_queries(start, end, user_id=user_id)
        metrics = AnalyticsMetrics(
            queries_executed=len(queries),
            average_response_time=trend_math.mean([q.response_time or 0 for q in queries]),
            top_queries=trend_math.top_queries((q.query for q in queries), limit=settings.ANALYTICS_TOP_N),
        )
        all_queries = self.repository.list_queries(start, end)
        return metrics, trend_math.bucket_by_day(all_queries, lambda q: q.timestamp), []

    def _risk_trends(self, start, end, user_id, team_id) -> BranchResult:
        if not team_id:
            return _empty()
        risk_scores = self.repository.list_risk_scores(team_id, start, end)
        metrics = AnalyticsMetrics(
            team_performance=TeamPerformance(
                risk_score=trend_math.mean([r.overall_risk_score for r in risk_scores]),
            )
        )
        trends = trend_math.sprint_series(risk_scores, lambda r: r.sprint, lambda r: r.overall_risk_score)
        latest = self.repository.latest_risk_scores(team_id, settings.ANALYTICS_PREDICTION_HISTORY)
        predictions = trend_math.predict_next("risk", [r.overall_risk_score for r in latest], RISK_CONFIDENCE)
        return metrics, trends, predictions

    def _velocity_trends(self, start, end, user_id, team_id) -> BranchResult:
        if not team_id:
            return _empty()
        velocity = self.repository.list_team_metrics(team_id, start, end, metric_type=TeamMetricType.VELOCITY.value)
        metrics = AnalyticsMetrics(
            team_performance=TeamPerformance(average_velocity=trend_math.mean([m.value for m in velocity]))
        )
        trends = trend_math.sprint_series(velocity, lambda m: m.sprint, lambda m: m.value)
        return metrics, trends, self._predict_velocity(team_id)

    def _system_overview(self, start, end) -> BranchResult:
        activities = self.repository.list_activities(start, end)
        metrics = AnalyticsMetrics(
            total_activities=len(activities),
            documents_processed=len(self.repository.list_documents(start, end)),
            queries_executed=len(self.repository.list_queries(start, end)),
            active_users=len({a.user_id for a in activities}),
        )
        return metrics, [], []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _active_users(self, end: datetime, days: int) -> int:
        """Distinct users with any activity in the `days` before end."""
        window = self.repository.list_activities(end - timedelta(days=days), end)
        return len({a.user_id for a in window})

    def _predict_velocity(self, team_id: str) -> List[Prediction]:
        latest = self.repository.latest_team_metrics(
            team_id, TeamMetricType.VELOCITY.value, settings.ANALYTICS_PREDICTION_HISTORY
        )
        return trend_math.predict_next("velocity", [m.value for m in latest], VELOCITY_CONFIDENCE)
