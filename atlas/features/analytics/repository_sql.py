"""
atlas/features/analytics/repository_sql.py

SQLAlchemy Core implementation of AnalyticsRepository.

Same contract as the in-memory repository. Timestamps are written and
compared in UTC; SQLite hands them back naive, so rows are re-tagged as UTC
on the way out.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import and_, insert, select

from atlas.core.database import (
    analytics_snapshots,
    documents,
    get_db_session,
    query_analytics,
    team_metrics,
    team_risk_scores,
    user_activities,
)
from atlas.features.analytics.records import (
    DocumentRecord,
    QueryLog,
    TeamMetric,
    TeamRiskScore,
    UserActivity,
)
from atlas.models.analytics import AnalyticsSnapshot


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _activity(row) -> UserActivity:
    return UserActivity(
        id=row.id,
        user_id=row.user_id,
        activity_type=row.activity_type,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        metadata=row.activity_metadata,
        duration=row.duration,
        timestamp=row.timestamp,
    )


def _query(row) -> QueryLog:
    return QueryLog(
        id=row.id,
        user_id=row.user_id,
        query=row.query,
        query_type=row.query_type,
        response_time=row.response_time,
        result_count=row.result_count,
        documents_referenced=list(row.documents_referenced or []),
        timestamp=row.timestamp,
    )


def _document(row) -> DocumentRecord:
    return DocumentRecord(
        id=row.id,
        user_id=row.user_id,
        original_name=row.original_name,
        access_count=row.access_count or 0,
        uploaded_at=row.uploaded_at,
    )


def _metric(row) -> TeamMetric:
    return TeamMetric(
        id=row.id,
        team_id=row.team_id,
        metric_type=row.metric_type,
        value=row.value,
        sprint=row.sprint,
        recorded_at=row.recorded_at,
    )


def _risk(row) -> TeamRiskScore:
    return TeamRiskScore(
        id=row.id,
        team_id=row.team_id,
        overall_risk_score=row.overall_risk_score,
        sprint=row.sprint,
        calculated_at=row.calculated_at,
    )


def _snapshot(row) -> AnalyticsSnapshot:
    return AnalyticsSnapshot(
        id=row.id,
        user_id=row.user_id,
        team_id=row.team_id,
        snapshot_type=row.snapshot_type,
        period=row.period,
        start_date=_utc(row.start_date),
        end_date=_utc(row.end_date),
        metrics=dict(row.metrics or {}),
        trends=list(row.trends or []),
        predictions=list(row.predictions or []),
        created_at=_utc(row.created_at),
    )


class SqlAnalyticsRepository:
    """Database-backed analytics store."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_activity(self, activity: UserActivity) -> UserActivity:
        with get_db_session() as session:
            session.execute(insert(user_activities).values(
                id=activity.id,
                user_id=activity.user_id,
                activity_type=activity.activity_type,
                entity_type=activity.entity_type,
                entity_id=activity.entity_id,
                activity_metadata=activity.metadata,
                duration=activity.duration,
                timestamp=_utc(activity.timestamp),
            ))
        return activity

    def add_query(self, query: QueryLog) -> QueryLog:
        with get_db_session() as session:
            session.execute(insert(query_analytics).values(
                id=query.id,
                user_id=query.user_id,
                query=query.query,
                query_type=query.query_type,
                response_time=query.response_time,
                result_count=query.result_count,
                documents_referenced=list(query.documents_referenced),
                timestamp=_utc(query.timestamp),
            ))
        return query

    def add_document(self, document: DocumentRecord) -> DocumentRecord:
        with get_db_session() as session:
            session.execute(insert(documents).values(
                id=document.id,
                user_id=document.user_id,
                original_name=document.original_name,
                access_count=document.access_count,
                uploaded_at=_utc(document.uploaded_at),
            ))
        return document

    def add_team_metric(self, metric: TeamMetric) -> TeamMetric:
        with get_db_session() as session:
            session.execute(insert(team_metrics).values(
                id=metric.id,
                team_id=metric.team_id,
                metric_type=metric.metric_type,
                value=metric.value,
                sprint=metric.sprint,
                recorded_at=_utc(metric.recorded_at),
            ))
        return metric

    def add_risk_score(self, score: TeamRiskScore) -> TeamRiskScore:
        with get_db_session() as session:
            session.execute(insert(team_risk_scores).values(
                id=score.id,
                team_id=score.team_id,
                overall_risk_score=score.overall_risk_score,
                sprint=score.sprint,
                calculated_at=_utc(score.calculated_at),
            ))
        return score

    def save_snapshot(self, snapshot: AnalyticsSnapshot) -> AnalyticsSnapshot:
        payload = snapshot.model_dump(mode="json", by_alias=True)
        with get_db_session() as session:
            session.execute(insert(analytics_snapshots).values(
                id=snapshot.id,
                user_id=snapshot.user_id,
                team_id=snapshot.team_id,
                snapshot_type=snapshot.snapshot_type,
                period=snapshot.period,
                start_date=_utc(snapshot.start_date),
                end_date=_utc(snapshot.end_date),
                metrics=payload["metrics"],
                trends=payload["trends"],
                predictions=payload["predictions"],
                created_at=_utc(snapshot.created_at),
            ))
        return snapshot

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_activities(self, start, end, user_id=None, activity_type=None) -> List[UserActivity]:
        filters = [user_activities.c.timestamp >= _utc(start), user_activities.c.timestamp <= _utc(end)]
        if user_id is not None:
            filters.append(user_activities.c.user_id == user_id)
        if activity_type is not None:
            filters.append(user_activities.c.activity_type == activity_type)
        query = select(user_activities).where(and_(*filters)).order_by(user_activities.c.timestamp)
        with get_db_session() as session:
            return [_activity(row) for row in session.execute(query)]

    def list_queries(self, start, end, user_id=None) -> List[QueryLog]:
        filters = [query_analytics.c.timestamp >= _utc(start), query_analytics.c.timestamp <= _utc(end)]
        if user_id is not None:
            filters.append(query_analytics.c.user_id == user_id)
        query = select(query_analytics).where(and_(*filters)).order_by(query_analytics.c.timestamp)
        with get_db_session() as session:
            return [_query(row) for row in session.execute(query)]

    def list_documents(self, start, end, user_id=None) -> List[DocumentRecord]:
        filters = [documents.c.uploaded_at >= _utc(start), documents.c.uploaded_at <= _utc(end)]
        if user_id is not None:
            filters.append(documents.c.user_id == user_id)
        query = select(documents).where(and_(*filters)).order_by(documents.c.uploaded_at)
        with get_db_session() as session:
            return [_document(row) for row in session.execute(query)]

    def most_accessed_documents(self, uploaded_before, user_id=None, limit=10) -> List[DocumentRecord]:
        filters = [documents.c.uploaded_at <= _utc(uploaded_before)]
        if user_id is not None:
            filters.append(documents.c.user_id == user_id)
        query = (
            select(documents)
            .where(and_(*filters))
            .order_by(documents.c.access_count.desc(), documents.c.uploaded_at)
            .limit(limit)
        )
        with get_db_session() as session:
            return [_document(row) for row in session.execute(query)]

    def list_team_metrics(self, team_id, start, end, metric_type=None) -> List[TeamMetric]:
        filters = [
            team_metrics.c.team_id == team_id,
            team_metrics.c.recorded_at >= _utc(start),
            team_metrics.c.recorded_at <= _utc(end),
        ]
        if metric_type is not None:
            filters.append(team_metrics.c.metric_type == metric_type)
        query = select(team_metrics).where(and_(*filters)).order_by(team_metrics.c.recorded_at)
        with get_db_session() as session:
            return [_metric(row) for row in session.execute(query)]

    def list_risk_scores(self, team_id, start, end) -> List[TeamRiskScore]:
        query = (
            select(team_risk_scores)
            .where(and_(
                team_risk_scores.c.team_id == team_id,
                team_risk_scores.c.calculated_at >= _utc(start),
                team_risk_scores.c.calculated_at <= _utc(end),
            ))
            .order_by(team_risk_scores.c.calculated_at)
        )
        with get_db_session() as session:
            return [_risk(row) for row in session.execute(query)]

    def latest_team_metrics(self, team_id, metric_type, limit) -> List[TeamMetric]:
        query = (
            select(team_metrics)
            .where(and_(team_metrics.c.team_id == team_id, team_metrics.c.metric_type == metric_type))
            .order_by(team_metrics.c.recorded_at.desc())
            .limit(limit)
        )
        with get_db_session() as session:
            return [_metric(row) for row in session.execute(query)]

    def latest_risk_scores(self, team_id, limit) -> List[TeamRiskScore]:
        query = (
            select(team_risk_scores)
            .where(team_risk_scores.c.team_id == team_id)
            .order_by(team_risk_scores.c.calculated_at.desc())
            .limit(limit)
        )
        with get_db_session() as session:
            return [_risk(row) for row in session.execute(query)]

    def list_snapshots(self, user_id=None, team_id=None, snapshot_type=None) -> List[AnalyticsSnapshot]:
        query = select(analytics_snapshots)
        filters = []
        if user_id is not None:
            filters.append(analytics_snapshots.c.user_id == user_id)
        if team_id is not None:
            filters.append(analytics_snapshots.c.team_id == team_id)
        if snapshot_type is not None:
            filters.append(analytics_snapshots.c.snapshot_type == snapshot_type)
        if filters:
            query = query.where(and_(*filters))
        query = query.order_by(analytics_snapshots.c.created_at)
        with get_db_session() as session:
            return [_snapshot(row) for row in session.execute(query)]

    def clear(self) -> None:
        """
        Delete every analytics row.
        FOR TESTING ONLY.
        """
        with get_db_session() as session:
            for table in (
                analytics_snapshots,
                user_activities,
                query_analytics,
                documents,
                team_metrics,
                team_risk_scores,
            ):
                session.execute(table.delete())
