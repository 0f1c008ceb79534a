"""
atlas/features/analytics/repository.py

Data access for the analytics engine.

AnalyticsRepository is the contract the engine depends on. Two
implementations share it:
- InMemoryAnalyticsRepository (default, tests)
- SqlAnalyticsRepository (repository_sql.py, used when DATABASE_URL is set)

Range filters are inclusive on both ends. list_* return records in ascending
time order; latest_* return the most recent records newest first.
"""

import logging
import os
from datetime import datetime
from typing import List, Optional, Protocol

from atlas.features.analytics.records import (
    DocumentRecord,
    QueryLog,
    TeamMetric,
    TeamRiskScore,
    UserActivity,
)
from atlas.models.analytics import AnalyticsSnapshot

logger = logging.getLogger("atlas")


class AnalyticsRepository(Protocol):
    """Queryable store of activity, documents, queries, team metrics and snapshots."""

    def add_activity(self, activity: UserActivity) -> UserActivity: ...

    def add_query(self, query: QueryLog) -> QueryLog: ...

    def add_document(self, document: DocumentRecord) -> DocumentRecord: ...

    def add_team_metric(self, metric: TeamMetric) -> TeamMetric: ...

    def add_risk_score(self, score: TeamRiskScore) -> TeamRiskScore: ...

    def list_activities(
        self,
        start: datetime,
        end: datetime,
        user_id: Optional[str] = None,
        activity_type: Optional[str] = None,
    ) -> List[UserActivity]: ...

    def list_queries(self, start: datetime, end: datetime, user_id: Optional[str] = None) -> List[QueryLog]: ...

    def list_documents(self, start: datetime, end: datetime, user_id: Optional[str] = None) -> List[DocumentRecord]: ...

    def most_accessed_documents(
        self, uploaded_before: datetime, user_id: Optional[str] = None, limit: int = 10
    ) -> List[DocumentRecord]:
        """Documents uploaded up to a cutoff, highest access_count first."""
        ...

    def list_team_metrics(
        self, team_id: str, start: datetime, end: datetime, metric_type: Optional[str] = None
    ) -> List[TeamMetric]: ...

    def list_risk_scores(self, team_id: str, start: datetime, end: datetime) -> List[TeamRiskScore]: ...

    def latest_team_metrics(self, team_id: str, metric_type: str, limit: int) -> List[TeamMetric]: ...

    def latest_risk_scores(self, team_id: str, limit: int) -> List[TeamRiskScore]: ...

    def save_snapshot(self, snapshot: AnalyticsSnapshot) -> AnalyticsSnapshot: ...

    def list_snapshots(
        self,
        user_id: Optional[str] = None,
        team_id: Optional[str] = None,
        snapshot_type: Optional[str] = None,
    ) -> List[AnalyticsSnapshot]: ...

    def clear(self) -> None: ...


def _in_range(ts: datetime, start: datetime, end: datetime) -> bool:
    return start <= ts <= end


class InMemoryAnalyticsRepository:
    """Process-local analytics store. Append-only apart from clear()."""

    def __init__(self):
        self._activities: List[UserActivity] = []
        self._queries: List[QueryLog] = []
        self._documents: List[DocumentRecord] = []
        self._team_metrics: List[TeamMetric] = []
        self._risk_scores: List[TeamRiskScore] = []
        self._snapshots: List[AnalyticsSnapshot] = []

    def add_activity(self, activity: UserActivity) -> UserActivity:
        self._activities.append(activity)
        return activity

    def add_query(self, query: QueryLog) -> QueryLog:
        self._queries.append(query)
        return query

    def add_document(self, document: DocumentRecord) -> DocumentRecord:
        self._documents.append(document)
        return document

    def add_team_metric(self, metric: TeamMetric) -> TeamMetric:
        self._team_metrics.append(metric)
        return metric

    def add_risk_score(self, score: TeamRiskScore) -> TeamRiskScore:
        self._risk_scores.append(score)
        return score

    def list_activities(self, start, end, user_id=None, activity_type=None):
        found = [
            a for a in self._activities
            if _in_range(a.timestamp, start, end)
            and (user_id is None or a.user_id == user_id)
            and (activity_type is None or a.activity_type == activity_type)
        ]
        return sorted(found, key=lambda a: a.timestamp)

    def list_queries(self, start, end, user_id=None):
        found = [
            q for q in self._queries
            if _in_range(q.timestamp, start, end) and (user_id is None or q.user_id == user_id)
        ]
        return sorted(found, key=lambda q: q.timestamp)

    def list_documents(self, start, end, user_id=None):
        found = [
            d for d in self._documents
            if _in_range(d.uploaded_at, start, end) and (user_id is None or d.user_id == user_id)
        ]
        return sorted(found, key=lambda d: d.uploaded_at)

    def most_accessed_documents(self, uploaded_before, user_id=None, limit=10):
        found = [
            d for d in self._documents
            if d.uploaded_at <= uploaded_before and (user_id is None or d.user_id == user_id)
        ]
        return sorted(found, key=lambda d: -d.access_count)[:limit]

    def list_team_metrics(self, team_id, start, end, metric_type=None):
        found = [
            m for m in self._team_metrics
            if m.team_id == team_id
            and _in_range(m.recorded_at, start, end)
            and (metric_type is None or m.metric_type == metric_type)
        ]
        return sorted(found, key=lambda m: m.recorded_at)

    def list_risk_scores(self, team_id, start, end):
        found = [
            r for r in self._risk_scores
            if r.team_id == team_id and _in_range(r.calculated_at, start, end)
        ]
        return sorted(found, key=lambda r: r.calculated_at)

    def latest_team_metrics(self, team_id, metric_type, limit):
        found = [m for m in self._team_metrics if m.team_id == team_id and m.metric_type == metric_type]
        return sorted(found, key=lambda m: m.recorded_at, reverse=True)[:limit]

    def latest_risk_scores(self, team_id, limit):
        found = [r for r in self._risk_scores if r.team_id == team_id]
        return sorted(found, key=lambda r: r.calculated_at, reverse=True)[:limit]

    def save_snapshot(self, snapshot: AnalyticsSnapshot) -> AnalyticsSnapshot:
        self._snapshots.append(snapshot)
        return snapshot

    def list_snapshots(self, user_id=None, team_id=None, snapshot_type=None):
        found = [
            s for s in self._snapshots
            if (user_id is None or s.user_id == user_id)
            and (team_id is None or s.team_id == team_id)
            and (snapshot_type is None or s.snapshot_type == snapshot_type)
        ]
        return sorted(found, key=lambda s: s.created_at)

    def clear(self) -> None:
        """FOR TESTING ONLY."""
        for bucket in (
            self._activities,
            self._queries,
            self._documents,
            self._team_metrics,
            self._risk_scores,
            self._snapshots,
        ):
            bucket.clear()


# ============================================================================
# Repository selection
# ============================================================================

def select_repository() -> AnalyticsRepository:
    """
    Pick the repository implementation.

    - SQL when DATABASE_URL is configured and the database answers
    - in-memory otherwise
    """
    if os.getenv("DATABASE_URL"):
        from atlas.core.database import check_connection, create_all_tables
        from atlas.features.analytics.repository_sql import SqlAnalyticsRepository

        if check_connection():
            create_all_tables()
            return SqlAnalyticsRepository()
        logger.warning("analytics.repository_fallback", extra={"reason": "database unavailable"})

    return InMemoryAnalyticsRepository()


_repository_instance: Optional[AnalyticsRepository] = None


def get_repository() -> AnalyticsRepository:
    """Singleton repository used by the API layer."""
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = select_repository()
    return _repository_instance


def set_repository(repository: Optional[AnalyticsRepository]) -> None:
    """Install a specific repository (None resets). FOR TESTING ONLY."""
    global _repository_instance
    _repository_instance = repository


def reset_repository() -> None:
    set_repository(None)
