"""
atlas/api/analytics.py

Analytics endpoints: snapshots plus activity/query recorders.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from atlas.api.deps import current_user_id, fixed_now, get_analytics_engine
from atlas.core.config import settings
from atlas.features.analytics.engine import AnalyticsEngine
from atlas.models.analytics import ActivityType, AnalyticsType, QueryType

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SnapshotRequestSchema(_CamelSchema):
    type: AnalyticsType
    start_date: datetime
    end_date: datetime
    team_id: Optional[str] = None


class ActivitySchema(_CamelSchema):
    activity_type: ActivityType
    entity_type: str = Field(..., min_length=1)
    entity_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    duration: Optional[float] = None


class QuerySchema(_CamelSchema):
    query: str = Field(..., min_length=1)
    query_type: QueryType
    response_time: Optional[float] = None
    result_count: Optional[int] = None
    documents_referenced: Optional[List[str]] = None


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


@router.post("/snapshot")
def create_snapshot(
    schema: SnapshotRequestSchema,
    user_id: Annotated[str, Depends(current_user_id)],
    engine: Annotated[AnalyticsEngine, Depends(get_analytics_engine)],
    now: Annotated[Optional[datetime], Depends(fixed_now)],
) -> Dict[str, Any]:
    snapshot = engine.generate_snapshot(
        schema.type,
        schema.start_date,
        schema.end_date,
        user_id=user_id,
        team_id=schema.team_id,
        now=now,
    )
    return _dump(snapshot)


@router.get("/snapshot")
def recent_snapshot(
    user_id: Annotated[str, Depends(current_user_id)],
    engine: Annotated[AnalyticsEngine, Depends(get_analytics_engine)],
    now: Annotated[Optional[datetime], Depends(fixed_now)],
    type: AnalyticsType = Query(...),
    team_id: Optional[str] = Query(None, alias="teamId"),
) -> Dict[str, Any]:
    """Snapshot over the default trailing window (30 days) ending now."""
    end = now or datetime.now(timezone.utc)
    start = end - timedelta(days=settings.ANALYTICS_DEFAULT_WINDOW_DAYS)
    snapshot = engine.generate_snapshot(type, start, end, user_id=user_id, team_id=team_id, now=now)
    return _dump(snapshot)


@router.get("/snapshots")
def list_snapshots(
    user_id: Annotated[str, Depends(current_user_id)],
    engine: Annotated[AnalyticsEngine, Depends(get_analytics_engine)],
    type: Optional[AnalyticsType] = Query(None),
    team_id: Optional[str] = Query(None, alias="teamId"),
) -> Dict[str, Any]:
    snapshots = engine.list_snapshots(user_id=user_id, team_id=team_id, snapshot_type=type)
    return {"snapshots": [_dump(s) for s in snapshots]}


@router.post("/activity")
def track_activity(
    schema: ActivitySchema,
    user_id: Annotated[str, Depends(current_user_id)],
    engine: Annotated[AnalyticsEngine, Depends(get_analytics_engine)],
    now: Annotated[Optional[datetime], Depends(fixed_now)],
) -> Dict[str, Any]:
    activity = engine.track_activity(
        user_id,
        schema.activity_type,
        schema.entity_type,
        entity_id=schema.entity_id,
        metadata=schema.metadata,
        duration=schema.duration,
        now=now,
    )
    return _dump(activity)


@router.post("/query")
def track_query(
    schema: QuerySchema,
    user_id: Annotated[str, Depends(current_user_id)],
    engine: Annotated[AnalyticsEngine, Depends(get_analytics_engine)],
    now: Annotated[Optional[datetime], Depends(fixed_now)],
) -> Dict[str, Any]:
    record = engine.track_query(
        user_id,
        schema.query,
        schema.query_type,
        response_time=schema.response_time,
        result_count=schema.result_count,
        documents_referenced=schema.documents_referenced,
        now=now,
    )
    return _dump(record)
