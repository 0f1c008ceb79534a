"""
atlas/features/analytics/records.py

Raw records the analytics engine reads. Append-only; the engine never
mutates them.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _new_id() -> str:
    return uuid4().hex


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class UserActivity(_Record):
    id: str = Field(default_factory=_new_id)
    user_id: str
    activity_type: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    duration: Optional[float] = None
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class QueryLog(_Record):
    id: str = Field(default_factory=_new_id)
    user_id: str
    query: str
    query_type: str
    response_time: Optional[float] = None
    result_count: Optional[int] = None
    documents_referenced: List[str] = Field(default_factory=list)
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class DocumentRecord(_Record):
    id: str = Field(default_factory=_new_id)
    user_id: str
    original_name: str
    access_count: int = 0
    uploaded_at: datetime

    @field_validator("uploaded_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class TeamMetric(_Record):
    id: str = Field(default_factory=_new_id)
    team_id: str
    metric_type: str
    value: float
    sprint: Optional[str] = None
    recorded_at: datetime

    @field_validator("recorded_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class TeamRiskScore(_Record):
    id: str = Field(default_factory=_new_id)
    team_id: str
    overall_risk_score: float
    sprint: Optional[str] = None
    calculated_at: datetime

    @field_validator("calculated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)
