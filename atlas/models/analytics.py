"""
atlas/models/analytics.py
Analytics models: snapshot types, metric shapes, trends, predictions.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnalyticsType(str, Enum):
    USER_ENGAGEMENT = "USER_ENGAGEMENT"
    TEAM_PERFORMANCE = "TEAM_PERFORMANCE"
    DOCUMENT_USAGE = "DOCUMENT_USAGE"
    QUERY_PATTERNS = "QUERY_PATTERNS"
    RISK_TRENDS = "RISK_TRENDS"
    VELOCITY_TRENDS = "VELOCITY_TRENDS"
    SYSTEM_OVERVIEW = "SYSTEM_OVERVIEW"


class ActivityType(str, Enum):
    LOGIN = "LOGIN"
    CHAT_MESSAGE = "CHAT_MESSAGE"
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    DOCUMENT_VIEW = "DOCUMENT_VIEW"
    JIRA_QUERY = "JIRA_QUERY"
    REPORT_GENERATED = "REPORT_GENERATED"
    TEMPLATE_GENERATED = "TEMPLATE_GENERATED"
    WORKFLOW_EXECUTED = "WORKFLOW_EXECUTED"
    MEETING_JOINED = "MEETING_JOINED"


class QueryType(str, Enum):
    CHAT = "CHAT"
    KNOWLEDGE_BASE = "KNOWLEDGE_BASE"
    JIRA = "JIRA"
    DOCUMENT_SEARCH = "DOCUMENT_SEARCH"
    MEMORY_SEARCH = "MEMORY_SEARCH"


class TeamMetricType(str, Enum):
    VELOCITY = "VELOCITY"
    COMPLETION_RATE = "COMPLETION_RATE"
    CYCLE_TIME = "CYCLE_TIME"
    THROUGHPUT = "THROUGHPUT"


TrendDirection = Literal["up", "down", "stable"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class TeamPerformance(_CamelModel):
    average_velocity: float = 0
    completion_rate: float = 0
    risk_score: float = 0


class UserEngagement(_CamelModel):
    daily_active_users: int = Field(ge=0)
    weekly_active_users: int = Field(ge=0)
    monthly_active_users: int = Field(ge=0)


class MostViewedDoc(_CamelModel):
    name: str
    views: int = Field(ge=0)


class DocumentUsage(_CamelModel):
    total_uploads: int = Field(ge=0)
    total_views: int = Field(ge=0)
    most_viewed_docs: List[MostViewedDoc] = Field(default_factory=list)


class TopQuery(_CamelModel):
    query: str
    count: int = Field(ge=1)


class AnalyticsMetrics(_CamelModel):
    """Union of every metric a snapshot branch can report; unset fields are omitted."""

    total_activities: Optional[int] = None
    active_users: Optional[int] = None
    documents_processed: Optional[int] = None
    queries_executed: Optional[int] = None
    average_response_time: Optional[float] = None
    team_performance: Optional[TeamPerformance] = None
    top_queries: Optional[List[TopQuery]] = None
    user_engagement: Optional[UserEngagement] = None
    document_usage: Optional[DocumentUsage] = None

    def as_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TrendPoint(_CamelModel):
    period: str
    value: float
    change: Optional[float] = None


class Prediction(_CamelModel):
    metric: str
    prediction: float
    confidence: float = Field(ge=0.0, le=1.0)
    trend: TrendDirection


class AnalyticsSnapshot(_CamelModel):
    """One persisted run of the analytics engine for a (type, period, scope)."""

    id: str
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    snapshot_type: str
    period: str
    start_date: datetime
    end_date: datetime
    metrics: Dict[str, Any] = Field(default_factory=dict)
    trends: List[TrendPoint] = Field(default_factory=list)
    predictions: List[Prediction] = Field(default_factory=list)
    created_at: datetime
