"""
atlas/models/coaching.py
Coaching domain models: observations, interventions, assessments, insight.
All output models are frozen; inputs are lenient (unknown fields ignored).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class _RankedEnum(str, Enum):
    """String enum whose declaration order is its ordering."""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)


class MaturityLevel(_RankedEnum):
    FORMING = "FORMING"
    STORMING = "STORMING"
    NORMING = "NORMING"
    PERFORMING = "PERFORMING"
    TRANSFORMING = "TRANSFORMING"


class ObservationCategory(str, Enum):
    STORY_ACCEPTANCE_CRITERIA = "STORY_ACCEPTANCE_CRITERIA"
    SPRINT_PLANNING = "SPRINT_PLANNING"
    TEAM_VELOCITY = "TEAM_VELOCITY"
    RETROSPECTIVE_QUALITY = "RETROSPECTIVE_QUALITY"
    RISK_MANAGEMENT = "RISK_MANAGEMENT"
    CONTINUOUS_IMPROVEMENT = "CONTINUOUS_IMPROVEMENT"
    TEAM_COLLABORATION = "TEAM_COLLABORATION"


class SeverityLevel(_RankedEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PriorityLevel(_RankedEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ImpactLevel(_RankedEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    TRANSFORMATIVE = "TRANSFORMATIVE"


class EffortLevel(_RankedEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AssessmentType(str, Enum):
    JIRA_ANALYSIS = "JIRA_ANALYSIS"
    DOCUMENT_ANALYSIS = "DOCUMENT_ANALYSIS"
    CONVERSATION_ANALYSIS = "CONVERSATION_ANALYSIS"
    SELF_ASSESSMENT = "SELF_ASSESSMENT"


class CamelModel(BaseModel):
    """Frozen model that reads and writes camelCase JSON."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Observation(CamelModel):
    """A single heuristic finding about team practice."""

    category: ObservationCategory
    severity: SeverityLevel
    title: str
    description: str
    data_source: Optional[str] = None
    data_evidence: Optional[Dict[str, Any]] = None
    affected_areas: List[str] = Field(default_factory=list)


class ActionItem(CamelModel):
    title: str
    description: str
    resources: Optional[List[str]] = None


class Intervention(CamelModel):
    """Remediation bundle generated from same-category observations."""

    observation_ids: List[str] = Field(description="Titles of the originating observations")
    title: str
    description: str
    action_items: List[ActionItem]
    priority: PriorityLevel
    estimated_impact: ImpactLevel
    estimated_effort: EffortLevel


class Assessment(CamelModel):
    """Scored evaluation of one analysis dimension."""

    assessment_type: AssessmentType
    category: str
    current_score: int = Field(ge=0, le=100)
    previous_score: Optional[float] = None
    maturity_level: MaturityLevel
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    data_analyzed: Optional[Dict[str, Any]] = None


class CoachingInsight(CamelModel):
    observations: List[Observation] = Field(default_factory=list)
    interventions: List[Intervention] = Field(default_factory=list)
    assessments: List[Assessment] = Field(default_factory=list)
    overall_maturity: MaturityLevel = MaturityLevel.FORMING
    focus_areas: List[str] = Field(default_factory=list)


# ----------------------------------------------------------------------------
# Inputs
# ----------------------------------------------------------------------------

def _lenient_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _objects_only(value: Any, model: type) -> Optional[list]:
    """Keep the mapping (or already-built) entries of a list; drop the rest."""
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, (dict, model))]


class _InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class JiraIssue(_InputModel):
    issue_key: Optional[str] = None
    issue_type: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    story_points: Optional[float] = None
    status: Optional[str] = None
    sprint: Optional[str] = None

    @field_validator("issue_key", "issue_type", "summary", "description", "status", "sprint", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _lenient_text(value)

    @field_validator("story_points", mode="before")
    @classmethod
    def _coerce_points(cls, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None


class TeamDocument(_InputModel):
    original_name: Optional[str] = None
    extracted_text: Optional[str] = None

    @field_validator("original_name", "extracted_text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _lenient_text(value)


class ConversationMessage(_InputModel):
    role: Optional[str] = None
    content: Optional[str] = None

    @field_validator("role", "content", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _lenient_text(value)


class ConversationSession(_InputModel):
    messages: List[ConversationMessage] = Field(default_factory=list)

    @field_validator("messages", mode="before")
    @classmethod
    def _default_messages(cls, value: Any) -> Any:
        return _objects_only(value, ConversationMessage) or []


class TeamDataInput(_InputModel):
    """Bundle of team data handed to the coaching analyzer."""

    jira_issues: Optional[List[JiraIssue]] = None
    documents: Optional[List[TeamDocument]] = None
    conversation_history: Optional[List[ConversationSession]] = None
    # Accepted and ignored by the analyzer, so any shape is allowed.
    user_profile: Any = None

    @field_validator("jira_issues", "documents", "conversation_history", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any, info: ValidationInfo) -> Any:
        return _objects_only(value, _SECTION_MODELS[info.field_name])


_SECTION_MODELS = {
    "jira_issues": JiraIssue,
    "documents": TeamDocument,
    "conversation_history": ConversationSession,
}
