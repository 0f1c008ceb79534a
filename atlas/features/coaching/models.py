"""
atlas/features/coaching/models.py
Persisted coaching plan records (per user).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from atlas.models.coaching import (
    ActionItem,
    AssessmentType,
    CamelModel,
    EffortLevel,
    ImpactLevel,
    MaturityLevel,
    ObservationCategory,
    PriorityLevel,
    SeverityLevel,
)


class InterventionStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class PlanObservation(CamelModel):
    id: str
    plan_id: str
    category: ObservationCategory
    severity: SeverityLevel
    title: str
    description: str
    data_source: Optional[str] = None
    data_evidence: Optional[Dict[str, Any]] = None
    affected_areas: List[str] = Field(default_factory=list)
    is_resolved: bool = False
    created_at: datetime


class PlanIntervention(CamelModel):
    """Intervention tracked on a plan; survives re-analysis."""

    id: str
    plan_id: str
    observation_ids: List[str] = Field(default_factory=list)
    title: str
    description: str
    action_items: List[ActionItem] = Field(default_factory=list)
    priority: PriorityLevel
    estimated_impact: ImpactLevel
    estimated_effort: EffortLevel
    status: InterventionStatus = InterventionStatus.NOT_STARTED
    notes: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class PlanAssessment(CamelModel):
    id: str
    plan_id: str
    assessment_type: AssessmentType
    category: str
    current_score: int
    previous_score: Optional[float] = None
    maturity_level: MaturityLevel
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    data_analyzed: Optional[Dict[str, Any]] = None
    created_at: datetime


class CoachingPlan(CamelModel):
    id: str
    user_id: str
    current_maturity_level: MaturityLevel
    target_maturity_level: MaturityLevel = MaturityLevel.PERFORMING
    focus_areas: List[str] = Field(default_factory=list)
    observations: List[PlanObservation] = Field(default_factory=list)
    interventions: List[PlanIntervention] = Field(default_factory=list)
    assessments: List[PlanAssessment] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class AnalysisSummary(CamelModel):
    observations_count: int
    interventions_count: int
    assessments_count: int
    overall_maturity: MaturityLevel
    focus_areas: List[str] = Field(default_factory=list)
