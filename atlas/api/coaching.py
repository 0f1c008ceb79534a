"""
atlas/api/coaching.py

Coaching endpoints: run an analysis, read the plan, track interventions.
Handlers only translate HTTP to CoachingService calls.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from atlas.api.deps import current_user_id, fixed_now
from atlas.features.coaching.models import InterventionStatus
from atlas.features.coaching.service import CoachingService, summary_payload
from atlas.models.coaching import TeamDataInput

router = APIRouter(prefix="/api/coaching", tags=["coaching"])

NO_PLAN_MESSAGE = "No coaching plan found. Run analysis to generate one."


class InterventionUpdateSchema(BaseModel):
    """PATCH body for an intervention status change."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    intervention_id: str = Field(..., min_length=1)
    status: InterventionStatus
    notes: Optional[str] = None


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


@router.post("/analyze")
def analyze(
    user_id: Annotated[str, Depends(current_user_id)],
    now: Annotated[Optional[datetime], Depends(fixed_now)],
    data: Annotated[Optional[TeamDataInput], Body()] = None,
) -> Dict[str, Any]:
    """
    Analyze team data and update the caller's coaching plan.

    Every section of the body is optional; an empty body yields an empty
    analysis with FORMING maturity.
    """
    plan, summary, events = CoachingService.run_analysis(user_id, data or TeamDataInput(), now=now)
    return {
        "success": True,
        "coachingPlan": _dump(plan),
        "summary": summary_payload(summary),
        "emitted": events,
    }


@router.get("/plan")
def get_plan(user_id: Annotated[str, Depends(current_user_id)]) -> Dict[str, Any]:
    plan = CoachingService.get_plan(user_id)
    if plan is None:
        return {"exists": False, "message": NO_PLAN_MESSAGE}
    return {"exists": True, "coachingPlan": _dump(plan)}


@router.patch("/intervention")
def update_intervention(
    schema: InterventionUpdateSchema,
    user_id: Annotated[str, Depends(current_user_id)],
    now: Annotated[Optional[datetime], Depends(fixed_now)],
) -> Dict[str, Any]:
    intervention = CoachingService.update_intervention(
        user_id,
        schema.intervention_id,
        schema.status,
        notes=schema.notes,
        now=now,
    )
    return {"success": True, "intervention": _dump(intervention)}
