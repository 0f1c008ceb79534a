"""Coaching plan service: runs the analyzer and maintains the per-user plan."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from atlas.core.config import settings
from atlas.core.errors import NotFoundError
from atlas.core.logging import log_event
from atlas.features.coaching.analyzer import CoachingAnalyzer
from atlas.features.coaching.models import (
    AnalysisSummary,
    CoachingPlan,
    InterventionStatus,
    PlanAssessment,
    PlanIntervention,
    PlanObservation,
)
from atlas.features.coaching.plan_store import get_plan_store
from atlas.models.coaching import CoachingInsight, MaturityLevel, TeamDataInput


def _utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _new_id() -> str:
    return uuid4().hex


class CoachingService:
    """Plan upsert, read-back and intervention tracking."""

    @staticmethod
    def run_analysis(
        user_id: str,
        data: Union[TeamDataInput, Mapping[str, Any], None],
        now: Optional[datetime] = None,
    ) -> Tuple[CoachingPlan, AnalysisSummary, List[dict]]:
        """
        Analyze team data and fold the result into the user's plan.

        Observations and assessments are replaced wholesale; interventions
        already on the plan are kept (with their progress) and only
        interventions with a new title are added.

        Returns:
            (plan as returned by get_plan, summary, emitted_events)
        """
        now = _utc(now)
        insights = CoachingAnalyzer.analyze_team_data(data, now=now)

        store = get_plan_store()
        existing = store.get(user_id)
        plan_id = existing.id if existing else _new_id()

        interventions = list(existing.interventions) if existing else []
        known_titles = {i.title for i in interventions}
        for intervention in insights.interventions:
            if intervention.title in known_titles:
                continue
            known_titles.add(intervention.title)
            interventions.append(PlanIntervention(
                id=_new_id(),
                plan_id=plan_id,
                created_at=now,
                **intervention.model_dump(),
            ))

        plan = CoachingPlan(
            id=plan_id,
            user_id=user_id,
            current_maturity_level=insights.overall_maturity,
            target_maturity_level=(
                existing.target_maturity_level if existing
                else MaturityLevel(settings.COACHING_TARGET_MATURITY)
            ),
            focus_areas=insights.focus_areas,
            observations=CoachingService._plan_observations(plan_id, insights, now),
            interventions=interventions,
            assessments=CoachingService._plan_assessments(plan_id, insights, now),
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        store.save(plan)

        summary = AnalysisSummary(
            observations_count=len(insights.observations),
            interventions_count=len(insights.interventions),
            assessments_count=len(insights.assessments),
            overall_maturity=insights.overall_maturity,
            focus_areas=insights.focus_areas,
        )

        log_event(
            "info",
            "coaching.analysis",
            user_id=user_id,
            event_type="coaching.analysis_completed",
            extra={
                "observations": summary.observations_count,
                "interventions": summary.interventions_count,
                "assessments": summary.assessments_count,
                "maturity": summary.overall_maturity.value,
            },
        )

        event = {
            "type": "coaching.analysis_completed",
            "userId": user_id,
            "planId": plan_id,
            "overallMaturity": summary.overall_maturity.value,
            "focusAreas": summary.focus_areas,
            "observationsCount": summary.observations_count,
            "analyzedAt": now.isoformat(),
        }

        return CoachingService._ordered(plan), summary, [event]

    @staticmethod
    def get_plan(user_id: str) -> Optional[CoachingPlan]:
        """
        Read the user's plan for display.

        Resolved observations are hidden, observations are sorted by severity
        (most severe first), interventions by priority (highest first), and
        only the most recent assessments are kept.
        """
        plan = get_plan_store().get(user_id)
        if plan is None:
            return None
        return CoachingService._ordered(plan)

    @staticmethod
    def update_intervention(
        user_id: str,
        intervention_id: str,
        status: InterventionStatus,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PlanIntervention:
        now = _utc(now)
        store = get_plan_store()
        found = store.find_intervention(intervention_id)
        if found is None or found[0].user_id != user_id:
            raise NotFoundError("Intervention not found")
        plan, current = found
        status = InterventionStatus(status)

        started_at = current.started_at
        if status == InterventionStatus.IN_PROGRESS and started_at is None:
            started_at = now

        if status == InterventionStatus.COMPLETED:
            completed_at = now
        elif status == InterventionStatus.IN_PROGRESS:
            completed_at = None
        else:
            completed_at = current.completed_at

        updated = current.model_copy(update={
            "status": status,
            "notes": notes or current.notes,
            "started_at": started_at,
            "completed_at": completed_at,
        })
        store.save(plan.model_copy(update={
            "interventions": [updated if i.id == intervention_id else i for i in plan.interventions],
            "updated_at": now,
        }))

        log_event(
            "info",
            "coaching.intervention_updated",
            user_id=user_id,
            event_type="coaching.intervention_updated",
            extra={"intervention_id": intervention_id, "status": status.value},
        )
        return updated

    @staticmethod
    def _plan_observations(plan_id: str, insights: CoachingInsight, now: datetime) -> List[PlanObservation]:
        return [
            PlanObservation(id=_new_id(), plan_id=plan_id, created_at=now, **o.model_dump())
            for o in insights.observations
        ]

    @staticmethod
    def _plan_assessments(plan_id: str, insights: CoachingInsight, now: datetime) -> List[PlanAssessment]:
        return [
            PlanAssessment(id=_new_id(), plan_id=plan_id, created_at=now, **a.model_dump())
            for a in insights.assessments
        ]

    @staticmethod
    def _ordered(plan: CoachingPlan) -> CoachingPlan:
        observations = sorted(
            (o for o in plan.observations if not o.is_resolved),
            key=lambda o: (o.severity.rank, o.created_at),
            reverse=True,
        )
        interventions = sorted(
            plan.interventions,
            key=lambda i: (i.priority.rank, i.created_at),
            reverse=True,
        )
        assessments = sorted(plan.assessments, key=lambda a: a.created_at, reverse=True)
        return plan.model_copy(update={
            "observations": observations,
            "interventions": interventions,
            "assessments": assessments[: settings.COACHING_PLAN_ASSESSMENT_LIMIT],
        })


def summary_payload(summary: AnalysisSummary) -> Dict[str, Any]:
    return summary.model_dump(mode="json", by_alias=True)
