"""
atlas/features/coaching/plan_store.py

Per-user coaching plan storage. Process-local and in-memory; one plan per user.
"""

from typing import Dict, Optional, Tuple

from atlas.features.coaching.models import CoachingPlan, PlanIntervention


class CoachingPlanStore:
    """In-memory plan store keyed by user id."""

    def __init__(self):
        self._plans: Dict[str, CoachingPlan] = {}

    def get(self, user_id: str) -> Optional[CoachingPlan]:
        return self._plans.get(user_id)

    def save(self, plan: CoachingPlan) -> CoachingPlan:
        self._plans[plan.user_id] = plan
        return plan

    def find_intervention(self, intervention_id: str) -> Optional[Tuple[CoachingPlan, PlanIntervention]]:
        """Locate an intervention across all plans."""
        for plan in self._plans.values():
            for intervention in plan.interventions:
                if intervention.id == intervention_id:
                    return plan, intervention
        return None

    def clear(self) -> None:
        """FOR TESTING ONLY."""
        self._plans.clear()

    def count(self) -> int:
        return len(self._plans)


_store_instance: Optional[CoachingPlanStore] = None


def get_plan_store() -> CoachingPlanStore:
    global _store_instance
    if _store_instance is None:
        _store_instance = CoachingPlanStore()
    return _store_instance


def reset_plan_store() -> None:
    """Drop the singleton; the next get_plan_store() starts empty."""
    global _store_instance
    _store_instance = None
