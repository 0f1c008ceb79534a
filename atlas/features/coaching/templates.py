"""
atlas/features/coaching/templates.py

Static intervention content and focus-area labels, keyed by observation
category. The intervention table is deliberately partial: a category with no
entry produces no intervention.
"""

from typing import Dict, List, Optional

from atlas.models.coaching import (
    ActionItem,
    EffortLevel,
    ImpactLevel,
    Intervention,
    Observation,
    ObservationCategory,
    PriorityLevel,
)


class InterventionTemplate:
    """Fixed intervention content for one observation category."""

    def __init__(
        self,
        title: str,
        description: str,
        action_items: List[ActionItem],
        priority: PriorityLevel,
        estimated_impact: ImpactLevel,
        estimated_effort: EffortLevel,
    ):
        self.title = title
        self.description = description
        self.action_items = action_items
        self.priority = priority
        self.estimated_impact = estimated_impact
        self.estimated_effort = estimated_effort

    def build(self, observations: List[Observation]) -> Intervention:
        return Intervention(
            observation_ids=[o.title for o in observations],
            title=self.title,
            description=self.description,
            action_items=list(self.action_items),
            priority=self.priority,
            estimated_impact=self.estimated_impact,
            estimated_effort=self.estimated_effort,
        )


INTERVENTION_TEMPLATES: Dict[ObservationCategory, InterventionTemplate] = {
    ObservationCategory.STORY_ACCEPTANCE_CRITERIA: InterventionTemplate(
        title="Implement Acceptance Criteria Workshop",
        description=(
            "Conduct a team workshop on writing effective acceptance criteria using the "
            "INVEST principles. Focus on making criteria testable, specific, and value-driven."
        ),
        action_items=[
            ActionItem(
                title="Schedule 2-hour AC Workshop",
                description="Book time with the team to practice writing acceptance criteria",
                resources=["INVEST principles guide", "AC templates and examples"],
            ),
            ActionItem(
                title="Create AC checklist",
                description="Develop a simple checklist for the team to use when refining stories",
                resources=["AC checklist template"],
            ),
            ActionItem(
                title="Implement AC review in refinement",
                description="Add AC quality check as a mandatory step in backlog refinement",
            ),
        ],
        priority=PriorityLevel.HIGH,
        estimated_impact=ImpactLevel.HIGH,
        estimated_effort=EffortLevel.MEDIUM,
    ),
    ObservationCategory.RETROSPECTIVE_QUALITY: InterventionTemplate(
        title="Revitalize Retrospective Practice",
        description=(
            "Transform retrospectives from status meetings into improvement engines. "
            "Focus on generating actionable insights and tracking progress on action items."
        ),
        action_items=[
            ActionItem(
                title="Try a new retro format",
                description="Use formats like Sailboat, 4Ls, or Start-Stop-Continue to generate fresh insights",
                resources=["Retrospective format library", "Facilitation guides"],
            ),
            ActionItem(
                title="Establish action item tracking",
                description="Create a visible board to track action items and review progress in each retro",
            ),
            ActionItem(
                title="Rotate facilitation",
                description="Let different team members facilitate to bring new perspectives",
            ),
        ],
        priority=PriorityLevel.HIGH,
        estimated_impact=ImpactLevel.TRANSFORMATIVE,
        estimated_effort=EffortLevel.LOW,
    ),
    ObservationCategory.TEAM_VELOCITY: InterventionTemplate(
        title="Stabilize Velocity Through Better Planning",
        description=(
            "Improve velocity predictability by focusing on better estimation, capacity "
            "planning, and removing impediments faster."
        ),
        action_items=[
            ActionItem(
                title="Review estimation practices",
                description="Ensure the team understands story points and estimates consistently",
                resources=["Estimation workshop materials"],
            ),
            ActionItem(
                title="Track capacity vs. commitment",
                description="Start tracking actual capacity vs. planned capacity to improve planning",
            ),
            ActionItem(
                title="Daily blocker triage",
                description="Implement a quick daily check to identify and resolve blockers immediately",
            ),
        ],
        priority=PriorityLevel.MEDIUM,
        estimated_impact=ImpactLevel.HIGH,
        estimated_effort=EffortLevel.MEDIUM,
    ),
    ObservationCategory.RISK_MANAGEMENT: InterventionTemplate(
        title="Build Proactive Risk Management Practice",
        description="Integrate risk identification and mitigation into planning and daily operations.",
        action_items=[
            ActionItem(
                title="Add risk discussion to planning",
                description="Dedicate 15 minutes in planning to identify risks and dependencies",
            ),
            ActionItem(
                title="Create risk register",
                description="Maintain a simple risk register and review it regularly",
                resources=["Risk register template"],
            ),
            ActionItem(
                title="Assign risk owners",
                description="Make someone responsible for monitoring each identified risk",
            ),
        ],
        priority=PriorityLevel.MEDIUM,
        estimated_impact=ImpactLevel.MEDIUM,
        estimated_effort=EffortLevel.LOW,
    ),
}


FOCUS_AREA_LABELS: Dict[str, str] = {
    ObservationCategory.STORY_ACCEPTANCE_CRITERIA.value: "User Story Quality",
    ObservationCategory.RETROSPECTIVE_QUALITY.value: "Retrospective Effectiveness",
    ObservationCategory.SPRINT_PLANNING.value: "Sprint Planning & Commitment",
    ObservationCategory.TEAM_VELOCITY.value: "Velocity & Predictability",
    ObservationCategory.RISK_MANAGEMENT.value: "Risk & Dependency Management",
    ObservationCategory.CONTINUOUS_IMPROVEMENT.value: "Continuous Improvement",
    ObservationCategory.TEAM_COLLABORATION.value: "Team Collaboration",
}


def template_for(category: ObservationCategory) -> Optional[InterventionTemplate]:
    """Lookup that returns None for categories without an intervention."""
    return INTERVENTION_TEMPLATES.get(category)


def focus_area_label(category: str) -> str:
    key = category.value if isinstance(category, ObservationCategory) else category
    return FOCUS_AREA_LABELS.get(key, key)
