"""
atlas/features/coaching/rules.py

Heuristic thresholds, score tables and text predicates used by the coaching
analyzer. Every number the analyzer applies lives here so the rules can be
tuned and tested without touching the orchestration.
"""

from typing import Iterable, Optional, Sequence, Tuple

from atlas.models.coaching import JiraIssue, MaturityLevel, TeamDocument


# ----------------------------------------------------------------------------
# Story quality
# ----------------------------------------------------------------------------

STORY_BASELINE = 70
STORY_TYPES = ("story", "user story")
SHALLOW_DESCRIPTION_CHARS = 50
SHALLOW_DESCRIPTION_RATIO = 0.3
SHALLOW_DESCRIPTION_PENALTY = 15
MISSING_AC_RATIO = 0.4
MISSING_AC_PENALTY = 20
ACCEPTANCE_CRITERIA_MARKERS = ("acceptance criteria", "ac:", "done when")
MISSING_POINTS_RATIO = 0.2
MISSING_POINTS_PENALTY = 10
WELL_POINTED_RATIO = 0.8
EVIDENCE_EXAMPLES = 3

# ----------------------------------------------------------------------------
# Sprint health
# ----------------------------------------------------------------------------

SPRINT_BASELINE = 75
DONE_STATUSES = ("done", "closed")
LOW_COMPLETION_RATE = 70.0  # percent
LOW_COMPLETION_PENALTY = 20
RECENT_SPRINT_STATS = 3
CARRY_OVER_RATIO = 0.3
CARRY_OVER_PENALTY = 15

# ----------------------------------------------------------------------------
# Velocity
# ----------------------------------------------------------------------------

VELOCITY_BASELINE = 70
VELOCITY_MIN_SPRINTS = 3
HIGH_VARIATION_COV = 40.0
HIGH_VARIATION_PENALTY = 20
MODERATE_VARIATION_COV = 25.0
MODERATE_VARIATION_PENALTY = 10
STABLE_VELOCITY_REWARD = 10
RECENT_VELOCITIES = 5

# ----------------------------------------------------------------------------
# Documents
# ----------------------------------------------------------------------------

RETRO_BASELINE = 70
RETRO_NAME_MARKERS = ("retro",)
RETRO_TEXT_MARKERS = ("retrospective", "what went well")
ACTION_ITEM_MARKERS = ("action item", "action:", "todo")
MISSING_ACTIONS_PENALTY = 25
SHALLOW_RETRO_CHARS = 500
SHALLOW_RETRO_RATIO = 0.5
SHALLOW_RETRO_PENALTY = 15

PLANNING_BASELINE = 75
PLANNING_NAME_MARKERS = ("planning", "pi planning")
PLANNING_TEXT_MARKERS = ("sprint planning",)
RISK_MARKERS = ("risk", "blocker", "dependency")
MISSING_RISKS_PENALTY = 20

# ----------------------------------------------------------------------------
# Conversations
# ----------------------------------------------------------------------------

REPEATED_QUESTION_MIN = 3

# ----------------------------------------------------------------------------
# Maturity tables (score floor, level), checked top-down.
# The per-assessment and overall tables differ on purpose; keep both.
# ----------------------------------------------------------------------------

ASSESSMENT_MATURITY_TABLE: Tuple[Tuple[float, MaturityLevel], ...] = (
    (85, MaturityLevel.PERFORMING),
    (70, MaturityLevel.NORMING),
    (50, MaturityLevel.STORMING),
)

OVERALL_MATURITY_TABLE: Tuple[Tuple[float, MaturityLevel], ...] = (
    (90, MaturityLevel.TRANSFORMING),
    (80, MaturityLevel.PERFORMING),
    (65, MaturityLevel.NORMING),
    (50, MaturityLevel.STORMING),
)


def level_for_score(score: float, table: Sequence[Tuple[float, MaturityLevel]]) -> MaturityLevel:
    for floor, level in table:
        if score >= floor:
            return level
    return MaturityLevel.FORMING


def clamp_score(score: float) -> int:
    return int(max(0, min(100, score)))


def ratio_reached(affected: int, total: int, ratio: float) -> bool:
    """True when affected/total meets the ratio. An empty population never does."""
    if total <= 0:
        return False
    return affected / total >= ratio


# ----------------------------------------------------------------------------
# Predicates
# ----------------------------------------------------------------------------

def _lower(text: Optional[str]) -> str:
    return text.lower() if text else ""


def contains_any(text: Optional[str], markers: Iterable[str]) -> bool:
    lowered = _lower(text)
    return any(marker in lowered for marker in markers)


def is_story(issue: JiraIssue) -> bool:
    return _lower(issue.issue_type).strip() in STORY_TYPES


def is_done(issue: JiraIssue) -> bool:
    return _lower(issue.status).strip() in DONE_STATUSES


def is_carry_over(issue: JiraIssue) -> bool:
    """Sprint-assigned work not marked done. Closed items still count."""
    return bool(issue.sprint) and _lower(issue.status).strip() != "done"


def has_shallow_description(issue: JiraIssue) -> bool:
    return not issue.description or len(issue.description) < SHALLOW_DESCRIPTION_CHARS


def has_acceptance_criteria(issue: JiraIssue) -> bool:
    return contains_any(issue.description, ACCEPTANCE_CRITERIA_MARKERS)


def has_story_points(issue: JiraIssue) -> bool:
    return bool(issue.story_points)


def is_retrospective_document(doc: TeamDocument) -> bool:
    return contains_any(doc.original_name, RETRO_NAME_MARKERS) or contains_any(
        doc.extracted_text, RETRO_TEXT_MARKERS
    )


def is_planning_document(doc: TeamDocument) -> bool:
    return contains_any(doc.original_name, PLANNING_NAME_MARKERS) or contains_any(
        doc.extracted_text, PLANNING_TEXT_MARKERS
    )


def has_action_items(doc: TeamDocument) -> bool:
    return contains_any(doc.extracted_text, ACTION_ITEM_MARKERS)


def is_shallow_retrospective(doc: TeamDocument) -> bool:
    return not doc.extracted_text or len(doc.extracted_text) < SHALLOW_RETRO_CHARS


def mentions_risks(doc: TeamDocument) -> bool:
    return contains_any(doc.extracted_text, RISK_MARKERS)


def normalize_question(content: Optional[str]) -> str:
    return _lower(content).strip()
