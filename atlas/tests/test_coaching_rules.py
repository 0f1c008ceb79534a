"""
atlas/tests/test_coaching_rules.py

Thresholds, maturity tables and text predicates used by the analyzer.
"""

import pytest

from atlas.features.coaching import rules
from atlas.features.coaching.templates import FOCUS_AREA_LABELS, focus_area_label, template_for
from atlas.models.coaching import (
    JiraIssue,
    MaturityLevel,
    ObservationCategory,
    TeamDocument,
)


class TestMaturityTables:
    """Per-assessment and overall tables are distinct."""

    @pytest.mark.parametrize(
        "score, expected",
        [
            (100, MaturityLevel.PERFORMING),
            (85, MaturityLevel.PERFORMING),
            (84, MaturityLevel.NORMING),
            (70, MaturityLevel.NORMING),
            (69, MaturityLevel.STORMING),
            (50, MaturityLevel.STORMING),
            (49, MaturityLevel.FORMING),
            (0, MaturityLevel.FORMING),
        ],
    )
    def test_assessment_table(self, score, expected):
        assert rules.level_for_score(score, rules.ASSESSMENT_MATURITY_TABLE) == expected

    @pytest.mark.parametrize(
        "score, expected",
        [
            (90, MaturityLevel.TRANSFORMING),
            (89.9, MaturityLevel.PERFORMING),
            (80, MaturityLevel.PERFORMING),
            (65, MaturityLevel.NORMING),
            (64.9, MaturityLevel.STORMING),
            (50, MaturityLevel.STORMING),
            (10, MaturityLevel.FORMING),
        ],
    )
    def test_overall_table(self, score, expected):
        assert rules.level_for_score(score, rules.OVERALL_MATURITY_TABLE) == expected

    def test_assessment_table_never_reaches_transforming(self):
        assert rules.level_for_score(100, rules.ASSESSMENT_MATURITY_TABLE) == MaturityLevel.PERFORMING


class TestScoring:
    def test_clamp_score_bounds(self):
        assert rules.clamp_score(-45) == 0
        assert rules.clamp_score(130) == 100
        assert rules.clamp_score(55) == 55

    def test_ratio_reached_is_inclusive(self):
        assert rules.ratio_reached(3, 10, 0.3)
        assert rules.ratio_reached(4, 10, 0.4)
        assert not rules.ratio_reached(2, 10, 0.3)

    def test_ratio_reached_empty_population(self):
        assert not rules.ratio_reached(0, 0, 0.3)


class TestIssuePredicates:
    def test_is_story_case_insensitive(self):
        assert rules.is_story(JiraIssue(issue_type="Story"))
        assert rules.is_story(JiraIssue(issue_type="User Story"))
        assert not rules.is_story(JiraIssue(issue_type="Bug"))
        assert not rules.is_story(JiraIssue())

    def test_done_and_closed_count_as_done(self):
        assert rules.is_done(JiraIssue(status="Done"))
        assert rules.is_done(JiraIssue(status="closed"))
        assert not rules.is_done(JiraIssue(status="In Progress"))

    def test_closed_sprint_issue_is_still_carry_over(self):
        assert rules.is_carry_over(JiraIssue(status="Closed", sprint="S1"))
        assert not rules.is_carry_over(JiraIssue(status="Done", sprint="S1"))
        assert not rules.is_carry_over(JiraIssue(status="To Do"))

    def test_shallow_description(self):
        assert rules.has_shallow_description(JiraIssue(description=None))
        assert rules.has_shallow_description(JiraIssue(description="x" * 49))
        assert not rules.has_shallow_description(JiraIssue(description="x" * 50))

    @pytest.mark.parametrize(
        "description",
        [
            "Acceptance Criteria: user sees the banner",
            "AC: totals match",
            "Done when the report exports",
        ],
    )
    def test_acceptance_criteria_markers(self, description):
        assert rules.has_acceptance_criteria(JiraIssue(description=description))

    def test_missing_acceptance_criteria(self):
        assert not rules.has_acceptance_criteria(JiraIssue(description="Build the thing"))
        assert not rules.has_acceptance_criteria(JiraIssue())

    def test_zero_points_is_unpointed(self):
        assert not rules.has_story_points(JiraIssue(story_points=0))
        assert not rules.has_story_points(JiraIssue())
        assert rules.has_story_points(JiraIssue(story_points=3))


class TestDocumentPredicates:
    def test_retrospective_by_name_or_text(self):
        assert rules.is_retrospective_document(TeamDocument(original_name="Sprint 4 Retro.docx"))
        assert rules.is_retrospective_document(TeamDocument(extracted_text="What went well: pairing"))
        assert not rules.is_retrospective_document(TeamDocument(original_name="notes.txt"))

    def test_planning_by_name_or_text(self):
        assert rules.is_planning_document(TeamDocument(original_name="PI Planning Q3.pdf"))
        assert rules.is_planning_document(TeamDocument(extracted_text="Sprint planning agenda"))
        assert not rules.is_planning_document(TeamDocument(original_name="retro.md"))

    def test_action_items_and_risks(self):
        assert rules.has_action_items(TeamDocument(extracted_text="Action: fix CI"))
        assert rules.has_action_items(TeamDocument(extracted_text="TODO update board"))
        assert not rules.has_action_items(TeamDocument(extracted_text="Nice sprint"))
        assert rules.mentions_risks(TeamDocument(extracted_text="Blocker on the API team"))
        assert not rules.mentions_risks(TeamDocument(extracted_text="Stories were picked"))

    def test_shallow_retrospective(self):
        assert rules.is_shallow_retrospective(TeamDocument(extracted_text="short"))
        assert rules.is_shallow_retrospective(TeamDocument())
        assert not rules.is_shallow_retrospective(TeamDocument(extracted_text="x" * 500))

    def test_normalize_question(self):
        assert rules.normalize_question("  How Do We Estimate?  ") == "how do we estimate?"
        assert rules.normalize_question(None) == ""


class TestTemplates:
    def test_partial_intervention_map(self):
        assert template_for(ObservationCategory.STORY_ACCEPTANCE_CRITERIA) is not None
        assert template_for(ObservationCategory.RETROSPECTIVE_QUALITY) is not None
        assert template_for(ObservationCategory.TEAM_VELOCITY) is not None
        assert template_for(ObservationCategory.RISK_MANAGEMENT) is not None
        assert template_for(ObservationCategory.SPRINT_PLANNING) is None
        assert template_for(ObservationCategory.CONTINUOUS_IMPROVEMENT) is None
        assert template_for(ObservationCategory.TEAM_COLLABORATION) is None

    def test_focus_labels_cover_every_category(self):
        assert set(FOCUS_AREA_LABELS) == {c.value for c in ObservationCategory}

    def test_focus_label_passes_unknown_through(self):
        assert focus_area_label("SOMETHING_NEW") == "SOMETHING_NEW"
        assert focus_area_label(ObservationCategory.TEAM_VELOCITY) == "Velocity & Predictability"
