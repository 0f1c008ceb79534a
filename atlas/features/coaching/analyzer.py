"""Deterministic coaching analyzer. No external calls.

Turns a bundle of team data (issue tracker export, uploaded documents,
conversation history) into observations, assessments, interventions, an
overall maturity level and focus areas. Every stage is independent and
silently skipped when its input is missing.
"""

import statistics
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from atlas.features.coaching import rules
from atlas.features.coaching.templates import focus_area_label, template_for
from atlas.models.coaching import (
    Assessment,
    AssessmentType,
    CoachingInsight,
    ConversationSession,
    Intervention,
    JiraIssue,
    MaturityLevel,
    Observation,
    ObservationCategory,
    SeverityLevel,
    TeamDataInput,
    TeamDocument,
)


JIRA_SOURCE = "Jira Analysis"
DOCUMENT_SOURCE = "Document Analysis"
CONVERSATION_SOURCE = "Conversation Analysis"

TITLE_SHALLOW_STORIES = "Many stories have shallow or missing descriptions"
TITLE_MISSING_AC = "Acceptance Criteria frequently missing from stories"
TITLE_INCONSISTENT_POINTS = "Story pointing is inconsistent"
TITLE_LOW_COMPLETION = "Sprint completion rate is below healthy threshold"
TITLE_CARRY_OVER = "High volume of carry-over work between sprints"
TITLE_HIGH_VARIATION = "Velocity is highly variable and unpredictable"
TITLE_MODERATE_VARIATION = "Velocity shows moderate variability"
TITLE_MISSING_ACTIONS = "Retrospectives lack clear action items"
TITLE_SHALLOW_RETROS = "Retrospectives appear shallow or rushed"
TITLE_MISSING_RISKS = "Planning sessions don't identify risks or dependencies"
TITLE_REPEATED_TOPICS = "Some topics are being revisited frequently"

DimensionResult = Tuple[List[Observation], Assessment]


def _percent(part: int, whole: int) -> int:
    return int(part / whole * 100 + 0.5) if whole else 0


def _examples(issues: List[JiraIssue]) -> List[str]:
    return [i.issue_key for i in issues if i.issue_key][: rules.EVIDENCE_EXAMPLES]


def _stamp(meta: Dict[str, Any], now: Optional[datetime]) -> Dict[str, Any]:
    if now is not None:
        meta["analysisDate"] = now.isoformat()
    return meta


def _titles(observations: List[Observation]) -> List[str]:
    return [o.title for o in observations]


def _group_by_sprint(issues: List[JiraIssue]) -> List[Tuple[str, List[JiraIssue]]]:
    """Group sprint-assigned issues, sprints in first-appearance order."""
    groups: Dict[str, List[JiraIssue]] = {}
    for issue in issues:
        if issue.sprint:
            groups.setdefault(issue.sprint, []).append(issue)
    return list(groups.items())


def _sprint_velocities(issues: List[JiraIssue]) -> List[Tuple[str, float]]:
    """Completed story points per sprint, sprints in first-appearance order."""
    totals: Dict[str, float] = {}
    for issue in issues:
        if issue.sprint and issue.story_points and rules.is_done(issue):
            totals[issue.sprint] = totals.get(issue.sprint, 0) + issue.story_points
    return list(totals.items())


class CoachingAnalyzer:
    """Pure, deterministic rule engine for agile coaching insights."""

    @staticmethod
    def analyze_team_data(
        data: Union[TeamDataInput, Mapping[str, Any], None],
        now: Optional[datetime] = None,
    ) -> CoachingInsight:
        """Analyze team data and return coaching insights.

        Args:
            data: TeamDataInput or a mapping with the same (camelCase or
                snake_case) keys. Missing sections are skipped.
            now: Optional timestamp recorded as ``analysisDate`` in the
                assessment metadata. Nothing clock-dependent is emitted
                without it, so identical input gives identical output.
        """
        if isinstance(data, TeamDataInput):
            team_data = data
        else:
            team_data = TeamDataInput.model_validate(dict(data or {}))

        observations: List[Observation] = []
        assessments: List[Assessment] = []

        if team_data.jira_issues:
            jira_observations, jira_assessments = CoachingAnalyzer._analyze_jira_data(team_data.jira_issues, now)
            observations.extend(jira_observations)
            assessments.extend(jira_assessments)

        if team_data.documents:
            doc_observations, doc_assessments = CoachingAnalyzer._analyze_documents(team_data.documents)
            observations.extend(doc_observations)
            assessments.extend(doc_assessments)

        if team_data.conversation_history:
            observations.extend(
                CoachingAnalyzer._analyze_conversation_patterns(team_data.conversation_history)
            )

        return CoachingInsight(
            observations=observations,
            interventions=CoachingAnalyzer.generate_interventions(observations),
            assessments=assessments,
            overall_maturity=CoachingAnalyzer.calculate_maturity_level(assessments),
            focus_areas=CoachingAnalyzer.identify_focus_areas(observations),
        )

    # ------------------------------------------------------------------
    # Jira
    # ------------------------------------------------------------------

    @staticmethod
    def _analyze_jira_data(
        issues: List[JiraIssue], now: Optional[datetime]
    ) -> Tuple[List[Observation], List[Assessment]]:
        observations: List[Observation] = []
        assessments: List[Assessment] = []
        for analysis in (
            CoachingAnalyzer.analyze_story_quality(issues, now),
            CoachingAnalyzer.analyze_sprint_health(issues),
            CoachingAnalyzer.analyze_velocity_patterns(issues, now),
        ):
            found, assessment = analysis
            observations.extend(found)
            assessments.append(assessment)
        return observations, assessments

    @staticmethod
    def analyze_story_quality(issues: List[JiraIssue], now: Optional[datetime] = None) -> DimensionResult:
        """Score story quality: descriptions, acceptance criteria, estimation."""
        observations: List[Observation] = []
        stories = [i for i in issues if rules.is_story(i)]
        total = len(stories)
        score = rules.STORY_BASELINE

        shallow = [s for s in stories if rules.has_shallow_description(s)]
        if rules.ratio_reached(len(shallow), total, rules.SHALLOW_DESCRIPTION_RATIO):
            observations.append(Observation(
                category=ObservationCategory.STORY_ACCEPTANCE_CRITERIA,
                severity=SeverityLevel.HIGH,
                title=TITLE_SHALLOW_STORIES,
                description=(
                    f"{len(shallow)} out of {total} stories ({_percent(len(shallow), total)}%) lack detailed "
                    "descriptions. Well-written user stories include context, user needs and clear business value."
                ),
                data_source=JIRA_SOURCE,
                data_evidence={
                    "totalStories": total,
                    "shallowCount": len(shallow),
                    "examples": _examples(shallow),
                },
                affected_areas=["Sprint Planning", "User Stories", "Team Understanding"],
            ))
            score -= rules.SHALLOW_DESCRIPTION_PENALTY

        missing_ac = [s for s in stories if not rules.has_acceptance_criteria(s)]
        if rules.ratio_reached(len(missing_ac), total, rules.MISSING_AC_RATIO):
            observations.append(Observation(
                category=ObservationCategory.STORY_ACCEPTANCE_CRITERIA,
                severity=SeverityLevel.CRITICAL,
                title=TITLE_MISSING_AC,
                description=(
                    f"{len(missing_ac)} out of {total} stories ({_percent(len(missing_ac), total)}%) don't have "
                    "clear acceptance criteria. This leads to ambiguity, rework and misalignment between "
                    "developers and stakeholders."
                ),
                data_source=JIRA_SOURCE,
                data_evidence={
                    "totalStories": total,
                    "missingACCount": len(missing_ac),
                    "examples": _examples(missing_ac),
                },
                affected_areas=["Definition of Done", "Quality", "Team Alignment"],
            ))
            score -= rules.MISSING_AC_PENALTY

        unpointed = [s for s in stories if not rules.has_story_points(s)]
        if rules.ratio_reached(len(unpointed), total, rules.MISSING_POINTS_RATIO):
            observations.append(Observation(
                category=ObservationCategory.SPRINT_PLANNING,
                severity=SeverityLevel.MEDIUM,
                title=TITLE_INCONSISTENT_POINTS,
                description=(
                    f"{len(unpointed)} out of {total} stories lack story points. Consistent estimation "
                    "helps with sprint planning and velocity tracking."
                ),
                data_source=JIRA_SOURCE,
                data_evidence={
                    "totalStories": total,
                    "missingPointsCount": len(unpointed),
                    "examples": _examples(unpointed),
                },
                affected_areas=["Sprint Planning", "Velocity Tracking"],
            ))
            score -= rules.MISSING_POINTS_PENALTY

        return observations, CoachingAnalyzer._assessment(
            AssessmentType.JIRA_ANALYSIS,
            "User Story Quality",
            score,
            observations,
            strengths=CoachingAnalyzer._story_strengths(stories, observations),
            recommendations=CoachingAnalyzer._story_recommendations(observations),
            data_analyzed=_stamp({"totalStories": total}, now),
        )

    @staticmethod
    def analyze_sprint_health(issues: List[JiraIssue]) -> DimensionResult:
        """Score sprint completion and carry-over."""
        observations: List[Observation] = []
        score = rules.SPRINT_BASELINE
        sprints = _group_by_sprint(issues)

        if sprints:
            stats = []
            for name, sprint_issues in sprints:
                done = sum(1 for i in sprint_issues if rules.is_done(i))
                stats.append({
                    "sprint": name,
                    "completionRate": done / len(sprint_issues) * 100,
                    "total": len(sprint_issues),
                    "done": done,
                })
            avg_completion = statistics.fmean(s["completionRate"] for s in stats)

            if avg_completion < rules.LOW_COMPLETION_RATE:
                observations.append(Observation(
                    category=ObservationCategory.TEAM_VELOCITY,
                    severity=SeverityLevel.HIGH,
                    title=TITLE_LOW_COMPLETION,
                    description=(
                        f"Average sprint completion rate is {avg_completion:.1f}%. Healthy teams typically "
                        "complete 80-90% of committed work. This may indicate over-commitment, unclear "
                        "requirements or blockers."
                    ),
                    data_source=JIRA_SOURCE,
                    data_evidence={
                        "avgCompletionRate": round(avg_completion, 1),
                        "sprintStats": stats[-rules.RECENT_SPRINT_STATS:],
                    },
                    affected_areas=["Sprint Planning", "Capacity Planning", "Predictability"],
                ))
                score -= rules.LOW_COMPLETION_PENALTY

            carry_over = [i for i in issues if rules.is_carry_over(i)]
            if len(carry_over) / len(issues) > rules.CARRY_OVER_RATIO:
                observations.append(Observation(
                    category=ObservationCategory.SPRINT_PLANNING,
                    severity=SeverityLevel.MEDIUM,
                    title=TITLE_CARRY_OVER,
                    description=(
                        f"{len(carry_over)} items are being carried over. Stories may be too large, "
                        "commitments too optimistic, or blockers are not resolved quickly."
                    ),
                    data_source=JIRA_SOURCE,
                    data_evidence={
                        "carryOverCount": len(carry_over),
                        "totalCount": len(issues),
                        "examples": _examples(carry_over),
                    },
                    affected_areas=["Sprint Planning", "Story Sizing", "Team Capacity"],
                ))
                score -= rules.CARRY_OVER_PENALTY

        strengths = []
        if sprints:
            strengths.append(f"Team has completed {len(sprints)} sprints")
        if not observations:
            strengths.append("Sprint health metrics are good")

        recommendations = []
        if TITLE_LOW_COMPLETION in _titles(observations):
            recommendations.append("Review sprint commitments and team capacity")
            recommendations.append("Identify and address recurring blockers in daily standups")
        if TITLE_CARRY_OVER in _titles(observations):
            recommendations.append("Break down large stories into smaller, manageable pieces")

        return observations, CoachingAnalyzer._assessment(
            AssessmentType.JIRA_ANALYSIS,
            "Sprint Health",
            score,
            observations,
            strengths=strengths or ["Team is running sprints regularly"],
            recommendations=recommendations,
            data_analyzed={"totalSprints": len(sprints), "totalIssues": len(issues)},
        )

    @staticmethod
    def analyze_velocity_patterns(issues: List[JiraIssue], now: Optional[datetime] = None) -> DimensionResult:
        """Score velocity stability using the coefficient of variation."""
        observations: List[Observation] = []
        score = rules.VELOCITY_BASELINE
        velocities = [points for _, points in _sprint_velocities(issues)]

        if len(velocities) >= rules.VELOCITY_MIN_SPRINTS:
            avg_velocity = statistics.fmean(velocities)
            std_dev = statistics.pstdev(velocities)
            cov = std_dev / avg_velocity * 100 if avg_velocity else 0.0

            if cov > rules.HIGH_VARIATION_COV:
                observations.append(Observation(
                    category=ObservationCategory.TEAM_VELOCITY,
                    severity=SeverityLevel.HIGH,
                    title=TITLE_HIGH_VARIATION,
                    description=(
                        f"Velocity varies by {cov:.1f}% (coefficient of variation). Stable teams typically "
                        "stay below 25%. This makes planning difficult and suggests inconsistent capacity, "
                        "varying story complexity or external interruptions."
                    ),
                    data_source=JIRA_SOURCE,
                    data_evidence={
                        "avgVelocity": round(avg_velocity, 1),
                        "stdDev": round(std_dev, 1),
                        "coefficientOfVariation": round(cov, 1),
                        "recentVelocities": velocities[-rules.RECENT_VELOCITIES:],
                    },
                    affected_areas=["Predictability", "Sprint Planning", "Team Stability"],
                ))
                score -= rules.HIGH_VARIATION_PENALTY
            elif cov > rules.MODERATE_VARIATION_COV:
                observations.append(Observation(
                    category=ObservationCategory.TEAM_VELOCITY,
                    severity=SeverityLevel.MEDIUM,
                    title=TITLE_MODERATE_VARIATION,
                    description=(
                        f"Velocity varies by {cov:.1f}%. Reducing this variation below 25% will improve "
                        "planning accuracy."
                    ),
                    data_source=JIRA_SOURCE,
                    data_evidence={
                        "avgVelocity": round(avg_velocity, 1),
                        "coefficientOfVariation": round(cov, 1),
                    },
                    affected_areas=["Predictability", "Sprint Planning"],
                ))
                score -= rules.MODERATE_VARIATION_PENALTY
            else:
                score += rules.STABLE_VELOCITY_REWARD

        strengths = []
        if len(velocities) >= rules.VELOCITY_MIN_SPRINTS:
            strengths.append("Team has sufficient history for velocity analysis")
        if not observations:
            strengths.append("Velocity is stable and predictable")

        recommendations = []
        if TITLE_HIGH_VARIATION in _titles(observations):
            recommendations.append("Focus on consistent team composition and minimize interruptions")
            recommendations.append("Improve estimation accuracy through regular calibration")

        return observations, CoachingAnalyzer._assessment(
            AssessmentType.JIRA_ANALYSIS,
            "Velocity & Predictability",
            score,
            observations,
            strengths=strengths or ["Team is tracking velocity"],
            recommendations=recommendations,
            data_analyzed=_stamp({"sprintCount": len(velocities)}, now),
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @staticmethod
    def _analyze_documents(documents: List[TeamDocument]) -> Tuple[List[Observation], List[Assessment]]:
        observations: List[Observation] = []
        assessments: List[Assessment] = []

        retro_docs = [d for d in documents if rules.is_retrospective_document(d)]
        if retro_docs:
            found, assessment = CoachingAnalyzer.analyze_retrospectives(retro_docs)
            observations.extend(found)
            assessments.append(assessment)

        planning_docs = [d for d in documents if rules.is_planning_document(d)]
        if planning_docs:
            found, assessment = CoachingAnalyzer.analyze_planning_documents(planning_docs)
            observations.extend(found)
            assessments.append(assessment)

        return observations, assessments

    @staticmethod
    def analyze_retrospectives(retro_docs: List[TeamDocument]) -> DimensionResult:
        observations: List[Observation] = []
        score = rules.RETRO_BASELINE

        if not any(rules.has_action_items(d) for d in retro_docs):
            observations.append(Observation(
                category=ObservationCategory.RETROSPECTIVE_QUALITY,
                severity=SeverityLevel.CRITICAL,
                title=TITLE_MISSING_ACTIONS,
                description=(
                    "Your retrospective documents don't contain clear action items. Retrospectives should "
                    "always end in concrete, actionable improvements; without follow-up they stop driving change."
                ),
                data_source=DOCUMENT_SOURCE,
                data_evidence={"documentCount": len(retro_docs)},
                affected_areas=["Continuous Improvement", "Team Engagement", "Retrospectives"],
            ))
            score -= rules.MISSING_ACTIONS_PENALTY

        shallow = [d for d in retro_docs if rules.is_shallow_retrospective(d)]
        if rules.ratio_reached(len(shallow), len(retro_docs), rules.SHALLOW_RETRO_RATIO):
            observations.append(Observation(
                category=ObservationCategory.RETROSPECTIVE_QUALITY,
                severity=SeverityLevel.HIGH,
                title=TITLE_SHALLOW_RETROS,
                description=(
                    f"{len(shallow)} out of {len(retro_docs)} retrospective documents are very brief. "
                    "Effective retrospectives need thoughtful discussion and root cause analysis."
                ),
                data_source=DOCUMENT_SOURCE,
                data_evidence={"documentCount": len(retro_docs), "shallowCount": len(shallow)},
                affected_areas=["Team Engagement", "Continuous Improvement"],
            ))
            score -= rules.SHALLOW_RETRO_PENALTY

        strengths = ["Team conducts regular retrospectives"]
        if not observations:
            strengths.append("Retrospective quality is good")

        recommendations = []
        if TITLE_MISSING_ACTIONS in _titles(observations):
            recommendations.append("End each retro with clear, assigned action items with owners and due dates")
            recommendations.append("Review action item progress at the start of each retro")
        if TITLE_SHALLOW_RETROS in _titles(observations):
            recommendations.append("Try new facilitation techniques to deepen discussions")
            recommendations.append("Use the '5 Whys' technique to get to root causes")

        return observations, CoachingAnalyzer._assessment(
            AssessmentType.DOCUMENT_ANALYSIS,
            "Retrospective Quality",
            score,
            observations,
            strengths=strengths,
            recommendations=recommendations,
            data_analyzed={"documentCount": len(retro_docs)},
        )

    @staticmethod
    def analyze_planning_documents(planning_docs: List[TeamDocument]) -> DimensionResult:
        observations: List[Observation] = []
        score = rules.PLANNING_BASELINE

        if not any(rules.mentions_risks(d) for d in planning_docs):
            observations.append(Observation(
                category=ObservationCategory.RISK_MANAGEMENT,
                severity=SeverityLevel.HIGH,
                title=TITLE_MISSING_RISKS,
                description=(
                    "Your planning documents show no evidence of risk identification or dependency "
                    "management. Mature teams surface risks, dependencies and blockers during planning."
                ),
                data_source=DOCUMENT_SOURCE,
                data_evidence={"documentCount": len(planning_docs)},
                affected_areas=["Risk Management", "Sprint Planning", "PI Planning"],
            ))
            score -= rules.MISSING_RISKS_PENALTY

        recommendations = []
        if TITLE_MISSING_RISKS in _titles(observations):
            recommendations.append("Add a dedicated risk identification step to planning meetings")
            recommendations.append("Create a simple risk register to track and mitigate risks")

        return observations, CoachingAnalyzer._assessment(
            AssessmentType.DOCUMENT_ANALYSIS,
            "Planning Quality",
            score,
            observations,
            strengths=["Team conducts regular planning sessions"],
            recommendations=recommendations,
            data_analyzed={"documentCount": len(planning_docs)},
        )

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    @staticmethod
    def _analyze_conversation_patterns(sessions: List[ConversationSession]) -> List[Observation]:
        """Flag questions the user keeps coming back to. Emits no assessment."""
        questions: Counter = Counter()
        for session in sessions:
            for message in session.messages:
                if message.role != "user":
                    continue
                normalized = rules.normalize_question(message.content)
                if normalized:
                    questions[normalized] += 1

        repeated = [q for q, count in questions.items() if count >= rules.REPEATED_QUESTION_MIN]
        if not repeated:
            return []

        return [Observation(
            category=ObservationCategory.CONTINUOUS_IMPROVEMENT,
            severity=SeverityLevel.MEDIUM,
            title=TITLE_REPEATED_TOPICS,
            description=(
                "Similar questions about certain topics have been asked several times. This points to "
                "areas that need deeper understanding or more team practice; consider reference "
                "material or focused learning sessions."
            ),
            data_source=CONVERSATION_SOURCE,
            data_evidence={"repeatedTopics": len(repeated)},
            affected_areas=["Knowledge Retention", "Team Training"],
        )]

    # ------------------------------------------------------------------
    # Roll-ups
    # ------------------------------------------------------------------

    @staticmethod
    def generate_interventions(observations: List[Observation]) -> List[Intervention]:
        """One intervention per observed category that has a template."""
        by_category: Dict[ObservationCategory, List[Observation]] = {}
        for observation in observations:
            by_category.setdefault(observation.category, []).append(observation)

        interventions = []
        for category, grouped in by_category.items():
            template = template_for(category)
            if template is not None:
                interventions.append(template.build(grouped))
        return interventions

    @staticmethod
    def calculate_maturity_level(assessments: List[Assessment]) -> MaturityLevel:
        if not assessments:
            return MaturityLevel.FORMING
        avg_score = statistics.fmean(a.current_score for a in assessments)
        return rules.level_for_score(avg_score, rules.OVERALL_MATURITY_TABLE)

    @staticmethod
    def identify_focus_areas(observations: List[Observation], limit: int = 3) -> List[str]:
        """Most frequent categories first; ties keep first-seen order."""
        counts = Counter(o.category.value for o in observations)
        ranked = sorted(counts.items(), key=lambda item: -item[1])
        return [focus_area_label(category) for category, _ in ranked[:limit]]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _assessment(
        assessment_type: AssessmentType,
        category: str,
        score: float,
        observations: List[Observation],
        *,
        strengths: List[str],
        recommendations: List[str],
        data_analyzed: Dict[str, Any],
    ) -> Assessment:
        clamped = rules.clamp_score(score)
        return Assessment(
            assessment_type=assessment_type,
            category=category,
            current_score=clamped,
            maturity_level=rules.level_for_score(clamped, rules.ASSESSMENT_MATURITY_TABLE),
            strengths=strengths,
            weaknesses=_titles(observations),
            recommendations=recommendations,
            data_analyzed=data_analyzed,
        )

    @staticmethod
    def _story_strengths(stories: List[JiraIssue], observations: List[Observation]) -> List[str]:
        strengths = []
        if stories:
            strengths.append(f"Team is writing {len(stories)} user stories")
        if not observations:
            strengths.append("Story quality is good overall")
        pointed = [s for s in stories if rules.has_story_points(s) and s.story_points > 0]
        if stories and len(pointed) / len(stories) > rules.WELL_POINTED_RATIO:
            strengths.append("Consistent story point estimation")
        return strengths or ["Team is practicing user story writing"]

    @staticmethod
    def _story_recommendations(observations: List[Observation]) -> List[str]:
        recommendations = []
        if any(o.category == ObservationCategory.STORY_ACCEPTANCE_CRITERIA for o in observations):
            recommendations.append("Conduct a workshop on writing effective acceptance criteria using INVEST principles")
            recommendations.append("Create a story template that includes required sections for AC")
        if TITLE_SHALLOW_STORIES in _titles(observations):
            recommendations.append("Implement a 'Definition of Ready' checklist for stories")
        return recommendations
