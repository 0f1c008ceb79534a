"""
atlas/tests/test_coaching_api.py

HTTP contract for /api/coaching.
"""

NOW = "2025-03-14T12:00:00+00:00"

TEAM_DATA = {
    "jiraIssues": [
        {"issueKey": f"AT-{i}", "issueType": "Story", "description": "tiny", "storyPoints": 3}
        for i in range(4)
    ],
    "documents": [{"originalName": "Sprint 9 retro.md", "extractedText": "ok"}],
}


def _analyze(client, headers, body=TEAM_DATA):
    return client.post("/api/coaching/analyze", json=body, headers=headers, params={"now": NOW})


def test_analyze_requires_user(client):
    response = client.post("/api/coaching/analyze", json=TEAM_DATA)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "unauthorized"


def test_blank_user_header_is_rejected(client):
    response = client.get("/api/coaching/plan", headers={"X-User-Id": "   "})
    assert response.status_code == 401


def test_analyze_returns_plan_summary_and_event(client, auth_headers):
    response = _analyze(client, auth_headers)
    assert response.status_code == 200
    body = response.json()

    assert body["success"] is True
    plan = body["coachingPlan"]
    assert plan["userId"] == "user-1"
    assert plan["targetMaturityLevel"] == "PERFORMING"
    assert plan["createdAt"].startswith("2025-03-14T12:00:00")
    assert {i["title"] for i in plan["interventions"]} == {
        "Implement Acceptance Criteria Workshop",
        "Revitalize Retrospective Practice",
    }
    assert all(i["status"] == "NOT_STARTED" for i in plan["interventions"])

    summary = body["summary"]
    assert summary["observationsCount"] == len(plan["observations"])
    assert summary["interventionsCount"] == 2
    assert summary["overallMaturity"] == plan["currentMaturityLevel"]

    [event] = body["emitted"]
    assert event["type"] == "coaching.analysis_completed"
    assert event["planId"] == plan["id"]


def test_analyze_without_body(client, auth_headers):
    response = client.post("/api/coaching/analyze", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["coachingPlan"]["currentMaturityLevel"] == "FORMING"
    assert body["coachingPlan"]["observations"] == []
    assert body["summary"]["focusAreas"] == []


def test_analyze_tolerates_odd_field_types(client, auth_headers):
    body = {"jiraIssues": [{"issueType": "Story", "storyPoints": "n/a", "description": 12}]}
    response = _analyze(client, auth_headers, body)
    assert response.status_code == 200


def test_analyze_drops_malformed_entries_instead_of_rejecting(client, auth_headers):
    body = {
        "userProfile": "alice",
        "jiraIssues": [None, {"issueType": "Story", "description": "short"}, 42],
        "documents": [{"originalName": "retro.md", "extractedText": "ok"}, 42],
        "conversationHistory": [None, {"messages": [None, 42, {"role": "user", "content": "q"}]}],
    }
    response = _analyze(client, auth_headers, body)
    assert response.status_code == 200


def test_plan_missing(client, auth_headers):
    response = client.get("/api/coaching/plan", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "exists": False,
        "message": "No coaching plan found. Run analysis to generate one.",
    }


def test_plan_after_analysis(client, auth_headers):
    created = _analyze(client, auth_headers).json()["coachingPlan"]
    response = client.get("/api/coaching/plan", headers=auth_headers)
    body = response.json()
    assert body["exists"] is True
    assert body["coachingPlan"]["id"] == created["id"]
    severities = [o["severity"] for o in body["coachingPlan"]["observations"]]
    assert severities[0] == "CRITICAL"


def test_plans_are_isolated_per_user(client, auth_headers):
    _analyze(client, auth_headers)
    response = client.get("/api/coaching/plan", headers={"X-User-Id": "user-2"})
    assert response.json()["exists"] is False


def test_update_intervention(client, auth_headers):
    plan = _analyze(client, auth_headers).json()["coachingPlan"]
    intervention_id = plan["interventions"][0]["id"]

    response = client.patch(
        "/api/coaching/intervention",
        json={"interventionId": intervention_id, "status": "IN_PROGRESS", "notes": "kickoff Monday"},
        headers=auth_headers,
        params={"now": "2025-03-15T09:00:00+00:00"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["intervention"]["status"] == "IN_PROGRESS"
    assert body["intervention"]["notes"] == "kickoff Monday"
    assert body["intervention"]["startedAt"].startswith("2025-03-15T09:00:00")
    assert body["intervention"]["completedAt"] is None


def test_update_unknown_intervention_is_404(client, auth_headers):
    _analyze(client, auth_headers)
    response = client.patch(
        "/api/coaching/intervention",
        json={"interventionId": "nope", "status": "COMPLETED"},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_update_other_users_intervention_is_404(client, auth_headers):
    plan = _analyze(client, auth_headers).json()["coachingPlan"]
    response = client.patch(
        "/api/coaching/intervention",
        json={"interventionId": plan["interventions"][0]["id"], "status": "COMPLETED"},
        headers={"X-User-Id": "intruder"},
    )
    assert response.status_code == 404


def test_update_missing_fields_is_400(client, auth_headers):
    response = client.patch(
        "/api/coaching/intervention",
        json={"interventionId": "x"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert "status" in error["message"]


def test_update_invalid_status_is_400(client, auth_headers):
    response = client.patch(
        "/api/coaching/intervention",
        json={"interventionId": "x", "status": "DONE"},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_invalid_now_is_400(client, auth_headers):
    response = client.post(
        "/api/coaching/analyze", json={}, headers=auth_headers, params={"now": "yesterday"}
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"
