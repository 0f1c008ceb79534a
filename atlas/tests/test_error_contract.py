"""Tests for normalized error responses."""

from fastapi.testclient import TestClient

from atlas.features.coaching.service import CoachingService
from atlas.main import app


def test_validation_error_has_standard_shape(client, auth_headers):
    resp = client.post("/api/analytics/query", json={"queryType": "CHAT"}, headers=auth_headers)
    assert resp.status_code == 400
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["request_id"] == rid
    assert body["detail"] == body["error"]["message"]


def test_unauthorized_error_normalized(client):
    resp = client.get("/api/analytics/snapshots")
    assert resp.status_code == 401
    body = resp.json()
    assert body["error"]["code"] == "unauthorized"
    assert body["error"]["request_id"] == resp.headers.get("x-request-id")


def test_not_found_route_normalized(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_incoming_request_id_is_echoed(client, auth_headers):
    resp = client.get("/api/coaching/plan", headers={**auth_headers, "x-request-id": "rid-123"})
    assert resp.headers["x-request-id"] == "rid-123"


def test_unexpected_error_is_500(monkeypatch, auth_headers):
    def boom(user_id):
        raise RuntimeError("store exploded")

    monkeypatch.setattr(CoachingService, "get_plan", staticmethod(boom))
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/api/coaching/plan", headers=auth_headers)
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"]["code"] == "internal_error"
    assert body["error"]["message"] == "Unexpected error"
    assert "store exploded" not in resp.text
