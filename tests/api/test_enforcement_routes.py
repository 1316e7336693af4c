import pytest
from fastapi.testclient import TestClient

from tenant_case_guard.api.app import app
from tenant_case_guard.models.issues import Severity

HEADERS = {"X-API-Key": "key-tenant-1"}


@pytest.fixture
def client(store):
    # No lifespan: the in-memory store is injected directly
    app.state.store = store
    return TestClient(app)


class TestAuthentication:
    def test_missing_key_is_401(self, client):
        resp = client.get("/api/case/health")
        assert resp.status_code == 401
        body = resp.json()
        assert set(body) == {"error", "request_id"}

    def test_unknown_key_is_401(self, client):
        resp = client.get("/api/case/health", headers={"X-API-Key": "nope"})
        assert resp.status_code == 401

    def test_health_needs_no_key(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["dependencies"]["case_store"]["status"] == "up"

    def test_liveness(self, client):
        resp = client.get("/api/_healthz")
        assert resp.json() == {"status": "ok", "has_store": True}


class TestEnforcementRoutes:
    def test_undocumented_issue_close_is_hard_blocked(self, client, make_issue):
        issue = make_issue()
        resp = client.get(
            f"/api/issues/{issue.id}/enforcement", params={"action": "close_issue"}, headers=HEADERS
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["level"] == "hard-blocked"
        assert body["allowed"] is False
        assert body["message"]["kind"] == "hard-blocked"
        assert body["context"]["health_score"] == 40

    def test_pro_plan_gets_soft_block(self, client, store, make_issue):
        issue = make_issue()
        store.set_plan("tenant-1", "pro")
        body = client.get(
            f"/api/issues/{issue.id}/enforcement", params={"action": "close_issue"}, headers=HEADERS
        ).json()
        assert body["level"] == "soft-blocked"
        assert body["requires_confirmation"] is True
        assert body["message"]["confirm_label"] == "Proceed Anyway"

    def test_missing_issue_is_404(self, client):
        resp = client.get(
            "/api/issues/missing/enforcement", params={"action": "close_issue"}, headers=HEADERS
        )
        assert resp.status_code == 404

    def test_other_users_issue_is_404(self, client, make_issue):
        issue = make_issue(user_id="tenant-2")
        resp = client.get(f"/api/issues/{issue.id}/health", headers=HEADERS)
        assert resp.status_code == 404

    def test_unknown_action_is_422(self, client, make_issue):
        issue = make_issue()
        resp = client.get(
            f"/api/issues/{issue.id}/enforcement", params={"action": "archive"}, headers=HEADERS
        )
        assert resp.status_code == 422

    def test_case_enforcement_defaults_to_pack(self, client):
        body = client.get("/api/case/enforcement", headers=HEADERS).json()
        assert body["context"]["action"] == "generate_pack"
        assert body["level"] == "allowed"

    def test_enforcement_summary(self, client, make_issue, add_evidence):
        issue = make_issue()
        add_evidence(issue, 1)
        body = client.get("/api/case/enforcement/summary", headers=HEADERS).json()
        assert body["health_status"] == "weak"
        assert body["plan_mode"] == "guided"
        assert body["plan_name"] == "Free"
        assert body["levels"]["close_issue"] == "soft-blocked"
        assert "Guided Mode" in body["explanation"]


class TestHealthAndSeverityRoutes:
    def test_issue_and_case_health(self, client, make_issue, add_evidence, add_comms):
        issue = make_issue()
        add_evidence(issue, 3)
        add_comms(issue, 2)
        assert client.get(f"/api/issues/{issue.id}/health", headers=HEADERS).json()["score"] == 100
        body = client.get("/api/case/health", headers=HEADERS).json()
        assert body["status"] == "strong"

    def test_display_severity(self, client, make_issue):
        issue = make_issue("Dripping tap", severity=Severity.LOW, age_days=35)
        body = client.get(f"/api/issues/{issue.id}/severity", headers=HEADERS).json()
        assert body["stored_severity"] == "Low"
        assert body["display_severity"] == "Medium"

    def test_classify(self, client):
        resp = client.post(
            "/api/severity/classify",
            json={"title": "Gas leak smell in kitchen", "description": ""},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        assert resp.json() == {"severity": "Urgent"}

    def test_issue_facts(self, client, make_issue):
        issue = make_issue(severity=Severity.HIGH)
        body = client.get(f"/api/issues/{issue.id}/facts", headers=HEADERS).json()
        assert body["facts"]["notice_status"] == "Not sent"
        assert [g["code"] for g in body["gaps"]] == ["no_comms", "no_evidence"]

    def test_next_step(self, client, make_issue):
        assert client.get("/api/case/next-step", headers=HEADERS).json() == {"next_step": None}
        make_issue("Mould in bedroom", severity=Severity.HIGH)
        step = client.get("/api/case/next-step", headers=HEADERS).json()["next_step"]
        assert step["action"] == "Add Evidence Now"

    def test_pack_readiness(self, client, make_issue, add_evidence, add_comms):
        kept = make_issue()
        add_evidence(kept, 1)
        add_comms(kept, 1)
        make_issue("Mould in bedroom", severity=Severity.HIGH)
        resp = client.post(
            "/api/case/pack-readiness", json={"issue_ids": [kept.id]}, headers=HEADERS
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["coverage"] == {"included_issues": 1, "excluded_issues": 1, "total_open_issues": 2}
        assert body["requires_confirmation"] is True
        assert "critical" in [w["type"] for w in body["warnings"]]

    def test_pack_readiness_requires_key(self, client):
        resp = client.post("/api/case/pack-readiness", json={"issue_ids": []})
        assert resp.status_code == 401


class TestOverrideRoutes:
    def _payload(self, **overrides):
        payload = {
            "action": "close_issue",
            "enforcement_level": "soft-blocked",
            "health_status": "weak",
            "health_score": 55,
            "issue_id": "issue-x",
            "reason": "resolved verbally",
        }
        payload.update(overrides)
        return payload

    def test_log_override(self, client, store):
        resp = client.post("/api/overrides", json=self._payload(), headers=HEADERS)
        assert resp.status_code == 201
        assert resp.json() == {"success": True}
        (entry,) = store.override_logs
        assert entry.user_id == "tenant-1"
        assert entry.reason == "resolved verbally"

    def test_hard_block_cannot_be_overridden(self, client, store):
        resp = client.post(
            "/api/overrides",
            json=self._payload(enforcement_level="hard-blocked", health_status="at-risk", health_score=40),
            headers=HEADERS,
        )
        assert resp.status_code == 422
        assert store.override_logs == []

    def test_unauthenticated_override_is_rejected(self, client, store):
        resp = client.post("/api/overrides", json=self._payload())
        assert resp.status_code == 401
        assert store.override_logs == []

    def test_history(self, client):
        for _ in range(3):
            client.post("/api/overrides", json=self._payload(), headers=HEADERS)
        body = client.get("/api/overrides", params={"limit": 2}, headers=HEADERS).json()
        assert body["count"] == 2
        assert all(e["user_id"] == "tenant-1" for e in body["overrides"])

    def test_history_limit_must_be_positive(self, client):
        resp = client.get("/api/overrides", params={"limit": 0}, headers=HEADERS)
        assert resp.status_code == 422


def test_request_id_is_echoed(client):
    resp = client.get("/api/health", headers={"x-request-id": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"


def test_oversized_body_is_rejected(client):
    resp = client.post(
        "/api/severity/classify",
        content=b"x" * (1024 * 1024 + 1),
        headers={**HEADERS, "content-type": "application/json"},
    )
    assert resp.status_code == 413
