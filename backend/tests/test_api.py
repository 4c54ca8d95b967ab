"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401
- Role enforcement returns 403 and is audited
- Domain errors map to 400 / 404 / 409
- Agent logins are scoped to their own agent
- Login / logout / me
"""

import pytest

from fieldstock.models import AuditEvent


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/loads"),
            ("GET", "/api/loads"),
            ("POST", "/api/loads/1/approve"),
            ("GET", "/api/ledger"),
            ("POST", "/api/reconciliations"),
            ("POST", "/api/reconciliations/1/approve"),
            ("GET", "/api/agents/1/kpis"),
            ("GET", "/api/agents/presence"),
            ("POST", "/api/sales"),
            ("GET", "/api/journey-plans"),
            ("GET", "/api/admin/permissions"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/loads", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


# =============================================================================
# ROLE ENFORCEMENT - 403
# =============================================================================


class TestRoleEnforcement:

    def test_agent_cannot_approve_load(self, client, agent_headers):
        resp = client.post("/api/loads/1/approve", headers=agent_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "APPROVE_LOAD"

    def test_manager_cannot_approve_reconciliation(self, client, db_session, manager, manager_headers):
        resp = client.post("/api/reconciliations/1/approve", headers=manager_headers)
        assert resp.status_code == 403

        event = db_session.query(AuditEvent).filter_by(event_type="security.permission_denied").one()
        assert event.actor_user_id == manager.id

    def test_owner_is_read_only(self, client, owner_headers, agent, water):
        resp = client.post("/api/loads", json={
            "agent_id": agent.id,
            "items": [{"product_id": water.id, "requested_quantity": 1}],
        }, headers=owner_headers)
        assert resp.status_code == 403

        resp = client.get("/api/loads", headers=owner_headers)
        assert resp.status_code == 200

    def test_accountant_cannot_manage_permissions(self, client, accountant_headers):
        resp = client.get("/api/admin/permissions", headers=accountant_headers)
        assert resp.status_code == 403

    def test_admin_lists_permission_catalogue(self, client, admin_headers):
        resp = client.get("/api/admin/permissions", headers=admin_headers)
        assert resp.status_code == 200
        categories = resp.get_json()["categories"]
        assert "APPROVE_LOAD" in [p["code"] for p in categories["LOADS"]]

    def test_override_applies_on_next_request(self, client, owner, owner_headers, admin_headers):
        resp = client.get("/api/agents/presence", headers=owner_headers)
        assert resp.status_code == 200

        resp = client.post("/api/admin/permission-overrides", json={
            "user_id": owner.id,
            "permission_code": "VIEW_PRESENCE",
            "override_type": "deny",
        }, headers=admin_headers)
        assert resp.status_code == 201
        override_id = resp.get_json()["id"]

        resp = client.get("/api/agents/presence", headers=owner_headers)
        assert resp.status_code == 403

        resp = client.delete(f"/api/admin/permission-overrides/{override_id}", headers=admin_headers)
        assert resp.status_code == 200

        resp = client.get("/api/agents/presence", headers=owner_headers)
        assert resp.status_code == 200


# =============================================================================
# ERROR MAPPING
# =============================================================================


class TestErrorMapping:

    def test_validation_error_is_400(self, client, agent_headers):
        resp = client.post("/api/loads", json={"items": []}, headers=agent_headers)
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_unknown_load_is_404(self, client, manager_headers):
        resp = client.post("/api/loads/999999/approve", headers=manager_headers)
        assert resp.status_code == 404

    def test_double_approve_is_409(self, client, water, agent_headers, manager_headers):
        load_id = client.post("/api/loads", json={
            "items": [{"product_id": water.id, "requested_quantity": 5}],
        }, headers=agent_headers).get_json()["id"]

        assert client.post(f"/api/loads/{load_id}/approve", headers=manager_headers).status_code == 200
        assert client.post(f"/api/loads/{load_id}/approve", headers=manager_headers).status_code == 409

    def test_over_approval_is_400(self, client, water, agent_headers, manager_headers):
        load_id = client.post("/api/loads", json={
            "items": [{"product_id": water.id, "requested_quantity": 5}],
        }, headers=agent_headers).get_json()["id"]

        resp = client.post(f"/api/loads/{load_id}/approve", json={
            "items": [{"product_id": water.id, "approved_quantity": 6}],
        }, headers=manager_headers)
        assert resp.status_code == 400

    def test_reject_needs_reason(self, client, water, agent_headers, manager_headers):
        load_id = client.post("/api/loads", json={
            "items": [{"product_id": water.id, "requested_quantity": 5}],
        }, headers=agent_headers).get_json()["id"]

        assert client.post(f"/api/loads/{load_id}/reject", json={}, headers=manager_headers).status_code == 400
        resp = client.post(f"/api/loads/{load_id}/reject", json={"reason": "no stock"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "rejected"

    def test_bad_date_is_400(self, client, agent_headers, water):
        resp = client.get(f"/api/ledger?product_id={water.id}&date=yesterday", headers=agent_headers)
        assert resp.status_code == 400

    def test_negative_cash_is_400(self, client, agent_headers):
        resp = client.post("/api/reconciliations", json={"cash_collected_cents": -5}, headers=agent_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("reason", [5, {"text": "no stock"}, ["no stock"], "   "])
    def test_reject_reason_must_be_text(self, client, water, agent_headers, manager_headers, reason):
        load_id = client.post("/api/loads", json={
            "items": [{"product_id": water.id, "requested_quantity": 5}],
        }, headers=agent_headers).get_json()["id"]

        resp = client.post(f"/api/loads/{load_id}/reject", json={"reason": reason}, headers=manager_headers)
        assert resp.status_code == 400
        assert "error" in resp.get_json()
        assert client.get(f"/api/loads/{load_id}", headers=manager_headers).get_json()["status"] == "requested"

    @pytest.mark.parametrize("notes", [7, {"x": 1}, ["short"], ""])
    def test_dispute_notes_must_be_text(self, client, agent_headers, accountant_headers, notes):
        rec_id = client.post("/api/reconciliations", json={"cash_collected_cents": 0},
                             headers=agent_headers).get_json()["id"]

        resp = client.post(f"/api/reconciliations/{rec_id}/dispute", json={"notes": notes},
                           headers=accountant_headers)
        assert resp.status_code == 400

        resp = client.post(f"/api/reconciliations/{rec_id}/dispute", json={"notes": "cash short"},
                           headers=accountant_headers)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "disputed"

    @pytest.mark.parametrize("outcome", [7, {"result": "sale"}, [], None])
    def test_visit_outcome_must_be_text(self, client, agent_headers, outcome):
        visit_id = client.post("/api/visits", json={"customer_id": 501},
                               headers=agent_headers).get_json()["id"]

        resp = client.post(f"/api/visits/{visit_id}/close", json={"outcome": outcome}, headers=agent_headers)
        assert resp.status_code == 400

        resp = client.post(f"/api/visits/{visit_id}/close", json={"outcome": "no_sale"}, headers=agent_headers)
        assert resp.status_code == 200

    def test_free_text_notes_must_be_strings(self, client, water, agent_headers):
        resp = client.post("/api/loads", json={
            "items": [{"product_id": water.id, "requested_quantity": 5}],
            "notes": {"x": 1},
        }, headers=agent_headers)
        assert resp.status_code == 400

        resp = client.post("/api/reconciliations", json={"cash_collected_cents": 0, "notes": 12},
                           headers=agent_headers)
        assert resp.status_code == 400

        resp = client.post("/api/visits", json={"customer_id": 501, "outcome": 3}, headers=agent_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("field,value", [
        ("permission_code", {"code": "VIEW_PRESENCE"}),
        ("permission_code", 12),
        ("override_type", 5),
        ("reason", ["why"]),
    ])
    def test_override_fields_must_be_strings(self, client, owner, admin_headers, field, value):
        body = {"user_id": owner.id, "permission_code": "VIEW_PRESENCE", "override_type": "DENY"}
        body[field] = value
        resp = client.post("/api/admin/permission-overrides", json=body, headers=admin_headers)
        assert resp.status_code == 400


# =============================================================================
# AGENT SCOPING
# =============================================================================


class TestAgentScoping:

    def test_agent_defaults_to_own_agent(self, client, agent, water, agent_headers):
        resp = client.get(f"/api/ledger?product_id={water.id}", headers=agent_headers)
        assert resp.status_code == 200
        assert resp.get_json()["agent_id"] == agent.id

    def test_agent_cannot_read_other_agent(self, client, other_agent, water, agent_headers):
        resp = client.get(f"/api/ledger?agent_id={other_agent.id}&product_id={water.id}", headers=agent_headers)
        assert resp.status_code == 403

        resp = client.get(f"/api/agents/{other_agent.id}/kpis", headers=agent_headers)
        assert resp.status_code == 403

    def test_agent_cannot_request_for_other_agent(self, client, other_agent, water, agent_headers):
        resp = client.post("/api/loads", json={
            "agent_id": other_agent.id,
            "items": [{"product_id": water.id, "requested_quantity": 1}],
        }, headers=agent_headers)
        assert resp.status_code == 403

    def test_back_office_must_name_agent(self, client, water, manager_headers):
        resp = client.get(f"/api/ledger?product_id={water.id}", headers=manager_headers)
        assert resp.status_code == 400

    def test_heartbeat_and_presence(self, client, agent, agent_headers, manager_headers):
        resp = client.post(f"/api/agents/{agent.id}/heartbeat", json={"latitude": 6.5, "longitude": 3.4},
                           headers=agent_headers)
        assert resp.status_code == 200

        resp = client.post(f"/api/agents/{agent.id}/heartbeat", json={"latitude": 91}, headers=agent_headers)
        assert resp.status_code == 400

        rows = client.get("/api/agents/presence", headers=manager_headers).get_json()["agents"]
        assert rows[0]["agent_id"] == agent.id
        assert rows[0]["online"] is True


# =============================================================================
# AUTH
# =============================================================================


class TestAuth:

    def test_login_me_logout(self, client, agent, agent_user):
        resp = client.post("/api/auth/login", json={"username": "agent1", "password": "Password123!"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["agent_id"] == agent.id
        assert "REQUEST_LOAD" in data["permissions"]

        headers = {"Authorization": f"Bearer {data['token']}"}
        resp = client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["username"] == "agent1"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_wrong_password(self, client, agent_user):
        resp = client.post("/api/auth/login", json={"username": "agent1", "password": "wrong"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "agent1"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [
        {"username": "agent1", "password": 12345},
        {"username": {"$ne": ""}, "password": "x"},
    ])
    def test_non_string_credentials(self, client, agent_user, body):
        resp = client.post("/api/auth/login", json=body)
        assert resp.status_code == 400


class TestPublicEndpoints:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["config"]["ledger_load_policy"] == "latest"


class TestAuditEvents:

    def test_admin_reads_agent_events(self, client, agent, water, agent_headers, admin_headers):
        client.post("/api/loads", json={
            "items": [{"product_id": water.id, "requested_quantity": 3}],
        }, headers=agent_headers)

        resp = client.get(f"/api/admin/audit-events?agent_id={agent.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert [e["event_type"] for e in resp.get_json()["events"]] == ["stock_load.requested"]

    def test_limit_is_bounded(self, client, admin_headers):
        resp = client.get("/api/admin/audit-events?limit=0", headers=admin_headers)
        assert resp.status_code == 400
