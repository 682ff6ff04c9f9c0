"""Tests for admin account management, stats and audit endpoints."""

from api_helpers import ADMIN_ID, AGENCY_ID, API, EXPERT_ID
from staffline.gateway.base import PROFILES_TABLE


class TestAdminUsers:
    def test_list_users_by_role(self, client, admin_headers):
        response = client.get(f"{API}/admin/users", params={"role": "agency"}, headers=admin_headers)

        assert response.status_code == 200
        assert [u["id"] for u in response.json()] == [AGENCY_ID]

    def test_ban_blocks_access(self, client, admin_headers, agency_headers):
        response = client.put(
            f"{API}/admin/users/{AGENCY_ID}/status",
            json={"status": "banned"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["account_status"] == "banned"
        assert client.get(f"{API}/profiles/me", headers=agency_headers).status_code == 403

    def test_cannot_ban_self(self, client, admin_headers):
        response = client.put(
            f"{API}/admin/users/{ADMIN_ID}/status",
            json={"status": "banned"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_change_role(self, client, admin_headers, agency_headers):
        response = client.put(
            f"{API}/admin/users/{AGENCY_ID}/role", json={"role": "admin"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert client.get(f"{API}/admin/stats", headers=agency_headers).status_code == 200

    def test_delete_user(self, client, admin_headers, gateway):
        response = client.delete(f"{API}/admin/users/{EXPERT_ID}", headers=admin_headers)

        assert response.status_code == 204
        assert EXPERT_ID not in {r["id"] for r in gateway.rows(PROFILES_TABLE)}

    def test_non_admin_forbidden(self, client, expert_headers):
        assert client.get(f"{API}/admin/users", headers=expert_headers).status_code == 403
        assert client.delete(f"{API}/admin/users/{AGENCY_ID}", headers=expert_headers).status_code == 403


class TestStatsAndAudit:
    def test_stats(self, client, admin_headers):
        response = client.get(f"{API}/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_experts"] == 1
        assert data["total_agencies"] == 1
        assert data["pending_moderation"] == 1

    def test_audit_log_records_admin_actions(self, client, admin_headers, approved_expert):
        client.put(
            f"{API}/admin/users/{AGENCY_ID}/status",
            json={"status": "suspended"},
            headers=admin_headers,
        )

        everything = client.get(f"{API}/admin/audit-logs", headers=admin_headers).json()
        approvals = client.get(
            f"{API}/admin/audit-logs", params={"action_type": "approve_expert"}, headers=admin_headers
        ).json()

        assert {e["action_type"] for e in everything} == {"approve_expert", "user_suspended"}
        assert [e["target_id"] for e in approvals] == [EXPERT_ID]
        assert all(e["actor_id"] == ADMIN_ID for e in everything)


class TestHealth:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "staffline-backend"
