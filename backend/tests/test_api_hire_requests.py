"""Tests for hire request and contract endpoints."""

import pytest

from api_helpers import AGENCY_ID, API, EXPERT_ID
from staffline.gateway.base import CONTRACTS_TABLE, HIRE_REQUESTS_TABLE


def request_expert(client, headers):
    return client.post(f"{API}/hire-requests", json={"expert_id": EXPERT_ID}, headers=headers)


@pytest.fixture
def pending_request(client, agency_headers, approved_expert):
    response = request_expert(client, agency_headers)
    assert response.status_code == 201
    return response.json()["request"]


class TestAgencyRequests:
    def test_request_is_idempotent(self, client, agency_headers, approved_expert, gateway):
        first = request_expert(client, agency_headers)
        second = request_expert(client, agency_headers)

        assert first.status_code == 201
        assert first.json()["already_requested"] is False
        assert second.status_code == 200
        assert second.json()["already_requested"] is True
        assert second.json()["request"]["id"] == first.json()["request"]["id"]
        assert len(gateway.rows(HIRE_REQUESTS_TABLE)) == 1

    def test_unlisted_expert(self, client, agency_headers):
        response = request_expert(client, agency_headers)
        assert response.status_code == 404

    def test_expert_cannot_request(self, client, expert_headers, approved_expert):
        assert request_expert(client, expert_headers).status_code == 403

    def test_pending_status_and_cancel(self, client, agency_headers, pending_request):
        status_url = f"{API}/hire-requests/experts/{EXPERT_ID}"
        assert client.get(status_url, headers=agency_headers).json()["pending"] is True

        cancelled = client.delete(status_url, headers=agency_headers)
        again = client.delete(status_url, headers=agency_headers)

        assert cancelled.json() == {"removed": 1}
        assert again.status_code == 200
        assert again.json() == {"removed": 0}
        assert client.get(status_url, headers=agency_headers).json()["pending"] is False

    def test_my_requests(self, client, agency_headers, pending_request):
        response = client.get(f"{API}/hire-requests/mine", headers=agency_headers)

        assert [r["id"] for r in response.json()] == [pending_request["id"]]


class TestAdminWorkflow:
    def test_list_by_status(self, client, admin_headers, pending_request):
        pending = client.get(f"{API}/hire-requests", params={"status": "pending"}, headers=admin_headers)
        contacted = client.get(f"{API}/hire-requests", params={"status": "contacted"}, headers=admin_headers)

        assert len(pending.json()) == 1
        assert contacted.json() == []

    def test_agency_cannot_list_all(self, client, agency_headers):
        assert client.get(f"{API}/hire-requests", headers=agency_headers).status_code == 403

    def test_approve_creates_contract(self, client, admin_headers, agency_headers, pending_request, gateway):
        response = client.post(
            f"{API}/hire-requests/{pending_request['id']}/transition",
            json={"status": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["request"]["status"] == "approved"
        assert data["contract"]["status"] == "active"
        assert data["contract"]["agency_id"] == AGENCY_ID

        contracts = client.get(f"{API}/contracts", headers=agency_headers).json()
        assert [c["id"] for c in contracts] == [data["contract"]["id"]]

    def test_second_active_contract_conflicts(self, client, admin_headers, pending_request, gateway):
        gateway.seed(CONTRACTS_TABLE, [{"agency_id": AGENCY_ID, "expert_id": EXPERT_ID}])

        response = client.post(
            f"{API}/hire-requests/{pending_request['id']}/transition",
            json={"status": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert len(gateway.rows(CONTRACTS_TABLE)) == 1

    def test_illegal_transition(self, client, admin_headers, pending_request):
        url = f"{API}/hire-requests/{pending_request['id']}/transition"
        client.post(url, json={"status": "contacted"}, headers=admin_headers)

        response = client.post(url, json={"status": "rejected"}, headers=admin_headers)

        assert response.status_code == 400

    def test_unknown_status_value(self, client, admin_headers, pending_request):
        response = client.post(
            f"{API}/hire-requests/{pending_request['id']}/transition",
            json={"status": "hired"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_complete_contract(self, client, admin_headers, expert_headers, pending_request):
        approved = client.post(
            f"{API}/hire-requests/{pending_request['id']}/transition",
            json={"status": "approved"},
            headers=admin_headers,
        ).json()
        contract_id = approved["contract"]["id"]
        assert len(client.get(f"{API}/contracts", headers=expert_headers).json()) == 1

        response = client.post(f"{API}/contracts/{contract_id}/complete", json={}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["end_date"] is not None
        assert client.get(f"{API}/contracts", headers=expert_headers).json() == []

    def test_complete_missing_contract(self, client, admin_headers):
        response = client.post(f"{API}/contracts/missing/complete", json={}, headers=admin_headers)
        assert response.status_code == 404
