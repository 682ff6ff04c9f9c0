"""Tests for invite endpoints, including onboarding by claim."""

from api_helpers import API
from staffline.gateway.base import EXPERT_INVITES_TABLE, PROFILES_TABLE


def create_invite(client, headers, email="sam@experts.test"):
    return client.post(
        f"{API}/invites", json={"email": email, "full_name": "Sam Okafor"}, headers=headers
    )


class TestInvites:
    def test_create_returns_token_once(self, client, admin_headers):
        response = create_invite(client, admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["invite_url"].endswith(f"/expert/onboard?token={data['token']}")

        listed = client.get(f"{API}/invites", headers=admin_headers).json()
        assert listed[0]["token"] is None
        assert listed[0]["invite_url"] is None

    def test_invalid_email(self, client, admin_headers):
        response = create_invite(client, admin_headers, email="sam-at-experts")
        assert response.status_code == 400

    def test_only_admins_invite(self, client, agency_headers):
        assert create_invite(client, agency_headers).status_code == 403

    def test_verify(self, client, admin_headers):
        token = create_invite(client, admin_headers).json()["token"]

        response = client.get(f"{API}/invites/verify", params={"token": token})

        assert response.status_code == 200
        assert response.json()["email"] == "sam@experts.test"
        assert client.get(f"{API}/invites/verify", params={"token": "nope"}).status_code == 404

    def test_claim_creates_expert(self, client, admin_headers, auth_admin, gateway, headers_for):
        token = create_invite(client, admin_headers).json()["token"]

        response = client.post(
            f"{API}/invites/claim", json={"token": token, "password": "correct-horse"}
        )

        assert response.status_code == 201
        profile = response.json()
        assert profile["role"] == "expert"
        assert profile["moderation_status"] == "pending"
        assert profile["full_name_draft"] == "Sam Okafor"
        assert list(auth_admin.created) == [profile["id"]]

        me = client.get(f"{API}/profiles/me", headers=headers_for(profile["id"]))
        assert me.status_code == 200

        second = client.post(
            f"{API}/invites/claim", json={"token": token, "password": "correct-horse"}
        )
        assert second.status_code == 404

    def test_failed_claim_removes_auth_user(self, client, admin_headers, auth_admin, gateway):
        token = create_invite(client, admin_headers).json()["token"]
        # Another account already holds the invited email
        gateway.seed(PROFILES_TABLE, [{"id": "x-1", "email": "sam@experts.test", "role": "agency"}])

        response = client.post(
            f"{API}/invites/claim", json={"token": token, "password": "correct-horse"}
        )

        assert response.status_code == 409
        assert auth_admin.deleted == list(auth_admin.created)
        [invite] = gateway.rows(EXPERT_INVITES_TABLE)
        assert invite["status"] == "pending"

    def test_short_password(self, client, admin_headers):
        token = create_invite(client, admin_headers).json()["token"]
        response = client.post(f"{API}/invites/claim", json={"token": token, "password": "short"})
        assert response.status_code == 422

    def test_revoke(self, client, admin_headers, gateway):
        invite_id = create_invite(client, admin_headers).json()["id"]

        response = client.delete(f"{API}/invites/{invite_id}", headers=admin_headers)

        assert response.status_code == 204
        assert gateway.rows(EXPERT_INVITES_TABLE) == []
        assert client.delete(f"{API}/invites/{invite_id}", headers=admin_headers).status_code == 404
