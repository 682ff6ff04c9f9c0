"""Pytest configuration and fixtures.

The API runs against the in-memory gateway; Supabase is never contacted.
"""

import os
import secrets
import uuid

import pytest

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", _TEST_JWT_SECRET)

from app.auth import create_access_token  # noqa: E402
from app.config import get_settings  # noqa: E402
from app.database import get_auth_admin, get_caller_gateway, get_gateway, get_storage  # noqa: E402
from app.main import app  # noqa: E402
from app.rate_limit import limiter  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from staffline.gateway.base import PROFILES_TABLE  # noqa: E402
from staffline.gateway.memory import InMemoryFileStorage, InMemoryGateway  # noqa: E402

from api_helpers import ADMIN_ID, AGENCY_ID, API, EXPERT_ID  # noqa: E402


class FakeAuthAdmin:
    """Records auth-user creation and deletion instead of calling Supabase."""

    def __init__(self):
        self.created = {}
        self.deleted = []

    async def create_user(self, email: str, password: str, full_name: str) -> str:
        user_id = str(uuid.uuid4())
        self.created[user_id] = email
        return user_id

    async def delete_user(self, user_id: str) -> None:
        self.deleted.append(user_id)


@pytest.fixture
def gateway():
    gw = InMemoryGateway()
    gw.seed(
        PROFILES_TABLE,
        [
            {"id": ADMIN_ID, "email": "admin@staffline.test", "role": "admin"},
            {
                "id": EXPERT_ID,
                "email": "dana@experts.test",
                "role": "expert",
                "moderation_status": "pending",
                "full_name_draft": "Dana Reyes",
                "bio_draft": "Backend engineer focused on payments infrastructure.",
                "skills_draft": ["Python", "Postgres"],
                "experience_years_draft": 6,
            },
            {
                "id": AGENCY_ID,
                "email": "ops@northwind.test",
                "role": "agency",
                "agency_name": "Northwind Staffing",
            },
        ],
    )
    return gw


@pytest.fixture
def storage():
    return InMemoryFileStorage()


@pytest.fixture
def auth_admin():
    return FakeAuthAdmin()


@pytest.fixture
def client(gateway, storage, auth_admin):
    """Create a test client wired to in-memory dependencies."""

    async def _gateway():
        return gateway

    async def _storage():
        return storage

    async def _auth_admin():
        return auth_admin

    app.dependency_overrides[get_gateway] = _gateway
    app.dependency_overrides[get_caller_gateway] = _gateway
    app.dependency_overrides[get_storage] = _storage
    app.dependency_overrides[get_auth_admin] = _auth_admin
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _headers(user_id: str, email: str | None = None) -> dict:
    token = create_access_token(user_id, get_settings(), email=email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _headers(ADMIN_ID, "admin@staffline.test")


@pytest.fixture
def expert_headers():
    return _headers(EXPERT_ID, "dana@experts.test")


@pytest.fixture
def agency_headers():
    return _headers(AGENCY_ID, "ops@northwind.test")


@pytest.fixture
def headers_for():
    """Build auth headers for an arbitrary user id."""
    return _headers


@pytest.fixture
def approved_expert(client, admin_headers):
    """Approve the seeded expert so they are listed."""
    response = client.post(
        f"{API}/moderation/profiles/{EXPERT_ID}/approve",
        json={"monthly_rate": 4200},
        headers=admin_headers,
    )
    assert response.status_code == 200
    return response.json()
