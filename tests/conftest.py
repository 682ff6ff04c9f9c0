"""
Pytest fixtures for Staffline library tests.

Every service runs against the in-memory gateway, which carries the same
unique indexes and procedures as the Postgres schema.
"""

import pytest

from staffline.access import Actor, Role
from staffline.audit import GatewayAuditLog
from staffline.config import MarketplaceConfig
from staffline.gateway.base import EXPERT_INVITES_TABLE, PROFILES_TABLE
from staffline.gateway.memory import InMemoryFileStorage, InMemoryGateway
from staffline.hiring import HiringService
from staffline.invites import InviteService
from staffline.marketplace import MarketplaceService
from staffline.portfolio import PortfolioService
from staffline.profiles import AccountService, ProfileService

from factories import ADMIN_ID, AGENCY_ID, EXPERT_ID, OTHER_AGENCY_ID, invite_row


@pytest.fixture
def gateway():
    gw = InMemoryGateway()
    gw.seed(PROFILES_TABLE, [{"id": ADMIN_ID, "email": "admin@staffline.test", "role": "admin"}])
    return gw


@pytest.fixture
def storage():
    return InMemoryFileStorage()


@pytest.fixture
def audit(gateway):
    return GatewayAuditLog(gateway)


@pytest.fixture
def config():
    return MarketplaceConfig()


@pytest.fixture
def admin():
    return Actor(user_id=ADMIN_ID, role=Role.ADMIN, email="admin@staffline.test")


@pytest.fixture
def expert():
    return Actor(user_id=EXPERT_ID, role=Role.EXPERT)


@pytest.fixture
def agency():
    return Actor(user_id=AGENCY_ID, role=Role.AGENCY)


@pytest.fixture
def other_agency():
    return Actor(user_id=OTHER_AGENCY_ID, role=Role.AGENCY)


@pytest.fixture
def profiles(gateway, audit, storage, config):
    return ProfileService(gateway, audit, storage, config)


@pytest.fixture
def accounts(gateway, audit):
    return AccountService(gateway, audit)


@pytest.fixture
def hiring(gateway, audit):
    return HiringService(gateway, audit)


@pytest.fixture
def marketplace(gateway, config):
    return MarketplaceService(gateway, config)


@pytest.fixture
def invites(gateway, audit, config):
    return InviteService(gateway, audit, config)


@pytest.fixture
def portfolio(gateway, audit, storage, config):
    return PortfolioService(gateway, audit, storage, config)


@pytest.fixture
def seed_invite(gateway):
    def _seed(**kwargs):
        return gateway.seed(EXPERT_INVITES_TABLE, [invite_row(**kwargs)])[0]

    return _seed
