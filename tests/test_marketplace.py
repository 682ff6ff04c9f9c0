"""Tests for the marketplace query policy."""

from decimal import Decimal

import pytest

from staffline.errors import NotFoundError, ValidationError
from staffline.gateway.base import PORTFOLIO_ITEMS_TABLE, PROFILES_TABLE
from staffline.marketplace import is_listable, matches_search, project_public
from staffline.profiles import DraftProfile, Profile

from factories import EXPERT_ID, agency_row, approved_expert_row, expert_row

DRAFT_COLUMNS = {
    "full_name_draft",
    "avatar_url_draft",
    "bio_draft",
    "skills_draft",
    "experience_years_draft",
    "willing_timezone_shift_draft",
}


def listed_expert(n, published_at, **overrides):
    return approved_expert_row(
        f"e-{n}",
        email=f"e{n}@experts.test",
        full_name=f"Expert {n}",
        published_at=published_at,
        **overrides,
    )


class TestPredicate:
    @pytest.mark.parametrize(
        "overrides,expected",
        [
            ({}, True),
            ({"moderation_status": "pending"}, False),
            ({"moderation_status": "changes_requested"}, False),
            ({"moderation_status": "rejected"}, False),
            ({"marketplace_status": "unavailable"}, False),
            ({"role": "agency"}, False),
        ],
    )
    def test_is_listable(self, overrides, expected):
        assert is_listable(Profile.from_row(approved_expert_row(**overrides))) is expected

    def test_project_refuses_unlisted(self):
        with pytest.raises(NotFoundError):
            project_public(Profile.from_row(expert_row()))

    def test_projection_has_no_draft_values(self):
        row = approved_expert_row(full_name_draft="Secret New Name", bio_draft="unreviewed bio")
        public = project_public(Profile.from_row(row)).to_dict()

        assert public["full_name"] == "Dana Reyes"
        assert "Secret New Name" not in repr(public)
        assert "unreviewed bio" not in repr(public)
        assert not DRAFT_COLUMNS & set(public)
        assert "moderation_status" not in public
        assert "email" not in public

    def test_search_matches_published_fields_only(self):
        public = project_public(
            Profile.from_row(approved_expert_row(skills_draft=["Kubernetes"]))
        )

        assert matches_search(public, "postgres")
        assert matches_search(public, "DANA")
        assert matches_search(public, "payments")
        assert not matches_search(public, "kubernetes")
        assert matches_search(public, "  ")


class TestListExperts:
    @pytest.mark.asyncio
    async def test_only_listable_profiles_appear(self, gateway, marketplace):
        gateway.seed(
            PROFILES_TABLE,
            [
                listed_expert(1, "2026-02-01T00:00:00+00:00"),
                listed_expert(2, "2026-02-02T00:00:00+00:00", moderation_status="pending"),
                listed_expert(3, "2026-02-03T00:00:00+00:00", marketplace_status="unavailable"),
                listed_expert(4, "2026-02-04T00:00:00+00:00", moderation_status="rejected"),
                agency_row(),
            ],
        )

        experts = await marketplace.list_experts()

        assert [e.id for e in experts] == ["e-1"]
        for hidden in ("e-2", "e-3", "e-4"):
            with pytest.raises(NotFoundError):
                await marketplace.get_public_expert(hidden)

    @pytest.mark.asyncio
    async def test_resubmitted_profile_drops_off(self, gateway, marketplace, profiles, expert):
        """An approved expert who resubmits is back in review and unlisted."""
        gateway.seed(PROFILES_TABLE, [approved_expert_row()])
        listed = (await marketplace.list_experts())[0]
        assert listed.id == EXPERT_ID

        await profiles.submit_draft(expert, EXPERT_ID, DraftProfile(full_name="Dana R."))

        assert await marketplace.list_experts() == []
        with pytest.raises(NotFoundError):
            await marketplace.get_public_expert(EXPERT_ID)

    @pytest.mark.asyncio
    async def test_order_and_pagination(self, gateway, marketplace):
        gateway.seed(
            PROFILES_TABLE,
            [listed_expert(n, f"2026-02-0{n}T00:00:00+00:00") for n in range(1, 6)],
        )

        first_page = await marketplace.list_experts(limit=2)
        second_page = await marketplace.list_experts(limit=2, offset=2)

        assert [e.id for e in first_page] == ["e-5", "e-4"]
        assert [e.id for e in second_page] == ["e-3", "e-2"]

    @pytest.mark.asyncio
    async def test_search_before_pagination(self, gateway, marketplace):
        gateway.seed(
            PROFILES_TABLE,
            [
                listed_expert(1, "2026-02-01T00:00:00+00:00", skills=["Go"]),
                listed_expert(2, "2026-02-02T00:00:00+00:00", skills=["Rust"]),
                listed_expert(3, "2026-02-03T00:00:00+00:00", skills=["Go"]),
                listed_expert(4, "2026-02-04T00:00:00+00:00", skills=["Rust"]),
            ],
        )

        page = await marketplace.list_experts(search="go", limit=1, offset=1)

        assert [e.id for e in page] == ["e-1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (10, -1)])
    async def test_bad_paging(self, marketplace, limit, offset):
        with pytest.raises(ValidationError):
            await marketplace.list_experts(limit=limit, offset=offset)

    @pytest.mark.asyncio
    async def test_rejected_portfolio_items_hidden(self, gateway, marketplace):
        gateway.seed(PROFILES_TABLE, [approved_expert_row()])
        gateway.seed(
            PORTFOLIO_ITEMS_TABLE,
            [
                {"expert_id": EXPERT_ID, "title": "Case study", "url": "https://a.test", "link_status": "approved"},
                {"expert_id": EXPERT_ID, "title": "New talk", "url": "https://b.test", "link_status": "pending"},
                {"expert_id": EXPERT_ID, "title": "Spam", "url": "https://c.test", "link_status": "rejected"},
            ],
        )

        listed = (await marketplace.list_experts())[0]
        fetched = await marketplace.get_public_expert(EXPERT_ID)

        assert [i.title for i in listed.portfolio] == ["Case study", "New talk"]
        assert [i.title for i in fetched.portfolio] == ["Case study", "New talk"]

    @pytest.mark.asyncio
    async def test_public_expert_carries_rate(self, gateway, marketplace):
        gateway.seed(PROFILES_TABLE, [approved_expert_row()])

        expert = await marketplace.get_public_expert(EXPERT_ID)

        assert expert.monthly_rate == Decimal("4200")
        assert expert.published_at is not None
