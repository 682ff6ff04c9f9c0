"""Tests for the profile lifecycle service."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from staffline.access import SecurityContext
from staffline.audit import GatewayAuditLog
from staffline.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    UnauthorizedError,
    ValidationError,
)
from staffline.gateway.base import AUDIT_LOGS_TABLE, PROFILES_TABLE
from staffline.gateway.memory import InMemoryGateway
from staffline.profiles import (
    DraftProfile,
    MarketplaceStatus,
    ModerationStatus,
    Profile,
    ProfileService,
)
from staffline.utils import utc_now

from factories import EXPERT_ID, approved_expert_row, expert_row


def a_draft(**overrides):
    values = dict(
        full_name="Jane Doe",
        bio="10 years of growth marketing.",
        skills=["SEO", "PPC"],
        experience_years=10,
        willing_timezone_shift=True,
    )
    values.update(overrides)
    return DraftProfile(**values)


def stored(gateway, profile_id=EXPERT_ID):
    return next(r for r in gateway.rows(PROFILES_TABLE) if r["id"] == profile_id)


class TestSubmitDraft:
    @pytest.mark.asyncio
    async def test_round_trip(self, gateway, profiles, expert):
        """Submitted values read back exactly, queued for review."""
        gateway.seed(PROFILES_TABLE, [expert_row(moderation_status="changes_requested")])
        before = utc_now()

        await profiles.submit_draft(expert, EXPERT_ID, a_draft())
        profile = await profiles.get_own_profile(expert)

        assert profile.draft == a_draft()
        assert profile.moderation_status is ModerationStatus.PENDING
        assert profile.submitted_at >= before
        assert profile.version == 2

    @pytest.mark.asyncio
    async def test_contact_info_in_bio_rejected(self, gateway, profiles, expert):
        gateway.seed(PROFILES_TABLE, [expert_row(moderation_status="changes_requested")])

        with pytest.raises(ValidationError):
            await profiles.submit_draft(expert, EXPERT_ID, a_draft(bio="reach me at test@example.com"))

        row = stored(gateway)
        assert row["moderation_status"] == "changes_requested"
        assert row.get("bio_draft") is None
        assert row["version"] == 1

    @pytest.mark.asyncio
    async def test_contact_info_in_name_rejected(self, gateway, profiles, expert):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        with pytest.raises(ValidationError):
            await profiles.submit_draft(expert, EXPERT_ID, a_draft(full_name="Jane (WhatsApp me)"))

    @pytest.mark.asyncio
    async def test_only_owner_can_submit(self, gateway, profiles, agency, admin):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        with pytest.raises(UnauthorizedError):
            await profiles.submit_draft(agency, EXPERT_ID, a_draft())
        with pytest.raises(UnauthorizedError):
            await profiles.submit_draft(admin, EXPERT_ID, a_draft())

    @pytest.mark.asyncio
    async def test_resubmission_keeps_published_values(self, gateway, profiles, expert):
        gateway.seed(PROFILES_TABLE, [approved_expert_row()])

        await profiles.submit_draft(expert, EXPERT_ID, a_draft(full_name="Jane Renamed"))

        row = stored(gateway)
        assert row["full_name"] == "Dana Reyes"
        assert row["full_name_draft"] == "Jane Renamed"
        assert row["moderation_status"] == "pending"
        assert row["published_at"] == "2026-01-10T12:00:00+00:00"

    @pytest.mark.asyncio
    async def test_stale_version_is_refused(self, gateway, profiles, expert, monkeypatch):
        """A write based on an outdated read loses instead of overwriting."""
        gateway.seed(PROFILES_TABLE, [expert_row(version=2)])
        stale = Profile.from_row(expert_row(version=1))
        monkeypatch.setattr(profiles, "_load_expert", AsyncMock(return_value=stale))

        with pytest.raises(StaleWriteError):
            await profiles.submit_draft(expert, EXPERT_ID, a_draft())

        assert stored(gateway)["version"] == 2

    @pytest.mark.asyncio
    async def test_missing_profile(self, profiles, expert):
        with pytest.raises(NotFoundError):
            await profiles.submit_draft(expert, EXPERT_ID, a_draft())


class TestApprove:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("rate", [None, 0, -5, "abc", float("nan"), float("inf"), True])
    async def test_invalid_rate_rejected_without_writes(self, gateway, profiles, admin, rate):
        gateway.seed(PROFILES_TABLE, [expert_row(full_name_draft="Jane")])

        with pytest.raises(ValidationError):
            await profiles.approve(admin, EXPERT_ID, rate)

        row = stored(gateway)
        assert row["moderation_status"] == "pending"
        assert row.get("full_name") is None
        assert row["version"] == 1
        assert gateway.rows(AUDIT_LOGS_TABLE) == []

    @pytest.mark.asyncio
    async def test_approve_copies_every_draft_field(self, gateway, profiles, expert, admin):
        gateway.seed(PROFILES_TABLE, [expert_row()])
        draft = a_draft(avatar_url="https://cdn.test/jane.png")
        await profiles.submit_draft(expert, EXPERT_ID, draft)

        profile = await profiles.approve(admin, EXPERT_ID, 1500)

        assert profile.published == draft.publish(Decimal("1500"))
        assert profile.moderation_status is ModerationStatus.APPROVED
        assert profile.published_at is not None
        assert profile.admin_feedback is None

    @pytest.mark.asyncio
    async def test_approve_pending_profile(self, gateway, profiles, admin):
        """Approving a pending profile publishes the draft at the given rate."""
        gateway.seed(
            PROFILES_TABLE,
            [
                expert_row(
                    full_name_draft="Jane Doe",
                    bio_draft="10 years of growth marketing.",
                    skills_draft=["SEO", "PPC"],
                )
            ],
        )

        profile = await profiles.approve(admin, EXPERT_ID, 3000)

        assert profile.moderation_status is ModerationStatus.APPROVED
        assert profile.published.monthly_rate == Decimal("3000")
        assert profile.published_at is not None
        assert profile.published.full_name == "Jane Doe"
        assert profile.published.bio == "10 years of growth marketing."
        assert profile.published.skills == ["SEO", "PPC"]

    @pytest.mark.asyncio
    async def test_published_at_survives_reapproval(self, gateway, profiles, expert, admin):
        gateway.seed(PROFILES_TABLE, [expert_row()])
        await profiles.submit_draft(expert, EXPERT_ID, a_draft())
        first = await profiles.approve(admin, EXPERT_ID, 1500)

        await profiles.submit_draft(expert, EXPERT_ID, a_draft(bio="Now 11 years of growth marketing."))
        second = await profiles.approve(admin, EXPERT_ID, 1800)

        assert second.published_at == first.published_at
        assert second.published.bio == "Now 11 years of growth marketing."
        assert second.published.monthly_rate == Decimal("1800")

    @pytest.mark.asyncio
    async def test_rejected_profile_must_be_reopened(self, gateway, profiles, admin):
        gateway.seed(PROFILES_TABLE, [expert_row(moderation_status="rejected")])

        with pytest.raises(InvalidTransitionError):
            await profiles.approve(admin, EXPERT_ID, 1500)

        await profiles.reopen(admin, EXPERT_ID)
        profile = await profiles.approve(admin, EXPERT_ID, 1500)
        assert profile.moderation_status is ModerationStatus.APPROVED

    @pytest.mark.asyncio
    async def test_only_admin_can_approve(self, gateway, profiles, expert):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        with pytest.raises(UnauthorizedError):
            await profiles.approve(expert, EXPERT_ID, 1500)

    @pytest.mark.asyncio
    async def test_approval_is_audited(self, gateway, profiles, admin):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        await profiles.approve(admin, EXPERT_ID, 2500)

        [entry] = gateway.rows(AUDIT_LOGS_TABLE)
        assert entry["action_type"] == "approve_expert"
        assert entry["target_id"] == EXPERT_ID
        assert entry["actor_id"] == admin.user_id
        assert entry["metadata"]["monthly_rate"] == "2500"

    @pytest.mark.asyncio
    async def test_approval_against_resubmitted_draft_is_stale(
        self, gateway, profiles, admin, monkeypatch
    ):
        gateway.seed(PROFILES_TABLE, [expert_row(version=3)])
        stale = Profile.from_row(expert_row(version=2))
        monkeypatch.setattr(profiles, "_load_expert", AsyncMock(return_value=stale))

        with pytest.raises(StaleWriteError):
            await profiles.approve(admin, EXPERT_ID, 1500)

        assert stored(gateway)["moderation_status"] == "pending"


class TestFeedbackModeration:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("feedback", ["", "   ", None])
    async def test_feedback_required(self, gateway, profiles, admin, feedback):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        with pytest.raises(ValidationError):
            await profiles.request_changes(admin, EXPERT_ID, feedback)
        with pytest.raises(ValidationError):
            await profiles.reject(admin, EXPERT_ID, feedback)

        assert stored(gateway)["moderation_status"] == "pending"

    @pytest.mark.asyncio
    async def test_request_changes_then_approve_clears_feedback(self, gateway, profiles, admin):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        profile = await profiles.request_changes(admin, EXPERT_ID, "Please add your skills")
        assert profile.moderation_status is ModerationStatus.CHANGES_REQUESTED
        assert profile.admin_feedback == "Please add your skills"

        profile = await profiles.approve(admin, EXPERT_ID, 1200)
        assert profile.admin_feedback is None

    @pytest.mark.asyncio
    async def test_reject_and_reopen(self, gateway, profiles, admin):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        profile = await profiles.reject(admin, EXPERT_ID, "Not a fit")
        assert profile.moderation_status is ModerationStatus.REJECTED

        profile = await profiles.reopen(admin, EXPERT_ID)
        assert profile.moderation_status is ModerationStatus.PENDING

        actions = [r["action_type"] for r in gateway.rows(AUDIT_LOGS_TABLE)]
        assert actions == ["reject_expert", "reopen_expert"]

    @pytest.mark.asyncio
    async def test_approved_profile_cannot_get_change_request(self, gateway, profiles, admin):
        gateway.seed(PROFILES_TABLE, [approved_expert_row()])

        with pytest.raises(InvalidTransitionError):
            await profiles.request_changes(admin, EXPERT_ID, "Fix typo")


class TestModerationQueue:
    @pytest.mark.asyncio
    async def test_queue_order_and_filter(self, gateway, profiles, admin):
        gateway.seed(
            PROFILES_TABLE,
            [
                expert_row("e-old", submitted_at="2026-03-01T00:00:00+00:00"),
                expert_row(
                    "e-new",
                    moderation_status="changes_requested",
                    submitted_at="2026-03-05T00:00:00+00:00",
                ),
                approved_expert_row("e-approved", submitted_at="2026-03-09T00:00:00+00:00"),
                expert_row("e-rejected", moderation_status="rejected"),
            ],
        )

        queue = await profiles.moderation_queue(admin)

        assert [p.id for p in queue] == ["e-new", "e-old"]

    @pytest.mark.asyncio
    async def test_queue_requires_admin(self, profiles, expert):
        with pytest.raises(UnauthorizedError):
            await profiles.moderation_queue(expert)


class TestOwnerSettings:
    @pytest.mark.asyncio
    async def test_marketplace_toggle_requires_approval(self, gateway, profiles, expert):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        with pytest.raises(ValidationError):
            await profiles.set_marketplace_status(expert, MarketplaceStatus.UNAVAILABLE)

    @pytest.mark.asyncio
    async def test_marketplace_toggle(self, gateway, profiles, expert):
        gateway.seed(PROFILES_TABLE, [approved_expert_row()])

        profile = await profiles.set_marketplace_status(expert, MarketplaceStatus.UNAVAILABLE)

        assert profile.marketplace_status is MarketplaceStatus.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_avatar_upload_touches_draft_only(self, gateway, profiles, expert, storage):
        gateway.seed(PROFILES_TABLE, [approved_expert_row(avatar_url="https://cdn.test/old.png")])

        profile = await profiles.upload_avatar_draft(expert, "me photo.png", b"\x89PNG", "image/png")

        assert profile.published.avatar_url == "https://cdn.test/old.png"
        assert profile.draft.avatar_url.startswith(
            "https://storage.local/storage/v1/object/public/avatars/" + EXPERT_ID + "/"
        )
        assert profile.draft.avatar_url.endswith("-me_photo.png")
        [(bucket, path)] = storage.objects.keys()
        assert bucket == "avatars"
        assert path.startswith(f"{EXPERT_ID}/")

    @pytest.mark.asyncio
    async def test_avatar_must_be_image(self, gateway, profiles, expert, storage):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        with pytest.raises(ValidationError):
            await profiles.upload_avatar_draft(expert, "cv.pdf", b"%PDF", "application/pdf")
        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_avatar_size_limit(self, gateway, profiles, expert, config):
        gateway.seed(PROFILES_TABLE, [expert_row()])

        with pytest.raises(ValidationError):
            await profiles.upload_avatar_draft(
                expert, "big.png", b"x" * (config.max_upload_bytes + 1), "image/png"
            )

    def test_quality_score_uses_config(self, profiles):
        assert profiles.quality_score(a_draft()) == 80


class TestSecurityContext:
    @pytest.fixture
    def caller_gateway(self):
        gw = InMemoryGateway(context=SecurityContext.CALLER)
        gw.seed(PROFILES_TABLE, [expert_row(moderation_status="changes_requested")])
        return gw

    @pytest.mark.asyncio
    async def test_moderation_refused_with_caller_credentials(self, caller_gateway, admin):
        service = ProfileService(caller_gateway, GatewayAuditLog(caller_gateway))

        with pytest.raises(UnauthorizedError):
            await service.approve(admin, EXPERT_ID, 3000)
        with pytest.raises(UnauthorizedError):
            await service.moderation_queue(admin)
        assert stored(caller_gateway)["moderation_status"] == "changes_requested"

    @pytest.mark.asyncio
    async def test_owner_submit_runs_with_caller_credentials(self, caller_gateway, expert):
        service = ProfileService(caller_gateway, GatewayAuditLog(caller_gateway))

        profile = await service.submit_draft(expert, EXPERT_ID, a_draft())

        assert profile.moderation_status is ModerationStatus.PENDING
