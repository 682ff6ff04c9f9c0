"""
Expert profile lifecycle.

Experts edit a draft and submit it for review. Admins approve (publishing the
draft with a monthly rate), request changes, reject or reopen. Published
columns are written only by the ``approve_expert_profile`` procedure.

Owner and moderation writes are compare-and-set on the row ``version``, so an
admin decision made against a draft that has since been resubmitted fails
with ``StaleWriteError`` instead of silently applying to the newer draft.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from staffline.access import (
    Actor,
    Role,
    require_admin,
    require_owner,
    require_role,
    require_service_context,
)
from staffline.audit import AuditLog
from staffline.config import MarketplaceConfig
from staffline.contact import detect_contact_info
from staffline.errors import (
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from staffline.gateway.base import (
    APPROVE_EXPERT_PROFILE,
    PROFILES_TABLE,
    DataGateway,
    FileStorage,
    get_one,
)
from staffline.profiles.models import (
    DraftProfile,
    MarketplaceStatus,
    ModerationStatus,
    Profile,
    can_transition,
    compute_quality_score,
)
from staffline.utils import object_path, to_decimal, utc_now

logger = logging.getLogger(__name__)

# Draft fields scanned for off-platform contact details
SCANNED_DRAFT_FIELDS = ("full_name", "bio")

MODERATION_QUEUE_STATUSES = (
    ModerationStatus.PENDING.value,
    ModerationStatus.CHANGES_REQUESTED.value,
)

IMAGE_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")


def validate_monthly_rate(value: Any) -> Decimal:
    """Return the rate as a Decimal, or raise ValidationError.

    Rejects missing, boolean, non-numeric, non-finite, zero and negative values.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("monthly rate is required")
    rate = to_decimal(value)
    if rate is None or not rate.is_finite():
        raise ValidationError(f"monthly rate must be a number, got {value!r}")
    if rate <= 0:
        raise ValidationError("monthly rate must be greater than zero")
    return rate


def validate_feedback(feedback: Optional[str]) -> str:
    if feedback is None or not feedback.strip():
        raise ValidationError("feedback is required")
    return feedback.strip()


class ProfileService:
    """Draft submission, moderation and owner-side profile operations."""

    def __init__(
        self,
        gateway: DataGateway,
        audit: AuditLog,
        storage: Optional[FileStorage] = None,
        config: Optional[MarketplaceConfig] = None,
    ):
        self._gateway = gateway
        self._audit = audit
        self._storage = storage
        self._config = config or MarketplaceConfig()

    # === Reads ===

    async def _load(self, profile_id: str) -> Profile:
        row = await get_one(self._gateway, PROFILES_TABLE, {"id": profile_id})
        if row is None:
            raise NotFoundError(f"Profile {profile_id} not found")
        return Profile.from_row(row)

    async def _load_expert(self, expert_id: str) -> Profile:
        profile = await self._load(expert_id)
        if not profile.is_expert:
            raise NotFoundError(f"Expert profile {expert_id} not found")
        return profile

    async def get_profile(self, actor: Actor, profile_id: str) -> Profile:
        """Full profile (drafts included) for its owner or an admin."""
        if actor.user_id != profile_id:
            require_admin(actor, "view another account's profile")
        return await self._load(profile_id)

    async def get_own_profile(self, actor: Actor) -> Profile:
        return await self._load(actor.user_id)

    async def moderation_queue(self, actor: Actor) -> List[Profile]:
        """Experts awaiting review, most recently submitted first."""
        require_admin(actor, "view the moderation queue")
        require_service_context(self._gateway.context, "view the moderation queue")
        rows = await self._gateway.get(
            PROFILES_TABLE,
            {"role": Role.EXPERT.value, "moderation_status": list(MODERATION_QUEUE_STATUSES)},
            order_by="submitted_at",
            descending=True,
        )
        return [Profile.from_row(r) for r in rows]

    def quality_score(self, draft: DraftProfile) -> int:
        return compute_quality_score(draft, self._config.quality_bio_min_length)

    # === Owner writes ===

    def _check_contact_info(self, draft: DraftProfile) -> None:
        for name in SCANNED_DRAFT_FIELDS:
            findings = detect_contact_info(
                getattr(draft, name) or "", self._config.contact_keywords
            )
            if findings:
                kinds = sorted({f.contact_type.value for f in findings})
                raise ValidationError(
                    f"{name.replace('_', ' ')} must not contain contact information "
                    f"({', '.join(kinds)})"
                )

    async def _conditional_update(self, profile: Profile, patch: Dict[str, Any]) -> Profile:
        """Apply ``patch`` only if the row still has the version we read."""
        rows = await self._gateway.update(
            PROFILES_TABLE,
            {"id": profile.id, "version": profile.version},
            {**patch, "version": profile.version + 1},
        )
        if not rows:
            logger.warning(f"Lost update race on profile {profile.id} at version {profile.version}")
            raise StaleWriteError(f"Profile {profile.id} was modified concurrently; reload and retry")
        return Profile.from_row(rows[0])

    async def submit_draft(self, actor: Actor, expert_id: str, draft: DraftProfile) -> Profile:
        """Persist the draft and queue it for review.

        Legal from every moderation status. Published fields are untouched, so
        an already-approved expert keeps showing the old values until the new
        draft is approved.

        Raises:
            UnauthorizedError: Caller is not the owning expert
            ValidationError: Name or bio contains contact information
            StaleWriteError: Profile changed since it was read
        """
        require_owner(actor, expert_id, Role.EXPERT, "submit a profile")
        self._check_contact_info(draft)

        profile = await self._load_expert(expert_id)
        patch = draft.to_row()
        patch["moderation_status"] = ModerationStatus.PENDING.value
        patch["submitted_at"] = utc_now().isoformat()
        updated = await self._conditional_update(profile, patch)

        logger.info(
            f"Submitted profile {expert_id} for review "
            f"(was {profile.moderation_status.value if profile.moderation_status else 'none'})"
        )
        return updated

    async def set_marketplace_status(self, actor: Actor, status: MarketplaceStatus) -> Profile:
        """Toggle availability; only approved experts can list themselves."""
        require_role(actor, Role.EXPERT, "change marketplace availability")
        profile = await self._load_expert(actor.user_id)
        if profile.moderation_status is not ModerationStatus.APPROVED:
            raise ValidationError("Only approved profiles can change marketplace availability")
        status = MarketplaceStatus(status)
        updated = await self._conditional_update(profile, {"marketplace_status": status.value})
        logger.info(f"Expert {actor.user_id} marketplace status -> {status.value}")
        return updated

    async def upload_avatar_draft(
        self,
        actor: Actor,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> Profile:
        """Upload a photo and set it as the draft avatar only."""
        require_role(actor, Role.EXPERT, "upload an avatar")
        if self._storage is None:
            raise ValidationError("File storage is not configured")
        if content_type not in IMAGE_CONTENT_TYPES:
            raise ValidationError(f"Avatar must be an image, got {content_type}")
        if not data:
            raise ValidationError("Avatar file is empty")
        if len(data) > self._config.max_upload_bytes:
            raise ValidationError("Avatar file is too large")

        profile = await self._load_expert(actor.user_id)
        url = await self._storage.upload(
            self._config.avatar_bucket,
            object_path(actor.user_id, filename),
            data,
            content_type,
        )
        updated = await self._conditional_update(profile, {"avatar_url_draft": url})
        logger.info(f"Uploaded avatar draft for expert {actor.user_id}")
        return updated

    # === Moderation ===

    async def approve(self, actor: Actor, expert_id: str, monthly_rate: Any) -> Profile:
        """Publish the current draft with a monthly rate.

        Raises:
            UnauthorizedError: Caller is not an admin
            ValidationError: Rate missing, non-numeric or not positive
            InvalidTransitionError: Profile is rejected and must be reopened first
            StaleWriteError: Draft was resubmitted after the admin loaded it
        """
        require_admin(actor, "approve profiles")
        require_service_context(self._gateway.context, "approve profiles")
        rate = validate_monthly_rate(monthly_rate)

        profile = await self._load_expert(expert_id)
        current = profile.moderation_status or ModerationStatus.PENDING
        if not can_transition(current, ModerationStatus.APPROVED):
            raise InvalidTransitionError(f"Cannot approve a profile in status {current.value}")

        result = await self._gateway.call_procedure(
            APPROVE_EXPERT_PROFILE,
            {
                "target_user_id": expert_id,
                "target_monthly_rate": float(rate),
                "expected_version": profile.version,
            },
        )
        # PostgREST returns set-returning functions as a list
        if isinstance(result, list):
            result = result[0] if result else None
        approved = Profile.from_row(result) if result else await self._load_expert(expert_id)

        logger.info(f"Approved profile {expert_id} at monthly rate {rate}")
        await self._audit.record(
            "approve_expert",
            "profile",
            expert_id,
            {"monthly_rate": str(rate), "previous_status": current.value},
            actor_id=actor.user_id,
        )
        return approved

    async def _moderate(
        self,
        actor: Actor,
        expert_id: str,
        target: ModerationStatus,
        action_type: str,
        feedback: Optional[str],
    ) -> Profile:
        profile = await self._load_expert(expert_id)
        current = profile.moderation_status or ModerationStatus.PENDING
        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot move profile from {current.value} to {target.value}"
            )

        patch: Dict[str, Any] = {"moderation_status": target.value}
        if feedback is not None:
            patch["admin_feedback"] = feedback
        updated = await self._conditional_update(profile, patch)

        logger.info(f"Profile {expert_id}: {current.value} -> {target.value}")
        metadata: Dict[str, Any] = {"previous_status": current.value}
        if feedback is not None:
            metadata["feedback"] = feedback
        await self._audit.record(action_type, "profile", expert_id, metadata, actor_id=actor.user_id)
        return updated

    async def request_changes(self, actor: Actor, expert_id: str, feedback: str) -> Profile:
        require_admin(actor, "request profile changes")
        require_service_context(self._gateway.context, "request profile changes")
        feedback = validate_feedback(feedback)
        return await self._moderate(
            actor, expert_id, ModerationStatus.CHANGES_REQUESTED, "request_changes", feedback
        )

    async def reject(self, actor: Actor, expert_id: str, feedback: str) -> Profile:
        require_admin(actor, "reject profiles")
        require_service_context(self._gateway.context, "reject profiles")
        feedback = validate_feedback(feedback)
        return await self._moderate(
            actor, expert_id, ModerationStatus.REJECTED, "reject_expert", feedback
        )

    async def reopen(self, actor: Actor, expert_id: str) -> Profile:
        """Send a rejected or approved profile back to the review queue."""
        require_admin(actor, "reopen profiles")
        require_service_context(self._gateway.context, "reopen profiles")
        return await self._moderate(actor, expert_id, ModerationStatus.PENDING, "reopen_expert", None)
