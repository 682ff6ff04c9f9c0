"""
Expert invitations.

Experts join only by invitation. An admin issues an invite; the invitee opens
the onboarding link, creates an account and claims the invite, which creates
their expert profile in the pending moderation state.
"""

import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from staffline.access import Actor, require_admin, require_service_context
from staffline.audit import AuditLog
from staffline.config import MarketplaceConfig
from staffline.contact import EMAIL_PATTERN
from staffline.errors import NotFoundError, ValidationError
from staffline.gateway.base import (
    CLAIM_EXPERT_INVITE,
    EXPERT_INVITES_TABLE,
    DataGateway,
    get_one,
)
from staffline.invites.models import ExpertInvite, InviteStatus
from staffline.profiles.models import Profile
from staffline.utils import utc_now

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


class InviteService:
    """Issue, verify, claim and revoke expert invites."""

    def __init__(
        self,
        gateway: DataGateway,
        audit: AuditLog,
        config: Optional[MarketplaceConfig] = None,
    ):
        self._gateway = gateway
        self._audit = audit
        self._config = config or MarketplaceConfig()

    async def create_invite(self, actor: Actor, email: str, full_name: str) -> ExpertInvite:
        """Issue an invite valid for ``invite_ttl_hours``.

        Raises:
            UnauthorizedError: Caller is not an admin
            ValidationError: Email malformed or name blank
        """
        require_admin(actor, "invite experts")
        require_service_context(self._gateway.context, "invite experts")
        email = (email or "").strip().lower()
        full_name = (full_name or "").strip()
        if not EMAIL_PATTERN.fullmatch(email):
            raise ValidationError(f"Invalid email address: {email!r}")
        if not full_name:
            raise ValidationError("full name is required")

        expires_at = utc_now() + timedelta(hours=self._config.invite_ttl_hours)
        row = await self._gateway.insert(
            EXPERT_INVITES_TABLE,
            {
                "email": email,
                "full_name": full_name,
                "token": generate_token(),
                "status": InviteStatus.PENDING.value,
                "expires_at": expires_at.isoformat(),
                "created_by": actor.user_id,
            },
        )
        invite = ExpertInvite.from_row(row)
        logger.info(f"Created invite {invite.id} for {email}, expires {expires_at.isoformat()}")
        await self._audit.record(
            "invite_expert",
            "expert_invite",
            invite.id,
            {"email": email, "full_name": full_name},
            actor_id=actor.user_id,
        )
        return invite

    async def verify_invite(self, token: str) -> ExpertInvite:
        """Return the invite behind ``token`` if it can still be claimed."""
        if not token:
            raise NotFoundError("Missing invitation token")
        row = await get_one(self._gateway, EXPERT_INVITES_TABLE, {"token": token})
        if row is None:
            raise NotFoundError("Invitation is invalid or already used")
        invite = ExpertInvite.from_row(row)
        if invite.status is not InviteStatus.PENDING:
            raise NotFoundError("Invitation is invalid or already used")
        if not invite.is_claimable():
            raise NotFoundError("Invitation has expired")
        return invite

    async def claim_invite(self, token: str, user_id: str) -> Profile:
        """Atomically consume the invite and create the expert profile."""
        require_service_context(self._gateway.context, "claim invites")
        if not token:
            raise NotFoundError("Missing invitation token")
        result = await self._gateway.call_procedure(
            CLAIM_EXPERT_INVITE, {"p_token": token, "p_user_id": user_id}
        )
        if isinstance(result, list):
            result = result[0] if result else None
        if not result:
            raise NotFoundError("Invitation is invalid or already used")
        logger.info(f"User {user_id} claimed an expert invite")
        return Profile.from_row(result)

    async def revoke_invite(self, actor: Actor, invite_id: str) -> None:
        require_admin(actor, "revoke invites")
        require_service_context(self._gateway.context, "revoke invites")
        removed = await self._gateway.delete(
            EXPERT_INVITES_TABLE, {"id": invite_id, "status": InviteStatus.PENDING.value}
        )
        if not removed:
            raise NotFoundError(f"Pending invite {invite_id} not found")
        logger.info(f"Revoked invite {invite_id}")
        await self._audit.record("revoke_invite", "expert_invite", invite_id, actor_id=actor.user_id)

    async def list_invites(self, actor: Actor) -> List[ExpertInvite]:
        require_admin(actor, "list invites")
        require_service_context(self._gateway.context, "list invites")
        rows = await self._gateway.get(EXPERT_INVITES_TABLE, order_by="created_at", descending=True)
        return [ExpertInvite.from_row(r) for r in rows]
