"""Account administration: registration, roles, bans, deletion and stats."""

import logging
from typing import Any, Dict, List, Optional

from staffline.access import Actor, Role, require_admin, require_service_context
from staffline.audit import AuditEntry, AuditLog
from staffline.errors import NotFoundError, ValidationError
from staffline.gateway.base import (
    DELETE_USER_PROFILE,
    GET_ADMIN_AUDIT_LOGS,
    GET_ADMIN_STATS,
    PROFILES_TABLE,
    UPDATE_USER_STATUS,
    DataGateway,
    get_one,
)
from staffline.profiles.models import AccountStatus, Profile

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LIMIT = 100


class AccountService:
    """Admin-side account management."""

    def __init__(self, gateway: DataGateway, audit: AuditLog):
        self._gateway = gateway
        self._audit = audit

    async def _load(self, user_id: str) -> Profile:
        row = await get_one(self._gateway, PROFILES_TABLE, {"id": user_id})
        if row is None:
            raise NotFoundError(f"Profile {user_id} not found")
        return Profile.from_row(row)

    async def register_agency(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
        agency_name: Optional[str] = None,
    ) -> Profile:
        """Create the agency profile row for a freshly signed-up user.

        Raises:
            ValidationError: Email missing
            ConflictError: A profile already exists for the user or email
        """
        if not email or not email.strip():
            raise ValidationError("email is required")
        row = await self._gateway.insert(
            PROFILES_TABLE,
            {
                "id": user_id,
                "email": email.strip().lower(),
                "role": Role.AGENCY.value,
                "full_name": full_name,
                "agency_name": agency_name,
            },
        )
        logger.info(f"Registered agency {user_id}")
        return Profile.from_row(row)

    async def list_profiles(self, actor: Actor, role: Optional[Role] = None) -> List[Profile]:
        require_admin(actor, "list accounts")
        require_service_context(self._gateway.context, "list accounts")
        filters = {"role": Role(role).value} if role else None
        rows = await self._gateway.get(PROFILES_TABLE, filters, order_by="created_at", descending=True)
        return [Profile.from_row(r) for r in rows]

    async def set_account_status(
        self, actor: Actor, user_id: str, status: AccountStatus
    ) -> Profile:
        require_admin(actor, "change account status")
        require_service_context(self._gateway.context, "change account status")
        status = AccountStatus(status)
        if user_id == actor.user_id:
            raise ValidationError("Admins cannot change their own account status")
        previous = await self._load(user_id)
        result = await self._gateway.call_procedure(
            UPDATE_USER_STATUS, {"target_user_id": user_id, "new_status": status.value}
        )
        if isinstance(result, list):
            result = result[0] if result else None
        updated = Profile.from_row(result) if result else await self._load(user_id)

        logger.info(f"Account {user_id}: {previous.account_status.value} -> {status.value}")
        await self._audit.record(
            f"user_{status.value}",
            "user",
            user_id,
            {"previous_status": previous.account_status.value},
            actor_id=actor.user_id,
        )
        return updated

    async def delete_account(self, actor: Actor, user_id: str) -> None:
        """Delete a profile and everything that references it."""
        require_admin(actor, "delete accounts")
        require_service_context(self._gateway.context, "delete accounts")
        if user_id == actor.user_id:
            raise ValidationError("Admins cannot delete their own account")
        profile = await self._load(user_id)
        await self._gateway.call_procedure(DELETE_USER_PROFILE, {"target_user_id": user_id})
        logger.info(f"Deleted account {user_id} ({profile.role.value})")
        await self._audit.record(
            "delete_user",
            "user",
            user_id,
            {"role": profile.role.value, "email": profile.email},
            actor_id=actor.user_id,
        )

    async def set_role(self, actor: Actor, user_id: str, role: Role) -> Profile:
        require_admin(actor, "change account roles")
        require_service_context(self._gateway.context, "change account roles")
        role = Role(role)
        previous = await self._load(user_id)
        updated = await self._apply_role(user_id, role)
        await self._audit.record(
            "change_role",
            "user",
            user_id,
            {"previous_role": previous.role.value, "role": role.value},
            actor_id=actor.user_id,
        )
        return updated

    async def promote_to_admin(self, email: str) -> Profile:
        """Grant the admin role by email. Operator bootstrap, no actor check."""
        row = await get_one(self._gateway, PROFILES_TABLE, {"email": email.strip().lower()})
        if row is None:
            raise NotFoundError(f"No profile with email {email}")
        return await self._apply_role(row["id"], Role.ADMIN)

    async def _apply_role(self, user_id: str, role: Role) -> Profile:
        rows = await self._gateway.update(PROFILES_TABLE, {"id": user_id}, {"role": role.value})
        if not rows:
            raise NotFoundError(f"Profile {user_id} not found")
        logger.info(f"Profile {user_id} role -> {role.value}")
        return Profile.from_row(rows[0])

    async def admin_stats(self, actor: Actor) -> Dict[str, Any]:
        require_admin(actor, "view platform stats")
        require_service_context(self._gateway.context, "view platform stats")
        result = await self._gateway.call_procedure(GET_ADMIN_STATS, {})
        if isinstance(result, list):
            result = result[0] if result else {}
        return dict(result or {})

    async def audit_entries(
        self,
        actor: Actor,
        action_type: Optional[str] = None,
        limit: int = DEFAULT_AUDIT_LIMIT,
    ) -> List[AuditEntry]:
        """Recent audit entries, newest first."""
        require_admin(actor, "view the audit log")
        require_service_context(self._gateway.context, "view the audit log")
        rows = await self._gateway.call_procedure(
            GET_ADMIN_AUDIT_LOGS, {"p_action_type": action_type, "p_limit": limit}
        )
        return [AuditEntry.from_row(r) for r in rows or []]
