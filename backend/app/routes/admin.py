"""Admin routes for account management, platform stats and the audit trail."""

from fastapi import APIRouter, Path, Query, status

from staffline.access import Role
from staffline.profiles import AccountStatus

from ..auth import AdminActor
from ..database import Accounts
from ..logging_config import get_logger, log_admin_event
from ..models import (
    AccountStatusUpdate,
    AdminStatsResponse,
    AuditEntryResponse,
    ProfileResponse,
    RoleUpdate,
)
from .profiles import to_response

logger = get_logger("staffline.admin")
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=AdminStatsResponse)
async def stats(admin: AdminActor, accounts: Accounts):
    """Platform counts for the dashboard."""
    return AdminStatsResponse.model_validate(await accounts.admin_stats(admin))


@router.get("/users", response_model=list[ProfileResponse])
async def list_users(
    admin: AdminActor,
    accounts: Accounts,
    role: Role | None = Query(None),
):
    return [to_response(p) for p in await accounts.list_profiles(admin, role)]


@router.put("/users/{user_id}/status", response_model=ProfileResponse)
async def set_account_status(
    body: AccountStatusUpdate,
    admin: AdminActor,
    accounts: Accounts,
    user_id: str = Path(...),
):
    """Ban, suspend or reactivate an account."""
    logger.info(f"PUT /admin/users/{user_id}/status | admin={admin.user_id} | status={body.status}")
    profile = await accounts.set_account_status(admin, user_id, AccountStatus(body.status))
    log_admin_event(f"user_{body.status}", admin.user_id, user_id)
    return to_response(profile)


@router.put("/users/{user_id}/role", response_model=ProfileResponse)
async def set_role(
    body: RoleUpdate,
    admin: AdminActor,
    accounts: Accounts,
    user_id: str = Path(...),
):
    logger.info(f"PUT /admin/users/{user_id}/role | admin={admin.user_id} | role={body.role}")
    profile = await accounts.set_role(admin, user_id, Role(body.role))
    log_admin_event("change_role", admin.user_id, user_id, role=body.role)
    return to_response(profile)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(admin: AdminActor, accounts: Accounts, user_id: str = Path(...)):
    logger.info(f"DELETE /admin/users/{user_id} | admin={admin.user_id}")
    await accounts.delete_account(admin, user_id)
    log_admin_event("delete_user", admin.user_id, user_id)


@router.get("/audit-logs", response_model=list[AuditEntryResponse])
async def audit_logs(
    admin: AdminActor,
    accounts: Accounts,
    action_type: str | None = Query(None, max_length=100),
    limit: int = Query(100, ge=1, le=500),
):
    """Recent admin actions, newest first."""
    entries = await accounts.audit_entries(admin, action_type=action_type, limit=limit)
    return [
        AuditEntryResponse(
            id=e.id,
            action_type=e.action_type,
            target_type=e.target_type,
            target_id=e.target_id,
            actor_id=e.actor_id,
            metadata=e.metadata,
            created_at=e.created_at,
        )
        for e in entries
    ]
