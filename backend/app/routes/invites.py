"""Expert invite routes.

Admins issue invites; invitees verify the token and claim it, which creates
their account and expert profile.
"""

from fastapi import APIRouter, Path, Query, Request, status

from staffline.errors import StafflineError
from staffline.invites import ExpertInvite

from ..auth import AdminActor
from ..config import Settings, get_settings
from ..database import AuthAdmin, Invites
from ..logging_config import get_logger, log_admin_event, log_auth_event
from ..models import (
    InviteClaimRequest,
    InviteCreate,
    InviteResponse,
    InviteVerifyResponse,
    ProfileResponse,
)
from ..rate_limit import ADMIN_LIMIT, SIGNUP_LIMIT, TOKEN_CHECK_LIMIT, limiter
from .profiles import to_response as profile_response

logger = get_logger("staffline.invites")
router = APIRouter(prefix="/invites", tags=["invites"])


def to_response(invite: ExpertInvite, settings: Settings | None = None) -> InviteResponse:
    data = invite.to_dict(include_token=settings is not None)
    if settings is not None:
        data["invite_url"] = invite.onboarding_url(settings.invite_base_url)
    return InviteResponse.model_validate(data)


@router.post("", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(ADMIN_LIMIT)
async def create_invite(request: Request, body: InviteCreate, admin: AdminActor, invites: Invites):
    """Issue an invite; the token is only ever returned here."""
    logger.info(f"POST /invites | admin={admin.user_id}")
    invite = await invites.create_invite(admin, body.email, body.full_name)
    log_admin_event("invite_expert", admin.user_id, invite.id)
    return to_response(invite, get_settings())


@router.get("", response_model=list[InviteResponse])
async def list_invites(admin: AdminActor, invites: Invites):
    return [to_response(i) for i in await invites.list_invites(admin)]


@router.delete("/{invite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invite(admin: AdminActor, invites: Invites, invite_id: str = Path(...)):
    logger.info(f"DELETE /invites/{invite_id} | admin={admin.user_id}")
    await invites.revoke_invite(admin, invite_id)
    log_admin_event("revoke_invite", admin.user_id, invite_id)


@router.get("/verify", response_model=InviteVerifyResponse)
@limiter.limit(TOKEN_CHECK_LIMIT)
async def verify_invite(request: Request, invites: Invites, token: str = Query(..., min_length=1)):
    """Check a token before showing the onboarding form."""
    invite = await invites.verify_invite(token)
    return InviteVerifyResponse(email=invite.email, full_name=invite.full_name, expires_at=invite.expires_at)


@router.post("/claim", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(SIGNUP_LIMIT)
async def claim_invite(
    request: Request,
    body: InviteClaimRequest,
    invites: Invites,
    auth_admin: AuthAdmin,
):
    """Create the expert's account and profile from an invite.

    The auth account is removed again if the claim fails, so a failed claim
    leaves nothing behind.
    """
    invite = await invites.verify_invite(body.token)
    user_id = await auth_admin.create_user(invite.email, body.password, invite.full_name)
    try:
        profile = await invites.claim_invite(body.token, user_id)
    except StafflineError:
        log_auth_event("claim_invite", user_id, False, "claim failed")
        await auth_admin.delete_user(user_id)
        raise
    log_auth_event("claim_invite", user_id, True)
    return profile_response(profile)
