"""Moderation routes for the admin review queue."""

from fastapi import APIRouter, Path, Request

from ..auth import AdminActor
from ..database import Moderation
from ..logging_config import get_logger, log_admin_event
from ..models import ApproveRequest, FeedbackRequest, ProfileResponse
from ..rate_limit import ADMIN_LIMIT, limiter
from .profiles import to_response

logger = get_logger("staffline.moderation")
router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.get("/queue", response_model=list[ProfileResponse])
async def moderation_queue(admin: AdminActor, moderation: Moderation):
    """Experts awaiting review, most recently submitted first."""
    profiles = await moderation.moderation_queue(admin)
    return [to_response(p) for p in profiles]


@router.get("/profiles/{expert_id}", response_model=ProfileResponse)
async def get_profile(admin: AdminActor, moderation: Moderation, expert_id: str = Path(...)):
    """Full profile including the draft under review."""
    return to_response(await moderation.get_profile(admin, expert_id))


@router.post("/profiles/{expert_id}/approve", response_model=ProfileResponse)
@limiter.limit(ADMIN_LIMIT)
async def approve(
    request: Request,
    body: ApproveRequest,
    admin: AdminActor,
    moderation: Moderation,
    expert_id: str = Path(...),
):
    """Publish the draft with a monthly rate."""
    logger.info(f"POST /moderation/profiles/{expert_id}/approve | admin={admin.user_id}")
    profile = await moderation.approve(admin, expert_id, body.monthly_rate)
    log_admin_event("approve_expert", admin.user_id, expert_id, monthly_rate=profile.published.monthly_rate)
    return to_response(profile)


@router.post("/profiles/{expert_id}/request-changes", response_model=ProfileResponse)
@limiter.limit(ADMIN_LIMIT)
async def request_changes(
    request: Request,
    body: FeedbackRequest,
    admin: AdminActor,
    moderation: Moderation,
    expert_id: str = Path(...),
):
    logger.info(f"POST /moderation/profiles/{expert_id}/request-changes | admin={admin.user_id}")
    profile = await moderation.request_changes(admin, expert_id, body.feedback)
    log_admin_event("request_changes", admin.user_id, expert_id)
    return to_response(profile)


@router.post("/profiles/{expert_id}/reject", response_model=ProfileResponse)
@limiter.limit(ADMIN_LIMIT)
async def reject(
    request: Request,
    body: FeedbackRequest,
    admin: AdminActor,
    moderation: Moderation,
    expert_id: str = Path(...),
):
    logger.info(f"POST /moderation/profiles/{expert_id}/reject | admin={admin.user_id}")
    profile = await moderation.reject(admin, expert_id, body.feedback)
    log_admin_event("reject_expert", admin.user_id, expert_id)
    return to_response(profile)


@router.post("/profiles/{expert_id}/reopen", response_model=ProfileResponse)
async def reopen(admin: AdminActor, moderation: Moderation, expert_id: str = Path(...)):
    """Send a rejected or approved profile back to the queue."""
    logger.info(f"POST /moderation/profiles/{expert_id}/reopen | admin={admin.user_id}")
    profile = await moderation.reopen(admin, expert_id)
    log_admin_event("reopen_expert", admin.user_id, expert_id)
    return to_response(profile)
