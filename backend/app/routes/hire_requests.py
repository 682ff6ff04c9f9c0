"""Hire request routes.

Agencies request and cancel; admins move requests through their workflow.
"""

from fastapi import APIRouter, Path, Query, Request, Response, status

from staffline.hiring import HireRequest, HireStatus

from ..auth import AdminActor, CurrentActor
from ..database import AdminHiring, Hiring
from ..logging_config import get_logger, log_admin_event
from ..models import (
    CancelResponse,
    ContractResponse,
    HireRequestCreate,
    HireRequestOutcomeResponse,
    HireRequestResponse,
    HireTransitionRequest,
    HireTransitionResponse,
    PendingStatusResponse,
)
from ..rate_limit import ADMIN_LIMIT, WRITE_LIMIT, limiter

logger = get_logger("staffline.hire_requests")
router = APIRouter(prefix="/hire-requests", tags=["hire-requests"])


def to_response(request: HireRequest) -> HireRequestResponse:
    return HireRequestResponse.model_validate(request.to_dict())


# =============================================================================
# Agency Endpoints
# =============================================================================


@router.post("", response_model=HireRequestOutcomeResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def request_hire(
    request: Request,
    response: Response,
    body: HireRequestCreate,
    actor: CurrentActor,
    hiring: Hiring,
):
    """Request an expert. Repeating the request while pending is a no-op."""
    logger.info(f"POST /hire-requests | agency={actor.user_id} | expert={body.expert_id}")
    outcome = await hiring.request_hire(actor, body.expert_id)
    if outcome.already_requested:
        response.status_code = status.HTTP_200_OK
    return HireRequestOutcomeResponse(
        request=to_response(outcome.request), already_requested=outcome.already_requested
    )


@router.delete("/experts/{expert_id}", response_model=CancelResponse)
@limiter.limit(WRITE_LIMIT)
async def cancel_hire(
    request: Request,
    actor: CurrentActor,
    hiring: Hiring,
    expert_id: str = Path(...),
):
    """Withdraw the pending request for an expert."""
    logger.info(f"DELETE /hire-requests/experts/{expert_id} | agency={actor.user_id}")
    removed = await hiring.cancel_hire(actor, expert_id)
    return CancelResponse(removed=removed)


@router.get("/experts/{expert_id}", response_model=PendingStatusResponse)
async def pending_status(actor: CurrentActor, hiring: Hiring, expert_id: str = Path(...)):
    """Whether the caller has a pending request for the expert."""
    pending = await hiring.is_pending_request_outstanding(actor.user_id, expert_id)
    return PendingStatusResponse(expert_id=expert_id, pending=pending)


@router.get("/mine", response_model=list[HireRequestResponse])
async def my_requests(actor: CurrentActor, hiring: Hiring):
    return [to_response(r) for r in await hiring.list_for_agency(actor)]


# =============================================================================
# Admin Endpoints
# =============================================================================


@router.get("", response_model=list[HireRequestResponse])
async def list_requests(
    admin: AdminActor,
    hiring: AdminHiring,
    status_filter: HireStatus | None = Query(None, alias="status"),
):
    """All hire requests, newest first."""
    return [to_response(r) for r in await hiring.list_all(admin, status_filter)]


@router.post("/{request_id}/transition", response_model=HireTransitionResponse)
@limiter.limit(ADMIN_LIMIT)
async def transition(
    request: Request,
    body: HireTransitionRequest,
    admin: AdminActor,
    hiring: AdminHiring,
    request_id: str = Path(...),
):
    """Move a request to a new status; approval creates the contract."""
    logger.info(
        f"POST /hire-requests/{request_id}/transition | admin={admin.user_id} | status={body.status}"
    )
    result = await hiring.admin_transition(
        admin, request_id, HireStatus(body.status), body.contract_end_date
    )
    log_admin_event(f"hire_request_{body.status}", admin.user_id, request_id)
    return HireTransitionResponse(
        request=to_response(result.request),
        contract=ContractResponse.model_validate(result.contract.to_dict()) if result.contract else None,
    )
