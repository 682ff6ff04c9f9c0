"""Marketplace routes. Public: only published projections leave here."""

from fastapi import APIRouter, Path, Query

from staffline.marketplace import PublicExpert

from ..database import Marketplace
from ..logging_config import get_logger
from ..models import ExpertListResponse, PublicExpertResponse

logger = get_logger("staffline.marketplace")
router = APIRouter(prefix="/marketplace", tags=["marketplace"])


def to_public(expert: PublicExpert) -> PublicExpertResponse:
    return PublicExpertResponse.model_validate(expert.to_dict())


@router.get("/experts", response_model=ExpertListResponse)
async def list_experts(
    marketplace: Marketplace,
    search: str | None = Query(None, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Listed experts, most recently published first."""
    experts = await marketplace.list_experts(search=search, limit=limit, offset=offset)
    logger.debug(f"GET /marketplace/experts | search={search!r} | returned={len(experts)}")
    return ExpertListResponse(experts=[to_public(e) for e in experts], limit=limit, offset=offset)


@router.get("/experts/{expert_id}", response_model=PublicExpertResponse)
async def get_expert(marketplace: Marketplace, expert_id: str = Path(...)):
    return to_public(await marketplace.get_public_expert(expert_id))
