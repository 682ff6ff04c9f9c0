"""Contract routes."""

from fastapi import APIRouter, Path, Query

from staffline.hiring import ContractStatus

from ..auth import AdminActor, CurrentActor
from ..database import AdminHiring, Hiring
from ..logging_config import get_logger, log_admin_event
from ..models import CompleteContractRequest, ContractResponse

logger = get_logger("staffline.contracts")
router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.get("", response_model=list[ContractResponse])
async def list_contracts(
    actor: CurrentActor,
    hiring: Hiring,
    status_filter: ContractStatus | None = Query(None, alias="status"),
):
    """Active contracts for agencies and experts; admins see all."""
    contracts = await hiring.list_contracts(actor, status_filter)
    return [ContractResponse.model_validate(c.to_dict()) for c in contracts]


@router.post("/{contract_id}/complete", response_model=ContractResponse)
async def complete_contract(
    body: CompleteContractRequest,
    admin: AdminActor,
    hiring: AdminHiring,
    contract_id: str = Path(...),
):
    logger.info(f"POST /contracts/{contract_id}/complete | admin={admin.user_id}")
    contract = await hiring.complete_contract(admin, contract_id, body.end_date)
    log_admin_event("complete_contract", admin.user_id, contract_id)
    return ContractResponse.model_validate(contract.to_dict())
