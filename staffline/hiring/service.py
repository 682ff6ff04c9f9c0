"""
Hire request matcher.

Agencies request experts; requesting is idempotent through the partial unique
index on pending (expert_id, agency_id) pairs, never through a read-then-write
check. Admins move requests through their workflow, and approval creates the
contract in the same procedure call.
"""

import logging
from datetime import datetime
from typing import List, Optional

from staffline.access import Actor, Role, require_admin, require_role, require_service_context
from staffline.audit import AuditLog
from staffline.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from staffline.gateway.base import (
    APPROVE_HIRE_REQUEST,
    CONTRACTS_TABLE,
    HIRE_REQUESTS_TABLE,
    PUBLIC_EXPERTS_VIEW,
    DataGateway,
    get_one,
)
from staffline.hiring.models import (
    Contract,
    ContractStatus,
    HireRequest,
    HireRequestOutcome,
    HireStatus,
    TransitionResult,
    can_transition,
)
from staffline.marketplace import MARKETPLACE_FILTER
from staffline.utils import to_iso, utc_now

logger = logging.getLogger(__name__)

# Insert attempts when the conflicting pending row disappears before we read it
MAX_REQUEST_ATTEMPTS = 2


class HiringService:
    """Hire requests and the contracts they produce."""

    def __init__(self, gateway: DataGateway, audit: AuditLog):
        self._gateway = gateway
        self._audit = audit

    async def _load(self, request_id: str) -> HireRequest:
        row = await get_one(self._gateway, HIRE_REQUESTS_TABLE, {"id": request_id})
        if row is None:
            raise NotFoundError(f"Hire request {request_id} not found")
        return HireRequest.from_row(row)

    # =========================================================================
    # Agency operations
    # =========================================================================

    async def request_hire(self, actor: Actor, expert_id: str) -> HireRequestOutcome:
        """Ask to hire a listed expert.

        A second request for the same pair while one is pending returns the
        existing request with ``already_requested=True``.

        Raises:
            UnauthorizedError: Caller is not an agency
            NotFoundError: Expert is not listed in the marketplace
        """
        require_role(actor, Role.AGENCY, "request experts")
        pair = {"expert_id": expert_id, "agency_id": actor.user_id}
        expert = await get_one(
            self._gateway, PUBLIC_EXPERTS_VIEW, {"id": expert_id, **MARKETPLACE_FILTER}
        )
        if expert is None:
            # A retry after the expert left the marketplace still returns the pending request
            existing = await get_one(
                self._gateway, HIRE_REQUESTS_TABLE, {**pair, "status": HireStatus.PENDING.value}
            )
            if existing is None:
                raise NotFoundError(f"Expert {expert_id} not found")
            return HireRequestOutcome(request=HireRequest.from_row(existing), already_requested=True)

        for _ in range(MAX_REQUEST_ATTEMPTS):
            try:
                row = await self._gateway.insert(
                    HIRE_REQUESTS_TABLE, {**pair, "status": HireStatus.PENDING.value}
                )
            except StaleWriteError:
                raise
            except ConflictError:
                existing = await get_one(
                    self._gateway,
                    HIRE_REQUESTS_TABLE,
                    {**pair, "status": HireStatus.PENDING.value},
                )
                if existing is not None:
                    logger.info(f"Agency {actor.user_id} already requested expert {expert_id}")
                    return HireRequestOutcome(
                        request=HireRequest.from_row(existing), already_requested=True
                    )
                continue
            logger.info(f"Agency {actor.user_id} requested expert {expert_id}")
            return HireRequestOutcome(request=HireRequest.from_row(row))

        raise StaleWriteError(f"Hire request for expert {expert_id} changed concurrently; retry")

    async def cancel_hire(self, actor: Actor, expert_id: str) -> int:
        """Withdraw the pending request for the pair. Zero removed rows is success."""
        require_role(actor, Role.AGENCY, "cancel hire requests")
        removed = await self._gateway.delete(
            HIRE_REQUESTS_TABLE,
            {
                "expert_id": expert_id,
                "agency_id": actor.user_id,
                "status": HireStatus.PENDING.value,
            },
        )
        logger.info(f"Agency {actor.user_id} cancelled request for expert {expert_id} ({removed} removed)")
        return removed

    async def is_pending_request_outstanding(self, agency_id: str, expert_id: str) -> bool:
        row = await get_one(
            self._gateway,
            HIRE_REQUESTS_TABLE,
            {"agency_id": agency_id, "expert_id": expert_id, "status": HireStatus.PENDING.value},
        )
        return row is not None

    async def list_for_agency(self, actor: Actor) -> List[HireRequest]:
        require_role(actor, Role.AGENCY, "list hire requests")
        rows = await self._gateway.get(
            HIRE_REQUESTS_TABLE,
            {"agency_id": actor.user_id},
            order_by="created_at",
            descending=True,
        )
        return [HireRequest.from_row(r) for r in rows]

    # =========================================================================
    # Admin operations
    # =========================================================================

    async def list_all(self, actor: Actor, status: Optional[HireStatus] = None) -> List[HireRequest]:
        require_admin(actor, "list all hire requests")
        require_service_context(self._gateway.context, "list all hire requests")
        filters = {"status": HireStatus(status).value} if status else None
        rows = await self._gateway.get(
            HIRE_REQUESTS_TABLE, filters, order_by="created_at", descending=True
        )
        return [HireRequest.from_row(r) for r in rows]

    async def admin_transition(
        self,
        actor: Actor,
        request_id: str,
        new_status: HireStatus,
        contract_end_date: Optional[datetime] = None,
    ) -> TransitionResult:
        """Move a hire request to a new status.

        Approval flips the request and inserts the active contract atomically.

        Raises:
            UnauthorizedError: Caller is not an admin
            NotFoundError: Request does not exist
            InvalidTransitionError: Move not allowed from the current status,
                or the pair already has an active contract
            StaleWriteError: Request changed status since it was read
        """
        require_admin(actor, "manage hire requests")
        require_service_context(self._gateway.context, "manage hire requests")
        try:
            new_status = HireStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown hire request status: {new_status}")

        request = await self._load(request_id)
        if not can_transition(request.status, new_status):
            raise InvalidTransitionError(
                f"Cannot move hire request from {request.status.value} to {new_status.value}"
            )

        if new_status is HireStatus.APPROVED:
            result = await self._approve(request, contract_end_date)
        else:
            result = await self._compare_and_set(request, new_status)

        logger.info(f"Hire request {request_id}: {request.status.value} -> {new_status.value}")
        metadata = {
            "previous_status": request.status.value,
            "expert_id": request.expert_id,
            "agency_id": request.agency_id,
        }
        if result.contract is not None:
            metadata["contract_id"] = result.contract.id
        await self._audit.record(
            f"hire_request_{new_status.value}",
            "hire_request",
            request_id,
            metadata,
            actor_id=actor.user_id,
        )
        return result

    async def _approve(
        self, request: HireRequest, contract_end_date: Optional[datetime]
    ) -> TransitionResult:
        try:
            result = await self._gateway.call_procedure(
                APPROVE_HIRE_REQUEST,
                {"request_id": request.id, "contract_end_date": to_iso(contract_end_date)},
            )
        except StaleWriteError:
            raise
        except ConflictError as e:
            raise InvalidTransitionError(
                f"Agency {request.agency_id} already has an active contract with expert {request.expert_id}"
            ) from e

        if isinstance(result, list):
            result = result[0] if result else None
        if not result:
            # Procedure without a payload; read back what it wrote
            return TransitionResult(
                request=await self._load(request.id),
                contract=await self._active_contract(request.agency_id, request.expert_id),
            )
        return TransitionResult(
            request=HireRequest.from_row(result["request"]),
            contract=Contract.from_row(result["contract"]),
        )

    async def _compare_and_set(self, request: HireRequest, new_status: HireStatus) -> TransitionResult:
        try:
            rows = await self._gateway.update(
                HIRE_REQUESTS_TABLE,
                {"id": request.id, "status": request.status.value},
                {"status": new_status.value},
            )
        except StaleWriteError:
            raise
        except ConflictError as e:
            raise InvalidTransitionError(
                f"Agency {request.agency_id} already has a pending request for expert {request.expert_id}"
            ) from e
        if not rows:
            logger.warning(f"Lost status race on hire request {request.id}")
            raise StaleWriteError(f"Hire request {request.id} changed concurrently; reload and retry")
        return TransitionResult(request=HireRequest.from_row(rows[0]))

    # =========================================================================
    # Contracts
    # =========================================================================

    async def _active_contract(self, agency_id: str, expert_id: str) -> Optional[Contract]:
        row = await get_one(
            self._gateway,
            CONTRACTS_TABLE,
            {"agency_id": agency_id, "expert_id": expert_id, "status": ContractStatus.ACTIVE.value},
        )
        return Contract.from_row(row) if row else None

    async def list_contracts(
        self, actor: Actor, status: Optional[ContractStatus] = None
    ) -> List[Contract]:
        """Contracts visible to the actor.

        Agencies and experts see their own active contracts; admins see all,
        optionally filtered by status.
        """
        if actor.is_admin:
            filters = {"status": ContractStatus(status).value} if status else {}
        elif actor.is_agency:
            filters = {"agency_id": actor.user_id, "status": ContractStatus.ACTIVE.value}
        else:
            filters = {"expert_id": actor.user_id, "status": ContractStatus.ACTIVE.value}
        rows = await self._gateway.get(
            CONTRACTS_TABLE, filters, order_by="start_date", descending=True
        )
        return [Contract.from_row(r) for r in rows]

    async def complete_contract(
        self, actor: Actor, contract_id: str, end_date: Optional[datetime] = None
    ) -> Contract:
        require_admin(actor, "complete contracts")
        require_service_context(self._gateway.context, "complete contracts")
        end_date = end_date or utc_now()
        rows = await self._gateway.update(
            CONTRACTS_TABLE,
            {"id": contract_id, "status": ContractStatus.ACTIVE.value},
            {"status": ContractStatus.COMPLETED.value, "end_date": to_iso(end_date)},
        )
        if not rows:
            existing = await get_one(self._gateway, CONTRACTS_TABLE, {"id": contract_id})
            if existing is None:
                raise NotFoundError(f"Contract {contract_id} not found")
            raise InvalidTransitionError(f"Contract {contract_id} is not active")

        contract = Contract.from_row(rows[0])
        logger.info(f"Completed contract {contract_id}")
        await self._audit.record(
            "complete_contract",
            "contract",
            contract_id,
            {"agency_id": contract.agency_id, "expert_id": contract.expert_id},
            actor_id=actor.user_id,
        )
        return contract
