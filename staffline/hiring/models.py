"""
Hire request and contract models.

An agency's interest in an expert is a hire request. Admins move requests
through their workflow; approving one creates the contract.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from staffline.utils import parse_timestamp, to_iso


class HireStatus(str, Enum):
    """Hire request lifecycle status."""

    PENDING = "pending"  # Agency asked, admin has not acted
    CONTACTED = "contacted"  # Admin reached out to the parties
    APPROVED = "approved"  # Contract created
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"


class ContractStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


# Admin moves from pending; every other status can only go back to pending.
VALID_HIRE_TRANSITIONS = {
    HireStatus.PENDING: {HireStatus.CONTACTED, HireStatus.APPROVED, HireStatus.REJECTED},
    **{s: {HireStatus.PENDING} for s in HireStatus if s is not HireStatus.PENDING},
}


def can_transition(from_status: HireStatus, to_status: HireStatus) -> bool:
    """Check if an admin hire-request move is valid."""
    return to_status in VALID_HIRE_TRANSITIONS.get(from_status, set())


@dataclass
class HireRequest:
    """An agency's request to hire an expert."""

    id: str
    expert_id: str
    agency_id: str
    status: HireStatus = HireStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "HireRequest":
        return cls(
            id=row["id"],
            expert_id=row["expert_id"],
            agency_id=row["agency_id"],
            status=HireStatus(row.get("status") or "pending"),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "expert_id": self.expert_id,
            "agency_id": self.agency_id,
            "status": self.status.value,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


@dataclass
class Contract:
    """An engagement between an agency and an expert."""

    id: str
    agency_id: str
    expert_id: str
    status: ContractStatus = ContractStatus.ACTIVE
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Contract":
        return cls(
            id=row["id"],
            agency_id=row["agency_id"],
            expert_id=row["expert_id"],
            status=ContractStatus(row.get("status") or "active"),
            start_date=parse_timestamp(row.get("start_date")),
            end_date=parse_timestamp(row.get("end_date")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "agency_id": self.agency_id,
            "expert_id": self.expert_id,
            "status": self.status.value,
            "start_date": to_iso(self.start_date),
            "end_date": to_iso(self.end_date),
        }


@dataclass
class HireRequestOutcome:
    """Result of ``request_hire``.

    ``already_requested`` is True when a pending request for the pair already
    existed; ``request`` is then that existing row.
    """

    request: HireRequest
    already_requested: bool = False


@dataclass
class TransitionResult:
    """Result of an admin transition; ``contract`` is set on approval."""

    request: HireRequest
    contract: Optional[Contract] = None
