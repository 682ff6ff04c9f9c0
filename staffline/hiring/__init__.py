"""Hire requests and contracts.

Models:
- HireRequest, HireStatus: Agency interest in an expert
- Contract, ContractStatus: Engagement created by approval
- HireRequestOutcome, TransitionResult: Service results

Service:
- HiringService: request/cancel, admin transitions, contracts
"""

from staffline.hiring.models import (
    VALID_HIRE_TRANSITIONS,
    Contract,
    ContractStatus,
    HireRequest,
    HireRequestOutcome,
    HireStatus,
    TransitionResult,
    can_transition,
)
from staffline.hiring.service import HiringService

__all__ = [
    "HireRequest",
    "HireStatus",
    "Contract",
    "ContractStatus",
    "HireRequestOutcome",
    "TransitionResult",
    "VALID_HIRE_TRANSITIONS",
    "can_transition",
    "HiringService",
]
