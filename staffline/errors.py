"""Error taxonomy shared by the Staffline services.

Validation, authorization and not-found errors are raised before any write
lands. Gateway errors wrap failures from the data platform and carry enough
context for the caller to show a retryable message.
"""

from typing import Any, Optional


class StafflineError(Exception):
    """Base exception for all Staffline errors."""

    pass


class ValidationError(StafflineError):
    """Input rejected before any state change (contact info, price, feedback)."""

    pass


class InvalidTransitionError(ValidationError):
    """Requested status change is not legal from the current status."""

    pass


class UnauthorizedError(StafflineError):
    """Caller lacks the capability required by the operation."""

    pass


class NotFoundError(StafflineError):
    """Target row does not exist or is not in the expected prior state."""

    pass


class ConflictError(StafflineError):
    """A uniqueness constraint rejected the write."""

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message)
        self.constraint = constraint


class StaleWriteError(ConflictError):
    """Row changed between read and conditional write; safe to retry."""

    pass


class GatewayError(StafflineError):
    """Failure reported by the data platform (network, permissions, constraints)."""

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.code = code
        self.details = details
