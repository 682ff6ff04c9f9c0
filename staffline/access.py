"""Caller identity and capability checks.

Every service method receives the calling ``Actor`` and checks its capability
before touching the gateway. Row-level security on the hosted database is a
second line, not the only one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from staffline.errors import UnauthorizedError


class Role(str, Enum):
    """Account roles."""

    AGENCY = "agency"
    EXPERT = "expert"
    ADMIN = "admin"


class SecurityContext(Enum):
    """Which database credentials an operation runs under."""

    CALLER = "caller"  # caller's token, RLS applies
    SERVICE = "service"  # service-role key, RLS bypassed


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a service operation."""

    user_id: str
    role: Role
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_expert(self) -> bool:
        return self.role is Role.EXPERT

    @property
    def is_agency(self) -> bool:
        return self.role is Role.AGENCY


def require_admin(actor: Actor, action: str) -> None:
    """Raise unless the actor is an admin."""
    if not actor.is_admin:
        raise UnauthorizedError(f"Only admins can {action}")


def require_service_context(context: SecurityContext, action: str) -> None:
    """Raise unless the gateway runs under the service role.

    Admin operations write rows that row-level security keeps from every
    caller token, so they run on the service-role gateway after the admin check.
    """
    if context is not SecurityContext.SERVICE:
        raise UnauthorizedError(f"Cannot {action} with caller-scoped credentials")


def require_role(actor: Actor, role: Role, action: str) -> None:
    """Raise unless the actor has the given role."""
    if actor.role is not role:
        raise UnauthorizedError(f"Only {role.value} accounts can {action}")


def require_owner(actor: Actor, owner_id: str, role: Role, action: str) -> None:
    """Raise unless the actor has ``role`` and owns the row."""
    require_role(actor, role, action)
    if actor.user_id != owner_id:
        raise UnauthorizedError(f"Cannot {action} on behalf of another account")
