"""
Data access gateway protocols.

Services talk to the hosted database only through ``DataGateway`` and to
object storage only through ``FileStorage``. Every call is a suspension point;
callers sequence dependent writes explicitly or push them into a procedure.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol

from staffline.access import SecurityContext

# =============================================================================
# Table Names
# =============================================================================

PROFILES_TABLE = "profiles"
HIRE_REQUESTS_TABLE = "hire_requests"
CONTRACTS_TABLE = "contracts"
EXPERT_INVITES_TABLE = "expert_invites"
PORTFOLIO_ITEMS_TABLE = "portfolio_items"
AUDIT_LOGS_TABLE = "admin_audit_logs"

# Published projection of listed experts; the only profile rows non-owners can read
PUBLIC_EXPERTS_VIEW = "public_experts"
PUBLIC_EXPERT_COLUMNS = (
    "id",
    "role",
    "moderation_status",
    "marketplace_status",
    "full_name",
    "avatar_url",
    "bio",
    "skills",
    "experience_years",
    "willing_timezone_shift",
    "monthly_rate",
    "published_at",
)

# =============================================================================
# Procedure Names
# =============================================================================

APPROVE_EXPERT_PROFILE = "approve_expert_profile"
APPROVE_HIRE_REQUEST = "approve_hire_request"
CLAIM_EXPERT_INVITE = "claim_expert_invite"
LOG_ADMIN_ACTION = "log_admin_action"
GET_ADMIN_AUDIT_LOGS = "get_admin_audit_logs"
UPDATE_USER_STATUS = "update_user_status"
DELETE_USER_PROFILE = "delete_user_profile"
GET_ADMIN_STATS = "get_admin_stats"

# Filter values: scalar -> equality, list/tuple/set -> membership
Filters = Mapping[str, Any]
Row = Dict[str, Any]


class DataGateway(Protocol):
    """Protocol for row access against the relational store."""

    context: SecurityContext

    async def get(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Row]:
        """Select rows matching all filters."""
        ...

    async def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return it. Raises ConflictError on unique violation."""
        ...

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        """Patch every row matching filters; returns the updated rows."""
        ...

    async def delete(self, table: str, filters: Filters) -> int:
        """Delete rows matching filters; returns how many were removed."""
        ...

    async def call_procedure(self, name: str, args: Optional[Row] = None) -> Any:
        """Invoke a stored procedure atomically and return its result."""
        ...


class FileStorage(Protocol):
    """Protocol for object storage producing publicly resolvable URLs."""

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """Store bytes at bucket/path and return the public URL."""
        ...


async def get_one(gateway: DataGateway, table: str, filters: Filters) -> Optional[Row]:
    """Fetch the first row matching filters, or None."""
    rows = await gateway.get(table, filters, limit=1)
    return rows[0] if rows else None
