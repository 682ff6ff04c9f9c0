"""
In-memory gateway for testing and local development.

Emulates the parts of the hosted database the services rely on: column
defaults, unique (and partial unique) indexes, ``updated_at`` triggers, the
``public_experts`` view and the stored procedures defined in
``supabase/migrations``. Every operation runs under one lock, and procedures
run against a snapshot that is restored when they raise, so compound
procedures are all-or-nothing.
"""

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from staffline.access import SecurityContext
from staffline.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    ValidationError,
)
from staffline.gateway.base import (
    APPROVE_EXPERT_PROFILE,
    APPROVE_HIRE_REQUEST,
    AUDIT_LOGS_TABLE,
    CLAIM_EXPERT_INVITE,
    CONTRACTS_TABLE,
    DELETE_USER_PROFILE,
    EXPERT_INVITES_TABLE,
    GET_ADMIN_AUDIT_LOGS,
    GET_ADMIN_STATS,
    HIRE_REQUESTS_TABLE,
    LOG_ADMIN_ACTION,
    PORTFOLIO_ITEMS_TABLE,
    PROFILES_TABLE,
    PUBLIC_EXPERT_COLUMNS,
    PUBLIC_EXPERTS_VIEW,
    UPDATE_USER_STATUS,
    Filters,
    Row,
)
from staffline.profiles.models import APPROVABLE_STATUSES, DraftProfile
from staffline.utils import parse_timestamp, to_decimal, utc_now

logger = logging.getLogger(__name__)

ACCOUNT_STATUSES = ("active", "banned", "suspended")


@dataclass(frozen=True)
class UniqueConstraint:
    """A unique index, optionally partial (only rows matching ``where``)."""

    name: str
    table: str
    columns: Tuple[str, ...]
    where: Mapping[str, Any] = field(default_factory=dict)

    def applies(self, row: Row) -> bool:
        return all(row.get(k) == v for k, v in self.where.items())

    def key(self, row: Row) -> Optional[tuple]:
        values = tuple(row.get(c) for c in self.columns)
        # NULLs never collide
        if any(v is None for v in values):
            return None
        return values


DEFAULT_CONSTRAINTS: Tuple[UniqueConstraint, ...] = (
    UniqueConstraint("profiles_pkey", PROFILES_TABLE, ("id",)),
    UniqueConstraint("profiles_email_key", PROFILES_TABLE, ("email",)),
    UniqueConstraint("hire_requests_pkey", HIRE_REQUESTS_TABLE, ("id",)),
    UniqueConstraint(
        "hire_requests_one_pending_per_pair",
        HIRE_REQUESTS_TABLE,
        ("expert_id", "agency_id"),
        {"status": "pending"},
    ),
    UniqueConstraint("contracts_pkey", CONTRACTS_TABLE, ("id",)),
    UniqueConstraint(
        "contracts_one_active_per_pair",
        CONTRACTS_TABLE,
        ("agency_id", "expert_id"),
        {"status": "active"},
    ),
    UniqueConstraint("expert_invites_pkey", EXPERT_INVITES_TABLE, ("id",)),
    UniqueConstraint("expert_invites_token_key", EXPERT_INVITES_TABLE, ("token",)),
    UniqueConstraint("portfolio_items_pkey", PORTFOLIO_ITEMS_TABLE, ("id",)),
    UniqueConstraint("admin_audit_logs_pkey", AUDIT_LOGS_TABLE, ("id",)),
)

@dataclass(frozen=True)
class View:
    """A read-only projection of the rows of one table matching ``where``."""

    table: str
    columns: Tuple[str, ...]
    where: Mapping[str, Any] = field(default_factory=dict)

    def project(self, rows: List[Row]) -> List[Row]:
        return [{c: r.get(c) for c in self.columns} for r in rows if _matches(r, self.where)]


DEFAULT_VIEWS: Dict[str, View] = {
    PUBLIC_EXPERTS_VIEW: View(
        PROFILES_TABLE,
        PUBLIC_EXPERT_COLUMNS,
        {"role": "expert", "moderation_status": "approved", "marketplace_status": "available"},
    ),
}

TABLE_DEFAULTS: Dict[str, Row] = {
    PROFILES_TABLE: {
        "account_status": "active",
        "marketplace_status": "available",
        "skills": [],
        "skills_draft": [],
        "experience_years": 0,
        "experience_years_draft": 0,
        "willing_timezone_shift": False,
        "willing_timezone_shift_draft": False,
        "version": 1,
    },
    HIRE_REQUESTS_TABLE: {"status": "pending"},
    CONTRACTS_TABLE: {"status": "active"},
    EXPERT_INVITES_TABLE: {"status": "pending"},
    PORTFOLIO_ITEMS_TABLE: {"type": "link", "link_status": "pending"},
    AUDIT_LOGS_TABLE: {"metadata": {}},
}

Procedure = Callable[["InMemoryGateway", Row], Any]


def _matches(row: Row, filters: Optional[Filters]) -> bool:
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            if row.get(column) not in value:
                return False
        elif row.get(column) != value:
            return False
    return True


class InMemoryGateway:
    """In-memory data gateway with database-equivalent semantics."""

    def __init__(
        self,
        constraints: Tuple[UniqueConstraint, ...] = DEFAULT_CONSTRAINTS,
        context: SecurityContext = SecurityContext.SERVICE,
    ):
        self.context = context
        self._constraints = constraints
        self._views = dict(DEFAULT_VIEWS)
        self._tables: Dict[str, List[Row]] = {}
        self._lock = asyncio.Lock()
        self._procedures: Dict[str, Procedure] = {
            APPROVE_EXPERT_PROFILE: InMemoryGateway._approve_expert_profile,
            APPROVE_HIRE_REQUEST: InMemoryGateway._approve_hire_request,
            CLAIM_EXPERT_INVITE: InMemoryGateway._claim_expert_invite,
            LOG_ADMIN_ACTION: InMemoryGateway._log_admin_action,
            GET_ADMIN_AUDIT_LOGS: InMemoryGateway._get_admin_audit_logs,
            UPDATE_USER_STATUS: InMemoryGateway._update_user_status,
            DELETE_USER_PROFILE: InMemoryGateway._delete_user_profile,
            GET_ADMIN_STATS: InMemoryGateway._get_admin_stats,
        }

    # === Test helpers ===

    def seed(self, table: str, rows: List[Row]) -> List[Row]:
        """Insert rows synchronously, applying defaults and constraints."""
        return [self._insert(table, row) for row in rows]

    def rows(self, table: str) -> List[Row]:
        """Snapshot of every row in a table."""
        return copy.deepcopy(self._tables.get(table, []))

    def register_procedure(self, name: str, procedure: Procedure) -> None:
        """Install or replace a procedure; it receives this gateway and the args."""
        self._procedures[name] = procedure

    # === DataGateway ===

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
        async with self._lock:
            return self._select(table, filters, order_by, descending, limit, offset)

    async def insert(self, table: str, row: Row) -> Row:
        async with self._lock:
            return self._insert(table, row)

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        async with self._lock:
            return self._update(table, filters, patch)

    async def delete(self, table: str, filters: Filters) -> int:
        async with self._lock:
            return self._delete(table, filters)

    async def call_procedure(self, name: str, args: Optional[Row] = None) -> Any:
        procedure = self._procedures.get(name)
        if procedure is None:
            raise NotFoundError(f"Procedure {name} does not exist")
        async with self._lock:
            snapshot = copy.deepcopy(self._tables)
            try:
                result = procedure(self, dict(args or {}))
            except Exception:
                self._tables = snapshot
                raise
            return copy.deepcopy(result)

    # === Row primitives (caller holds the lock) ===

    def _select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Row]:
        view = self._views.get(table)
        if view is not None:
            source = view.project(self._tables.get(view.table, []))
        else:
            source = self._tables.get(table, [])
        rows = [r for r in source if _matches(r, filters)]
        if order_by:
            # Postgres: NULLS LAST ascending, NULLS FIRST descending
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def _check_constraints(self, table: str, candidate: Row, ignore: Optional[Row] = None) -> None:
        for constraint in self._constraints:
            if constraint.table != table or not constraint.applies(candidate):
                continue
            key = constraint.key(candidate)
            if key is None:
                continue
            for existing in self._tables.get(table, []):
                if existing is ignore:
                    continue
                if constraint.applies(existing) and constraint.key(existing) == key:
                    raise ConflictError(
                        f'duplicate key value violates unique constraint "{constraint.name}"',
                        constraint=constraint.name,
                    )

    def _insert(self, table: str, row: Row) -> Row:
        now = utc_now().isoformat()
        record = {**copy.deepcopy(TABLE_DEFAULTS.get(table, {})), **copy.deepcopy(row)}
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", now)
        record.setdefault("updated_at", now)
        self._check_constraints(table, record)
        self._tables.setdefault(table, []).append(record)
        return copy.deepcopy(record)

    def _update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        now = utc_now().isoformat()
        updated = []
        for existing in self._tables.get(table, []):
            if not _matches(existing, filters):
                continue
            candidate = {**existing, **copy.deepcopy(patch)}
            if "updated_at" not in patch:
                candidate["updated_at"] = now
            self._check_constraints(table, candidate, ignore=existing)
            existing.clear()
            existing.update(candidate)
            updated.append(copy.deepcopy(existing))
        return updated

    def _delete(self, table: str, filters: Filters) -> int:
        rows = self._tables.get(table, [])
        kept = [r for r in rows if not _matches(r, filters)]
        self._tables[table] = kept
        return len(rows) - len(kept)

    def _require_one(self, table: str, filters: Filters, message: str) -> Row:
        rows = self._select(table, filters, limit=1)
        if not rows:
            raise NotFoundError(message)
        return rows[0]

    # === Procedures ===

    def _approve_expert_profile(self, args: Row) -> Row:
        user_id = args.get("target_user_id")
        rate = to_decimal(args.get("target_monthly_rate"))
        expected_version = args.get("expected_version")

        if rate is None or not rate.is_finite() or rate <= 0:
            raise ValidationError("monthly rate must be a positive number")

        profile = self._require_one(
            PROFILES_TABLE, {"id": user_id, "role": "expert"}, "expert profile not found"
        )
        if expected_version is not None and profile.get("version") != expected_version:
            raise StaleWriteError("profile changed since it was loaded")
        if profile.get("moderation_status") not in APPROVABLE_STATUSES:
            raise InvalidTransitionError(
                f"cannot approve profile in status {profile.get('moderation_status')}"
            )

        patch = DraftProfile.from_row(profile).publish(rate).to_row()
        patch.update(
            {
                "moderation_status": "approved",
                "admin_feedback": None,
                "published_at": profile.get("published_at") or utc_now().isoformat(),
                "version": (profile.get("version") or 0) + 1,
            }
        )
        return self._update(PROFILES_TABLE, {"id": user_id}, patch)[0]

    def _approve_hire_request(self, args: Row) -> Row:
        request_id = args.get("request_id")
        request = self._require_one(
            HIRE_REQUESTS_TABLE, {"id": request_id}, "hire request not found"
        )
        if request["status"] != "pending":
            raise InvalidTransitionError(f"cannot approve hire request in status {request['status']}")

        updated = self._update(HIRE_REQUESTS_TABLE, {"id": request_id}, {"status": "approved"})[0]
        contract = self._insert(
            CONTRACTS_TABLE,
            {
                "agency_id": request["agency_id"],
                "expert_id": request["expert_id"],
                "status": "active",
                "start_date": utc_now().isoformat(),
                "end_date": args.get("contract_end_date"),
            },
        )
        return {"request": updated, "contract": contract}

    def _claim_expert_invite(self, args: Row) -> Row:
        token = args.get("p_token")
        user_id = args.get("p_user_id")
        invite = self._select(EXPERT_INVITES_TABLE, {"token": token, "status": "pending"}, limit=1)
        if not invite:
            raise NotFoundError("invitation is invalid or already used")
        invite = invite[0]
        expires_at = parse_timestamp(invite.get("expires_at"))
        if expires_at is None or expires_at <= utc_now():
            raise NotFoundError("invitation has expired")

        profile = self._insert(
            PROFILES_TABLE,
            {
                "id": user_id,
                "email": invite["email"],
                "role": "expert",
                "full_name_draft": invite["full_name"],
                "moderation_status": "pending",
            },
        )
        self._update(
            EXPERT_INVITES_TABLE,
            {"id": invite["id"]},
            {"status": "claimed", "claimed_at": utc_now().isoformat(), "claimed_by": user_id},
        )
        return profile

    def _log_admin_action(self, args: Row) -> str:
        row = self._insert(
            AUDIT_LOGS_TABLE,
            {
                "actor_id": args.get("p_actor_id"),
                "action_type": args.get("p_action_type"),
                "target_type": args.get("p_target_type"),
                "target_id": args.get("p_target_id"),
                "metadata": args.get("p_metadata") or {},
            },
        )
        return row["id"]

    def _get_admin_audit_logs(self, args: Row) -> List[Row]:
        filters = {}
        if args.get("p_action_type"):
            filters["action_type"] = args["p_action_type"]
        return self._select(
            AUDIT_LOGS_TABLE,
            filters,
            order_by="created_at",
            descending=True,
            limit=args.get("p_limit") or 100,
        )

    def _update_user_status(self, args: Row) -> Row:
        status = args.get("new_status")
        if status not in ACCOUNT_STATUSES:
            raise ValidationError(f"invalid account status: {status}")
        user_id = args.get("target_user_id")
        self._require_one(PROFILES_TABLE, {"id": user_id}, "profile not found")
        return self._update(PROFILES_TABLE, {"id": user_id}, {"account_status": status})[0]

    def _delete_user_profile(self, args: Row) -> bool:
        user_id = args.get("target_user_id")
        self._require_one(PROFILES_TABLE, {"id": user_id}, "profile not found")
        self._delete(HIRE_REQUESTS_TABLE, {"expert_id": user_id})
        self._delete(HIRE_REQUESTS_TABLE, {"agency_id": user_id})
        self._delete(CONTRACTS_TABLE, {"expert_id": user_id})
        self._delete(CONTRACTS_TABLE, {"agency_id": user_id})
        self._delete(PORTFOLIO_ITEMS_TABLE, {"expert_id": user_id})
        self._delete(PROFILES_TABLE, {"id": user_id})
        return True

    def _get_admin_stats(self, args: Row) -> Row:
        def count(table: str, filters: Filters) -> int:
            return len(self._select(table, filters))

        now = utc_now()
        pending_invites = [
            i
            for i in self._select(EXPERT_INVITES_TABLE, {"status": "pending"})
            if (parse_timestamp(i.get("expires_at")) or now) > now
        ]
        return {
            "total_experts": count(PROFILES_TABLE, {"role": "expert"}),
            "total_agencies": count(PROFILES_TABLE, {"role": "agency"}),
            "pending_moderation": count(
                PROFILES_TABLE,
                {"role": "expert", "moderation_status": ["pending", "changes_requested"]},
            ),
            "approved_experts": count(
                PROFILES_TABLE, {"role": "expert", "moderation_status": "approved"}
            ),
            "pending_hire_requests": count(HIRE_REQUESTS_TABLE, {"status": "pending"}),
            "active_contracts": count(CONTRACTS_TABLE, {"status": "active"}),
            "pending_invites": len(pending_invites),
        }


class InMemoryFileStorage:
    """In-memory object storage returning Supabase-shaped public URLs."""

    def __init__(self, base_url: str = "https://storage.local"):
        self._base_url = base_url.rstrip("/")
        self.objects: Dict[Tuple[str, str], bytes] = {}

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        if (bucket, path) in self.objects:
            raise ConflictError(f"object {bucket}/{path} already exists")
        self.objects[(bucket, path)] = bytes(data)
        return f"{self._base_url}/storage/v1/object/public/{bucket}/{path}"
