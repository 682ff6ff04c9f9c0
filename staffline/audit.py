"""
Admin audit trail.

Every admin transition records one entry. Recording is best effort: a
failure is logged and the already-applied state change stands.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from staffline.errors import StafflineError
from staffline.gateway.base import LOG_ADMIN_ACTION, DataGateway
from staffline.utils import parse_timestamp

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    """One recorded admin action."""

    id: str
    action_type: str
    target_type: str
    target_id: str
    actor_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AuditEntry":
        return cls(
            id=row["id"],
            action_type=row.get("action_type") or row.get("action", ""),
            target_type=row.get("target_type", ""),
            target_id=str(row.get("target_id", "")),
            actor_id=row.get("actor_id"),
            metadata=row.get("metadata") or {},
            created_at=parse_timestamp(row.get("created_at")),
        )


class AuditLog(Protocol):
    """Sink for admin audit records."""

    async def record(
        self,
        action_type: str,
        target_type: str,
        target_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        """Record one admin action; never raises."""
        ...


class GatewayAuditLog:
    """Audit log written through the ``log_admin_action`` procedure."""

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway

    async def record(
        self,
        action_type: str,
        target_type: str,
        target_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        try:
            await self._gateway.call_procedure(
                LOG_ADMIN_ACTION,
                {
                    "p_action_type": action_type,
                    "p_target_type": target_type,
                    "p_target_id": target_id,
                    "p_metadata": metadata or {},
                    "p_actor_id": actor_id,
                },
            )
        except StafflineError as e:
            logger.warning(
                f"Audit logging failed | action={action_type} | target={target_type}:{target_id} | {e}"
            )

