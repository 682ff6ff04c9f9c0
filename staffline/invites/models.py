"""Expert invite model."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from staffline.utils import parse_timestamp, to_iso, utc_now

ONBOARDING_PATH = "/expert/onboard"


class InviteStatus(str, Enum):
    PENDING = "pending"
    CLAIMED = "claimed"


@dataclass
class ExpertInvite:
    """A one-time invitation for an expert to create an account.

    Attributes:
        id: Invite ID
        email: Address the invite was sent to
        full_name: Name the admin entered; becomes the draft name on claim
        token: Unguessable secret embedded in the onboarding link
        status: pending until claimed
        expires_at: After this the invite cannot be claimed
        created_by: Admin who issued it
    """

    id: str
    email: str
    full_name: str
    token: str
    status: InviteStatus = InviteStatus.PENDING
    expires_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None
    claimed_by: Optional[str] = None

    def is_claimable(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        return (
            self.status is InviteStatus.PENDING
            and self.expires_at is not None
            and self.expires_at > now
        )

    def onboarding_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}{ONBOARDING_PATH}?{urlencode({'token': self.token})}"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ExpertInvite":
        return cls(
            id=row["id"],
            email=row["email"],
            full_name=row.get("full_name") or "",
            token=row["token"],
            status=InviteStatus(row.get("status") or "pending"),
            expires_at=parse_timestamp(row.get("expires_at")),
            created_by=row.get("created_by"),
            created_at=parse_timestamp(row.get("created_at")),
            claimed_at=parse_timestamp(row.get("claimed_at")),
            claimed_by=row.get("claimed_by"),
        )

    def to_dict(self, include_token: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "status": self.status.value,
            "expires_at": to_iso(self.expires_at),
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
            "claimed_at": to_iso(self.claimed_at),
            "claimed_by": self.claimed_by,
        }
        if include_token:
            data["token"] = self.token
        return data
