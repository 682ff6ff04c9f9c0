"""
Profile data models.

An expert profile carries two copies of its public-facing fields: the draft
the expert edits and the published snapshot the marketplace shows. The only
path from draft to published is ``DraftProfile.publish``, used by approval.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from staffline.access import Role
from staffline.utils import parse_timestamp, to_decimal, to_iso


class AccountStatus(str, Enum):
    """Account standing, independent of moderation."""

    ACTIVE = "active"
    BANNED = "banned"
    SUSPENDED = "suspended"


class ModerationStatus(str, Enum):
    """Position of an expert profile in the approval workflow."""

    PENDING = "pending"
    CHANGES_REQUESTED = "changes_requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class MarketplaceStatus(str, Enum):
    """Expert-controlled availability toggle."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


# Admin moderation moves. Expert resubmission (any state -> pending) is
# handled separately by submit_draft.
VALID_MODERATION_TRANSITIONS = {
    ModerationStatus.PENDING: {
        ModerationStatus.APPROVED,
        ModerationStatus.CHANGES_REQUESTED,
        ModerationStatus.REJECTED,
    },
    ModerationStatus.CHANGES_REQUESTED: {
        ModerationStatus.PENDING,
        ModerationStatus.APPROVED,
        ModerationStatus.REJECTED,
    },
    ModerationStatus.REJECTED: {ModerationStatus.PENDING},
    ModerationStatus.APPROVED: {
        ModerationStatus.APPROVED,
        ModerationStatus.PENDING,
        ModerationStatus.REJECTED,
    },
}

APPROVABLE_STATUSES = tuple(
    s.value for s, targets in VALID_MODERATION_TRANSITIONS.items() if ModerationStatus.APPROVED in targets
)

# Published columns that have a *_draft twin
PUBLISHABLE_FIELDS = (
    "full_name",
    "avatar_url",
    "bio",
    "skills",
    "experience_years",
    "willing_timezone_shift",
)

QUALITY_STEP = 20


def can_transition(from_status: ModerationStatus, to_status: ModerationStatus) -> bool:
    """Check if an admin moderation move is valid."""
    return to_status in VALID_MODERATION_TRANSITIONS.get(from_status, set())


@dataclass
class PublishedProfile:
    """Admin-approved field values visible in the marketplace."""

    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    experience_years: int = 0
    willing_timezone_shift: bool = False
    monthly_rate: Optional[Decimal] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PublishedProfile":
        return cls(
            full_name=row.get("full_name"),
            avatar_url=row.get("avatar_url"),
            bio=row.get("bio"),
            skills=list(row.get("skills") or []),
            experience_years=int(row.get("experience_years") or 0),
            willing_timezone_shift=bool(row.get("willing_timezone_shift")),
            monthly_rate=to_decimal(row.get("monthly_rate")),
        )

    def to_row(self) -> Dict[str, Any]:
        """Published columns for a profile update."""
        row = {name: getattr(self, name) for name in PUBLISHABLE_FIELDS}
        row["skills"] = list(self.skills)
        row["monthly_rate"] = float(self.monthly_rate) if self.monthly_rate is not None else None
        return row


@dataclass
class DraftProfile:
    """Expert-editable values awaiting review.

    Attributes:
        full_name: Display name
        avatar_url: Public URL of the uploaded photo
        bio: Free-text introduction
        skills: Ordered skill labels
        experience_years: Years of professional experience
        willing_timezone_shift: Whether the expert will work shifted hours
    """

    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    experience_years: int = 0
    willing_timezone_shift: bool = False

    def __post_init__(self):
        if self.experience_years is None:
            self.experience_years = 0
        if self.experience_years < 0:
            raise ValueError("experience_years cannot be negative")
        self.skills = [s.strip() for s in (self.skills or []) if s and s.strip()]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DraftProfile":
        return cls(
            full_name=row.get("full_name_draft"),
            avatar_url=row.get("avatar_url_draft"),
            bio=row.get("bio_draft"),
            skills=list(row.get("skills_draft") or []),
            experience_years=int(row.get("experience_years_draft") or 0),
            willing_timezone_shift=bool(row.get("willing_timezone_shift_draft")),
        )

    def to_row(self) -> Dict[str, Any]:
        """Draft columns for a profile update."""
        row = {f"{name}_draft": getattr(self, name) for name in PUBLISHABLE_FIELDS}
        row["skills_draft"] = list(self.skills)
        return row

    def publish(self, monthly_rate: Decimal) -> PublishedProfile:
        """Snapshot this draft as the published profile."""
        return PublishedProfile(
            full_name=self.full_name,
            avatar_url=self.avatar_url,
            bio=self.bio,
            skills=list(self.skills),
            experience_years=self.experience_years,
            willing_timezone_shift=self.willing_timezone_shift,
            monthly_rate=monthly_rate,
        )


def compute_quality_score(draft: DraftProfile, bio_min_length: int = 20) -> int:
    """Score a draft 0-100 for editor guidance; never gates submission."""
    signals = (
        bool(draft.avatar_url),
        len(draft.bio or "") > bio_min_length,
        len(draft.skills) > 0,
        draft.experience_years > 0,
        draft.willing_timezone_shift is True,
    )
    return QUALITY_STEP * sum(1 for s in signals if s)


@dataclass
class Profile:
    """One row of the profiles table.

    ``published`` and ``draft`` are only meaningful for experts; agency and
    admin rows keep them empty and have no moderation status.
    """

    id: str
    role: Role
    email: Optional[str] = None
    account_status: AccountStatus = AccountStatus.ACTIVE
    agency_name: Optional[str] = None
    published: PublishedProfile = field(default_factory=PublishedProfile)
    draft: DraftProfile = field(default_factory=DraftProfile)
    moderation_status: Optional[ModerationStatus] = None
    admin_feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    marketplace_status: MarketplaceStatus = MarketplaceStatus.AVAILABLE
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_expert(self) -> bool:
        return self.role is Role.EXPERT

    def editor_draft(self) -> DraftProfile:
        """Draft values for the editor, falling back to published ones when unset."""
        return DraftProfile(
            full_name=self.draft.full_name or self.published.full_name,
            avatar_url=self.draft.avatar_url or self.published.avatar_url,
            bio=self.draft.bio or self.published.bio,
            skills=list(self.draft.skills or self.published.skills),
            experience_years=self.draft.experience_years or self.published.experience_years,
            willing_timezone_shift=(
                self.draft.willing_timezone_shift or self.published.willing_timezone_shift
            ),
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Profile":
        moderation = row.get("moderation_status")
        return cls(
            id=row["id"],
            role=Role(row["role"]),
            email=row.get("email"),
            account_status=AccountStatus(row.get("account_status") or "active"),
            agency_name=row.get("agency_name"),
            published=PublishedProfile.from_row(row),
            draft=DraftProfile.from_row(row),
            moderation_status=ModerationStatus(moderation) if moderation else None,
            admin_feedback=row.get("admin_feedback"),
            submitted_at=parse_timestamp(row.get("submitted_at")),
            published_at=parse_timestamp(row.get("published_at")),
            marketplace_status=MarketplaceStatus(row.get("marketplace_status") or "available"),
            version=int(row.get("version") or 1),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Owner/admin view including draft fields."""
        return {
            "id": self.id,
            "role": self.role.value,
            "email": self.email,
            "account_status": self.account_status.value,
            "agency_name": self.agency_name,
            "full_name": self.published.full_name,
            "avatar_url": self.published.avatar_url,
            "bio": self.published.bio,
            "skills": list(self.published.skills),
            "experience_years": self.published.experience_years,
            "willing_timezone_shift": self.published.willing_timezone_shift,
            "monthly_rate": self.published.monthly_rate,
            **self.draft.to_row(),
            "moderation_status": self.moderation_status.value if self.moderation_status else None,
            "admin_feedback": self.admin_feedback,
            "submitted_at": to_iso(self.submitted_at),
            "published_at": to_iso(self.published_at),
            "marketplace_status": self.marketplace_status.value,
            "version": self.version,
        }
