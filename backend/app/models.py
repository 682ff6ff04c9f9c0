"""Pydantic models for API requests and responses."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

ModerationStatus = Literal["pending", "changes_requested", "approved", "rejected"]
HireStatus = Literal["pending", "contacted", "approved", "rejected", "active", "completed"]

# =============================================================================
# Profile Models
# =============================================================================


class DraftIn(BaseModel):
    """Expert-editable profile fields."""

    full_name: str | None = Field(None, max_length=200)
    avatar_url: str | None = None
    bio: str | None = Field(None, max_length=5000)
    skills: list[str] = Field(default_factory=list)
    experience_years: int = Field(0, ge=0, le=80)
    willing_timezone_shift: bool = False

    @field_validator("skills")
    @classmethod
    def validate_skills(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s.strip()]


class AgencyRegister(BaseModel):
    """Request to create the agency profile after signup."""

    full_name: str | None = Field(None, max_length=200)
    agency_name: str = Field(..., min_length=1, max_length=200)
    email: str | None = None  # Used when the token carries no email


class MarketplaceStatusUpdate(BaseModel):
    status: Literal["available", "unavailable"]


class ProfileResponse(BaseModel):
    """Owner/admin view of a profile, drafts included."""

    id: str
    role: str
    email: str | None = None
    account_status: str
    agency_name: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    skills: list[str] = []
    experience_years: int = 0
    willing_timezone_shift: bool = False
    monthly_rate: Decimal | None = None
    full_name_draft: str | None = None
    avatar_url_draft: str | None = None
    bio_draft: str | None = None
    skills_draft: list[str] = []
    experience_years_draft: int = 0
    willing_timezone_shift_draft: bool = False
    moderation_status: ModerationStatus | None = None
    admin_feedback: str | None = None
    submitted_at: datetime | None = None
    published_at: datetime | None = None
    marketplace_status: str
    version: int


class OwnProfileResponse(BaseModel):
    """Profile plus editor pre-fill and quality guidance."""

    profile: ProfileResponse
    editor_draft: DraftIn
    quality_score: int


class QualityScoreResponse(BaseModel):
    quality_score: int


# =============================================================================
# Moderation Models
# =============================================================================


class ApproveRequest(BaseModel):
    # Range checks live in the service so every caller gets the same errors
    monthly_rate: Any = None


class FeedbackRequest(BaseModel):
    feedback: str = Field(..., max_length=5000)


# =============================================================================
# Marketplace Models
# =============================================================================


class PortfolioItemResponse(BaseModel):
    id: str
    expert_id: str
    title: str
    url: str
    type: Literal["link", "file"]
    link_status: Literal["pending", "approved", "rejected"]
    created_at: datetime | None = None


class PublicExpertResponse(BaseModel):
    """Published projection of a listed expert."""

    id: str
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    skills: list[str] = []
    experience_years: int = 0
    willing_timezone_shift: bool = False
    monthly_rate: Decimal | None = None
    published_at: datetime | None = None
    portfolio: list[PortfolioItemResponse] = []


class ExpertListResponse(BaseModel):
    experts: list[PublicExpertResponse]
    limit: int
    offset: int


# =============================================================================
# Hiring Models
# =============================================================================


class HireRequestCreate(BaseModel):
    expert_id: str = Field(..., min_length=1)


class HireRequestResponse(BaseModel):
    id: str
    expert_id: str
    agency_id: str
    status: HireStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class HireRequestOutcomeResponse(BaseModel):
    request: HireRequestResponse
    already_requested: bool


class PendingStatusResponse(BaseModel):
    expert_id: str
    pending: bool


class CancelResponse(BaseModel):
    removed: int


class HireTransitionRequest(BaseModel):
    status: HireStatus
    contract_end_date: datetime | None = None


class ContractResponse(BaseModel):
    id: str
    agency_id: str
    expert_id: str
    status: Literal["active", "completed"]
    start_date: datetime | None = None
    end_date: datetime | None = None


class HireTransitionResponse(BaseModel):
    request: HireRequestResponse
    contract: ContractResponse | None = None


class CompleteContractRequest(BaseModel):
    end_date: datetime | None = None


# =============================================================================
# Invite Models
# =============================================================================


class InviteCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    full_name: str = Field(..., min_length=1, max_length=200)


class InviteResponse(BaseModel):
    id: str
    email: str
    full_name: str
    status: Literal["pending", "claimed"]
    expires_at: datetime | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    claimed_at: datetime | None = None
    claimed_by: str | None = None
    token: str | None = None  # Only returned on creation
    invite_url: str | None = None  # Only returned on creation


class InviteVerifyResponse(BaseModel):
    email: str
    full_name: str
    expires_at: datetime | None = None


class InviteClaimRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)


# =============================================================================
# Portfolio Models
# =============================================================================


class PortfolioLinkCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., min_length=1, max_length=2000)


class LinkStatusUpdate(BaseModel):
    status: Literal["pending", "approved", "rejected"]


# =============================================================================
# Admin Models
# =============================================================================


class AccountStatusUpdate(BaseModel):
    status: Literal["active", "banned", "suspended"]


class RoleUpdate(BaseModel):
    role: Literal["agency", "expert", "admin"]


class AdminStatsResponse(BaseModel):
    total_experts: int = 0
    total_agencies: int = 0
    pending_moderation: int = 0
    approved_experts: int = 0
    pending_hire_requests: int = 0
    active_contracts: int = 0
    pending_invites: int = 0


class AuditEntryResponse(BaseModel):
    id: str
    action_type: str
    target_type: str
    target_id: str
    actor_id: str | None = None
    metadata: dict[str, Any] = {}
    created_at: datetime | None = None
