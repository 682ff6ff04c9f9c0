"""Expert profile lifecycle and account administration.

Models:
- Profile: One row of the profiles table
- DraftProfile / PublishedProfile: Editable and approved field sets
- ModerationStatus, AccountStatus, MarketplaceStatus

Services:
- ProfileService: Draft submission and moderation
- AccountService: Registration, roles, bans, deletion, stats
"""

from staffline.profiles.models import (
    VALID_MODERATION_TRANSITIONS,
    AccountStatus,
    DraftProfile,
    MarketplaceStatus,
    ModerationStatus,
    Profile,
    PublishedProfile,
    can_transition,
    compute_quality_score,
)
from staffline.profiles.service import ProfileService, validate_monthly_rate
from staffline.profiles.accounts import AccountService

__all__ = [
    # Models
    "Profile",
    "DraftProfile",
    "PublishedProfile",
    "AccountStatus",
    "ModerationStatus",
    "MarketplaceStatus",
    "VALID_MODERATION_TRANSITIONS",
    "can_transition",
    "compute_quality_score",
    # Services
    "ProfileService",
    "AccountService",
    "validate_monthly_rate",
]
