"""Configuration for the Staffline marketplace core."""

import os
from dataclasses import dataclass, field
from typing import Tuple

DEFAULT_CONTACT_KEYWORDS: Tuple[str, ...] = (
    "whatsapp",
    "telegram",
    "skype",
    "wa.me",
    "t.me",
)


@dataclass
class MarketplaceConfig:
    """Tunable limits and names used by the services.

    Attributes:
        invite_ttl_hours: Hours an expert invite stays claimable
        avatar_bucket: Storage bucket for draft avatars
        portfolio_bucket: Storage bucket for uploaded portfolio files
        quality_bio_min_length: Bio length that must be exceeded to earn the bio points
        contact_keywords: Messaging-app markers treated as contact info
        default_page_size: Marketplace listing page size
        max_page_size: Upper bound accepted for listing page size
        max_upload_bytes: Largest accepted avatar or portfolio upload
    """

    invite_ttl_hours: int = 72
    avatar_bucket: str = "avatars"
    portfolio_bucket: str = "expert-portfolio"
    quality_bio_min_length: int = 20
    contact_keywords: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_CONTACT_KEYWORDS)
    default_page_size: int = 20
    max_page_size: int = 100
    max_upload_bytes: int = 5 * 1024 * 1024

    def __post_init__(self):
        if self.invite_ttl_hours <= 0:
            raise ValueError("invite_ttl_hours must be positive")
        if self.default_page_size <= 0 or self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size must be between 1 and max_page_size")

    @classmethod
    def from_env(cls) -> "MarketplaceConfig":
        """Build config from STAFFLINE_* environment variables."""
        kwargs = {}
        if os.environ.get("STAFFLINE_INVITE_TTL_HOURS"):
            kwargs["invite_ttl_hours"] = int(os.environ["STAFFLINE_INVITE_TTL_HOURS"])
        if os.environ.get("STAFFLINE_AVATAR_BUCKET"):
            kwargs["avatar_bucket"] = os.environ["STAFFLINE_AVATAR_BUCKET"]
        if os.environ.get("STAFFLINE_PORTFOLIO_BUCKET"):
            kwargs["portfolio_bucket"] = os.environ["STAFFLINE_PORTFOLIO_BUCKET"]
        if os.environ.get("STAFFLINE_CONTACT_KEYWORDS"):
            raw = os.environ["STAFFLINE_CONTACT_KEYWORDS"]
            kwargs["contact_keywords"] = tuple(
                k.strip().lower() for k in raw.split(",") if k.strip()
            )
        return cls(**kwargs)
