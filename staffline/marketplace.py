"""
Marketplace query policy.

A profile is listed iff it is an expert, approved and available. The same
predicate drives the listing query, the single-profile fetch and the hire
request precondition. Reads go through the ``public_experts`` view, so draft,
feedback and contact columns are never fetched for a listed expert.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from staffline.access import Role
from staffline.config import MarketplaceConfig
from staffline.errors import NotFoundError, ValidationError
from staffline.gateway.base import PORTFOLIO_ITEMS_TABLE, PUBLIC_EXPERTS_VIEW, DataGateway, get_one
from staffline.portfolio import PortfolioItem
from staffline.profiles.models import MarketplaceStatus, ModerationStatus, Profile
from staffline.utils import to_iso

logger = logging.getLogger(__name__)

MARKETPLACE_FILTER = {
    "role": Role.EXPERT.value,
    "moderation_status": ModerationStatus.APPROVED.value,
    "marketplace_status": MarketplaceStatus.AVAILABLE.value,
}


def is_listable(profile: Profile) -> bool:
    """The marketplace predicate, evaluated in memory."""
    return (
        profile.role is Role.EXPERT
        and profile.moderation_status is ModerationStatus.APPROVED
        and profile.marketplace_status is MarketplaceStatus.AVAILABLE
    )


@dataclass
class PublicExpert:
    """What agencies and anonymous visitors may see of an expert."""

    id: str
    full_name: Optional[str]
    avatar_url: Optional[str]
    bio: Optional[str]
    skills: List[str]
    experience_years: int
    willing_timezone_shift: bool
    monthly_rate: Optional[Decimal]
    published_at: Optional[datetime]
    portfolio: List[PortfolioItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "bio": self.bio,
            "skills": list(self.skills),
            "experience_years": self.experience_years,
            "willing_timezone_shift": self.willing_timezone_shift,
            "monthly_rate": self.monthly_rate,
            "published_at": to_iso(self.published_at),
            "portfolio": [item.to_dict() for item in self.portfolio],
        }


def project_public(profile: Profile, portfolio: Optional[List[PortfolioItem]] = None) -> PublicExpert:
    """Build the public view of a listable profile.

    Raises:
        NotFoundError: Profile does not satisfy the marketplace predicate
    """
    if not is_listable(profile):
        raise NotFoundError(f"Expert {profile.id} not found")
    published = profile.published
    return PublicExpert(
        id=profile.id,
        full_name=published.full_name,
        avatar_url=published.avatar_url,
        bio=published.bio,
        skills=list(published.skills),
        experience_years=published.experience_years,
        willing_timezone_shift=published.willing_timezone_shift,
        monthly_rate=published.monthly_rate,
        published_at=profile.published_at,
        portfolio=[item for item in portfolio or [] if item.is_public],
    )


def matches_search(expert: PublicExpert, term: Optional[str]) -> bool:
    """Case-insensitive substring match over published name, bio and skills."""
    if not term or not term.strip():
        return True
    needle = term.strip().lower()
    haystacks = [expert.full_name or "", expert.bio or "", *expert.skills]
    return any(needle in h.lower() for h in haystacks)


class MarketplaceService:
    """Read-only marketplace listing and profile fetch."""

    def __init__(self, gateway: DataGateway, config: Optional[MarketplaceConfig] = None):
        self._gateway = gateway
        self._config = config or MarketplaceConfig()

    async def _portfolios(self, expert_ids: List[str]) -> Dict[str, List[PortfolioItem]]:
        if not expert_ids:
            return {}
        rows = await self._gateway.get(
            PORTFOLIO_ITEMS_TABLE, {"expert_id": expert_ids}, order_by="created_at"
        )
        grouped: Dict[str, List[PortfolioItem]] = {}
        for row in rows:
            item = PortfolioItem.from_row(row)
            grouped.setdefault(item.expert_id, []).append(item)
        return grouped

    async def list_experts(
        self,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[PublicExpert]:
        """Listable experts, most recently published first.

        Search is applied to the published projection before pagination.
        """
        if limit is None:
            limit = self._config.default_page_size
        if limit <= 0 or limit > self._config.max_page_size:
            raise ValidationError(f"limit must be between 1 and {self._config.max_page_size}")
        if offset < 0:
            raise ValidationError("offset cannot be negative")

        if search and search.strip():
            rows = await self._gateway.get(
                PUBLIC_EXPERTS_VIEW, MARKETPLACE_FILTER, order_by="published_at", descending=True
            )
        else:
            rows = await self._gateway.get(
                PUBLIC_EXPERTS_VIEW,
                MARKETPLACE_FILTER,
                order_by="published_at",
                descending=True,
                limit=limit,
                offset=offset,
            )

        profiles = [Profile.from_row(r) for r in rows]
        experts = [project_public(p) for p in profiles if is_listable(p)]
        if search and search.strip():
            experts = [e for e in experts if matches_search(e, search)][offset : offset + limit]

        portfolios = await self._portfolios([e.id for e in experts])
        for expert in experts:
            expert.portfolio = [i for i in portfolios.get(expert.id, []) if i.is_public]
        return experts

    async def get_public_expert(self, expert_id: str) -> PublicExpert:
        row = await get_one(self._gateway, PUBLIC_EXPERTS_VIEW, {"id": expert_id, **MARKETPLACE_FILTER})
        if row is None:
            raise NotFoundError(f"Expert {expert_id} not found")
        portfolios = await self._portfolios([expert_id])
        return project_public(Profile.from_row(row), portfolios.get(expert_id, []))
