"""
Expert portfolio items.

Links and uploaded files an expert attaches to their profile. Link items are
moderated independently of the profile; rejected items never appear in the
public projection.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from staffline.access import Actor, Role, require_admin, require_role, require_service_context
from staffline.audit import AuditLog
from staffline.config import MarketplaceConfig
from staffline.contact import contains_contact_info
from staffline.errors import NotFoundError, UnauthorizedError, ValidationError
from staffline.gateway.base import PORTFOLIO_ITEMS_TABLE, DataGateway, FileStorage, get_one
from staffline.utils import object_path, parse_timestamp, to_iso

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200


class PortfolioItemType(str, Enum):
    LINK = "link"
    FILE = "file"


class LinkStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class PortfolioItem:
    """A link or file shown on an expert's profile."""

    id: str
    expert_id: str
    title: str
    url: str
    type: PortfolioItemType = PortfolioItemType.LINK
    link_status: LinkStatus = LinkStatus.PENDING
    created_at: Optional[datetime] = None

    @property
    def is_public(self) -> bool:
        return self.link_status is not LinkStatus.REJECTED

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PortfolioItem":
        return cls(
            id=row["id"],
            expert_id=row["expert_id"],
            title=row.get("title") or "",
            url=row.get("url") or "",
            type=PortfolioItemType(row.get("type") or "link"),
            link_status=LinkStatus(row.get("link_status") or "pending"),
            created_at=parse_timestamp(row.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "expert_id": self.expert_id,
            "title": self.title,
            "url": self.url,
            "type": self.type.value,
            "link_status": self.link_status.value,
            "created_at": to_iso(self.created_at),
        }


def _validate_title(title: Optional[str], keywords) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"title must be at most {MAX_TITLE_LENGTH} characters")
    if contains_contact_info(title, keywords):
        raise ValidationError("title must not contain contact information")
    return title


def _validate_url(url: Optional[str]) -> str:
    url = (url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("url must be an http(s) link")
    return url


class PortfolioService:
    """Owner-managed portfolio with admin link moderation."""

    def __init__(
        self,
        gateway: DataGateway,
        audit: AuditLog,
        storage: Optional[FileStorage] = None,
        config: Optional[MarketplaceConfig] = None,
    ):
        self._gateway = gateway
        self._audit = audit
        self._storage = storage
        self._config = config or MarketplaceConfig()

    async def _load(self, item_id: str) -> PortfolioItem:
        row = await get_one(self._gateway, PORTFOLIO_ITEMS_TABLE, {"id": item_id})
        if row is None:
            raise NotFoundError(f"Portfolio item {item_id} not found")
        return PortfolioItem.from_row(row)

    async def add_link(self, actor: Actor, title: str, url: str) -> PortfolioItem:
        require_role(actor, Role.EXPERT, "add portfolio items")
        title = _validate_title(title, self._config.contact_keywords)
        url = _validate_url(url)
        row = await self._gateway.insert(
            PORTFOLIO_ITEMS_TABLE,
            {
                "expert_id": actor.user_id,
                "title": title,
                "url": url,
                "type": PortfolioItemType.LINK.value,
                "link_status": LinkStatus.PENDING.value,
            },
        )
        logger.info(f"Expert {actor.user_id} added portfolio link {row['id']}")
        return PortfolioItem.from_row(row)

    async def add_file(
        self,
        actor: Actor,
        title: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> PortfolioItem:
        """Upload a file to the portfolio bucket and record it."""
        require_role(actor, Role.EXPERT, "add portfolio items")
        title = _validate_title(title, self._config.contact_keywords)
        if self._storage is None:
            raise ValidationError("File storage is not configured")
        if not data:
            raise ValidationError("file is empty")
        if len(data) > self._config.max_upload_bytes:
            raise ValidationError("file is too large")

        url = await self._storage.upload(
            self._config.portfolio_bucket,
            object_path(actor.user_id, filename),
            data,
            content_type,
        )
        row = await self._gateway.insert(
            PORTFOLIO_ITEMS_TABLE,
            {
                "expert_id": actor.user_id,
                "title": title,
                "url": url,
                "type": PortfolioItemType.FILE.value,
                "link_status": LinkStatus.PENDING.value,
            },
        )
        logger.info(f"Expert {actor.user_id} uploaded portfolio file {row['id']}")
        return PortfolioItem.from_row(row)

    async def list_items(self, expert_id: str, public_only: bool = False) -> List[PortfolioItem]:
        rows = await self._gateway.get(
            PORTFOLIO_ITEMS_TABLE, {"expert_id": expert_id}, order_by="created_at"
        )
        items = [PortfolioItem.from_row(r) for r in rows]
        if public_only:
            items = [i for i in items if i.is_public]
        return items

    async def delete_item(self, actor: Actor, item_id: str) -> None:
        item = await self._load(item_id)
        if item.expert_id != actor.user_id and not actor.is_admin:
            raise UnauthorizedError("Cannot delete another expert's portfolio item")
        await self._gateway.delete(PORTFOLIO_ITEMS_TABLE, {"id": item_id})
        logger.info(f"Deleted portfolio item {item_id} (by {actor.user_id})")
        if actor.is_admin and item.expert_id != actor.user_id:
            await self._audit.record(
                "delete_portfolio_item",
                "portfolio_item",
                item_id,
                {"expert_id": item.expert_id},
                actor_id=actor.user_id,
            )

    async def set_link_status(self, actor: Actor, item_id: str, status: LinkStatus) -> PortfolioItem:
        require_admin(actor, "moderate portfolio items")
        require_service_context(self._gateway.context, "moderate portfolio items")
        status = LinkStatus(status)
        item = await self._load(item_id)
        rows = await self._gateway.update(
            PORTFOLIO_ITEMS_TABLE, {"id": item_id}, {"link_status": status.value}
        )
        if not rows:
            raise NotFoundError(f"Portfolio item {item_id} not found")
        logger.info(f"Portfolio item {item_id}: {item.link_status.value} -> {status.value}")
        await self._audit.record(
            f"portfolio_{status.value}",
            "portfolio_item",
            item_id,
            {"expert_id": item.expert_id, "previous_status": item.link_status.value},
            actor_id=actor.user_id,
        )
        return PortfolioItem.from_row(rows[0])
