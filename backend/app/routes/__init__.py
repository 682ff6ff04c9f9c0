"""API routes."""

from .admin import router as admin_router
from .contracts import router as contracts_router
from .hire_requests import router as hire_requests_router
from .invites import router as invites_router
from .marketplace import router as marketplace_router
from .moderation import router as moderation_router
from .portfolio import router as portfolio_router
from .profiles import router as profiles_router

__all__ = [
    "admin_router",
    "contracts_router",
    "hire_requests_router",
    "invites_router",
    "marketplace_router",
    "moderation_router",
    "portfolio_router",
    "profiles_router",
]
