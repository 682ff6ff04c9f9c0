"""Database, storage and service dependencies for Supabase integration."""

from typing import Annotated, AsyncIterator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AsyncClient, acreate_client

from staffline.access import SecurityContext
from staffline.audit import GatewayAuditLog
from staffline.config import MarketplaceConfig
from staffline.errors import GatewayError
from staffline.gateway.base import DataGateway, FileStorage
from staffline.gateway.supabase import SupabaseFileStorage, SupabaseGateway, caller_gateway
from staffline.hiring import HiringService
from staffline.invites import InviteService
from staffline.marketplace import MarketplaceService
from staffline.portfolio import PortfolioService
from staffline.profiles import AccountService, ProfileService

from .config import Settings, get_settings
from .logging_config import get_logger

logger = get_logger("staffline.database")

_supabase_client: AsyncClient | None = None

_bearer = HTTPBearer(auto_error=False)


async def get_supabase_client(settings: Settings | None = None) -> AsyncClient:
    """Get cached service-role Supabase client."""
    global _supabase_client
    if _supabase_client is None:
        if settings is None:
            settings = get_settings()
        _supabase_client = await acreate_client(settings.supabase_url, settings.service_key)
    return _supabase_client


async def get_gateway(settings: Annotated[Settings, Depends(get_settings)]) -> DataGateway:
    """Service-role gateway; callers must pass an explicit capability check first."""
    return SupabaseGateway(await get_supabase_client(settings), SecurityContext.SERVICE)


async def get_caller_gateway(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncIterator[DataGateway]:
    """Per-request gateway under the caller's token; closed once the response is sent."""
    token = credentials.credentials if credentials else None
    async with caller_gateway(settings.supabase_url, settings.caller_key, token) as gateway:
        yield gateway


async def get_storage(settings: Annotated[Settings, Depends(get_settings)]) -> FileStorage:
    return SupabaseFileStorage(await get_supabase_client(settings))


def get_marketplace_config(settings: Annotated[Settings, Depends(get_settings)]) -> MarketplaceConfig:
    return settings.marketplace_config()


# Type aliases for dependency injection
Gateway = Annotated[DataGateway, Depends(get_gateway)]
CallerGateway = Annotated[DataGateway, Depends(get_caller_gateway)]
Storage = Annotated[FileStorage, Depends(get_storage)]
Config = Annotated[MarketplaceConfig, Depends(get_marketplace_config)]


# =============================================================================
# Auth Admin
# =============================================================================


class SupabaseAuthAdmin:
    """Creates and removes Supabase auth users for invite onboarding."""

    def __init__(self, client: AsyncClient):
        self._client = client

    async def create_user(self, email: str, password: str, full_name: str) -> str:
        try:
            response = await self._client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": {"full_name": full_name, "role": "expert"},
                }
            )
        except Exception as e:
            logger.warning(f"Auth user creation failed for {email}: {type(e).__name__}")
            raise GatewayError(f"Could not create account: {e}") from e
        return response.user.id

    async def delete_user(self, user_id: str) -> None:
        await self._client.auth.admin.delete_user(user_id)


async def get_auth_admin(settings: Annotated[Settings, Depends(get_settings)]) -> SupabaseAuthAdmin:
    return SupabaseAuthAdmin(await get_supabase_client(settings))


AuthAdmin = Annotated[SupabaseAuthAdmin, Depends(get_auth_admin)]


# =============================================================================
# Services
# =============================================================================


def get_profile_service(gateway: CallerGateway, storage: Storage, config: Config) -> ProfileService:
    """Owner-side profile operations under the caller's row-level security."""
    return ProfileService(gateway, GatewayAuditLog(gateway), storage, config)


def get_moderation_service(gateway: Gateway, config: Config) -> ProfileService:
    """Admin moderation under the service role."""
    return ProfileService(gateway, GatewayAuditLog(gateway), None, config)


def get_account_service(gateway: Gateway) -> AccountService:
    return AccountService(gateway, GatewayAuditLog(gateway))


def get_marketplace_service(gateway: CallerGateway, config: Config) -> MarketplaceService:
    return MarketplaceService(gateway, config)


def get_hiring_service(gateway: CallerGateway) -> HiringService:
    return HiringService(gateway, GatewayAuditLog(gateway))


def get_admin_hiring_service(gateway: Gateway) -> HiringService:
    return HiringService(gateway, GatewayAuditLog(gateway))


def get_invite_service(gateway: Gateway, config: Config) -> InviteService:
    return InviteService(gateway, GatewayAuditLog(gateway), config)


def get_portfolio_service(gateway: CallerGateway, storage: Storage, config: Config) -> PortfolioService:
    return PortfolioService(gateway, GatewayAuditLog(gateway), storage, config)


def get_admin_portfolio_service(gateway: Gateway, config: Config) -> PortfolioService:
    return PortfolioService(gateway, GatewayAuditLog(gateway), None, config)


Profiles = Annotated[ProfileService, Depends(get_profile_service)]
Moderation = Annotated[ProfileService, Depends(get_moderation_service)]
Accounts = Annotated[AccountService, Depends(get_account_service)]
Marketplace = Annotated[MarketplaceService, Depends(get_marketplace_service)]
Hiring = Annotated[HiringService, Depends(get_hiring_service)]
AdminHiring = Annotated[HiringService, Depends(get_admin_hiring_service)]
Invites = Annotated[InviteService, Depends(get_invite_service)]
Portfolio = Annotated[PortfolioService, Depends(get_portfolio_service)]
AdminPortfolio = Annotated[PortfolioService, Depends(get_admin_portfolio_service)]
