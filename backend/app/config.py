"""Configuration settings for the Staffline backend."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from staffline.config import MarketplaceConfig


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Supabase
    supabase_url: str
    # New key system (preferred)
    supabase_secret_key: str | None = None  # Backend/admin access
    supabase_publishable_key: str | None = None  # Caller-scoped queries
    # Legacy keys
    supabase_service_role_key: str | None = None
    supabase_anon_key: str | None = None

    # JWT (Supabase access tokens)
    supabase_jwt_secret: str  # Required - no default for security
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Marketplace
    invite_ttl_hours: int = 72
    invite_base_url: str = "http://localhost:5173"
    avatar_bucket: str = "avatars"
    portfolio_bucket: str = "expert-portfolio"
    max_upload_bytes: int = 5 * 1024 * 1024

    # Rate limiting: only these peers may set X-Forwarded-For
    trusted_proxy_cidrs: list[str] = [
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "::1/128",
    ]

    # App
    debug: bool = False
    log_level: str = "INFO"
    # CORS: Allowed origins for cross-origin requests
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model

    @property
    def service_key(self) -> str:
        key = self.supabase_secret_key or self.supabase_service_role_key
        if not key:
            raise ValueError("Either SUPABASE_SECRET_KEY or SUPABASE_SERVICE_ROLE_KEY must be set")
        return key

    @property
    def caller_key(self) -> str:
        key = self.supabase_publishable_key or self.supabase_anon_key
        if not key:
            raise ValueError("Either SUPABASE_PUBLISHABLE_KEY or SUPABASE_ANON_KEY must be set")
        return key

    def marketplace_config(self) -> MarketplaceConfig:
        return MarketplaceConfig(
            invite_ttl_hours=self.invite_ttl_hours,
            avatar_bucket=self.avatar_bucket,
            portfolio_bucket=self.portfolio_bucket,
            max_upload_bytes=self.max_upload_bytes,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
