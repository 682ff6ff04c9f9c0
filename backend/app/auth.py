"""Authentication utilities for the Staffline backend.

Callers present Supabase access tokens. The token proves identity only; the
role and account standing come from the caller's profile row.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from staffline.access import Actor, Role
from staffline.gateway.base import PROFILES_TABLE, get_one

from .config import Settings, get_settings
from .database import Gateway
from .logging_config import log_auth_event

# Bearer token scheme
security = HTTPBearer(auto_error=False)

BLOCKED_ACCOUNT_STATUSES = ("banned", "suspended")


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified access token."""

    user_id: str
    email: str | None = None


def create_access_token(
    user_id: str,
    settings: Settings,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a Supabase-compatible access token (local development and tests)."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=1))
    to_encode = {
        "sub": user_id,
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "exp": expire,
        "iat": now,
    }
    if email:
        to_encode["email"] = email
    return jwt.encode(to_encode, settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and validate a Supabase access token."""
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_token_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenClaims:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated - provide Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(credentials.credentials, settings)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenClaims(user_id=user_id, email=payload.get("email"))


async def get_current_actor(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    gateway: Gateway,
) -> Actor:
    """Resolve the caller's role and standing from their profile."""
    profile = await get_one(gateway, PROFILES_TABLE, {"id": claims.user_id})
    if profile is None:
        log_auth_event("resolve_actor", claims.user_id, False, "no profile")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No profile for this account",
        )
    if profile.get("account_status") in BLOCKED_ACCOUNT_STATUSES:
        log_auth_event("resolve_actor", claims.user_id, False, profile["account_status"])
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {profile['account_status']}",
        )
    return Actor(user_id=claims.user_id, role=Role(profile["role"]), email=profile.get("email"))


async def get_admin_actor(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
    if not actor.is_admin:
        log_auth_event("admin_access", actor.user_id, False, f"role={actor.role.value}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return actor


# Type aliases for dependency injection
AccessToken = Annotated[TokenClaims, Depends(get_token_claims)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AdminActor = Annotated[Actor, Depends(get_admin_actor)]
