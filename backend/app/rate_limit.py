"""Rate limiting for the Staffline backend.

Authenticated requests are limited per account, keyed by the verified ``sub``
of the caller's Supabase access token, so agencies sharing an office address
keep separate budgets. Anonymous requests (agency signup, invite checks and
claims, marketplace reads) are limited per client IP. ``X-Forwarded-For`` is
honoured only when the direct peer is a trusted proxy.
"""

import ipaddress
from functools import lru_cache
from typing import Optional

from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings
from .logging_config import get_logger

logger = get_logger("staffline.rate_limit")

# Route families
SIGNUP_LIMIT = "5/minute"  # account creation: agency signup, invite claim
UPLOAD_LIMIT = "10/minute"
WRITE_LIMIT = "20/minute"  # expert and agency writes: drafts, hire requests, portfolio
ADMIN_LIMIT = "30/minute"
TOKEN_CHECK_LIMIT = "30/minute"


@lru_cache
def _trusted_networks(cidrs: tuple[str, ...]) -> tuple:
    networks = []
    for cidr in cidrs:
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid trusted proxy CIDR: {cidr}")
    return tuple(networks)


def client_ip(request) -> str:
    """Client address, taken from X-Forwarded-For only behind a trusted proxy."""
    direct_ip = get_remote_address(request)
    try:
        addr = ipaddress.ip_address(direct_ip)
    except ValueError:
        return direct_ip

    trusted = _trusted_networks(tuple(get_settings().trusted_proxy_cidrs))
    if any(addr in network for network in trusted):
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if forwarded:
            return forwarded
    return direct_ip


def caller_id(request) -> Optional[str]:
    """Account id from a valid bearer token; None for anonymous or bad tokens."""
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError:
        return None
    return claims.get("sub")


def rate_limit_key(request) -> str:
    user_id = caller_id(request)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{client_ip(request)}"


limiter = Limiter(key_func=rate_limit_key)
