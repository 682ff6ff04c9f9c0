"""Data access gateways.

- DataGateway / FileStorage: Protocols the services depend on
- SupabaseGateway / SupabaseFileStorage: Hosted Postgres and storage

The in-memory gateway used by tests and local development lives in
``staffline.gateway.memory`` and is imported from there directly.
"""

from staffline.gateway.base import DataGateway, FileStorage, get_one
from staffline.gateway.supabase import (
    SupabaseFileStorage,
    SupabaseGateway,
    caller_gateway,
    create_gateway,
    translate_api_error,
)

__all__ = [
    "DataGateway",
    "FileStorage",
    "get_one",
    "SupabaseGateway",
    "SupabaseFileStorage",
    "caller_gateway",
    "create_gateway",
    "translate_api_error",
]
