"""
Supabase implementation of the data gateway and file storage.

PostgREST errors are translated into the Staffline error taxonomy so services
never see driver exceptions. Stored procedures signal expected failures with
SQLSTATE codes (see ``supabase/migrations``), mapped in ``SQLSTATE_ERRORS``.
"""

import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Union

import httpx
from postgrest import AsyncPostgrestClient
from postgrest.constants import DEFAULT_POSTGREST_CLIENT_HEADERS
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from staffline.access import SecurityContext
from staffline.errors import (
    ConflictError,
    GatewayError,
    InvalidTransitionError,
    NotFoundError,
    StaleWriteError,
    StafflineError,
    UnauthorizedError,
    ValidationError,
)
from staffline.gateway.base import Filters, Row

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

SQLSTATE_ERRORS = {
    "P0002": NotFoundError,  # no_data_found
    "22023": ValidationError,  # invalid_parameter_value
    "40001": StaleWriteError,  # serialization_failure
    "42501": UnauthorizedError,  # insufficient_privilege
    "P0001": InvalidTransitionError,  # raise_exception
}


def translate_api_error(error: APIError, action: str) -> StafflineError:
    """Map a PostgREST error onto a Staffline error."""
    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error)
    details = getattr(error, "details", None)

    if code == UNIQUE_VIOLATION:
        return ConflictError(message, constraint=details)
    error_cls = SQLSTATE_ERRORS.get(code)
    if error_cls is not None:
        return error_cls(message)
    return GatewayError(f"{action} failed: {message}", code=code, details=details)


class SupabaseGateway:
    """Data gateway over a Supabase client or a bare PostgREST client."""

    def __init__(
        self,
        client: Union[AsyncClient, AsyncPostgrestClient],
        context: SecurityContext = SecurityContext.SERVICE,
    ):
        self._client = client
        self.context = context

    @staticmethod
    def _apply_filters(query, filters: Optional[Filters]):
        for column, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.in_(column, list(value))
            elif value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, value)
        return query

    async def _execute(self, query, action: str):
        try:
            return await query.execute()
        except APIError as e:
            error = translate_api_error(e, action)
            if isinstance(error, GatewayError):
                logger.warning(f"{action} failed | code={error.code} | {error}")
            raise error from e
        except httpx.HTTPError as e:
            logger.warning(f"{action} failed | transport error: {type(e).__name__}")
            raise GatewayError(f"{action} failed: {e}") from e

    async def get(
        self,
        table: str,
        filters: Optional[Filters] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Row]:
        query = self._apply_filters(self._client.table(table).select("*"), filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.range(offset, offset + limit - 1)
        result = await self._execute(query, f"select {table}")
        return result.data or []

    async def insert(self, table: str, row: Row) -> Row:
        result = await self._execute(self._client.table(table).insert(row), f"insert {table}")
        if not result.data:
            raise GatewayError(f"insert {table} returned no row")
        return result.data[0]

    async def update(self, table: str, filters: Filters, patch: Row) -> List[Row]:
        query = self._apply_filters(self._client.table(table).update(patch), filters)
        result = await self._execute(query, f"update {table}")
        return result.data or []

    async def delete(self, table: str, filters: Filters) -> int:
        query = self._apply_filters(self._client.table(table).delete(), filters)
        result = await self._execute(query, f"delete {table}")
        return len(result.data or [])

    async def call_procedure(self, name: str, args: Optional[Row] = None) -> Any:
        result = await self._execute(self._client.rpc(name, args or {}), f"rpc {name}")
        return result.data


class SupabaseFileStorage:
    """File storage backed by Supabase Storage buckets."""

    def __init__(self, client: AsyncClient):
        self._client = client

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        bucket_api = self._client.storage.from_(bucket)
        options = {"content-type": content_type} if content_type else None
        try:
            await bucket_api.upload(path, data, file_options=options)
        except Exception as e:
            logger.warning(f"Upload to {bucket}/{path} failed: {type(e).__name__}")
            raise GatewayError(f"upload {bucket} failed: {e}") from e

        url = bucket_api.get_public_url(path)
        if inspect.isawaitable(url):
            url = await url
        return url


async def create_gateway(
    url: str,
    key: str,
    context: SecurityContext = SecurityContext.SERVICE,
) -> SupabaseGateway:
    """Create a long-lived gateway, e.g. for the service role."""
    return SupabaseGateway(await acreate_client(url, key), context)


@asynccontextmanager
async def caller_gateway(
    url: str, key: str, access_token: Optional[str] = None
) -> AsyncIterator[SupabaseGateway]:
    """Gateway for one request under the caller's token, so row-level security applies.

    Anonymous callers (no token) query with the publishable key alone. The
    PostgREST session is closed on exit.
    """
    headers = {**DEFAULT_POSTGREST_CLIENT_HEADERS, "apikey": key}
    async with AsyncPostgrestClient(f"{url.rstrip('/')}/rest/v1", headers=headers) as client:
        if access_token:
            client.auth(access_token)
        yield SupabaseGateway(client, SecurityContext.CALLER)
