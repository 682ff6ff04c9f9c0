"""Shared helpers for row conversion."""

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from dateutil.parser import isoparse


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for a row, passing None through."""
    return value.isoformat() if value else None


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a timestamp column value into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a numeric column value to Decimal; None and junk become None."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def safe_filename(filename: str) -> str:
    """Reduce an uploaded filename to a storage-safe basename."""
    base = re.split(r"[\\/]", filename or "")[-1]
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", base).strip("._")
    return cleaned or "upload"


def object_path(owner_id: str, filename: str) -> str:
    """Storage path ``<owner>/<millis>-<filename>`` used for uploads."""
    millis = int(utc_now().timestamp() * 1000)
    return f"{owner_id}/{millis}-{safe_filename(filename)}"
