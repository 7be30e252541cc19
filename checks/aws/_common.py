"""Shared helpers for AWS checks.

The AWS adapters tend to repeat a few patterns:
- normalize timestamps to UTC
- coerce loosely-typed API fields (numbers that may be missing or strings)
- extract region / error codes from boto3 clients and botocore errors

Keeping these helpers in one place keeps behavior consistent across checks.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

# Backend failures that adapters translate into CheckError subclasses.
AWS_ERRORS: tuple[type[Exception], ...] = (ClientError, BotoCoreError)


def utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return ``dt`` converted to timezone-aware UTC (or None)."""

    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def safe_region_from_client(client: Any) -> str:
    """Best-effort region name extraction from a boto3 client."""

    return str(getattr(getattr(client, "meta", None), "region_name", "") or "")


def safe_float(value: Any, default: float = 0.0) -> float:
    """Best-effort float conversion."""

    if value is None or isinstance(value, bool):
        return float(default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(default)


def safe_int(value: Any, default: int = 0) -> int:
    """Best-effort int conversion (floats are truncated)."""

    return int(safe_float(value, default=float(default)))


def error_code(exc: BaseException) -> str:
    """Return the AWS error code of a ClientError, else the exception class name."""

    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code:
            return str(code)
    return type(exc).__name__
