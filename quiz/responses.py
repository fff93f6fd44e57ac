"""Standard response envelopes used by every endpoint."""

from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def create_success(data: Any, message: str = "Success") -> dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": utc_now_iso(),
    }


def create_error(
    message: str,
    code: str = "VALIDATION_ERROR",
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "error": True,
        "code": code,
        "message": message,
        "details": details or {},
        "timestamp": utc_now_iso(),
    }
