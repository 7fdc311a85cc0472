"""JSON envelope builders shared by every CLI command."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Callable

from error_map import ERR_INTERNAL, EXIT_TRANSPORT, OvmError

TimestampFn = Callable[[], str]


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


def build_ok_payload(
    *,
    method: str,
    result: Any,
    timestamp_fn: TimestampFn = utc_timestamp,
) -> dict[str, Any]:
    return {
        "timestamp_utc": timestamp_fn(),
        "method": method,
        "status": "ok",
        "ok": True,
        "error_code": None,
        "error_message": None,
        "result": result,
    }


def build_error_payload(
    *,
    method: str,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    timestamp_fn: TimestampFn = utc_timestamp,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "timestamp_utc": timestamp_fn(),
        "method": method,
        "status": "error",
        "ok": False,
        "error_code": code,
        "error_message": message,
    }
    if details:
        payload["details"] = details
    return payload


def error_payload_from_exception(method: str, err: Exception) -> tuple[int, dict[str, Any]]:
    """Map an exception to ``(exit_code, payload)``."""
    if isinstance(err, OvmError):
        return err.exit_code, build_error_payload(
            method=method, code=err.code, message=err.message, details=err.details
        )
    return EXIT_TRANSPORT, build_error_payload(method=method, code=ERR_INTERNAL, message=str(err))
