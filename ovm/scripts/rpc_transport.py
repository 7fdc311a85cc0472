"""HTTP JSON-RPC transport with bounded retries."""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request
from socket import timeout as SocketTimeout
from typing import Any

from error_map import ERR_RPC_TIMEOUT, ERR_RPC_TRANSPORT

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_RETRIES = 3
RETRYABLE_HTTP_CODES = {429, 502, 503, 504}
BACKOFF_SECONDS = (0.15, 0.40, 1.0)


def _outcome(
    ok: bool,
    *,
    error_code: str | None = None,
    error_message: str | None = None,
    rpc_response: Any = None,
) -> dict[str, Any]:
    return {
        "ok": ok,
        "error_code": error_code,
        "error_message": error_message,
        "rpc_response": rpc_response,
    }


def _transport_failure(message: str, rpc_response: Any = None) -> dict[str, Any]:
    return _outcome(False, error_code=ERR_RPC_TRANSPORT, error_message=message, rpc_response=rpc_response)


def _timeout_failure(err: Any) -> dict[str, Any]:
    return _outcome(False, error_code=ERR_RPC_TIMEOUT, error_message=f"rpc request timed out: {err}")


def parse_rpc_body(raw: bytes) -> dict[str, Any]:
    """Decode a response body as UTF-8 JSON.

    Bodies that are not valid UTF-8 or not JSON are transport failures; the
    raw text (undecodable bytes replaced) is kept for diagnostics.
    """
    try:
        return _outcome(True, rpc_response=json.loads(raw.decode("utf-8")))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return _transport_failure(
            "rpc endpoint returned non-json response",
            {"raw": raw.decode("utf-8", errors="replace")},
        )


def _backoff(method: Any, attempt: int, reason: Any) -> None:
    logger.info("rpc %s failed (%s), retrying (attempt %d)", method, reason, attempt + 1)
    if attempt < len(BACKOFF_SECONDS):
        time.sleep(BACKOFF_SECONDS[attempt])


def invoke_rpc(
    *,
    rpc_url: str,
    payload: dict[str, Any],
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    retries: int = DEFAULT_RETRIES,
) -> dict[str, Any]:
    """POST one JSON-RPC payload.

    Returns ``{"ok", "error_code", "error_message", "rpc_response"}``. A
    JSON-RPC error object is still ``ok``; only transport failures are not.
    Timeouts are never retried.
    """
    body = json.dumps(payload).encode("utf-8")
    method = payload.get("method")
    outcome = _transport_failure("unknown transport failure")

    for attempt in range(retries + 1):
        req = urllib.request.Request(
            rpc_url,
            data=body,
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        retryable = False
        try:
            with urllib.request.urlopen(req, timeout=timeout_seconds) as resp:
                return parse_rpc_body(resp.read())
        except SocketTimeout as err:
            logger.warning("rpc %s timed out after %ss", method, timeout_seconds)
            return _timeout_failure(err)
        except urllib.error.HTTPError as err:
            outcome = _transport_failure(
                f"http error {err.code}",
                {"status": err.code, "raw": err.read().decode("utf-8", errors="replace")},
            )
            retryable = err.code in RETRYABLE_HTTP_CODES
            reason: Any = f"http {err.code}"
        except urllib.error.URLError as err:
            if isinstance(err.reason, SocketTimeout):
                logger.warning("rpc %s timed out after %ss", method, timeout_seconds)
                return _timeout_failure(err.reason)
            outcome = _transport_failure(str(err))
            retryable = True
            reason = err.reason
        except OSError as err:
            return _transport_failure(str(err))

        if not retryable or attempt >= retries:
            break
        _backoff(method, attempt, reason)

    return outcome
