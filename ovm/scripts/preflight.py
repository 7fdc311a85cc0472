"""Argument preflight checks run before any network call."""

from __future__ import annotations

import re
from typing import Any, Sequence

from eth_utils import is_address, is_checksum_address, is_checksum_formatted_address, to_checksum_address

from error_map import ERR_INVALID_ADDRESS, ERR_UNKNOWN_ROLE, ValidationError
from ovm_registry import VALIDATOR_PUBKEY_BYTES
from privileges import ROLE_NAMES, unknown_privilege_names

HEX_BYTES_RE = re.compile(r"^(?:0x)?(?:[0-9a-fA-F]{2})*$")
UINT64_MAX = (1 << 64) - 1


def validate_address(value: Any, *, field: str = "address") -> str:
    """Return the EIP-55 form of ``value`` or raise ValidationError.

    Mixed-case input must carry a valid checksum.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", code=ERR_INVALID_ADDRESS)
    raw = value.strip()
    if not is_address(raw):
        raise ValidationError(f"Invalid Ethereum address for {field}: {raw}", code=ERR_INVALID_ADDRESS)
    if is_checksum_formatted_address(raw) and not is_checksum_address(raw):
        raise ValidationError(f"Invalid EIP-55 checksum for {field}: {raw}", code=ERR_INVALID_ADDRESS)
    return to_checksum_address(raw)


def validate_role_names(roles: Sequence[str]) -> list[str]:
    names = [str(role).strip() for role in roles if str(role).strip()]
    if not names:
        raise ValidationError("at least one role is required")
    unknown = unknown_privilege_names(names)
    if unknown:
        raise ValidationError(
            f"unknown roles: {', '.join(unknown)}. Available: {', '.join(ROLE_NAMES)}",
            code=ERR_UNKNOWN_ROLE,
        )
    return names


def parse_uint(value: Any, *, field: str, max_value: int | None = None) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} cannot be boolean")
    try:
        parsed = int(str(value).strip(), 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError) as err:
        raise ValidationError(f"{field} must be an integer: {value!r}") from err
    if parsed < 0:
        raise ValidationError(f"{field} must be non-negative")
    if max_value is not None and parsed > max_value:
        raise ValidationError(f"{field} exceeds {max_value}")
    return parsed


def normalize_pubkeys(pubkeys: Sequence[str]) -> list[str]:
    if not pubkeys:
        raise ValidationError("at least one validator pubkey is required")
    out: list[str] = []
    for idx, raw in enumerate(pubkeys):
        key = str(raw).strip()
        if not HEX_BYTES_RE.fullmatch(key):
            raise ValidationError(f"pubkeys[{idx}] must be hex bytes")
        if not key.startswith("0x"):
            key = f"0x{key}"
        if len(key) != 2 + 2 * VALIDATOR_PUBKEY_BYTES:
            raise ValidationError(f"pubkeys[{idx}] must be {VALIDATOR_PUBKEY_BYTES} bytes")
        out.append(key.lower())
    return out


def validate_withdrawal_amounts(pubkeys: Sequence[str], amounts: Sequence[Any]) -> list[int]:
    if len(pubkeys) != len(amounts):
        raise ValidationError(
            f"pubkeys length ({len(pubkeys)}) must match amounts length ({len(amounts)})"
        )
    return [parse_uint(amount, field=f"amounts[{idx}]", max_value=UINT64_MAX) for idx, amount in enumerate(amounts)]
