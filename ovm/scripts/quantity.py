"""Parsers and display scaling for Ethereum quantity values."""

from __future__ import annotations

from typing import Any

WEI_DECIMALS = 18
GWEI_DECIMALS = 9


def parse_quantity(value: Any, *, field: str = "value") -> int:
    """Parse an RPC quantity (0x-hex string, decimal string or int) into an int."""
    if isinstance(value, bool):
        raise ValueError(f"{field} cannot be boolean")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"{field} must be non-negative")
        return value
    if not isinstance(value, str):
        raise ValueError(f"{field} must be int or string")

    raw = value.strip()
    if not raw:
        raise ValueError(f"{field} cannot be empty")
    if raw.startswith("0x"):
        if len(raw) == 2:
            raise ValueError(f"{field} hex quantity cannot be empty")
        try:
            return int(raw, 16)
        except ValueError as err:
            raise ValueError(f"{field} is not a valid hex quantity: {raw}") from err
    if raw.isdigit():
        return int(raw, 10)
    raise ValueError(f"{field} must be a decimal integer or 0x-prefixed hex quantity")


def format_units(value: int, decimals: int) -> str:
    """Scale an integer minor-unit amount to a trimmed decimal string."""
    if value < 0:
        raise ValueError("value must be non-negative")
    whole, frac = divmod(value, 10**decimals)
    if frac == 0:
        return str(whole)
    frac_str = f"{frac:0{decimals}d}".rstrip("0")
    return f"{whole}.{frac_str}"


def wei_to_eth(value: int) -> str:
    return format_units(value, WEI_DECIMALS)


def gwei_to_eth(value: int) -> str:
    return format_units(value, GWEI_DECIMALS)
