"""Lightweight ABI encode/decode helpers for the Solidity types OVM contracts use."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from eth_utils import keccak

HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
FUNC_SIG_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\((.*)\)$")


@dataclass(frozen=True)
class AbiType:
    kind: str
    bits: int | None = None
    size: int | None = None
    item: AbiType | None = None


def _split_csv(raw: str) -> list[str]:
    text = raw.strip()
    if not text:
        return []
    out = [part.strip() for part in text.split(",")]
    if any(not item for item in out):
        raise ValueError("empty type entry in list")
    return out


def _parse_int_like(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("numeric value cannot be boolean")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError("numeric value must be int or string")
    raw = value.strip()
    if not raw:
        raise ValueError("numeric value cannot be empty")
    if raw.startswith("0x"):
        return int(raw, 16)
    return int(raw, 10)


def _to_word(value: int) -> bytes:
    return value.to_bytes(32, "big", signed=False)


def _left_pad(data: bytes, size: int = 32) -> bytes:
    if len(data) > size:
        raise ValueError("value exceeds abi word size")
    return b"\x00" * (size - len(data)) + data


def _right_pad(data: bytes, size: int = 32) -> bytes:
    pad = (size - (len(data) % size)) % size
    return data + (b"\x00" * pad)


def parse_type(raw_type: str) -> AbiType:
    t = str(raw_type).strip()
    if not t:
        raise ValueError("type cannot be empty")
    if t.endswith("[]"):
        item = parse_type(t[:-2])
        if item.kind == "array":
            raise ValueError(f"nested arrays are not supported: {raw_type}")
        return AbiType(kind="array", item=item)
    if "[" in t or "(" in t:
        raise ValueError(f"unsupported ABI type: {raw_type}")

    if t == "address":
        return AbiType(kind="address")
    if t == "bool":
        return AbiType(kind="bool")
    if t == "string":
        return AbiType(kind="string")
    if t == "bytes":
        return AbiType(kind="bytes_dyn")

    m_bytes = re.fullmatch(r"bytes([0-9]{1,2})", t)
    if m_bytes:
        n = int(m_bytes.group(1), 10)
        if n < 1 or n > 32:
            raise ValueError(f"invalid fixed bytes size: {t}")
        return AbiType(kind="bytes_fixed", size=n)

    m_uint = re.fullmatch(r"uint([0-9]{0,3})", t)
    if m_uint:
        bits = int(m_uint.group(1) or "256", 10)
        if bits < 8 or bits > 256 or (bits % 8) != 0:
            raise ValueError(f"invalid uint bit size: {t}")
        return AbiType(kind="uint", bits=bits)

    raise ValueError(f"unsupported ABI type: {raw_type}")


def parse_types(types: Any) -> list[AbiType]:
    if isinstance(types, str):
        raw_items = _split_csv(types)
    elif isinstance(types, (list, tuple)) and all(isinstance(item, str) for item in types):
        raw_items = [item.strip() for item in types]
    else:
        raise ValueError("types must be a comma-separated string or array of strings")
    return [parse_type(item) for item in raw_items]


def format_type(t: AbiType) -> str:
    if t.kind == "array":
        assert t.item is not None
        return f"{format_type(t.item)}[]"
    if t.kind == "bytes_dyn":
        return "bytes"
    if t.kind == "bytes_fixed":
        return f"bytes{t.size}"
    if t.kind == "uint":
        return f"uint{t.bits}"
    return t.kind


def is_dynamic(t: AbiType) -> bool:
    return t.kind in {"bytes_dyn", "string", "array"}


def parse_function_signature(signature: str) -> tuple[str, list[AbiType], str]:
    raw = str(signature).strip()
    m = FUNC_SIG_RE.fullmatch(raw)
    if not m:
        raise ValueError("signature must look like functionName(type1,type2,...)")
    name = m.group(1)
    arg_types = parse_types(m.group(2))
    canonical = f"{name}({','.join(format_type(t) for t in arg_types)})"
    return name, arg_types, canonical


def parse_event_declaration(declaration: str) -> tuple[str, list[AbiType], list[bool], list[str], str]:
    """Parse ``Name(type indexed name, type name, ...)`` into its parts."""
    raw = str(declaration).strip()
    m = FUNC_SIG_RE.fullmatch(raw)
    if not m:
        raise ValueError("event declaration must look like EventName(type indexed name, ...)")

    event_name = m.group(1)
    arg_types: list[AbiType] = []
    indexed: list[bool] = []
    names: list[str] = []
    for idx, token in enumerate(_split_csv(m.group(2))):
        parts = token.split()
        arg_types.append(parse_type(parts[0]))
        indexed.append("indexed" in parts[1:])
        trailing = [p for p in parts[1:] if p != "indexed"]
        names.append(trailing[-1] if trailing else f"arg{idx}")

    canonical = f"{event_name}({','.join(format_type(t) for t in arg_types)})"
    return event_name, arg_types, indexed, names, canonical


def _parse_hex_bytes(value: Any, *, field: str) -> bytes:
    if not isinstance(value, str) or not HEX_RE.fullmatch(value):
        raise ValueError(f"{field} must be 0x-prefixed hex string")
    data = value[2:]
    if len(data) % 2 != 0:
        raise ValueError(f"{field} hex length must be even")
    return bytes.fromhex(data)


def encode_single(t: AbiType, value: Any) -> bytes:
    if t.kind == "address":
        if not isinstance(value, str) or not ADDRESS_RE.fullmatch(value):
            raise ValueError("address value must be 0x-prefixed 20-byte hex string")
        return _left_pad(bytes.fromhex(value[2:].lower()))

    if t.kind == "bool":
        if not isinstance(value, bool):
            raise ValueError("bool value must be boolean")
        return _to_word(1 if value else 0)

    if t.kind == "uint":
        as_int = _parse_int_like(value)
        if as_int < 0:
            raise ValueError("uint cannot be negative")
        if as_int >= (1 << int(t.bits or 256)):
            raise ValueError(f"value does not fit in uint{t.bits}")
        return _to_word(as_int)

    if t.kind == "bytes_fixed":
        raw = _parse_hex_bytes(value, field="bytesN value")
        if len(raw) != int(t.size or 0):
            raise ValueError(f"bytes{t.size} must be exactly {t.size} bytes")
        return _right_pad(raw)

    if t.kind == "bytes_dyn":
        raw = _parse_hex_bytes(value, field="bytes value")
        return _to_word(len(raw)) + _right_pad(raw)

    if t.kind == "string":
        if not isinstance(value, str):
            raise ValueError("string value must be a string")
        raw = value.encode("utf-8")
        return _to_word(len(raw)) + _right_pad(raw)

    if t.kind == "array":
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"{format_type(t)} value must be an array")
        assert t.item is not None
        # Element offsets are relative to the first word after the length.
        return _to_word(len(value)) + encode_abi([t.item] * len(value), list(value))

    raise ValueError(f"unsupported type for encoding: {t.kind}")


def encode_abi(types: list[AbiType], values: list[Any]) -> bytes:
    if len(types) != len(values):
        raise ValueError(f"expected {len(types)} values, got {len(values)}")

    head_parts: list[bytes] = []
    tail_parts: list[bytes] = []
    head_size = 32 * len(types)

    for t, value in zip(types, values):
        encoded = encode_single(t, value)
        if is_dynamic(t):
            offset = head_size + sum(len(part) for part in tail_parts)
            head_parts.append(_to_word(offset))
            tail_parts.append(encoded)
        else:
            head_parts.append(encoded)

    return b"".join(head_parts + tail_parts)


def decode_static_word(t: AbiType, word: bytes) -> Any:
    if len(word) != 32:
        raise ValueError("abi word must be exactly 32 bytes")

    if t.kind == "address":
        return f"0x{word[-20:].hex()}"
    if t.kind == "bool":
        val = int.from_bytes(word, "big")
        if val not in {0, 1}:
            raise ValueError("invalid bool abi encoding")
        return bool(val)
    if t.kind == "uint":
        return int.from_bytes(word, "big")
    if t.kind == "bytes_fixed":
        return f"0x{word[: int(t.size or 0)].hex()}"
    raise ValueError(f"unsupported static decode type: {t.kind}")


def _decode_dynamic(t: AbiType, data: bytes, offset: int) -> Any:
    if offset < 0 or (offset + 32) > len(data):
        raise ValueError("dynamic offset out of bounds")
    length = int.from_bytes(data[offset : offset + 32], "big")
    start = offset + 32
    end = start + length
    if end > len(data):
        raise ValueError("dynamic data out of bounds")

    raw = data[start:end]
    if t.kind == "bytes_dyn":
        return f"0x{raw.hex()}"
    if t.kind == "string":
        return raw.decode("utf-8", errors="strict")
    raise ValueError(f"unsupported dynamic decode type: {t.kind}")


def decode_abi(types: list[AbiType], data_hex: str) -> list[Any]:
    data = _parse_hex_bytes(data_hex, field="data")
    head_size = 32 * len(types)
    if len(data) < head_size:
        raise ValueError("data shorter than ABI head")

    decoded: list[Any] = []
    for idx, t in enumerate(types):
        head_word = data[idx * 32 : (idx + 1) * 32]
        if is_dynamic(t):
            decoded.append(_decode_dynamic(t, data, int.from_bytes(head_word, "big")))
        else:
            decoded.append(decode_static_word(t, head_word))
    return decoded


def function_selector(signature: str) -> str:
    _, _, canonical = parse_function_signature(signature)
    return f"0x{keccak(text=canonical)[:4].hex()}"


def event_topic0(event_signature_or_declaration: str) -> str:
    _, _, _, _, canonical = parse_event_declaration(event_signature_or_declaration)
    return f"0x{keccak(text=canonical).hex()}"


def encode_call(signature: str, args: list[Any]) -> dict[str, Any]:
    _, arg_types, canonical = parse_function_signature(signature)
    if len(arg_types) != len(args):
        raise ValueError(
            f"argument count mismatch for {canonical}: expected {len(arg_types)}, got {len(args)}"
        )
    selector = function_selector(canonical)
    calldata = selector + encode_abi(arg_types, list(args)).hex()
    return {
        "signature": canonical,
        "selector": selector,
        "calldata": calldata,
    }


def decode_output(types_spec: Any, data_hex: str) -> list[Any]:
    return decode_abi(parse_types(types_spec), data_hex)


def decode_log(event_declaration: str, topics: list[str], data_hex: str) -> dict[str, Any]:
    """Decode a non-anonymous log into ``{"event", "signature", "topic0", "args"}``.

    ``args`` maps argument names to decoded values. Indexed dynamic values
    cannot be recovered from their topic hash and are returned as the hash.
    """
    if not isinstance(topics, list) or not all(isinstance(t, str) and HEX_RE.fullmatch(t) for t in topics):
        raise ValueError("topics must be an array of 0x-prefixed hex strings")

    event_name, arg_types, indexed_flags, names, canonical = parse_event_declaration(event_declaration)
    expected_topic0 = f"0x{keccak(text=canonical).hex()}"
    if not topics:
        raise ValueError("missing topic0 for non-anonymous event")
    if topics[0].lower() != expected_topic0:
        raise ValueError("topic0 does not match event signature")

    indexed_count = sum(1 for flag in indexed_flags if flag)
    if len(topics) - 1 < indexed_count:
        raise ValueError("insufficient indexed topics for event declaration")

    non_indexed_types = [t for t, flag in zip(arg_types, indexed_flags) if not flag]
    non_indexed_values = iter(decode_abi(non_indexed_types, data_hex or "0x"))
    topic_values = iter(topics[1:])

    args: dict[str, Any] = {}
    for t, is_indexed, name in zip(arg_types, indexed_flags, names):
        if not is_indexed:
            args[name] = next(non_indexed_values)
            continue
        topic_word = next(topic_values)
        if is_dynamic(t):
            args[name] = topic_word
        else:
            word = _left_pad(_parse_hex_bytes(topic_word, field="topic"))
            args[name] = decode_static_word(t, word)

    return {
        "event": event_name,
        "signature": canonical,
        "topic0": expected_topic0,
        "args": args,
    }
