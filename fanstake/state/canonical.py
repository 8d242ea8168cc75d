"""
Canonical byte encodings.

Every digest the program computes goes through this module: derived
addresses, the payload an instruction signature covers and the snapshot
commitment. Two honest parties must produce identical bytes, so the JSON
form is restricted (no floats, no lone surrogates, sorted keys, compact).
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any


DOMAIN_PREFIX = b"fanstake:"

_HEX_BODY_RE = re.compile(r"^[0-9a-fA-F]+$")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_text(s: str) -> None:
    if any(0xD800 <= ord(ch) <= 0xDFFF for ch in s):
        raise TypeError("surrogate code points are not allowed in canonical encoding")


def _check_encodable(value: Any) -> None:
    """Walk `value` and reject anything without a single JSON spelling."""
    stack = [value]
    while stack:
        v = stack.pop()
        if isinstance(v, float):
            raise TypeError("floats are not allowed in canonical encoding")
        if isinstance(v, str):
            _check_text(v)
        elif isinstance(v, dict):
            for k, item in v.items():
                if not isinstance(k, str):
                    raise TypeError("dict keys must be str for canonical encoding")
                _check_text(k)
                stack.append(item)
        elif isinstance(v, (list, tuple)):
            stack.extend(v)


def canonical_json_bytes(value: Any) -> bytes:
    """UTF-8 JSON with sorted keys and no whitespace. Floats are refused."""
    _check_encodable(value)
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def _char_cost(ch: str) -> int:
    o = ord(ch)
    if 0xD800 <= o <= 0xDFFF:
        raise TypeError("surrogate code points are not allowed in canonical encoding")
    if o < 0x20:
        return 6  # worst case: \u00XX
    if ch == '"' or ch == "\\":
        return 2
    if o < 0x80:
        return 1
    if o < 0x800:
        return 2
    return 3 if o < 0x10000 else 4


def bounded_json_utf8_size(value: Any, *, max_bytes: int, max_depth: int = 64, max_items: int = 200_000) -> int:
    """
    Upper bound on ``len(canonical_json_bytes(value))``.

    The walk stops with ValueError as soon as the running total passes
    `max_bytes`, the nesting passes `max_depth` or more than `max_items`
    values have been visited, so an oversized instruction is refused before
    anything is serialised or hashed.
    """
    for label, limit in (("max_bytes", max_bytes), ("max_depth", max_depth), ("max_items", max_items)):
        if not _is_int(limit) or limit <= 0:
            raise ValueError(f"{label} must be a positive int")

    budget = {"items": max_items}

    def bump(total: int, extra: int) -> int:
        total += extra
        if total > max_bytes:
            raise ValueError("json size exceeds max_bytes")
        return total

    def text(s: str) -> int:
        total = 2
        for ch in s:
            total = bump(total, _char_cost(ch))
        return total

    def walk(v: Any, depth: int) -> int:
        if depth > max_depth:
            raise ValueError("json nesting exceeds max_depth")
        budget["items"] -= 1
        if budget["items"] < 0:
            raise ValueError("json item count exceeds max_items")

        if v is None or v is True:
            return 4
        if v is False:
            return 5
        if isinstance(v, float):
            raise TypeError("floats are not allowed in canonical encoding")
        if isinstance(v, int):
            # log10(2) < 0.30103, so this never undercounts digits.
            digits = (abs(v).bit_length() * 30103) // 100000 + 1
            return digits + (v < 0)
        if isinstance(v, str):
            return text(v)
        if isinstance(v, (list, tuple)):
            total = 1 + max(len(v), 1)
            for item in v:
                total = bump(total, walk(item, depth + 1))
            return total
        if isinstance(v, dict):
            total = 1 + max(len(v), 1)
            for k, item in v.items():
                if not isinstance(k, str):
                    raise TypeError("dict keys must be str for bounded_json_utf8_size")
                total = bump(total, text(k) + 1)
                total = bump(total, walk(item, depth + 1))
            return total
        raise TypeError(f"unsupported type for bounded_json_utf8_size: {type(v)}")

    return bump(0, walk(value, 1))


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    ``b"fanstake:<label>:v<version>\\x00"``.

    The trailing NUL keeps one label from being a prefix of another once
    payload bytes are appended.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label or not label.isascii():
        raise ValueError("label must be ASCII without NUL")
    if not _is_int(version) or version <= 0:
        raise ValueError("version must be a positive int")
    return DOMAIN_PREFIX + f"{label}:v{version}".encode("ascii") + b"\x00"


def encode_uvarint(value: int) -> bytes:
    """Unsigned LEB128."""
    if not _is_int(value) or value < 0:
        raise ValueError(f"uvarint must be a non-negative int, got {value!r}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def encode_bytes(value: bytes) -> bytes:
    """Length-prefixed bytes."""
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("value must be bytes")
    return encode_uvarint(len(value)) + bytes(value)


def _hex_body(body: str, *, nbytes: int, name: str) -> str:
    if not _is_int(nbytes) or nbytes <= 0:
        raise ValueError("nbytes must be a positive int")
    if len(body) != 2 * nbytes:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {2 * nbytes})")
    # bytes.fromhex tolerates whitespace; a fixed-width id must not.
    if not _HEX_BODY_RE.fullmatch(body):
        raise ValueError(f"{name} must be valid hex")
    return body


def hex_to_bytes_fixed(hex_str: str, *, nbytes: int, name: str) -> bytes:
    """Strict decode: `0x` prefix required, exact width."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    if not hex_str.startswith("0x"):
        raise ValueError(f"{name} must be a 0x-prefixed {nbytes}-byte hex string")
    return bytes.fromhex(_hex_body(hex_str[2:], nbytes=nbytes, name=name))


def canonical_hex_fixed_allow_0x(hex_str: str, *, nbytes: int, name: str) -> str:
    """Lenient normalisation to lowercase ``0x``-prefixed hex of exactly `nbytes`."""
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    s = hex_str.strip()
    if s[:2] in ("0x", "0X"):
        s = s[2:]
    return "0x" + _hex_body(s, nbytes=nbytes, name=name).lower()
