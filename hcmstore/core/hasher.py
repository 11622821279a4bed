"""Canonical hashing helpers for content addressing and optimistic concurrency.

The canonical form matches RFC 8785 (JCS) closely enough that hashes agree
with the JavaScript ``JSON.stringify`` based tooling that shares the storage
tree:

- object keys sorted by Unicode code point
- array order preserved
- no whitespace
- strings escaped exactly as ``JSON.stringify`` escapes them
- numbers rendered in JavaScript's shortest round-trip form
"""

from __future__ import annotations

import hashlib
import math
from decimal import Decimal
from typing import Any

from hcmstore.core.errors import InvalidPayloadError

SHA256_PREFIX = "sha256:"
_MAX_SAFE_INTEGER = 2**53

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _encode_string(value: str) -> str:
    out = ['"']
    for ch in value:
        escaped = _ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ord(ch) < 0x20 or 0xD800 <= ord(ch) <= 0xDFFF:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _encode_number(value: int | float, path: str) -> str:
    if isinstance(value, int):
        if abs(value) <= _MAX_SAFE_INTEGER:
            return str(value)
        # Beyond 2**53 a JavaScript number is the nearest double.
        try:
            value = float(value)
        except OverflowError as exc:
            raise InvalidPayloadError(
                f"non_finite_number at {path}", {"path": path, "reason": "non_finite_number"}
            ) from exc
    if not math.isfinite(value):
        raise InvalidPayloadError(
            f"non_finite_number at {path}", {"path": path, "reason": "non_finite_number"}
        )
    if value == 0:
        return "0"
    # repr() yields the shortest round-trip digits; lay them out with the
    # ECMAScript Number::toString thresholds (plain for 1e-7 < |x| < 1e21).
    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    digits = digits.lstrip("0")
    k = len(digits)
    n = exponent + k
    prefix = "-" if sign else ""
    if k <= n <= 21:
        return prefix + digits + "0" * (n - k)
    if 0 < n <= 21:
        return prefix + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return prefix + "0." + "0" * (-n) + digits
    e = n - 1
    e_text = f"e+{e}" if e >= 0 else f"e-{-e}"
    if k == 1:
        return prefix + digits + e_text
    return prefix + digits[0] + "." + digits[1:] + e_text


def _canonicalize(value: Any, path: str, stack: set[int]) -> str:
    if value is None:
        return "null"
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _encode_number(value, path)
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, (list, tuple)):
        marker = id(value)
        if marker in stack:
            raise InvalidPayloadError(
                f"circular_reference at {path}", {"path": path, "reason": "circular_reference"}
            )
        stack.add(marker)
        try:
            items = [_canonicalize(v, f"{path}[{i}]", stack) for i, v in enumerate(value)]
        finally:
            stack.discard(marker)
        return "[" + ",".join(items) + "]"
    if isinstance(value, dict):
        marker = id(value)
        if marker in stack:
            raise InvalidPayloadError(
                f"circular_reference at {path}", {"path": path, "reason": "circular_reference"}
            )
        for key in value:
            if not isinstance(key, str):
                raise InvalidPayloadError(
                    f"non_string_key at {path}", {"path": path, "reason": "non_string_key"}
                )
        stack.add(marker)
        try:
            # str ordering in Python is code-point ordering.
            members = [
                f"{_encode_string(k)}:{_canonicalize(value[k], f'{path}.{k}', stack)}"
                for k in sorted(value)
            ]
        finally:
            stack.discard(marker)
        return "{" + ",".join(members) + "}"
    raise InvalidPayloadError(
        f"non_json_type at {path}: {type(value).__name__}",
        {"path": path, "reason": "non_json_type", "type": type(value).__name__},
    )


def canonicalize(value: Any) -> str:
    """Render a JSON-representable value in canonical form.

    Raises ``InvalidPayloadError`` for non-JSON types, non-finite numbers,
    non-string object keys and self-referential containers.
    """
    return _canonicalize(value, "$", set())


def canonical_json_bytes(value: Any) -> bytes:
    """Canonical form encoded as UTF-8."""
    return canonicalize(value).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def hash_value(value: Any) -> str:
    """SHA-256 (lowercase hex) of the canonical form of ``value``."""
    return sha256_hex(canonical_json_bytes(value))


def strip_sha256(value: str | None) -> str:
    """Strip the ``sha256:`` display prefix, if present."""
    text = str(value or "").strip()
    return text.removeprefix(SHA256_PREFIX)


def format_sha256(hex_digest: str) -> str:
    """Return the ``sha256:<hex>`` display form (idempotent)."""
    text = str(hex_digest or "").strip()
    return text if text.startswith(SHA256_PREFIX) else f"{SHA256_PREFIX}{text}"


def content_address(value: Any) -> str:
    """Content-address a JSON value in display form."""
    return format_sha256(hash_value(value))
