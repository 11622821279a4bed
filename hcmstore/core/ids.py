"""Identifier validation, text normalization and timestamp helpers."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any

from hcmstore.core.errors import InvalidPayloadError

SAFE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")
MAX_NAME_LENGTH = 256


def normalize_id(raw: Any, label: str) -> str:
    """Trim and validate a path-safe slug (``a-zA-Z0-9._-``, max 128 chars)."""
    value = str(raw if raw is not None else "").strip()
    if not value:
        raise InvalidPayloadError(f"{label} required", {"field": label})
    if not SAFE_ID.match(value) or value in (".", ".."):
        raise InvalidPayloadError(
            f"{label} must be a safe slug (a-zA-Z0-9._-)", {"field": label, "value": value}
        )
    return value


def normalize_name(raw: Any, label: str) -> str:
    value = str(raw if raw is not None else "").strip()
    if not value:
        raise InvalidPayloadError(f"{label} required", {"field": label})
    if len(value) > MAX_NAME_LENGTH:
        raise InvalidPayloadError(f"{label} too long", {"field": label})
    return value


def normalize_optional_text(raw: Any) -> str | None:
    value = str(raw if raw is not None else "").strip()
    return value or None


def unique_sorted_strings(raw: Any, *, upper: bool = False) -> list[str] | None:
    """Trimmed, de-duplicated, sorted strings; ``None`` if ``raw`` is not a list."""
    if not isinstance(raw, list):
        return None
    cleaned = {str(v if v is not None else "").strip() for v in raw}
    if upper:
        cleaned = {v.upper() for v in cleaned}
    return sorted(v for v in cleaned if v)


def short_id(prefix: str) -> str:
    """Short random identifier such as ``art-1a2b3c4d``."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def utc_now_iso() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
