"""Versioned record models — metadata shared by every record kind."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class CallerType(str, Enum):
    """Who initiated a write."""

    AGENT = "agent"
    HUMAN = "human"
    SYSTEM = "system"


class CreatedBy(BaseModel):
    """Author of a record version."""

    model_config = ConfigDict(frozen=True)

    type: CallerType = CallerType.SYSTEM
    id: str = "hcmstore"


class VersionMeta(BaseModel):
    """The ``meta`` block of a versioned record.

    ``version_hash`` is in display form (``sha256:<hex>``); the file under
    ``versions/`` is named by the raw hex digest.
    """

    model_config = ConfigDict(frozen=True)

    version_hash: str
    created_at: str  # ISO 8601, UTC
    created_by: CreatedBy = CreatedBy()
    supersedes: str | None = None


class RecordSummary(BaseModel):
    """Listing entry for the head version of a record."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    title: str
    version_hash: str
    created_at: str
    doc_type: str | None = None
    tags: list[str] | None = None
