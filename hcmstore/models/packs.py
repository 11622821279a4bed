"""Pack store models (immutable packs and their per-owner index)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PackReceipt(BaseModel):
    """Result of ``store_pack``: the pack id and its content hash (raw hex)."""

    model_config = ConfigDict(frozen=True)

    pack_id: str
    hash: str


class PackIndexEntry(BaseModel):
    """One entry of ``packs_index.json``."""

    model_config = ConfigDict(frozen=True, extra="allow")

    pack_id: str
    type: str | None = None
    hash: str | None = None
    stored_at: str | None = None


class PackIndex(BaseModel):
    """The per-owner pack index document."""

    packs: list[PackIndexEntry] = Field(default_factory=list)
