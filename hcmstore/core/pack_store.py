"""Immutable, idempotent pack store with a per-owner index.

Storage layout::

    state/missions/<owner>/packs/<pack_id>.json
    state/missions/<owner>/packs_index.json     — {"packs": [...]}

A pack id binds to exactly one content hash.  Re-storing identical content
is a no-op success; different content under the same id is a conflict and
the first write wins.  The index update is read-modify-write with no lock,
so concurrent first writes of *different* ids can lose an index entry
(the pack files themselves are unaffected).
"""

from __future__ import annotations

import logging
from typing import Any

from hcmstore.core.errors import ConflictError, HcmError, InvalidPayloadError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.hasher import hash_value
from hcmstore.core.ids import normalize_id, utc_now_iso
from hcmstore.models.packs import PackIndex, PackIndexEntry, PackReceipt

logger = logging.getLogger(__name__)


def _owner_base(owner_id: str) -> str:
    return f"state/missions/{owner_id}"


def pack_identity(pack: Any) -> tuple[str, str | None]:
    """Extract ``(pack_id, pack_type)`` from a pack document.

    ``pack_id`` comes from ``pack_id`` or ``pack_meta.pack_id``; the type
    from ``pack_meta.pack_type``, ``pack_meta.type`` or a top-level
    ``pack_type``.
    """
    if not isinstance(pack, dict):
        raise InvalidPayloadError("pack must be a JSON object")
    pack_meta = pack.get("pack_meta") if isinstance(pack.get("pack_meta"), dict) else {}
    raw_id = pack.get("pack_id") or pack_meta.get("pack_id")
    if not raw_id:
        raise InvalidPayloadError("pack_id (or pack_meta.pack_id) required", {"field": "pack_id"})
    pack_id = normalize_id(raw_id, "pack_id")
    pack_type = pack_meta.get("pack_type") or pack_meta.get("type") or pack.get("pack_type")
    return pack_id, (str(pack_type) if pack_type else None)


class PackStore:
    """Append-only pack persistence.

    Parameters
    ----------
    gateway:
        Storage gateway for all I/O.
    """

    def __init__(self, gateway: StorageGateway) -> None:
        self._gateway = gateway

    def _pack_path(self, owner_id: str, pack_id: str) -> str:
        return f"{_owner_base(owner_id)}/packs/{pack_id}.json"

    def _index_path(self, owner_id: str) -> str:
        return f"{_owner_base(owner_id)}/packs_index.json"

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def store_pack(self, owner_id: str, pack: dict[str, Any]) -> PackReceipt:
        """Persist a pack once; identical re-submission is idempotent.

        Raises
        ------
        InvalidPayloadError
            Missing or unsafe ``pack_id``, or a non-JSON pack.
        ConflictError
            A different pack is already stored under the same id.
        """
        owner = normalize_id(owner_id, "mission_id")
        pack_id, pack_type = pack_identity(pack)
        new_hash = hash_value(pack)
        pack_path = self._pack_path(owner, pack_id)

        if self._gateway.exists(pack_path):
            existing_hash = hash_value(self._gateway.read_json(pack_path))
            if existing_hash == new_hash:
                logger.debug("Pack %s/%s already stored (idempotent)", owner, pack_id)
                return PackReceipt(pack_id=pack_id, hash=new_hash)
            logger.warning(
                "Pack %s/%s exists with different content (%s != %s)",
                owner,
                pack_id,
                existing_hash[:12],
                new_hash[:12],
            )
            raise ConflictError(
                f"Pack {pack_id} exists with different content. Packs are immutable.",
                {"pack_id": pack_id, "existing_hash": existing_hash, "new_hash": new_hash},
            )

        self._gateway.write_json_atomic(pack_path, pack)

        index = self._read_index(owner)
        index.packs.append(
            PackIndexEntry(pack_id=pack_id, type=pack_type, hash=new_hash, stored_at=utc_now_iso())
        )
        self._gateway.write_json_atomic(self._index_path(owner), index.model_dump(mode="json"))
        logger.info("Stored pack %s/%s (%s)", owner, pack_id, new_hash[:12])
        return PackReceipt(pack_id=pack_id, hash=new_hash)

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def get_pack(self, owner_id: str, pack_id: str) -> dict[str, Any] | None:
        """The stored pack, or ``None`` if unknown."""
        owner = normalize_id(owner_id, "mission_id")
        path = self._pack_path(owner, normalize_id(pack_id, "pack_id"))
        if not self._gateway.exists(path):
            return None
        return self._gateway.read_json(path)

    def list_packs(self, owner_id: str, pack_type: str | None = None) -> list[PackIndexEntry]:
        """Index entries, optionally filtered by (case-insensitive) type."""
        owner = normalize_id(owner_id, "mission_id")
        packs = self._read_index(owner).packs
        if not pack_type:
            return packs
        target = str(pack_type).upper()
        return [p for p in packs if str(p.type or "").upper() == target]

    def _read_index(self, owner: str) -> PackIndex:
        path = self._index_path(owner)
        if not self._gateway.exists(path):
            return PackIndex()
        try:
            return PackIndex.model_validate(self._gateway.read_json(path))
        except (HcmError, ValueError) as exc:
            # Corrupt index: restart from empty; pack files remain authoritative.
            logger.warning("Unreadable pack index %s, starting fresh: %s", path, exc)
            return PackIndex()
