"""Content-addressed, deduplicated blob store with per-artifact metadata.

Storage layout::

    state/missions/<owner>/artifacts/blobs/<sha256>         — raw bytes
    state/missions/<owner>/artifacts/meta/<artifact_id>.json

Blobs are written once per digest (per owner) and never overwritten.  Many
artifact ids may reference the same blob.  An artifact id, once bound to a
blob digest, stays bound: re-submitting the same bytes is a no-op success,
different bytes are a conflict.
"""

from __future__ import annotations

import logging
from typing import Any

from hcmstore.core.errors import ConflictError, InternalError, InvalidPayloadError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.hasher import sha256_hex, strip_sha256
from hcmstore.core.ids import normalize_id, short_id, utc_now_iso
from hcmstore.models.artifacts import ArtifactBundle, ArtifactReceipt

logger = logging.getLogger(__name__)

_ID_ATTEMPTS = 8


class BlobStore:
    """SHA-256 keyed blob store plus artifact metadata records.

    Parameters
    ----------
    gateway:
        Storage gateway for all I/O.
    """

    def __init__(self, gateway: StorageGateway) -> None:
        self._gateway = gateway

    @staticmethod
    def _base(owner_id: str) -> str:
        return f"state/missions/{owner_id}/artifacts"

    def _blob_path(self, owner_id: str, digest: str) -> str:
        return f"{self._base(owner_id)}/blobs/{digest}"

    def _meta_path(self, owner_id: str, artifact_id: str) -> str:
        return f"{self._base(owner_id)}/meta/{artifact_id}.json"

    @staticmethod
    def _to_bytes(content: bytes | str) -> bytes:
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            try:
                return content.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise InvalidPayloadError(
                    "artifact text is not valid Unicode", {"reason": exc.reason}
                ) from exc
        raise InvalidPayloadError(
            "artifact content must be bytes or str", {"type": type(content).__name__}
        )

    def _fresh_id(self, owner: str) -> str:
        """A generated artifact id not yet bound in this owner's metadata."""
        for _ in range(_ID_ATTEMPTS):
            candidate = short_id("art")
            if not self._gateway.exists(self._meta_path(owner, candidate)):
                return candidate
            logger.debug("Generated artifact id %s already bound for %s", candidate, owner)
        raise InternalError(
            "Could not generate an unused artifact id", {"mission_id": owner, "attempts": _ID_ATTEMPTS}
        )

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def put_blob(self, owner_id: str, content: bytes | str) -> str:
        """Store raw content once per digest; returns the hex digest."""
        owner = normalize_id(owner_id, "mission_id")
        data = self._to_bytes(content)
        digest = sha256_hex(data)
        path = self._blob_path(owner, digest)
        if self._gateway.exists(path):
            logger.debug("Blob %s already present for %s", digest[:12], owner)
        else:
            self._gateway.write_bytes_atomic(path, data)
        return digest

    def put_artifact(
        self,
        owner_id: str,
        content: bytes | str,
        meta: dict[str, Any] | None = None,
        artifact_id: str | None = None,
    ) -> ArtifactReceipt:
        """Store content (deduplicated) and bind it to an artifact id.

        A random ``art-xxxxxxxx`` id is generated when none is supplied.

        Raises
        ------
        ConflictError
            ``artifact_id`` already exists bound to a different blob.
        """
        owner = normalize_id(owner_id, "mission_id")
        requested = str(artifact_id).strip() if artifact_id is not None else ""
        resolved_id = normalize_id(requested, "artifact_id") if requested else self._fresh_id(owner)
        if meta is not None and not isinstance(meta, dict):
            raise InvalidPayloadError("artifact meta must be a JSON object")

        data = self._to_bytes(content)
        meta_path = self._meta_path(owner, resolved_id)

        if requested and self._gateway.exists(meta_path):
            existing = self._gateway.read_json(meta_path)
            existing_hash = existing.get("blob_hash") if isinstance(existing, dict) else None
            new_hash = sha256_hex(data)
            if existing_hash and existing_hash == new_hash:
                return ArtifactReceipt(artifact_id=resolved_id, blob_hash=new_hash)
            logger.warning("Artifact id %s/%s reused with different content", owner, resolved_id)
            raise ConflictError(
                "artifact_id_conflict",
                {
                    "artifact_id": resolved_id,
                    "existing_blob_hash": existing_hash,
                    "new_blob_hash": new_hash,
                },
            )

        digest = self.put_blob(owner, data)
        record = {
            **(meta or {}),
            "artifact_id": resolved_id,
            "mission_id": owner,
            "blob_hash": digest,
            "size_bytes": len(data),
            "created_at": utc_now_iso(),
        }
        self._gateway.write_json_atomic(meta_path, record)
        logger.info("Stored artifact %s/%s -> %s", owner, resolved_id, digest[:12])
        return ArtifactReceipt(artifact_id=resolved_id, blob_hash=digest)

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def get_blob(self, owner_id: str, blob_hash: str) -> bytes | None:
        owner = normalize_id(owner_id, "mission_id")
        digest = normalize_id(strip_sha256(blob_hash), "blob_hash")
        path = self._blob_path(owner, digest)
        if not self._gateway.exists(path):
            return None
        return self._gateway.read_bytes(path)

    def get_artifact(self, owner_id: str, artifact_id: str) -> ArtifactBundle | None:
        """Metadata and content for an artifact id, or ``None`` if unknown."""
        owner = normalize_id(owner_id, "mission_id")
        meta_path = self._meta_path(owner, normalize_id(artifact_id, "artifact_id"))
        if not self._gateway.exists(meta_path):
            return None
        meta = self._gateway.read_json(meta_path)
        blob_hash = meta.get("blob_hash") if isinstance(meta, dict) else None
        content = self.get_blob(owner, blob_hash) if blob_hash else None
        return ArtifactBundle(meta=meta, content=content)

    def verify(self, owner_id: str, blob_hash: str) -> bool:
        """Re-hash a stored blob and compare it with its address."""
        data = self.get_blob(owner_id, blob_hash)
        return data is not None and sha256_hex(data) == strip_sha256(blob_hash)
