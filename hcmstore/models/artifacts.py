"""Content-addressed artifact models (blobs are immutable, metadata per id)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ArtifactReceipt(BaseModel):
    """Result of ``put_artifact``.

    ``blob_hash`` is the raw SHA-256 hex digest of the artifact bytes.
    """

    model_config = ConfigDict(frozen=True)

    artifact_id: str
    blob_hash: str


class ArtifactBundle(BaseModel):
    """Metadata record plus lazily loaded content.

    ``content`` is ``None`` when the metadata exists but the blob does not.
    """

    model_config = ConfigDict(frozen=True)

    meta: dict[str, Any]
    content: bytes | None = None

    def text(self, encoding: str = "utf-8") -> str | None:
        """Decode the content, or ``None`` if there is none."""
        return self.content.decode(encoding) if self.content is not None else None
