"""Enterprise documents — versioned docs inside a space's workspace.

Layout::

    domain/spaces/<space_id>/workspaces/<workspace_id>/docs/<doc_id>/
        latest.json
        versions/<hex>.json
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from hcmstore.core.errors import InvalidPayloadError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.ids import (
    normalize_id,
    normalize_name,
    normalize_optional_text,
    unique_sorted_strings,
)
from hcmstore.core.versioned import UNSET, RecordKind, RecordPaths, VersionedRecordEngine
from hcmstore.models.records import CreatedBy, RecordSummary


def _docs_base(space_id: str, workspace_id: str) -> str:
    return f"domain/spaces/{space_id}/workspaces/{workspace_id}/docs"


def normalize_doc_core(raw: Any) -> dict[str, Any]:
    """Reduce caller input to the content-defining document fields.

    ``title`` is required; ``type``, ``text`` and ``markdown`` are accepted
    as aliases of ``doc_type`` and ``body``.  Tags are de-duplicated and
    sorted, links without a URL are dropped.
    """
    if not isinstance(raw, dict):
        raise InvalidPayloadError("doc must be an object")

    out: dict[str, Any] = {"title": normalize_name(raw.get("title"), "doc.title")}

    doc_type = normalize_optional_text(raw.get("doc_type") or raw.get("type"))
    if doc_type:
        out["doc_type"] = doc_type

    tags = unique_sorted_strings(raw.get("tags"))
    if tags is not None:
        out["tags"] = tags

    body = normalize_optional_text(raw.get("body") or raw.get("text") or raw.get("markdown"))
    if body:
        out["body"] = body

    if "json" in raw:
        out["json"] = raw["json"]

    if isinstance(raw.get("links"), list):
        links = []
        for item in raw["links"]:
            if not isinstance(item, dict):
                continue
            url = str(item.get("url") or "").strip()
            if not url:
                continue
            label = normalize_optional_text(item.get("label"))
            links.append({"url": url, "label": label} if label else {"url": url})
        if links:
            out["links"] = links
    return out


class DocumentKind(RecordKind):
    name = "doc"
    schema_version = "1.0"
    content_field = "doc"
    identity_keys = ("space_id", "workspace_id", "doc_id")

    def paths(self, identity: Mapping[str, str]) -> RecordPaths:
        base = _docs_base(identity["space_id"], identity["workspace_id"])
        return RecordPaths.under(f"{base}/{identity['doc_id']}")

    def normalize_content(self, raw: Any) -> dict[str, Any]:
        return normalize_doc_core(raw)


class DocumentStore:
    """Versioned enterprise documents."""

    def __init__(self, gateway: StorageGateway) -> None:
        self._engine = VersionedRecordEngine(gateway, DocumentKind())

    @property
    def engine(self) -> VersionedRecordEngine:
        return self._engine

    @staticmethod
    def _identity(space_id: str, workspace_id: str, doc_id: str) -> dict[str, str]:
        return {"space_id": space_id, "workspace_id": workspace_id, "doc_id": doc_id}

    def get_latest(self, space_id: str, workspace_id: str, doc_id: str) -> dict[str, Any] | None:
        return self._engine.get_latest(self._identity(space_id, workspace_id, doc_id))

    def get_version(
        self, space_id: str, workspace_id: str, doc_id: str, version_hash: str
    ) -> dict[str, Any] | None:
        return self._engine.get_version(
            self._identity(space_id, workspace_id, doc_id), version_hash
        )

    def put(
        self,
        space_id: str,
        workspace_id: str,
        doc_id: str,
        doc: dict[str, Any],
        expected_base_hash: Any = UNSET,
        *,
        created_by: CreatedBy | None = None,
    ) -> dict[str, Any]:
        return self._engine.put_version(
            self._identity(space_id, workspace_id, doc_id),
            doc,
            expected_base_hash,
            created_by=created_by,
        )

    def list_docs(self, space_id: str, workspace_id: str) -> list[RecordSummary]:
        """Head summaries of a workspace's docs, sorted by title."""
        space = normalize_id(space_id, "space_id")
        workspace = normalize_id(workspace_id, "workspace_id")
        base = _docs_base(space, workspace)
        pattern = re.compile(rf"^{re.escape(base)}/[^/]+/latest\.json$")
        docs = []
        for head in self._engine.list_heads(base, pattern):
            core = head.get("doc") if isinstance(head.get("doc"), dict) else {}
            meta = head.get("meta") if isinstance(head.get("meta"), dict) else {}
            if not (head.get("doc_id") and core.get("title") and meta.get("version_hash")
                    and meta.get("created_at")):
                continue
            docs.append(
                RecordSummary(
                    record_id=head["doc_id"],
                    title=core["title"],
                    doc_type=core.get("doc_type"),
                    tags=core.get("tags"),
                    version_hash=meta["version_hash"],
                    created_at=meta["created_at"],
                )
            )
        return sorted(docs, key=lambda d: d.title.casefold())
