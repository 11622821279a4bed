"""Enterprise spaces and workspaces — create-if-absent metadata plus scoped search.

Layout::

    domain/spaces/<space_id>/meta.json
    domain/spaces/<space_id>/workspaces/<workspace_id>/meta.json
    state/spaces/<space_id>/workspaces/<workspace_id>/{status.json,journal.jsonl}
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict

from hcmstore.core.errors import HcmError, InternalError, InvalidPayloadError, NotFoundError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.ids import normalize_id, normalize_name, normalize_optional_text, utc_now_iso
from hcmstore.hindex.router import HindexRouter
from hcmstore.models.hindex import SearchResult

logger = logging.getLogger(__name__)

STABLE_PREFIX = "stable/"


class SpaceMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    space_id: str
    space_name: str
    description: str | None = None
    created_at: str
    updated_at: str


class WorkspaceMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    space_id: str
    workspace_id: str
    workspace_name: str
    description: str | None = None
    created_at: str
    updated_at: str


class SpaceDirectory:
    """Spaces, workspaces and workspace-scoped search.

    Parameters
    ----------
    gateway:
        Storage gateway for all I/O.
    router:
        Optional hindex router; required only for ``search``.
    """

    def __init__(self, gateway: StorageGateway, router: HindexRouter | None = None) -> None:
        self._gateway = gateway
        self._router = router

    @staticmethod
    def space_meta_path(space_id: str) -> str:
        return f"domain/spaces/{space_id}/meta.json"

    @staticmethod
    def workspace_meta_path(space_id: str, workspace_id: str) -> str:
        return f"domain/spaces/{space_id}/workspaces/{workspace_id}/meta.json"

    def _read(self, path: str) -> dict[str, Any] | None:
        if not self._gateway.exists(path):
            return None
        try:
            doc = self._gateway.read_json(path)
        except HcmError:
            return None
        return doc if isinstance(doc, dict) else None

    # ------------------------------------------------------------------
    # Spaces
    # ------------------------------------------------------------------

    def get_space(self, space_id: str) -> SpaceMeta | None:
        doc = self._read(self.space_meta_path(normalize_id(space_id, "space_id")))
        return SpaceMeta.model_validate(doc) if doc else None

    def create_space(
        self, space_id: str, space_name: str, description: str | None = None
    ) -> tuple[SpaceMeta, bool]:
        """Create a space if absent; returns ``(meta, created)``."""
        sid = normalize_id(space_id, "space_id")
        name = normalize_name(space_name, "space_name")
        existing = self.get_space(sid)
        if existing is not None:
            return existing, False
        now = utc_now_iso()
        meta = SpaceMeta(
            space_id=sid,
            space_name=name,
            description=normalize_optional_text(description),
            created_at=now,
            updated_at=now,
        )
        self._gateway.write_json_atomic(
            self.space_meta_path(sid), meta.model_dump(mode="json", exclude_none=True)
        )
        self._gateway.ensure_dir(f"domain/spaces/{sid}/workspaces")
        logger.info("Created space %s", sid)
        return meta, True

    def list_spaces(self) -> list[SpaceMeta]:
        pattern = re.compile(r"^domain/spaces/[^/]+/meta\.json$")
        spaces = []
        for path in self._gateway.list_files_recursive("domain/spaces"):
            if pattern.match(path):
                doc = self._read(path)
                if doc and doc.get("space_id") and doc.get("space_name"):
                    spaces.append(SpaceMeta.model_validate(doc))
        return sorted(spaces, key=lambda s: s.space_name.casefold())

    # ------------------------------------------------------------------
    # Workspaces
    # ------------------------------------------------------------------

    def _require_space(self, space_id: str) -> str:
        sid = normalize_id(space_id, "space_id")
        if self.get_space(sid) is None:
            raise NotFoundError(f"Space {sid} not found", {"space_id": sid})
        return sid

    def get_workspace(self, space_id: str, workspace_id: str) -> WorkspaceMeta | None:
        sid = normalize_id(space_id, "space_id")
        wid = normalize_id(workspace_id, "workspace_id")
        doc = self._read(self.workspace_meta_path(sid, wid))
        return WorkspaceMeta.model_validate(doc) if doc else None

    def create_workspace(
        self,
        space_id: str,
        workspace_id: str,
        workspace_name: str,
        description: str | None = None,
    ) -> tuple[WorkspaceMeta, bool]:
        """Create a workspace (and its runtime state scaffold) if absent."""
        sid = self._require_space(space_id)
        wid = normalize_id(workspace_id, "workspace_id")
        name = normalize_name(workspace_name, "workspace_name")
        existing = self.get_workspace(sid, wid)
        if existing is not None:
            return existing, False

        now = utc_now_iso()
        meta = WorkspaceMeta(
            space_id=sid,
            workspace_id=wid,
            workspace_name=name,
            description=normalize_optional_text(description),
            created_at=now,
            updated_at=now,
        )
        self._gateway.write_json_atomic(
            self.workspace_meta_path(sid, wid), meta.model_dump(mode="json", exclude_none=True)
        )

        state_base = f"state/spaces/{sid}/workspaces/{wid}"
        self._gateway.ensure_dir(state_base)
        if not self._gateway.exists(f"{state_base}/status.json"):
            self._gateway.write_json_atomic(
                f"{state_base}/status.json",
                {"status": "active", "created_at": now, "updated_at": now},
            )
        if not self._gateway.exists(f"{state_base}/journal.jsonl"):
            self._gateway.append_json_line(
                f"{state_base}/journal.jsonl",
                {"timestamp": now, "entry_type": "info", "message": "Workspace created"},
            )
        logger.info("Created workspace %s/%s", sid, wid)
        return meta, True

    def list_workspaces(self, space_id: str) -> list[WorkspaceMeta]:
        sid = self._require_space(space_id)
        base = f"domain/spaces/{sid}/workspaces"
        pattern = re.compile(rf"^{re.escape(base)}/[^/]+/meta\.json$")
        workspaces = []
        for path in self._gateway.list_files_recursive(base):
            if pattern.match(path):
                doc = self._read(path)
                if doc and doc.get("workspace_id") and doc.get("workspace_name"):
                    workspaces.append(WorkspaceMeta.model_validate(doc))
        return sorted(workspaces, key=lambda w: w.workspace_name.casefold())

    # ------------------------------------------------------------------
    # Scoped search
    # ------------------------------------------------------------------

    def search(
        self, space_id: str, query: str, workspace_id: str | None = None, caller_id: str = ""
    ) -> SearchResult:
        """Hindex search restricted to one space (or one workspace).

        Shared ``stable/`` sources are always kept.
        """
        if self._router is None:
            raise InternalError("SpaceDirectory.search requires a HindexRouter")
        sid = normalize_id(space_id, "space_id")
        text = str(query or "").strip()
        if not text:
            raise InvalidPayloadError("query required", {"field": "query"})
        if workspace_id:
            wid = normalize_id(workspace_id, "workspace_id")
            prefixes = [
                STABLE_PREFIX,
                f"domain/spaces/{sid}/workspaces/{wid}/",
                f"state/spaces/{sid}/workspaces/{wid}/",
            ]
        else:
            prefixes = [STABLE_PREFIX, f"domain/spaces/{sid}/", f"state/spaces/{sid}/"]
        return self._router.search(text, caller_id, source_prefixes=prefixes)
