"""Mission working state — scaffold, journal, evidence, actions, snapshots.

Layout::

    state/missions/<mission_id>/
        meta.json                 — existence marker
        status.json
        journal.jsonl             — append-only
        decisions.json            — {"decisions": [...]}
        next_actions.json         — {"next_actions": [...]}
        evidence/<evidence_id>.json
        snapshots/<date>.snapshot.json
        contracts/ packs/ artifacts/ chat/   — owned by the other stores

Composite reads fan out on a thread pool and join; optional companion
files degrade to empty defaults instead of failing the read.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from hcmstore.core.errors import HcmError, InvalidPayloadError, NotFoundError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.ids import normalize_id, short_id, utc_now_iso
from hcmstore.models.missions import (
    EvidenceInput,
    JournalEntry,
    MissionContext,
    NextActionUpdate,
)

logger = logging.getLogger(__name__)

MISSIONS_ROOT = "state/missions"
SCHEMA_VERSION = "1.1"
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_OPEN_STATUSES = ("todo", "in_progress")

ModelT = TypeVar("ModelT", bound=BaseModel)

_SCAFFOLD_DIRS = (
    "evidence",
    "snapshots",
    "contracts/versions",
    "packs",
    "artifacts/meta",
    "artifacts/blobs",
    "chat/threads",
)


def _coerce(model: type[ModelT], raw: Any) -> ModelT:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise InvalidPayloadError(
            f"invalid {model.__name__}", {"errors": exc.errors(include_url=False)}
        ) from exc


class MissionStore:
    """File-backed mission state.

    Parameters
    ----------
    gateway:
        Storage gateway for all I/O.
    journal_tail_limit:
        Number of journal entries returned by ``get_context``.
    read_workers:
        Thread-pool size for composite reads.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        *,
        journal_tail_limit: int = 50,
        read_workers: int = 4,
    ) -> None:
        self._gateway = gateway
        self._journal_tail_limit = journal_tail_limit
        self._read_workers = max(1, read_workers)

    @staticmethod
    def base(mission_id: str) -> str:
        return f"{MISSIONS_ROOT}/{mission_id}"

    def _require(self, mission_id: str) -> str:
        mid = normalize_id(mission_id, "mission_id")
        if not self._gateway.exists(f"{self.base(mid)}/meta.json"):
            raise NotFoundError(f"Mission {mid} not found", {"mission_id": mid})
        return mid

    def exists(self, mission_id: str) -> bool:
        mid = normalize_id(mission_id, "mission_id")
        return self._gateway.exists(f"{self.base(mid)}/meta.json")

    # ------------------------------------------------------------------
    # Best-effort reads
    # ------------------------------------------------------------------

    def _read_or(self, path: str, default: Any, key: str | None = None) -> Any:
        """Read a JSON file, optionally unwrap ``key``; any failure yields ``default``."""
        try:
            doc = self._gateway.read_json(path)
        except HcmError:
            return default
        if key is None:
            return doc if isinstance(doc, type(default)) else default
        value = doc.get(key) if isinstance(doc, dict) else None
        return value if isinstance(value, type(default)) else default

    def _fan_out(self, reads: dict[str, Callable[[], Any]]) -> dict[str, Any]:
        """Run independent reads concurrently and join on all of them."""
        with ThreadPoolExecutor(max_workers=self._read_workers) as pool:
            futures: dict[str, Future] = {name: pool.submit(fn) for name, fn in reads.items()}
            return {name: future.result() for name, future in futures.items()}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def scaffold(self, mission_id: str, meta: dict[str, Any] | None = None) -> dict[str, Any]:
        """Create the directory tree and initial files for a mission."""
        mid = normalize_id(mission_id, "mission_id")
        root = self.base(mid)
        now = utc_now_iso()
        for sub in ("", *_SCAFFOLD_DIRS):
            self._gateway.ensure_dir(f"{root}/{sub}" if sub else root)

        meta_doc = {
            **(meta or {}),
            "mission_id": mid,
            "schema_version": SCHEMA_VERSION,
            "created_at": now,
        }
        self._gateway.write_json_atomic(f"{root}/meta.json", meta_doc)
        self._gateway.write_json_atomic(f"{root}/packs_index.json", {"packs": []})
        self._gateway.write_json_atomic(f"{root}/chat/index.json", {"threads": []})
        self._gateway.write_json_atomic(
            f"{root}/status.json", {"phase": "init", "status": "planned", "health": "ok"}
        )
        self._gateway.append_json_line(
            f"{root}/journal.jsonl",
            {
                "timestamp": now,
                "author_type": "system",
                "author_id": "hcm-scaffold",
                "entry_type": "event",
                "message": f"Mission scaffolded with core v{SCHEMA_VERSION} structure",
            },
        )
        logger.info("Scaffolded mission %s", mid)
        return meta_doc

    def list_missions(self, business_id: str | None = None) -> list[str]:
        """Mission ids, optionally restricted to a business (or unassigned)."""
        target = (business_id or "").strip()
        found: set[str] = set()
        for path in self._gateway.list_files_recursive(MISSIONS_ROOT):
            parts = path.split("/")
            if len(parts) != 4 or parts[3] != "meta.json":
                continue
            if not target:
                found.add(parts[2])
                continue
            meta = self._read_or(path, {})
            owner = str(meta.get("business_id") or "").strip()
            if not owner or owner == target:
                found.add(parts[2])
        return sorted(found)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def get_context(self, mission_id: str) -> MissionContext:
        """Meta, status, journal tail, decisions and next actions in one read.

        Raises
        ------
        NotFoundError
            If the mission has no ``meta.json``.
        """
        mid = self._require(mission_id)
        root = self.base(mid)
        parts = self._fan_out(
            {
                "meta": lambda: self._gateway.read_json(f"{root}/meta.json"),
                "status": lambda: self._read_or(f"{root}/status.json", {}),
                "journal_tail": lambda: [
                    e
                    for e in self._gateway.read_json_lines(
                        f"{root}/journal.jsonl", self._journal_tail_limit
                    )
                    if isinstance(e, dict)
                ],
                "decisions": lambda: self._read_or(f"{root}/decisions.json", [], "decisions"),
                "next_actions": lambda: self._read_or(
                    f"{root}/next_actions.json", [], "next_actions"
                ),
            }
        )
        return MissionContext(mission_id=mid, **parts)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append_journal(self, mission_id: str, entry: JournalEntry | dict[str, Any]) -> dict[str, Any]:
        if isinstance(entry, dict):
            if not entry.get("message") or not entry.get("author_id"):
                raise InvalidPayloadError("Journal entry requires message and author_id")
            entry = _coerce(JournalEntry, entry)
        mid = self._require(mission_id)
        record = entry.model_dump(mode="json", exclude_none=True)
        record.setdefault("timestamp", utc_now_iso())
        self._gateway.append_json_line(f"{self.base(mid)}/journal.jsonl", record)
        return record

    def add_evidence(
        self, mission_id: str, evidence: EvidenceInput | dict[str, Any], author_id: str
    ) -> dict[str, str]:
        if isinstance(evidence, dict):
            evidence = _coerce(EvidenceInput, evidence)
        mid = self._require(mission_id)
        evidence_id = short_id("ev")
        path = f"{self.base(mid)}/evidence/{evidence_id}.json"
        self._gateway.write_json_atomic(
            path,
            {
                "evidence_id": evidence_id,
                "mission_id": mid,
                **evidence.model_dump(mode="json", exclude_none=True),
                "created_at": utc_now_iso(),
                "created_by": author_id,
            },
        )
        return {"evidence_id": evidence_id, "path": path}

    def update_next_actions(
        self, mission_id: str, updates: list[NextActionUpdate | dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Merge updates into ``next_actions.json`` keyed by ``action_id``."""
        mid = self._require(mission_id)
        path = f"{self.base(mid)}/next_actions.json"
        current: list[dict[str, Any]] = []
        if self._gateway.exists(path):
            doc = self._gateway.read_json(path)
            current = list(doc.get("next_actions") or []) if isinstance(doc, dict) else []

        actions: dict[str, dict[str, Any]] = {a.get("action_id"): a for a in current}
        for raw in updates:
            update = raw if isinstance(raw, NextActionUpdate) else _coerce(NextActionUpdate, raw)
            fields = update.model_dump(mode="json", exclude_none=True)
            now = utc_now_iso()
            if update.action_id and update.action_id in actions:
                actions[update.action_id] = {**actions[update.action_id], **fields, "updated_at": now}
            else:
                action_id = update.action_id or short_id("act")
                actions[action_id] = {
                    **fields,
                    "action_id": action_id,
                    "created_at": now,
                    "updated_at": now,
                }
        merged = list(actions.values())
        self._gateway.write_json_atomic(path, {"next_actions": merged})
        return merged

    def get_decisions(self, mission_id: str, status: str | None = None) -> list[dict[str, Any]]:
        mid = self._require(mission_id)
        decisions = self._read_or(f"{self.base(mid)}/decisions.json", [], "decisions")
        if status:
            decisions = [d for d in decisions if isinstance(d, dict) and d.get("status") == status]
        return decisions

    # ------------------------------------------------------------------
    # Daily views
    # ------------------------------------------------------------------

    @staticmethod
    def _check_date(date: str) -> str:
        if not _DATE.match(str(date or "")):
            raise InvalidPayloadError("date must be YYYY-MM-DD", {"date": date})
        return date

    def day_rollup(self, mission_id: str, date: str) -> dict[str, str]:
        """Write ``snapshots/<date>.snapshot.json`` from the current state."""
        mid = self._require(mission_id)
        day = self._check_date(date)
        root = self.base(mid)
        parts = self._fan_out(
            {
                "status": lambda: self._read_or(f"{root}/status.json", {}),
                "open_actions": lambda: self._read_or(
                    f"{root}/next_actions.json", [], "next_actions"
                ),
                "decisions": lambda: self._read_or(f"{root}/decisions.json", [], "decisions"),
            }
        )
        snapshot_path = f"{root}/snapshots/{day}.snapshot.json"
        self._gateway.write_json_atomic(
            snapshot_path,
            {
                "snapshot_date": day,
                "generated_at": utc_now_iso(),
                "mission_id": mid,
                "status": parts["status"],
                "open_actions": parts["open_actions"],
                "decisions_summary": len(parts["decisions"]),
            },
        )
        return {"snapshot_path": snapshot_path}

    def prepare_day_context(self, mission_id: str, date: str) -> dict[str, Any]:
        mid = self._require(mission_id)
        day = self._check_date(date)
        actions = self._read_or(f"{self.base(mid)}/next_actions.json", [], "next_actions")
        todo = [a for a in actions if isinstance(a, dict) and a.get("status") in _OPEN_STATUSES]
        return {
            "mission_id": mid,
            "date": day,
            "focus": "Execute open actions",
            "context_inputs": {"open_actions": todo},
        }
