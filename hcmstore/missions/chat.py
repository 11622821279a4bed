"""Mission chat threads — per-thread metadata plus an append-only message log.

Layout::

    state/missions/<mission_id>/chat/
        index.json                          — {"threads": [...]}
        threads/<thread_id>/meta.json
        threads/<thread_id>/messages.jsonl  — one hashed message per line

Each message carries ``hash = sha256(canonical({mission_id, thread_id,
role, content, timestamp}))`` so a stored line can be re-checked later.
The thread index is read-modify-write without a lock (last writer wins);
``list_threads`` scans the directory tree and does not depend on it.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from hcmstore.core.errors import ConflictError, InvalidPayloadError, NotFoundError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.hasher import hash_value
from hcmstore.core.ids import normalize_id, short_id, utc_now_iso
from hcmstore.missions.store import MISSIONS_ROOT
from hcmstore.models.chat import ChatMessageInput, MessageReceipt, ThreadReceipt

logger = logging.getLogger(__name__)


def message_hash(mission_id: str, thread_id: str, message: dict[str, Any]) -> str:
    """The content hash stored on a chat message line."""
    return hash_value(
        {
            "mission_id": mission_id,
            "thread_id": thread_id,
            "role": message.get("role"),
            "content": message.get("content"),
            "timestamp": message.get("timestamp"),
        }
    )


class ChatStore:
    """File-backed chat threads for missions.

    Parameters
    ----------
    gateway:
        Storage gateway for all I/O.
    """

    def __init__(self, gateway: StorageGateway) -> None:
        self._gateway = gateway

    @staticmethod
    def _chat_root(mission_id: str) -> str:
        return f"{MISSIONS_ROOT}/{mission_id}/chat"

    def _thread_dir(self, mission_id: str, thread_id: str) -> str:
        return f"{self._chat_root(mission_id)}/threads/{thread_id}"

    def _require_mission(self, mission_id: str) -> str:
        mid = normalize_id(mission_id, "mission_id")
        if not self._gateway.exists(f"{MISSIONS_ROOT}/{mid}/meta.json"):
            raise NotFoundError(f"Mission {mid} not found", {"mission_id": mid})
        return mid

    def _require_thread(self, mission_id: str, thread_id: str) -> tuple[str, str]:
        mid = normalize_id(mission_id, "mission_id")
        tid = normalize_id(thread_id, "thread_id")
        if not self._gateway.exists(f"{self._thread_dir(mid, tid)}/meta.json"):
            raise NotFoundError(f"Thread {tid} not found", {"mission_id": mid, "thread_id": tid})
        return mid, tid

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def create_thread(self, mission_id: str, meta: dict[str, Any] | None = None) -> ThreadReceipt:
        """Create a thread under an existing mission.

        ``meta["thread_id"]`` picks the id; otherwise ``thread-xxxxxxxx`` is
        generated.

        Raises
        ------
        NotFoundError
            The mission has not been scaffolded.
        ConflictError
            A thread with the requested id already exists.
        """
        if meta is not None and not isinstance(meta, dict):
            raise InvalidPayloadError("thread meta must be a JSON object")
        mid = self._require_mission(mission_id)
        requested = str((meta or {}).get("thread_id") or "").strip()
        tid = normalize_id(requested, "thread_id") if requested else short_id("thread")
        meta_path = f"{self._thread_dir(mid, tid)}/meta.json"
        if self._gateway.exists(meta_path):
            raise ConflictError("thread_exists", {"mission_id": mid, "thread_id": tid})

        now = utc_now_iso()
        self._gateway.write_json_atomic(
            meta_path, {**(meta or {}), "thread_id": tid, "mission_id": mid, "created_at": now}
        )
        self._add_to_index(mid, tid, now)
        logger.info("Created chat thread %s/%s", mid, tid)
        return ThreadReceipt(thread_id=tid)

    def _add_to_index(self, mission_id: str, thread_id: str, created_at: str) -> None:
        index_path = f"{self._chat_root(mission_id)}/index.json"
        threads: list[Any] = []
        if self._gateway.exists(index_path):
            doc = self._gateway.read_json(index_path)
            if isinstance(doc, dict) and isinstance(doc.get("threads"), list):
                threads = list(doc["threads"])
        threads.append({"thread_id": thread_id, "created_at": created_at})
        self._gateway.write_json_atomic(index_path, {"threads": threads})

    def get_thread(self, mission_id: str, thread_id: str) -> dict[str, Any] | None:
        mid = normalize_id(mission_id, "mission_id")
        tid = normalize_id(thread_id, "thread_id")
        path = f"{self._thread_dir(mid, tid)}/meta.json"
        if not self._gateway.exists(path):
            return None
        return self._gateway.read_json(path)

    def list_threads(self, mission_id: str) -> list[str]:
        """Thread ids that have a ``meta.json``, sorted."""
        mid = normalize_id(mission_id, "mission_id")
        root = f"{self._chat_root(mid)}/threads"
        found = set()
        for path in self._gateway.list_files_recursive(root):
            parts = path[len(root) + 1 :].split("/")
            if len(parts) == 2 and parts[1] == "meta.json":
                found.add(parts[0])
        return sorted(found)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def append_message(
        self, mission_id: str, thread_id: str, message: ChatMessageInput | dict[str, Any]
    ) -> MessageReceipt:
        """Validate, stamp, hash and append one message to a thread.

        Raises
        ------
        InvalidPayloadError
            ``role`` is not user/assistant/system or ``content`` is not a string.
        NotFoundError
            The thread does not exist.
        """
        if not isinstance(message, ChatMessageInput):
            try:
                message = ChatMessageInput.model_validate(message)
            except ValidationError as exc:
                raise InvalidPayloadError(
                    "invalid chat message", {"errors": exc.errors(include_url=False)}
                ) from exc
        mid, tid = self._require_thread(mission_id, thread_id)

        record = {
            **message.model_dump(mode="json"),
            "message_id": short_id("msg"),
            "timestamp": utc_now_iso(),
        }
        record["hash"] = message_hash(mid, tid, record)
        self._gateway.append_json_line(f"{self._thread_dir(mid, tid)}/messages.jsonl", record)
        return MessageReceipt(message_id=record["message_id"], hash=record["hash"])

    def list_messages(
        self, mission_id: str, thread_id: str, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Messages in append order; ``limit`` keeps only the most recent ones."""
        mid, tid = self._require_thread(mission_id, thread_id)
        lines = self._gateway.read_json_lines(
            f"{self._thread_dir(mid, tid)}/messages.jsonl", limit
        )
        return [line for line in lines if isinstance(line, dict)]

    def verify_message(self, mission_id: str, thread_id: str, message: dict[str, Any]) -> bool:
        """Recompute a stored message's hash and compare."""
        mid = normalize_id(mission_id, "mission_id")
        tid = normalize_id(thread_id, "thread_id")
        return message.get("hash") == message_hash(mid, tid, message)
