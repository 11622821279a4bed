"""Tests for ChatStore — threads, hashed messages, thread index."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from hcmstore.core.errors import ConflictError, InvalidPayloadError, NotFoundError
from hcmstore.core.hasher import hash_value
from hcmstore.missions.chat import ChatStore, message_hash
from hcmstore.missions.store import MissionStore
from hcmstore.models.chat import ChatMessageInput, ChatRole


@pytest.fixture
def thread(missions: MissionStore, chat: ChatStore) -> str:
    missions.scaffold("m-1")
    return chat.create_thread("m-1", {"thread_id": "t-1", "title": "Planning"}).thread_id


class TestThreads:
    def test_generated_id(self, missions: MissionStore, chat: ChatStore, storage_root: Path):
        missions.scaffold("m-1")
        receipt = chat.create_thread("m-1")
        assert receipt.thread_id.startswith("thread-")
        assert len(receipt.thread_id) == len("thread-") + 8
        assert (storage_root / f"state/missions/m-1/chat/threads/{receipt.thread_id}/meta.json").exists()

    def test_meta_kept_with_system_fields(self, thread: str, chat: ChatStore):
        meta = chat.get_thread("m-1", thread)
        assert meta["title"] == "Planning"
        assert meta["thread_id"] == "t-1"
        assert meta["mission_id"] == "m-1"
        assert "created_at" in meta

    def test_caller_cannot_override_mission(self, missions: MissionStore, chat: ChatStore):
        missions.scaffold("m-1")
        tid = chat.create_thread("m-1", {"mission_id": "m-2"}).thread_id
        assert chat.get_thread("m-1", tid)["mission_id"] == "m-1"

    def test_index_updated(self, thread: str, chat: ChatStore, storage_root: Path):
        chat.create_thread("m-1", {"thread_id": "t-2"})
        index = json.loads((storage_root / "state/missions/m-1/chat/index.json").read_text())
        assert [t["thread_id"] for t in index["threads"]] == ["t-1", "t-2"]

    def test_list_threads_sorted(self, thread: str, chat: ChatStore):
        chat.create_thread("m-1", {"thread_id": "a-thread"})
        assert chat.list_threads("m-1") == ["a-thread", "t-1"]

    def test_list_threads_ignores_stray_files(
        self, thread: str, chat: ChatStore, put_json
    ):
        put_json("state/missions/m-1/chat/threads/t-1/extra/meta.json", {})
        put_json("state/missions/m-1/chat/threads/loose.json", {})
        assert chat.list_threads("m-1") == ["t-1"]

    def test_list_threads_unknown_mission(self, chat: ChatStore):
        assert chat.list_threads("ghost") == []

    def test_duplicate_id_conflicts(self, thread: str, chat: ChatStore):
        with pytest.raises(ConflictError) as info:
            chat.create_thread("m-1", {"thread_id": "t-1", "title": "Other"})
        assert info.value.details == {"mission_id": "m-1", "thread_id": "t-1"}
        assert chat.get_thread("m-1", "t-1")["title"] == "Planning"

    def test_mission_required(self, chat: ChatStore):
        with pytest.raises(NotFoundError):
            chat.create_thread("ghost")

    def test_unsafe_thread_id(self, missions: MissionStore, chat: ChatStore):
        missions.scaffold("m-1")
        with pytest.raises(InvalidPayloadError):
            chat.create_thread("m-1", {"thread_id": "../../escape"})

    def test_meta_must_be_object(self, missions: MissionStore, chat: ChatStore):
        missions.scaffold("m-1")
        with pytest.raises(InvalidPayloadError):
            chat.create_thread("m-1", ["x"])  # type: ignore[arg-type]

    def test_unknown_thread(self, thread: str, chat: ChatStore):
        assert chat.get_thread("m-1", "nope") is None


class TestMessages:
    def test_append_and_list(self, thread: str, chat: ChatStore):
        first = chat.append_message("m-1", thread, {"role": "user", "content": "hello"})
        chat.append_message("m-1", thread, ChatMessageInput(role=ChatRole.ASSISTANT, content="hi"))
        messages = chat.list_messages("m-1", thread)
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[0]["message_id"] == first.message_id
        assert first.message_id.startswith("msg-")
        assert messages[0]["hash"] == first.hash

    def test_hash_covers_identity_and_timestamp(self, thread: str, chat: ChatStore):
        chat.append_message("m-1", thread, {"role": "user", "content": "hello", "lang": "en"})
        stored = chat.list_messages("m-1", thread)[0]
        assert stored["hash"] == hash_value(
            {
                "mission_id": "m-1",
                "thread_id": "t-1",
                "role": "user",
                "content": "hello",
                "timestamp": stored["timestamp"],
            }
        )
        assert stored["lang"] == "en"

    def test_system_fields_win(self, thread: str, chat: ChatStore):
        receipt = chat.append_message(
            "m-1", thread, {"role": "user", "content": "x", "hash": "forged", "message_id": "m"}
        )
        stored = chat.list_messages("m-1", thread)[0]
        assert stored["hash"] == receipt.hash != "forged"
        assert stored["message_id"] == receipt.message_id

    def test_verify_detects_edits(self, thread: str, chat: ChatStore):
        chat.append_message("m-1", thread, {"role": "user", "content": "original text"})
        stored = chat.list_messages("m-1", thread)[0]
        assert chat.verify_message("m-1", thread, stored) is True
        assert chat.verify_message("m-1", thread, {**stored, "content": "edited"}) is False
        assert chat.verify_message("m-1", "t-other", stored) is False

    def test_limit_keeps_most_recent(self, thread: str, chat: ChatStore):
        for n in range(4):
            chat.append_message("m-1", thread, {"role": "user", "content": str(n)})
        assert [m["content"] for m in chat.list_messages("m-1", thread, limit=2)] == ["2", "3"]

    def test_empty_thread(self, thread: str, chat: ChatStore):
        assert chat.list_messages("m-1", thread) == []

    @pytest.mark.parametrize(
        "bad",
        [
            {"role": "moderator", "content": "x"},
            {"role": "user"},
            {"role": "user", "content": 42},
            {"content": "x"},
        ],
    )
    def test_invalid_message(self, thread: str, chat: ChatStore, bad):
        with pytest.raises(InvalidPayloadError):
            chat.append_message("m-1", thread, bad)
        assert chat.list_messages("m-1", thread) == []

    def test_unknown_thread(self, thread: str, chat: ChatStore, storage_root: Path):
        with pytest.raises(NotFoundError):
            chat.append_message("m-1", "nope", {"role": "user", "content": "x"})
        assert not (storage_root / "state/missions/m-1/chat/threads/nope").exists()

    def test_message_hash_helper(self):
        message = {"role": "system", "content": "c", "timestamp": "2026-01-01T00:00:00.000Z"}
        assert message_hash("m", "t", message) == message_hash("m", "t", dict(message, extra=1))
        assert message_hash("m", "t", message) != message_hash("m", "t2", message)
