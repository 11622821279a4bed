"""Tests for BlobStore — content addressing, dedup, artifact id binding."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from hcmstore.core import blob_store
from hcmstore.core.blob_store import BlobStore
from hcmstore.core.errors import ConflictError, InternalError, InvalidPayloadError
from hcmstore.core.hasher import sha256_hex


class TestBlobs:
    def test_put_blob_addresses_by_sha256(self, blobs: BlobStore, storage_root: Path):
        digest = blobs.put_blob("m-1", b"hello")
        assert digest == sha256_hex(b"hello")
        stored = storage_root / f"state/missions/m-1/artifacts/blobs/{digest}"
        assert stored.read_bytes() == b"hello"

    def test_text_is_utf8(self, blobs: BlobStore):
        assert blobs.put_blob("m-1", "café") == sha256_hex("café".encode("utf-8"))

    def test_unencodable_text_is_invalid(self, blobs: BlobStore):
        with pytest.raises(InvalidPayloadError):
            blobs.put_blob("m-1", "\ud800")

    def test_blob_written_once(self, blobs: BlobStore, storage_root: Path):
        digest = blobs.put_blob("m-1", b"same")
        path = storage_root / f"state/missions/m-1/artifacts/blobs/{digest}"
        before = os.stat(path).st_mtime_ns
        blobs.put_blob("m-1", b"same")
        assert os.stat(path).st_mtime_ns == before

    def test_get_blob(self, blobs: BlobStore):
        digest = blobs.put_blob("m-1", b"\x00\xffbinary")
        assert blobs.get_blob("m-1", digest) == b"\x00\xffbinary"
        assert blobs.get_blob("m-1", f"sha256:{digest}") == b"\x00\xffbinary"
        assert blobs.get_blob("m-1", "0" * 64) is None

    def test_bad_content_type(self, blobs: BlobStore):
        with pytest.raises(InvalidPayloadError):
            blobs.put_blob("m-1", 123)  # type: ignore[arg-type]


class TestArtifacts:
    def test_generated_id(self, blobs: BlobStore):
        receipt = blobs.put_artifact("m-1", b"data", {"filename": "a.txt"})
        assert receipt.artifact_id.startswith("art-")
        assert len(receipt.artifact_id) == len("art-") + 8
        bundle = blobs.get_artifact("m-1", receipt.artifact_id)
        assert bundle.content == b"data"
        assert bundle.text() == "data"
        assert bundle.meta["filename"] == "a.txt"
        assert bundle.meta["blob_hash"] == receipt.blob_hash
        assert bundle.meta["size_bytes"] == 4
        assert bundle.meta["mission_id"] == "m-1"

    def test_generated_id_skips_bound_ids(
        self, blobs: BlobStore, monkeypatch: pytest.MonkeyPatch
    ):
        first = blobs.put_artifact("m-1", b"first", artifact_id="art-0000aaaa")
        ids = iter(["art-0000aaaa", "art-0000aaaa", "art-0000bbbb"])
        monkeypatch.setattr(blob_store, "short_id", lambda prefix: next(ids))

        second = blobs.put_artifact("m-1", b"second")

        assert second.artifact_id == "art-0000bbbb"
        assert blobs.get_artifact("m-1", "art-0000aaaa").meta["blob_hash"] == first.blob_hash
        assert blobs.get_artifact("m-1", "art-0000bbbb").content == b"second"

    def test_generated_id_gives_up_after_repeated_hits(
        self, blobs: BlobStore, monkeypatch: pytest.MonkeyPatch
    ):
        blobs.put_artifact("m-1", b"first", artifact_id="art-0000aaaa")
        monkeypatch.setattr(blob_store, "short_id", lambda prefix: "art-0000aaaa")
        with pytest.raises(InternalError):
            blobs.put_artifact("m-1", b"second")
        assert blobs.get_artifact("m-1", "art-0000aaaa").content == b"first"

    def test_system_fields_win_over_caller_meta(self, blobs: BlobStore):
        receipt = blobs.put_artifact("m-1", b"x", {"blob_hash": "forged", "size_bytes": 99})
        meta = blobs.get_artifact("m-1", receipt.artifact_id).meta
        assert meta["blob_hash"] == sha256_hex(b"x")
        assert meta["size_bytes"] == 1

    def test_two_ids_share_one_blob(self, blobs: BlobStore, storage_root: Path):
        a = blobs.put_artifact("m-1", b"shared", artifact_id="a")
        b = blobs.put_artifact("m-1", b"shared", artifact_id="b")
        assert a.blob_hash == b.blob_hash
        assert os.listdir(storage_root / "state/missions/m-1/artifacts/blobs") == [a.blob_hash]

    def test_same_id_same_bytes_is_idempotent(self, blobs: BlobStore):
        first = blobs.put_artifact("m-1", b"v1", artifact_id="fixed")
        again = blobs.put_artifact("m-1", b"v1", artifact_id="fixed")
        assert first == again

    def test_same_id_different_bytes_conflicts(self, blobs: BlobStore):
        first = blobs.put_artifact("m-1", b"v1", artifact_id="fixed")
        with pytest.raises(ConflictError) as info:
            blobs.put_artifact("m-1", b"v2", artifact_id="fixed")
        assert info.value.message == "artifact_id_conflict"
        assert info.value.details["existing_blob_hash"] == first.blob_hash
        assert info.value.details["new_blob_hash"] == sha256_hex(b"v2")
        assert blobs.get_artifact("m-1", "fixed").content == b"v1"

    def test_unknown_artifact(self, blobs: BlobStore):
        assert blobs.get_artifact("m-1", "missing") is None

    def test_missing_blob_yields_none_content(self, blobs: BlobStore, storage_root: Path):
        receipt = blobs.put_artifact("m-1", b"gone", artifact_id="g")
        (storage_root / f"state/missions/m-1/artifacts/blobs/{receipt.blob_hash}").unlink()
        bundle = blobs.get_artifact("m-1", "g")
        assert bundle.content is None
        assert bundle.text() is None

    def test_meta_must_be_object(self, blobs: BlobStore):
        with pytest.raises(InvalidPayloadError):
            blobs.put_artifact("m-1", b"x", ["meta"])  # type: ignore[arg-type]


class TestVerify:
    def test_intact(self, blobs: BlobStore):
        digest = blobs.put_blob("m-1", b"trust me")
        assert blobs.verify("m-1", digest) is True

    def test_tampered(self, blobs: BlobStore, storage_root: Path):
        digest = blobs.put_blob("m-1", b"original")
        (storage_root / f"state/missions/m-1/artifacts/blobs/{digest}").write_bytes(b"evil")
        assert blobs.verify("m-1", digest) is False

    def test_missing(self, blobs: BlobStore):
        assert blobs.verify("m-1", "a" * 64) is False
