"""Tests for the error taxonomy and the service-level exception wrapper."""

from __future__ import annotations

from pathlib import Path

import pytest

from hcmstore.core.errors import (
    AccessDeniedError,
    ConflictError,
    ErrorKind,
    HcmError,
    InternalError,
    InvalidPayloadError,
    NotFoundError,
    StorageIOError,
)
from hcmstore.service import HcmService


class TestTaxonomy:
    @pytest.mark.parametrize(
        ("cls", "kind", "code"),
        [
            (NotFoundError, ErrorKind.NOT_FOUND, "MISSION_NOT_FOUND"),
            (AccessDeniedError, ErrorKind.ACCESS_DENIED, "ACCESS_DENIED"),
            (ConflictError, ErrorKind.CONFLICTING_UPDATE, "CONFLICTING_UPDATE"),
            (InvalidPayloadError, ErrorKind.INVALID_PAYLOAD, "INVALID_PAYLOAD"),
            (StorageIOError, ErrorKind.IO_FAILURE, "IO_ERROR"),
            (InternalError, ErrorKind.INTERNAL, "INTERNAL_ERROR"),
        ],
    )
    def test_kinds_and_codes(self, cls, kind, code):
        err = cls("boom")
        assert isinstance(err, HcmError)
        assert err.kind is kind
        assert err.code == code

    def test_to_dict(self):
        err = ConflictError("stale", {"current_hash": "sha256:ab"})
        assert err.to_dict() == {
            "code": "CONFLICTING_UPDATE",
            "message": "stale",
            "details": {"current_hash": "sha256:ab"},
        }
        assert "details" not in NotFoundError("gone").to_dict()

    def test_str_and_repr(self):
        err = InvalidPayloadError("bad", {"field": "x"})
        assert str(err) == "bad"
        assert repr(err) == "InvalidPayloadError('bad', details={'field': 'x'})"

    def test_details_copied(self):
        details = {"a": 1}
        err = HcmError("m", details)
        details["a"] = 2
        assert err.details == {"a": 1}


class TestServiceCall:
    @pytest.fixture
    def svc(self, tmp_path: Path) -> HcmService:
        return HcmService.at(tmp_path / "root")

    def test_result_passed_through(self, svc: HcmService):
        assert svc.call(lambda a, b=0: a + b, 1, b=2) == 3

    def test_taxonomy_errors_propagate(self, svc: HcmService):
        with pytest.raises(InvalidPayloadError):
            svc.call(svc.contracts.get_latest, "../escape")

    def test_unexpected_errors_wrapped(self, svc: HcmService):
        def explode() -> None:
            raise KeyError("surprise")

        with pytest.raises(InternalError) as info:
            svc.call(explode)
        assert info.value.details["error_type"] == "KeyError"
        assert isinstance(info.value.__cause__, KeyError)

    def test_corrupt_record_surfaces_as_internal(self, svc: HcmService):
        svc.missions.scaffold("m-1")
        (svc.gateway.root / "state/missions/m-1/meta.json").write_text("[]", encoding="utf-8")
        with pytest.raises(InternalError) as info:
            svc.call(svc.missions.get_context, "m-1")
        assert info.value.details["error_type"] == "ValidationError"
