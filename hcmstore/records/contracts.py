"""Mission contracts — versioned per mission with patch semantics.

Layout: ``state/missions/<mission_id>/contracts/{latest.json,versions/}``.
"""

from __future__ import annotations

from typing import Any, Mapping

from hcmstore.core.errors import InvalidPayloadError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.versioned import UNSET, RecordKind, RecordPaths, VersionedRecordEngine
from hcmstore.models.records import CreatedBy


class ContractKind(RecordKind):
    name = "contract"
    schema_version = "1.1"
    content_field = "contract"
    identity_keys = ("mission_id",)

    def paths(self, identity: Mapping[str, str]) -> RecordPaths:
        return RecordPaths.under(f"state/missions/{identity['mission_id']}/contracts")


class ContractStore:
    """Contract versions for missions.

    ``create_version`` shallow-merges a patch over the current contract
    content and stores the result as a new immutable version.
    """

    def __init__(self, gateway: StorageGateway) -> None:
        self._engine = VersionedRecordEngine(gateway, ContractKind())

    @property
    def engine(self) -> VersionedRecordEngine:
        return self._engine

    def get_latest(self, mission_id: str) -> dict[str, Any] | None:
        return self._engine.get_latest({"mission_id": mission_id})

    def get_version(self, mission_id: str, version_hash: str) -> dict[str, Any] | None:
        return self._engine.get_version({"mission_id": mission_id}, version_hash)

    def list_versions(self, mission_id: str) -> list[str]:
        return self._engine.list_versions({"mission_id": mission_id})

    def create_version(
        self,
        mission_id: str,
        patch: dict[str, Any],
        expected_base_hash: Any = UNSET,
        *,
        created_by: CreatedBy | None = None,
    ) -> dict[str, Any]:
        if not isinstance(patch, dict):
            raise InvalidPayloadError("contract patch must be a JSON object")
        identity = {"mission_id": mission_id}
        latest = self._engine.get_latest(identity)
        current = latest.get("contract", {}) if latest else {}
        merged = {**(current if isinstance(current, dict) else {}), **patch}
        return self._engine.put_version(
            identity, merged, expected_base_hash, created_by=created_by
        )

    def append_audit(
        self,
        mission_id: str,
        entries: list[dict[str, Any]],
        expected_base_hash: Any = UNSET,
        *,
        created_by: CreatedBy | None = None,
    ) -> dict[str, Any]:
        """Append entries to the contract's ``audit`` list as a new version."""
        latest = self.get_latest(mission_id)
        contract = latest.get("contract", {}) if latest else {}
        audit = list(contract.get("audit") or []) if isinstance(contract, dict) else []
        audit.extend(entries)
        return self.create_version(
            mission_id, {"audit": audit}, expected_base_hash, created_by=created_by
        )
