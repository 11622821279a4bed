"""Project profiles — versioned business context for a project.

Layout: ``domain/projects/<project_id>/profile/{latest.json,versions/}``.

A profile is free-form apart from a required ``project_name`` and an
optional ``policy`` block whose scope-enforcement fields are validated.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from hcmstore.core.errors import InvalidPayloadError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.versioned import UNSET, RecordKind, RecordPaths, VersionedRecordEngine
from hcmstore.core.ids import unique_sorted_strings
from hcmstore.models.records import CreatedBy, RecordSummary

_LATEST = re.compile(r"^domain/projects/[^/]+/profile/latest\.json$")


def normalize_policy(raw: Any) -> dict[str, Any] | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidPayloadError("profile.policy must be a JSON object")
    policy = dict(raw)

    if "enforce_scope" in policy and not isinstance(policy["enforce_scope"], bool):
        raise InvalidPayloadError("profile.policy.enforce_scope must be a boolean")

    if "allowed_term_ids" in policy:
        allowed = unique_sorted_strings(policy["allowed_term_ids"], upper=True)
        if allowed is None:
            raise InvalidPayloadError(
                "profile.policy.allowed_term_ids must be an array of strings"
            )
        policy["allowed_term_ids"] = allowed

    if policy.get("enforce_scope") is True and not policy.get("allowed_term_ids"):
        raise InvalidPayloadError(
            "profile.policy.allowed_term_ids must be a non-empty array when enforce_scope=true"
        )
    return policy


def normalize_profile(raw: Any, project_name_hint: Any = None) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise InvalidPayloadError("profile must be a JSON object")
    profile = dict(raw)

    if not profile.get("project_name"):
        hinted = project_name_hint or profile.get("projectName") or profile.get("name") or ""
        if str(hinted).strip():
            profile["project_name"] = str(hinted).strip()

    project_name = str(profile.get("project_name") or "").strip()
    if not project_name:
        raise InvalidPayloadError("profile.project_name required", {"field": "project_name"})
    profile["project_name"] = project_name

    business_id = str(profile.get("business_id") or "").strip()
    if business_id:
        profile["business_id"] = business_id

    if "policy" in profile:
        policy = normalize_policy(profile["policy"])
        if policy is None:
            del profile["policy"]
        else:
            profile["policy"] = policy
    return profile


class ProjectProfileKind(RecordKind):
    name = "project_profile"
    schema_version = "1.1"
    content_field = "profile"
    identity_keys = ("project_id",)

    def paths(self, identity: Mapping[str, str]) -> RecordPaths:
        return RecordPaths.under(f"domain/projects/{identity['project_id']}/profile")

    def normalize_content(self, raw: Any) -> dict[str, Any]:
        return normalize_profile(raw)


class ProjectProfileStore:
    def __init__(self, gateway: StorageGateway) -> None:
        self._engine = VersionedRecordEngine(gateway, ProjectProfileKind())

    @property
    def engine(self) -> VersionedRecordEngine:
        return self._engine

    def get(self, project_id: str) -> dict[str, Any] | None:
        return self._engine.get_latest({"project_id": project_id})

    def put(
        self,
        project_id: str,
        profile: dict[str, Any],
        expected_base_hash: Any = UNSET,
        *,
        project_name: str | None = None,
        created_by: CreatedBy | None = None,
    ) -> dict[str, Any]:
        """Store a new profile version (see ``VersionedRecordEngine.put_version``)."""
        # Validate identity first so a bad id fails before profile checks.
        self._engine.kind.normalize_identity({"project_id": project_id})
        normalized = normalize_profile(profile, project_name)
        return self._engine.put_version(
            {"project_id": project_id}, normalized, expected_base_hash, created_by=created_by
        )

    def list_profiles(self) -> list[RecordSummary]:
        """Head summaries sorted by project name; incomplete entries skipped."""
        items = []
        for doc in self._engine.list_heads("domain/projects", _LATEST):
            profile = doc.get("profile") if isinstance(doc.get("profile"), dict) else {}
            meta = doc.get("meta") if isinstance(doc.get("meta"), dict) else {}
            project_id = str(doc.get("project_id") or "").strip()
            name = str(profile.get("project_name") or "").strip()
            version_hash = str(meta.get("version_hash") or "").strip()
            created_at = str(meta.get("created_at") or "").strip()
            if not (project_id and name and version_hash and created_at):
                continue
            items.append(
                RecordSummary(
                    record_id=project_id,
                    title=name,
                    version_hash=version_hash,
                    created_at=created_at,
                )
            )
        return sorted(items, key=lambda s: s.title.casefold())
