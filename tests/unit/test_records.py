"""Tests for the record kinds — contracts, enterprise documents, project profiles."""

from __future__ import annotations

import pytest

from hcmstore.core.errors import ConflictError, InvalidPayloadError
from hcmstore.records.contracts import ContractStore
from hcmstore.records.documents import DocumentStore, normalize_doc_core
from hcmstore.records.profiles import ProjectProfileStore, normalize_policy, normalize_profile


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class TestContracts:
    def test_create_and_patch(self, contracts: ContractStore):
        v1 = contracts.create_version("m-1", {"goal": "ship", "owner": "ana"}, None)
        assert v1["schema_version"] == "1.1"
        assert v1["mission_id"] == "m-1"
        v2 = contracts.create_version(
            "m-1", {"owner": "ben"}, v1["meta"]["version_hash"]
        )
        assert v2["contract"] == {"goal": "ship", "owner": "ben"}
        assert v2["meta"]["supersedes"] == v1["meta"]["version_hash"]

    def test_stale_patch_conflicts(self, contracts: ContractStore):
        v1 = contracts.create_version("m-1", {"a": 1})
        contracts.create_version("m-1", {"a": 2}, v1["meta"]["version_hash"])
        with pytest.raises(ConflictError):
            contracts.create_version("m-1", {"a": 3}, v1["meta"]["version_hash"])
        assert contracts.get_latest("m-1")["contract"] == {"a": 2}

    def test_empty_patch_replays(self, contracts: ContractStore):
        v1 = contracts.create_version("m-1", {"a": 1})
        assert contracts.create_version("m-1", {}) == v1
        assert contracts.list_versions("m-1") == [v1["meta"]["version_hash"]]

    def test_patch_must_be_object(self, contracts: ContractStore):
        with pytest.raises(InvalidPayloadError):
            contracts.create_version("m-1", ["x"])  # type: ignore[arg-type]

    def test_lone_surrogate_stored_and_replayed(self, contracts: ContractStore):
        v1 = contracts.create_version("m-1", {"s": "\ud800"})
        assert contracts.get_latest("m-1") == v1
        assert contracts.create_version("m-1", {"s": "\ud800"}) == v1
        assert contracts.list_versions("m-1") == [v1["meta"]["version_hash"]]

    def test_append_audit(self, contracts: ContractStore):
        contracts.create_version("m-1", {"a": 1})
        contracts.append_audit("m-1", [{"event": "reviewed"}])
        latest = contracts.append_audit("m-1", [{"event": "approved"}])
        assert latest["contract"]["audit"] == [{"event": "reviewed"}, {"event": "approved"}]
        assert latest["contract"]["a"] == 1

    def test_get_version_by_hash(self, contracts: ContractStore):
        v1 = contracts.create_version("m-1", {"a": 1})
        contracts.create_version("m-1", {"a": 2})
        assert contracts.get_version("m-1", v1["meta"]["version_hash"]) == v1

    def test_unsafe_mission_id(self, contracts: ContractStore):
        with pytest.raises(InvalidPayloadError):
            contracts.get_latest("../m")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestNormalizeDocCore:
    def test_title_required(self):
        with pytest.raises(InvalidPayloadError):
            normalize_doc_core({"body": "x"})

    def test_aliases_and_cleanup(self):
        core = normalize_doc_core(
            {
                "title": "  Runbook ",
                "type": "guide",
                "markdown": "# Hi",
                "tags": ["b", " a ", "b", ""],
                "links": [{"url": "https://x"}, {"label": "no url"}, "junk", {"url": "u", "label": "L"}],
                "ignored": True,
            }
        )
        assert core == {
            "title": "Runbook",
            "doc_type": "guide",
            "tags": ["a", "b"],
            "body": "# Hi",
            "links": [{"url": "https://x"}, {"url": "u", "label": "L"}],
        }

    def test_json_payload_kept(self):
        assert normalize_doc_core({"title": "t", "json": {"k": [1]}})["json"] == {"k": [1]}

    def test_non_object(self):
        with pytest.raises(InvalidPayloadError):
            normalize_doc_core("doc")


class TestDocuments:
    def test_put_and_get(self, documents: DocumentStore):
        doc = documents.put("sp", "ws", "d1", {"title": "First", "body": "hello"}, None)
        assert doc["doc"] == {"title": "First", "body": "hello"}
        assert doc["space_id"] == "sp" and doc["workspace_id"] == "ws" and doc["doc_id"] == "d1"
        assert documents.get_latest("sp", "ws", "d1") == doc

    def test_ignored_fields_do_not_create_versions(self, documents: DocumentStore):
        v1 = documents.put("sp", "ws", "d1", {"title": "T"})
        v2 = documents.put("sp", "ws", "d1", {"title": "T", "noise": 42})
        assert v1 == v2

    def test_same_content_different_doc_ids_differ(self, documents: DocumentStore):
        a = documents.put("sp", "ws", "a", {"title": "T"})
        b = documents.put("sp", "ws", "b", {"title": "T"})
        assert a["meta"]["version_hash"] != b["meta"]["version_hash"]

    def test_list_docs_sorted_by_title(self, documents: DocumentStore):
        documents.put("sp", "ws", "d1", {"title": "beta", "tags": ["x"]})
        documents.put("sp", "ws", "d2", {"title": "Alpha", "doc_type": "note"})
        documents.put("sp", "other", "d3", {"title": "Elsewhere"})
        listed = documents.list_docs("sp", "ws")
        assert [d.record_id for d in listed] == ["d2", "d1"]
        assert listed[0].doc_type == "note"
        assert listed[1].tags == ["x"]

    def test_list_docs_empty_workspace(self, documents: DocumentStore):
        assert documents.list_docs("sp", "ws") == []

    def test_get_version(self, documents: DocumentStore):
        v1 = documents.put("sp", "ws", "d1", {"title": "one"})
        documents.put("sp", "ws", "d1", {"title": "two"}, v1["meta"]["version_hash"])
        assert documents.get_version("sp", "ws", "d1", v1["meta"]["version_hash"]) == v1


# ---------------------------------------------------------------------------
# Project profiles
# ---------------------------------------------------------------------------


class TestNormalizeProfile:
    def test_project_name_required(self):
        with pytest.raises(InvalidPayloadError):
            normalize_profile({"summary": "x"})

    def test_project_name_from_hint_or_alias(self):
        assert normalize_profile({}, "Hinted")["project_name"] == "Hinted"
        assert normalize_profile({"name": " Alias "})["project_name"] == "Alias"
        assert normalize_profile({"projectName": "Camel"})["project_name"] == "Camel"

    def test_policy_terms_normalized(self):
        policy = normalize_policy({"enforce_scope": True, "allowed_term_ids": ["b", "a", "A"]})
        assert policy["allowed_term_ids"] == ["A", "B"]

    def test_enforce_scope_requires_terms(self):
        with pytest.raises(InvalidPayloadError):
            normalize_policy({"enforce_scope": True, "allowed_term_ids": []})

    def test_enforce_scope_must_be_bool(self):
        with pytest.raises(InvalidPayloadError):
            normalize_policy({"enforce_scope": "yes"})

    def test_terms_must_be_list(self):
        with pytest.raises(InvalidPayloadError):
            normalize_policy({"allowed_term_ids": "A"})

    def test_null_policy_dropped(self):
        assert "policy" not in normalize_profile({"project_name": "P", "policy": None})


class TestProfiles:
    def test_put_and_get(self, profiles: ProjectProfileStore):
        doc = profiles.put("proj-1", {"summary": "s"}, None, project_name="Project One")
        assert doc["profile"] == {"summary": "s", "project_name": "Project One"}
        assert profiles.get("proj-1") == doc

    def test_concurrent_update_conflicts(self, profiles: ProjectProfileStore):
        v1 = profiles.put("p", {"project_name": "P"})
        base = v1["meta"]["version_hash"]
        profiles.put("p", {"project_name": "P", "rev": 2}, base)
        with pytest.raises(ConflictError):
            profiles.put("p", {"project_name": "P", "rev": 3}, base)

    def test_bad_id_fails_before_profile_checks(self, profiles: ProjectProfileStore):
        with pytest.raises(InvalidPayloadError) as info:
            profiles.put("../p", {})
        assert info.value.details["field"] == "project_id"

    def test_list_profiles(self, profiles: ProjectProfileStore):
        profiles.put("b-proj", {"project_name": "zeta"})
        profiles.put("a-proj", {"project_name": "Eta"})
        listed = profiles.list_profiles()
        assert [s.record_id for s in listed] == ["a-proj", "b-proj"]
        assert listed[0].title == "Eta"
        assert listed[0].version_hash.startswith("sha256:")

    def test_missing_profile(self, profiles: ProjectProfileStore):
        assert profiles.get("nobody") is None
