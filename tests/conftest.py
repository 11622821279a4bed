"""Shared test fixtures for hcmstore."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from hcmstore.config import StoreConfig
from hcmstore.core.blob_store import BlobStore
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.pack_store import PackStore
from hcmstore.hindex.router import HindexRouter
from hcmstore.missions.chat import ChatStore
from hcmstore.missions.store import MissionStore
from hcmstore.records.contracts import ContractStore
from hcmstore.records.documents import DocumentStore
from hcmstore.records.profiles import ProjectProfileStore
from hcmstore.service import HcmService

CLASSIFICATIONS: dict[str, Any] = {
    "classifications": [
        {"class": "mission_state", "keywords": ["mission", "status"], "priority": 5},
        {"class": "business_policy", "keywords": ["policy", "rule"], "priority": 8},
        {"class": "business_terms", "keywords": ["term", "policy"], "priority": 8},
        {"class": "enterprise_docs", "keywords": ["doc", "runbook"], "priority": 3},
        {"class": "orphan", "keywords": ["orphan"], "priority": 9},
    ]
}

SCOPES: dict[str, Any] = {
    "scopes": {
        "mission_state": {
            "include": ["state/missions/*/status.json", "state/missions/*/journal.jsonl"],
            "exclude": [],
        },
        "business_policy": {"include": ["stable/policy/**"], "exclude": ["stable/policy/drafts/**"]},
        "business_terms": {"include": ["stable/terms/**"], "exclude": []},
        "enterprise_docs": {
            "include": ["stable/**", "domain/spaces/**", "state/spaces/**"],
            "exclude": ["**/versions/**"],
        },
        "domain_knowledge": {"include": ["stable/knowledge/**"], "exclude": []},
    }
}

ROUTING: dict[str, Any] = {
    "routing": {
        "mission_state": "direct",
        "business_policy": "direct",
        "enterprise_docs": "keyword",
    }
}


def write_json(root: Path, rel_path: str, data: Any) -> Path:
    """Write a JSON fixture file under ``root`` (bypassing the gateway)."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Provide an empty storage root."""
    root = tmp_path / "hcm"
    root.mkdir()
    return root


@pytest.fixture
def gateway(storage_root: Path) -> StorageGateway:
    """Provide a StorageGateway anchored at the temp storage root."""
    return StorageGateway(storage_root)


@pytest.fixture
def contracts(gateway: StorageGateway) -> ContractStore:
    return ContractStore(gateway)


@pytest.fixture
def documents(gateway: StorageGateway) -> DocumentStore:
    return DocumentStore(gateway)


@pytest.fixture
def profiles(gateway: StorageGateway) -> ProjectProfileStore:
    return ProjectProfileStore(gateway)


@pytest.fixture
def packs(gateway: StorageGateway) -> PackStore:
    return PackStore(gateway)


@pytest.fixture
def blobs(gateway: StorageGateway) -> BlobStore:
    return BlobStore(gateway)


@pytest.fixture
def missions(gateway: StorageGateway) -> MissionStore:
    return MissionStore(gateway, journal_tail_limit=3, read_workers=2)


# ---------------------------------------------------------------------------
# Hindex configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def write_hindex(storage_root: Path) -> Callable[..., Path]:
    """Factory fixture: write the three hindex config files under the root."""

    def _factory(
        classifications: dict[str, Any] | None = None,
        scopes: dict[str, Any] | None = None,
        routing: dict[str, Any] | None = None,
        config_dir: str = "hindex",
    ) -> Path:
        write_json(storage_root, f"{config_dir}/classification.json", classifications or CLASSIFICATIONS)
        write_json(storage_root, f"{config_dir}/scopes.json", scopes or SCOPES)
        write_json(storage_root, f"{config_dir}/routing.json", routing or ROUTING)
        return storage_root / config_dir

    return _factory


@pytest.fixture
def router(gateway: StorageGateway, write_hindex: Callable[..., Path]) -> HindexRouter:
    """Provide a HindexRouter over the default test configuration."""
    write_hindex()
    return HindexRouter(gateway)


@pytest.fixture
def service(storage_root: Path, write_hindex: Callable[..., Path]) -> HcmService:
    """Provide a fully wired HcmService over the temp storage root."""
    write_hindex()
    return HcmService.from_config(
        StoreConfig(storage_root=storage_root, journal_tail_limit=5, read_workers=2)
    )


@pytest.fixture
def put_json(storage_root: Path) -> Callable[[str, Any], Path]:
    """Factory fixture: write a raw JSON file under the storage root."""

    def _put(rel_path: str, data: Any) -> Path:
        return write_json(storage_root, rel_path, data)

    return _put


@pytest.fixture
def chat(gateway: StorageGateway) -> ChatStore:
    return ChatStore(gateway)
