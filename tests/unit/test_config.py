"""Tests for StoreConfig — env-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from hcmstore.config import StoreConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate from any HCM_* variables or .env file on the host."""
    for name in (
        "HCM_LOG_LEVEL",
        "HCM_STORAGE_ROOT",
        "HCM_HINDEX_DIR",
        "HCM_DEFAULT_CLASSIFICATION",
        "HCM_DEFAULT_ROUTING_MODE",
        "HCM_JOURNAL_TAIL_LIMIT",
        "HCM_READ_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestStoreConfig:
    def test_defaults(self):
        config = StoreConfig()
        assert config.log_level == "INFO"
        assert config.storage_root == Path(".hcm")
        assert config.hindex_dir == "hindex"
        assert config.default_classification == "domain_knowledge"
        assert config.default_routing_mode == "vector"
        assert config.journal_tail_limit == 50
        assert config.read_workers == 4

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("HCM_STORAGE_ROOT", "/srv/hcm")
        monkeypatch.setenv("HCM_READ_WORKERS", "8")
        config = StoreConfig()
        assert config.storage_root == Path("/srv/hcm")
        assert config.read_workers == 8

    def test_dotenv_file(self, tmp_path: Path):
        (tmp_path / ".env").write_text("HCM_DEFAULT_ROUTING_MODE=keyword\n", encoding="utf-8")
        assert StoreConfig().default_routing_mode == "keyword"

    def test_init_kwargs_beat_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("HCM_HINDEX_DIR", "from-env")
        assert StoreConfig(hindex_dir="explicit").hindex_dir == "explicit"
