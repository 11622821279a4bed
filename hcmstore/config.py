"""Runtime configuration — env-driven via pydantic-settings.

Reads from a ``.env`` file and ``HCM_*`` environment variables.  There is
no module-level singleton: the CLI and ``HcmService.from_config`` build a
``StoreConfig()`` when they need one.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseSettings):
    """Storage and hindex settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export HCM_STORAGE_ROOT=/srv/hcm
        export HCM_LOG_LEVEL=DEBUG
        export HCM_READ_WORKERS=8

    Or via .env file::

        HCM_JOURNAL_TAIL_LIMIT=100
        HCM_HINDEX_DIR=hindex
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="HCM_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # Storage
    storage_root: Path = Path(".hcm")

    # Hindex router
    hindex_dir: str = "hindex"
    default_classification: str = "domain_knowledge"
    default_routing_mode: str = "vector"

    # Missions
    journal_tail_limit: int = 50
    read_workers: int = 4
