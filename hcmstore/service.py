"""Service facade — wires the storage engines around one gateway.

``StoreContext`` is the dependency bundle every engine is built from (the
gateway plus the lazily loaded hindex router).  ``HcmService`` owns one
instance of each engine and is what the CLI and embedding applications
talk to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar

from hcmstore.config import StoreConfig
from hcmstore.core.blob_store import BlobStore
from hcmstore.core.errors import HcmError, InternalError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.pack_store import PackStore
from hcmstore.hindex.memory import MemoryQuery
from hcmstore.hindex.router import HindexRouter
from hcmstore.missions.chat import ChatStore
from hcmstore.missions.store import MissionStore
from hcmstore.records.contracts import ContractStore
from hcmstore.records.documents import DocumentStore
from hcmstore.records.profiles import ProjectProfileStore
from hcmstore.records.spaces import SpaceDirectory

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StoreContext:
    """Shared dependencies for the engines."""

    gateway: StorageGateway
    router: HindexRouter

    @classmethod
    def from_config(cls, config: StoreConfig) -> StoreContext:
        gateway = StorageGateway(config.storage_root)
        router = HindexRouter(
            gateway,
            config_dir=config.hindex_dir,
            default_classification=config.default_classification,
            default_routing_mode=config.default_routing_mode,
        )
        return cls(gateway=gateway, router=router)


class HcmService:
    """One instance of every engine over a shared storage root.

    Parameters
    ----------
    context:
        Gateway and router shared by the engines.
    config:
        Settings for the mission store.  Uses defaults if not provided.
    """

    def __init__(self, context: StoreContext, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        self.context = context

        self.contracts = ContractStore(context.gateway)
        self.documents = DocumentStore(context.gateway)
        self.profiles = ProjectProfileStore(context.gateway)
        self.packs = PackStore(context.gateway)
        self.artifacts = BlobStore(context.gateway)
        self.router = context.router
        self.memory = MemoryQuery(context.router)
        self.missions = MissionStore(
            context.gateway,
            journal_tail_limit=self._config.journal_tail_limit,
            read_workers=self._config.read_workers,
        )
        self.chat = ChatStore(context.gateway)
        self.spaces = SpaceDirectory(context.gateway, context.router)

    @classmethod
    def from_config(cls, config: StoreConfig | None = None) -> HcmService:
        config = config or StoreConfig()
        return cls(StoreContext.from_config(config), config)

    @classmethod
    def at(cls, storage_root: Path | str) -> HcmService:
        """Service over ``storage_root`` with every other setting at its default."""
        return cls.from_config(StoreConfig(storage_root=Path(storage_root)))

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def gateway(self) -> StorageGateway:
        return self.context.gateway

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Invoke an engine operation, normalizing failures to ``HcmError``.

        Errors already in the taxonomy propagate unchanged; anything else
        is logged and re-raised as ``InternalError``.
        """
        try:
            return fn(*args, **kwargs)
        except HcmError:
            raise
        except Exception as exc:
            name = getattr(fn, "__qualname__", repr(fn))
            logger.exception("Unexpected failure in %s", name)
            raise InternalError(
                f"Unexpected failure in {name}",
                {"error_type": type(exc).__name__, "original_error": str(exc)},
            ) from exc
