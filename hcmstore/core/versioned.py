"""Generic content-addressed versioning with optimistic concurrency.

One engine serves every versioned record kind (contracts, enterprise
documents, project profiles).  A ``RecordKind`` strategy supplies the path
builder, the identity fields and the content normalization; the engine owns
the algorithm:

    hash(identity + content)
        -> replay?   re-point latest, return the stored version
        -> CAS check against latest (only when the caller supplied a base)
        -> write versions/<hex>.json, then atomically overwrite latest.json

Storage layout per identity::

    <base>/latest.json             — mutable pointer (copy of the head)
    <base>/versions/<hex>.json     — immutable, keyed by content hash

There is no lock around read-check-write: two concurrent
writers can both pass the check and the pointer ends up with whichever
rename lands last.  Each version file is still intact and addressable.
"""

from __future__ import annotations

import abc
import logging
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping

from hcmstore.core.errors import ConflictError, HcmError, InvalidPayloadError
from hcmstore.core.gateway import StorageGateway
from hcmstore.core.hasher import format_sha256, hash_value, strip_sha256
from hcmstore.core.ids import normalize_id, utc_now_iso
from hcmstore.models.records import CreatedBy, VersionMeta

logger = logging.getLogger(__name__)

_HEX = re.compile(r"^[0-9a-f]{64}$")


class _Unset:
    """Marker for an omitted ``expected_base_hash`` (distinct from ``None``)."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class RecordPaths:
    """Root-relative locations of a record's pointer and history."""

    base: str
    latest: str
    versions_dir: str

    @classmethod
    def under(cls, base: str) -> RecordPaths:
        return cls(base=base, latest=f"{base}/latest.json", versions_dir=f"{base}/versions")

    def version(self, hex_digest: str) -> str:
        return f"{self.versions_dir}/{hex_digest}.json"


class RecordKind(abc.ABC):
    """Strategy describing one kind of versioned record.

    Subclasses **must** set ``name``, ``content_field`` and
    ``identity_keys`` and implement ``paths()``.  They **may** override
    ``normalize_content()`` to canonicalize caller input before hashing.
    """

    name: ClassVar[str]
    schema_version: ClassVar[str] = "1.0"
    content_field: ClassVar[str]
    identity_keys: ClassVar[tuple[str, ...]]

    @abc.abstractmethod
    def paths(self, identity: Mapping[str, str]) -> RecordPaths:
        """Build the storage paths for a validated identity."""
        ...

    def normalize_identity(self, identity: Mapping[str, Any]) -> dict[str, str]:
        """Validate every identity field as a safe slug (before any I/O)."""
        if not isinstance(identity, Mapping):
            raise InvalidPayloadError(f"{self.name} identity must be an object")
        return {key: normalize_id(identity.get(key), key) for key in self.identity_keys}

    def normalize_content(self, raw: Any) -> dict[str, Any]:
        if not isinstance(raw, dict):
            raise InvalidPayloadError(
                f"{self.content_field} must be a JSON object", {"field": self.content_field}
            )
        return dict(raw)

    def hash_subject(self, identity: Mapping[str, str], content: dict[str, Any]) -> dict[str, Any]:
        """The content-defining projection that is hashed."""
        return {**identity, self.content_field: content}


class VersionedRecordEngine:
    """Latest/versions engine for one ``RecordKind``.

    Parameters
    ----------
    gateway:
        Storage gateway used for every read and write.
    kind:
        The record kind strategy.
    """

    def __init__(self, gateway: StorageGateway, kind: RecordKind) -> None:
        self._gateway = gateway
        self._kind = kind

    @property
    def kind(self) -> RecordKind:
        return self._kind

    @property
    def gateway(self) -> StorageGateway:
        return self._gateway

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _read_if_exists(self, rel_path: str) -> dict[str, Any] | None:
        if not self._gateway.exists(rel_path):
            return None
        try:
            doc = self._gateway.read_json(rel_path)
        except HcmError as exc:
            logger.warning("Unreadable %s record at %s: %s", self._kind.name, rel_path, exc)
            return None
        return doc if isinstance(doc, dict) else None

    def get_latest(self, identity: Mapping[str, Any]) -> dict[str, Any] | None:
        """Head version for ``identity``, or ``None`` if absent or unreadable."""
        ident = self._kind.normalize_identity(identity)
        return self._read_if_exists(self._kind.paths(ident).latest)

    def get_version(self, identity: Mapping[str, Any], version_hash: str) -> dict[str, Any] | None:
        """A specific immutable version (display or raw hex hash)."""
        ident = self._kind.normalize_identity(identity)
        hex_digest = strip_sha256(version_hash).lower()
        if not _HEX.match(hex_digest):
            raise InvalidPayloadError(
                "version must be a sha256 hex digest", {"version": version_hash}
            )
        return self._read_if_exists(self._kind.paths(ident).version(hex_digest))

    def list_versions(self, identity: Mapping[str, Any]) -> list[str]:
        """Display-form hashes of every stored version, sorted."""
        ident = self._kind.normalize_identity(identity)
        versions_dir = self._kind.paths(ident).versions_dir
        hashes = []
        for path in self._gateway.list_files_recursive(versions_dir):
            name = path.rsplit("/", 1)[-1]
            if name.endswith(".json") and _HEX.match(name[:-5]):
                hashes.append(format_sha256(name[:-5]))
        return sorted(hashes)

    def list_heads(self, base_dir: str, pattern: re.Pattern[str]) -> list[dict[str, Any]]:
        """Every readable ``latest.json`` under ``base_dir`` matching ``pattern``."""
        heads = []
        for path in self._gateway.list_files_recursive(base_dir):
            if not pattern.match(path):
                continue
            doc = self._read_if_exists(path)
            if doc is not None:
                heads.append(doc)
        return heads

    @staticmethod
    def current_hash(doc: Mapping[str, Any] | None) -> str | None:
        """Raw hex hash of a record's head, or ``None``."""
        if not doc:
            return None
        meta = doc.get("meta")
        if not isinstance(meta, Mapping) or not meta.get("version_hash"):
            return None
        return strip_sha256(str(meta["version_hash"])) or None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put_version(
        self,
        identity: Mapping[str, Any],
        content: Any,
        expected_base_hash: Any = UNSET,
        *,
        created_by: CreatedBy | None = None,
    ) -> dict[str, Any]:
        """Append a new immutable version and re-point latest.

        Parameters
        ----------
        identity:
            Identity fields for the record kind (validated before any I/O).
        content:
            The record content (a JSON object).
        expected_base_hash:
            Omitted: no concurrency check (last write wins).
            ``None``: the record must not exist yet.
            A hash (display or raw hex): must equal the current head.
        created_by:
            Author recorded in ``meta.created_by``.

        Raises
        ------
        InvalidPayloadError
            Bad identity or content that is not JSON-representable.
        ConflictError
            The expected base does not match the current head.
        """
        ident = self._kind.normalize_identity(identity)
        body = self._kind.normalize_content(content)
        hex_digest = hash_value(self._kind.hash_subject(ident, body))
        paths = self._kind.paths(ident)
        version_path = paths.version(hex_digest)

        latest = self._read_if_exists(paths.latest)
        current_hex = self.current_hash(latest)

        # Explicit None is create-only: it never matches an existing head,
        # not even a replay of the same content.
        if expected_base_hash is None and current_hex is not None:
            raise self._conflict(ident, None, current_hex)

        if self._gateway.exists(version_path):
            existing = self._gateway.read_json(version_path)
            self._gateway.write_json_atomic(paths.latest, existing)
            logger.debug(
                "Replayed %s version %s for %s", self._kind.name, hex_digest[:12], ident
            )
            return existing

        if expected_base_hash is not UNSET:
            expected_hex = (
                None if expected_base_hash is None else strip_sha256(str(expected_base_hash))
            )
            if expected_hex != current_hex:
                raise self._conflict(ident, expected_hex, current_hex)

        meta = VersionMeta(
            version_hash=format_sha256(hex_digest),
            created_at=utc_now_iso(),
            created_by=created_by or CreatedBy(),
            supersedes=format_sha256(current_hex) if current_hex else None,
        )
        doc: dict[str, Any] = {
            "schema_version": self._kind.schema_version,
            **ident,
            self._kind.content_field: body,
            "meta": meta.model_dump(mode="json"),
        }

        self._gateway.write_json_atomic(version_path, doc)
        self._gateway.write_json_atomic(paths.latest, doc)
        logger.info(
            "Stored %s version %s for %s (supersedes %s)",
            self._kind.name,
            hex_digest[:12],
            ident,
            meta.supersedes,
        )
        return doc

    def _conflict(
        self, ident: Mapping[str, str], expected_hex: str | None, current_hex: str | None
    ) -> ConflictError:
        logger.warning(
            "%s version conflict for %s: expected=%s current=%s",
            self._kind.name,
            ident,
            expected_hex,
            current_hex,
        )
        return ConflictError(
            f"{self._kind.name} version conflict",
            {
                "expected_base_hash": format_sha256(expected_hex) if expected_hex else None,
                "current_hash": format_sha256(current_hex) if current_hex else None,
            },
        )
