"""Root-anchored storage gateway — the only component that touches the disk.

Every path handed to the gateway is relative to a fixed storage root.
Resolution normalizes the path and rejects anything that lands outside the
root *before* any filesystem call is made.  Writes are atomic per file
(temporary sibling + ``os.replace``), appends add one JSON line, and all
OS-level failures are translated into the ``hcmstore.core.errors`` taxonomy
here and nowhere else.

Layout conventions (relative to the root)::

    state/missions/<mission_id>/...
    domain/projects/<project_id>/profile/...
    domain/spaces/<space_id>/workspaces/<workspace_id>/docs/<doc_id>/...
    hindex/{classification,scopes,routing}.json
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from hcmstore.core.errors import (
    AccessDeniedError,
    HcmError,
    InvalidPayloadError,
    NotFoundError,
    StorageIOError,
)

logger = logging.getLogger(__name__)


def _map_os_error(exc: OSError, rel_path: str) -> HcmError:
    """Translate an ``OSError`` into the error taxonomy."""
    details = {"path": rel_path, "errno": exc.errno, "original_error": str(exc)}
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        return NotFoundError(f"File or directory not found: {rel_path}", details)
    if isinstance(exc, PermissionError):
        return AccessDeniedError(f"Permission denied: {rel_path}", details)
    return StorageIOError(f"Filesystem operation failed: {rel_path}", details)


def _dump_json(data: Any, rel_path: str, **kwargs: Any) -> str:
    """Serialize for disk.  Non-ASCII (lone surrogates included) is ``\\u`` escaped."""
    try:
        return json.dumps(data, ensure_ascii=True, allow_nan=False, **kwargs)
    except (TypeError, ValueError) as exc:
        raise InvalidPayloadError(
            f"Payload is not serializable as JSON: {rel_path}",
            {"path": rel_path, "original_error": str(exc)},
        ) from exc


class StorageGateway:
    """Path-safe, atomic file primitives anchored at a storage root.

    Parameters
    ----------
    root:
        The storage root.  Resolved to an absolute path once; it does not
        need to exist yet (the first write creates it).
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(os.path.realpath(os.path.abspath(root)))

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Path resolution
    # ------------------------------------------------------------------

    def resolve(self, rel_path: str | Path) -> Path:
        """Resolve a root-relative path, rejecting anything outside the root.

        Raises
        ------
        AccessDeniedError
            If the normalized path escapes the storage root, including via
            ``..`` segments or an absolute path.
        """
        text = str(rel_path or "")
        if "\x00" in text:
            raise AccessDeniedError(f"Path traversal attempt: {text!r}", {"path": text})
        root = str(self._root)
        resolved = os.path.normpath(os.path.join(root, text))
        try:
            common = os.path.commonpath([root, resolved])
        except ValueError:
            # Different drives on Windows.
            common = ""
        if common != root:
            raise AccessDeniedError(f"Path traversal attempt: {text}", {"path": text})
        return Path(resolved)

    def relative(self, full_path: Path) -> str:
        """Root-relative POSIX path for an absolute path inside the root."""
        return full_path.relative_to(self._root).as_posix()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_bytes(self, rel_path: str) -> bytes:
        full = self.resolve(rel_path)
        try:
            return full.read_bytes()
        except IsADirectoryError as exc:
            raise StorageIOError(
                f"Path is a directory: {rel_path}", {"path": rel_path, "original_error": str(exc)}
            ) from exc
        except OSError as exc:
            raise _map_os_error(exc, rel_path) from exc

    def read_text(self, rel_path: str) -> str:
        data = self.read_bytes(rel_path)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StorageIOError(
                f"File is not valid UTF-8: {rel_path}", {"path": rel_path, "reason": "invalid_utf8"}
            ) from exc

    def read_json(self, rel_path: str) -> Any:
        """Read and parse a JSON document.

        A missing file raises ``NotFoundError``; a file that exists but does
        not parse raises ``StorageIOError`` with ``reason="invalid_json"``.
        """
        text = self.read_text(rel_path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageIOError(
                f"Invalid JSON syntax: {rel_path}", {"path": rel_path, "reason": "invalid_json"}
            ) from exc

    def read_json_lines(self, rel_path: str, limit: int | None = None) -> list[Any]:
        """Read a newline-delimited JSON file.

        Blank and unparsable lines are skipped.  When ``limit`` is positive
        only the last ``limit`` records are returned.  A missing file yields
        an empty list.
        """
        try:
            text = self.read_text(rel_path)
        except NotFoundError:
            return []
        records: list[Any] = []
        for line in text.splitlines():
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("Skipping unparsable line in %s", rel_path)
        if limit and limit > 0:
            return records[-limit:]
        return records

    def exists(self, rel_path: str) -> bool:
        """Whether the path exists.  Escaping paths still raise ``AccessDeniedError``."""
        full = self.resolve(rel_path)
        try:
            return full.exists()
        except OSError:
            return False

    def list_files_recursive(self, rel_dir: str) -> list[str]:
        """Root-relative paths of every file under ``rel_dir``.

        A missing directory yields an empty list rather than an error.
        """
        full = self.resolve(rel_dir)
        results: list[str] = []
        try:
            entries = sorted(os.scandir(full), key=lambda e: e.name)
        except (FileNotFoundError, NotADirectoryError):
            return []
        except OSError as exc:
            raise _map_os_error(exc, rel_dir) from exc
        for entry in entries:
            entry_path = Path(entry.path)
            if entry.is_dir(follow_symlinks=False):
                results.extend(self.list_files_recursive(self.relative(entry_path)))
            else:
                results.append(self.relative(entry_path))
        return results

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def ensure_dir(self, rel_dir: str) -> None:
        """``mkdir -p`` for a root-relative directory."""
        full = self.resolve(rel_dir)
        try:
            full.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise _map_os_error(exc, rel_dir) from exc

    def write_bytes_atomic(self, rel_path: str, data: bytes) -> None:
        """Write ``data`` to a temporary sibling, then rename over the target."""
        full = self.resolve(rel_path)
        tmp = full.with_name(f"{full.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, full)
        except OSError as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove temporary file %s", tmp)
            raise _map_os_error(exc, rel_path) from exc

    def write_json_atomic(self, rel_path: str, data: Any) -> None:
        text = _dump_json(data, rel_path, indent=2)
        self.write_bytes_atomic(rel_path, text.encode("utf-8"))

    def append_json_line(self, rel_path: str, data: Any) -> None:
        """Append one compact JSON record followed by a newline."""
        full = self.resolve(rel_path)
        line = _dump_json(data, rel_path, separators=(",", ":")) + "\n"
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            with full.open("a", encoding="utf-8") as fh:
                fh.write(line)
        except OSError as exc:
            raise _map_os_error(exc, rel_path) from exc
