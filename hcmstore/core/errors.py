"""Closed error taxonomy for the storage core.

Every failure raised by hcmstore is an ``HcmError`` carrying a kind, a
human-readable message and optional structured details.  The storage
gateway is the only place where OS-level exceptions are translated into
this taxonomy; engines add domain detail (expected/current hashes) but
never retry.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """The fixed set of failure categories."""

    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    CONFLICTING_UPDATE = "conflicting_update"
    INVALID_PAYLOAD = "invalid_payload"
    IO_FAILURE = "io_failure"
    INTERNAL = "internal"


# Wire codes used by the service layer that consumes the core.
ERROR_CODES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "MISSION_NOT_FOUND",
    ErrorKind.ACCESS_DENIED: "ACCESS_DENIED",
    ErrorKind.CONFLICTING_UPDATE: "CONFLICTING_UPDATE",
    ErrorKind.INVALID_PAYLOAD: "INVALID_PAYLOAD",
    ErrorKind.IO_FAILURE: "IO_ERROR",
    ErrorKind.INTERNAL: "INTERNAL_ERROR",
}


class HcmError(RuntimeError):
    """Base class for every error raised by the storage core.

    Parameters
    ----------
    message:
        Human-readable description.
    details:
        Optional structured context (hashes, paths, ids).
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    @property
    def code(self) -> str:
        return ERROR_CODES[self.kind]

    def to_dict(self) -> dict[str, Any]:
        """Render as the ``{code, message, details}`` error object."""
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


class NotFoundError(HcmError):
    """The addressed record, file or directory does not exist."""

    kind = ErrorKind.NOT_FOUND


class AccessDeniedError(HcmError):
    """Path escapes the storage root, or the OS denied permission."""

    kind = ErrorKind.ACCESS_DENIED


class ConflictError(HcmError):
    """Optimistic-concurrency mismatch or immutable-id reuse with new content."""

    kind = ErrorKind.CONFLICTING_UPDATE


class InvalidPayloadError(HcmError):
    """Malformed identity, non-JSON content or missing required fields."""

    kind = ErrorKind.INVALID_PAYLOAD


class StorageIOError(HcmError):
    """Any other filesystem failure, including unparsable JSON on read."""

    kind = ErrorKind.IO_FAILURE


class InternalError(HcmError):
    """Startup configuration failure or an unclassified exception."""

    kind = ErrorKind.INTERNAL
