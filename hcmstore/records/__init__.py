"""Versioned record kinds built on ``VersionedRecordEngine``, plus spaces."""

from hcmstore.records.contracts import ContractKind, ContractStore
from hcmstore.records.documents import DocumentKind, DocumentStore
from hcmstore.records.profiles import ProjectProfileKind, ProjectProfileStore
from hcmstore.records.spaces import SpaceDirectory, SpaceMeta, WorkspaceMeta

__all__ = [
    "ContractKind",
    "ContractStore",
    "DocumentKind",
    "DocumentStore",
    "ProjectProfileKind",
    "ProjectProfileStore",
    "SpaceDirectory",
    "SpaceMeta",
    "WorkspaceMeta",
]
