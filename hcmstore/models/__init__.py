"""hcmstore data models — all Pydantic v2, frozen where they are values."""

from hcmstore.models.artifacts import ArtifactBundle, ArtifactReceipt
from hcmstore.models.chat import ChatMessageInput, ChatRole, MessageReceipt, ThreadReceipt
from hcmstore.models.hindex import (
    ClassificationConfig,
    ClassificationRule,
    RoutingConfig,
    Scope,
    ScopeConfig,
    SearchHit,
    SearchResult,
)
from hcmstore.models.missions import (
    ActionStatus,
    EntryType,
    EvidenceInput,
    JournalEntry,
    MissionContext,
    NextActionUpdate,
)
from hcmstore.models.packs import PackIndex, PackIndexEntry, PackReceipt
from hcmstore.models.records import CallerType, CreatedBy, RecordSummary, VersionMeta

__all__ = [
    # records
    "CallerType",
    "CreatedBy",
    "VersionMeta",
    "RecordSummary",
    # packs
    "PackReceipt",
    "PackIndexEntry",
    "PackIndex",
    # artifacts
    "ArtifactReceipt",
    "ArtifactBundle",
    # hindex
    "ClassificationRule",
    "ClassificationConfig",
    "Scope",
    "ScopeConfig",
    "RoutingConfig",
    "SearchHit",
    "SearchResult",
    # missions
    "EntryType",
    "ActionStatus",
    "JournalEntry",
    "EvidenceInput",
    "NextActionUpdate",
    "MissionContext",
    # chat
    "ChatRole",
    "ChatMessageInput",
    "ThreadReceipt",
    "MessageReceipt",
]
