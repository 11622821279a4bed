"""Mission working-state models (journal, evidence, next actions, context)."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hcmstore.models.records import CallerType


class EntryType(str, Enum):
    EVENT = "event"
    NOTE = "note"
    ANALYSIS = "analysis"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class ActionStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"


class JournalEntry(BaseModel):
    """One line of ``journal.jsonl``; ``timestamp`` is stamped when absent."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    timestamp: str | None = None
    author_type: CallerType = CallerType.SYSTEM
    author_id: str
    entry_type: EntryType = EntryType.NOTE
    message: str
    context: dict[str, Any] | None = None


class EvidenceInput(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True, extra="allow")

    type: str
    title: str
    content: Any = None
    confidence: str | None = None


class NextActionUpdate(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    action_id: str | None = None
    title: str
    status: ActionStatus = ActionStatus.TODO
    owner_id: str | None = None


class MissionContext(BaseModel):
    """Composite read of a mission's working state."""

    model_config = ConfigDict(frozen=True)

    mission_id: str
    meta: dict[str, Any]
    status: dict[str, Any] = Field(default_factory=dict)
    journal_tail: list[dict[str, Any]] = Field(default_factory=list)
    decisions: list[dict[str, Any]] = Field(default_factory=list)
    next_actions: list[dict[str, Any]] = Field(default_factory=list)
