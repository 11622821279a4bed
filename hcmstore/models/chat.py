"""Mission chat models (threads and hashed messages)."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessageInput(BaseModel):
    """A message as submitted; extra caller fields are kept on the stored line."""

    model_config = ConfigDict(frozen=True, use_enum_values=True, extra="allow")

    role: ChatRole
    content: str


class ThreadReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    thread_id: str


class MessageReceipt(BaseModel):
    """Result of ``append_message``: the new id and its content hash (raw hex)."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    hash: str
