"""
Conversation Models - Canonical conversation and message records.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class MessageRole(str, Enum):
    """Speaker of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class ToolCallRecord(BaseModel):
    """Tool call made by the assistant inside a message."""

    tool: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    result: Any = None


class Message(BaseModel):
    """Single message in a canonical conversation."""

    id: str  # provider-native id, or "h:<hash>" derived from timestamp + content
    role: MessageRole
    content: str
    timestamp: datetime
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)


class Conversation(BaseModel):
    """
    Canonical conversation.

    ``id`` is namespaced as ``"{provider_id}:{external_id}"`` so the same
    provider conversation always maps to the same record.
    """

    id: str
    provider_id: str
    external_id: str
    title: str = ""
    subject: str | None = None
    created_at: datetime
    updated_at: datetime
    messages: list[Message] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_message_order(self) -> Conversation:
        """Message timestamps must be non-decreasing."""
        for previous, current in zip(self.messages, self.messages[1:]):
            if current.timestamp < previous.timestamp:
                raise ValueError(
                    f"message {current.id} is older than the message before it"
                )
        return self

    @property
    def message_count(self) -> int:
        return len(self.messages)


class ExtractionMetadata(BaseModel):
    """Summary of one normalized extraction batch."""

    provider: str
    extraction_method: str = "unknown"
    total_conversations: int = 0
    extraction_timestamp: datetime


class ConversationError(BaseModel):
    """Per-conversation normalization failure."""

    index: int
    external_id: str | None = None
    code: str = "MALFORMED_PAYLOAD"
    field: str
    message: str


class ExtractionOutput(BaseModel):
    """Normalized batch: successes and per-conversation errors side by side."""

    conversations: list[Conversation] = Field(default_factory=list)
    errors: list[ConversationError] = Field(default_factory=list)
    metadata: ExtractionMetadata

    @property
    def message_count(self) -> int:
        return sum(c.message_count for c in self.conversations)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class ConversationFilters(BaseModel):
    """Listing filters for the conversation store."""

    subject: str | None = None  # case-insensitive substring
    provider: str | None = None  # exact, case-insensitive
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=200)


class ConversationPage(BaseModel):
    """One page of conversations."""

    conversations: list[Conversation] = Field(default_factory=list)
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
