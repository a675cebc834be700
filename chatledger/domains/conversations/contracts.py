"""
Conversation Contracts - Interfaces for conversation storage and normalization.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import Conversation, ConversationFilters, ConversationPage, ExtractionOutput


@runtime_checkable
class ConversationStore(Protocol):
    """
    Contract for the external conversation store.

    Upserts are idempotent: storing the same provider conversation twice
    leaves exactly one record, with messages merged.
    """

    async def upsert_conversation(self, conversation: Conversation) -> Conversation:
        """
        Insert or merge a conversation.

        Args:
            conversation: Canonical conversation

        Returns:
            The stored (possibly merged) conversation
        """
        ...

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by canonical id."""
        ...

    async def list_conversations(self, filters: ConversationFilters) -> ConversationPage:
        """List conversations filtered by subject and/or provider."""
        ...

    async def list_subjects(self) -> list[str]:
        """Distinct subjects."""
        ...

    async def list_providers(self) -> list[str]:
        """Distinct provider ids."""
        ...


@runtime_checkable
class PayloadNormalizer(Protocol):
    """Contract for turning raw provider payloads into canonical records."""

    def normalize(self, provider_id: str, payload: dict[str, Any]) -> ExtractionOutput:
        """
        Normalize a provider payload.

        Args:
            provider_id: Provider the payload came from
            payload: Raw executor payload

        Returns:
            Canonical conversations plus per-conversation errors
        """
        ...
