"""
In-Memory Conversation Store - Default store for demos, tests and the CLI.
"""

from __future__ import annotations

import asyncio
import logging

from chatledger.domains.conversations import (
    Conversation,
    ConversationFilters,
    ConversationPage,
    merge_conversations,
)

logger = logging.getLogger(__name__)

__all__ = ["InMemoryConversationStore", "matches_filters"]


def matches_filters(conversation: Conversation, filters: ConversationFilters) -> bool:
    """Subject is a case-insensitive substring match, provider is exact."""
    if filters.provider and conversation.provider_id.lower() != filters.provider.lower():
        return False
    if filters.subject:
        if not conversation.subject or filters.subject.lower() not in conversation.subject.lower():
            return False
    return True


class InMemoryConversationStore:
    """
    Dict-backed conversation store.

    Example:
        >>> store = InMemoryConversationStore()
        >>> await store.upsert_conversation(conversation)
        >>> page = await store.list_conversations(ConversationFilters(provider="claude"))
    """

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._lock = asyncio.Lock()

    async def upsert_conversation(self, conversation: Conversation) -> Conversation:
        async with self._lock:
            existing = self._conversations.get(conversation.id)
            stored = merge_conversations(existing, conversation) if existing else conversation
            self._conversations[conversation.id] = stored
        logger.debug("Stored conversation %s (%d messages)", stored.id, stored.message_count)
        return stored

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    async def list_conversations(self, filters: ConversationFilters) -> ConversationPage:
        matching = [c for c in self._conversations.values() if matches_filters(c, filters)]
        matching.sort(key=lambda c: c.updated_at, reverse=True)

        start = (filters.page - 1) * filters.limit
        return ConversationPage(
            conversations=matching[start : start + filters.limit],
            page=filters.page,
            limit=filters.limit,
            total=len(matching),
        )

    async def list_subjects(self) -> list[str]:
        return sorted({c.subject for c in self._conversations.values() if c.subject})

    async def list_providers(self) -> list[str]:
        return sorted({c.provider_id for c in self._conversations.values()})

    async def count(self) -> int:
        return len(self._conversations)

    async def close(self) -> None:
        """Nothing to release."""
