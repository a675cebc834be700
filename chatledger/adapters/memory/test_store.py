"""Tests for the in-memory conversation store."""

from datetime import datetime, timedelta, timezone

from chatledger.domains.conversations import Conversation, ConversationFilters, Message

from .store import InMemoryConversationStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def conversation(provider: str, external_id: str, subject: str | None, *ids: str) -> Conversation:
    messages = [
        Message(id=mid, role="user", content=mid, timestamp=T0 + timedelta(seconds=i))
        for i, mid in enumerate(ids)
    ]
    return Conversation(
        id=f"{provider}:{external_id}",
        provider_id=provider,
        external_id=external_id,
        subject=subject,
        created_at=T0,
        updated_at=T0 + timedelta(seconds=len(ids)),
        messages=messages,
    )


class TestInMemoryConversationStore:
    """Tests for InMemoryConversationStore."""

    async def test_upsert_merges_by_id(self):
        store = InMemoryConversationStore()
        await store.upsert_conversation(conversation("claude", "a", "Rust", "m1"))
        stored = await store.upsert_conversation(conversation("claude", "a", "Rust", "m1", "m2"))

        assert await store.count() == 1
        assert [m.id for m in stored.messages] == ["m1", "m2"]

    async def test_filters_and_listings(self):
        store = InMemoryConversationStore()
        await store.upsert_conversation(conversation("claude", "a", "Rust async", "m1"))
        await store.upsert_conversation(conversation("chatgpt", "b", "Recipes", "m1"))

        page = await store.list_conversations(ConversationFilters(subject="RUST"))
        assert [c.id for c in page.conversations] == ["claude:a"]

        page = await store.list_conversations(ConversationFilters(provider="chatgpt"))
        assert page.total == 1

        assert await store.list_subjects() == ["Recipes", "Rust async"]
        assert await store.list_providers() == ["chatgpt", "claude"]

    async def test_get_missing(self):
        store = InMemoryConversationStore()
        assert await store.get_conversation("claude:none") is None
