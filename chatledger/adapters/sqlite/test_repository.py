"""Tests for SQLite Conversation Store."""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from chatledger.domains.conversations import Conversation, ConversationFilters, Message

from . import repository
from .repository import SQLiteConversationStore

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_conversation(
    provider: str = "claude",
    external_id: str = "conv_1",
    subject: str | None = "Billing migration",
    message_ids: tuple[str, ...] = ("m1", "m2"),
    offset_minutes: int = 0,
) -> Conversation:
    messages = [
        Message(
            id=mid,
            role="user" if i % 2 == 0 else "assistant",
            content=f"message {mid}",
            timestamp=T0 + timedelta(minutes=offset_minutes + i),
        )
        for i, mid in enumerate(message_ids)
    ]
    return Conversation(
        id=f"{provider}:{external_id}",
        provider_id=provider,
        external_id=external_id,
        title=f"Conversation {external_id}",
        subject=subject,
        created_at=T0,
        updated_at=messages[-1].timestamp if messages else T0,
        messages=messages,
    )


@pytest.fixture
async def store(tmp_path: Path):
    """Create a test store with temporary database."""
    db_path = tmp_path / "test.db"
    store = SQLiteConversationStore(db_path)
    await store.initialize()
    yield store
    await store.close()


async def test_initialize_creates_tables(store: SQLiteConversationStore):
    """Test that initialize creates the conversations table."""
    conn = await store._get_connection()
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    tables = {row[0] for row in await cursor.fetchall()}

    assert "conversations" in tables


async def test_upsert_and_get_conversation(store: SQLiteConversationStore):
    """Test storing and retrieving a conversation."""
    await store.upsert_conversation(make_conversation())

    conversation = await store.get_conversation("claude:conv_1")
    assert conversation is not None
    assert conversation.subject == "Billing migration"
    assert [m.id for m in conversation.messages] == ["m1", "m2"]
    assert conversation.messages[0].timestamp == T0


async def test_upsert_is_idempotent(store: SQLiteConversationStore):
    """Storing the same conversation twice leaves one record."""
    await store.upsert_conversation(make_conversation())
    await store.upsert_conversation(make_conversation())

    assert await store.count() == 1
    conversation = await store.get_conversation("claude:conv_1")
    assert conversation.message_count == 2


async def test_upsert_merges_new_messages(store: SQLiteConversationStore):
    """Re-extraction with new messages extends the stored record."""
    await store.upsert_conversation(make_conversation(message_ids=("m1", "m2")))
    stored = await store.upsert_conversation(
        make_conversation(message_ids=("m2", "m3"), offset_minutes=1)
    )

    assert [m.id for m in stored.messages] == ["m1", "m2", "m3"]
    fetched = await store.get_conversation("claude:conv_1")
    assert fetched.message_count == 3


async def test_list_conversations_filters(store: SQLiteConversationStore):
    """Test subject substring and provider filters."""
    await store.upsert_conversation(make_conversation())
    await store.upsert_conversation(
        make_conversation(provider="chatgpt", external_id="c2", subject="Travel plans")
    )
    await store.upsert_conversation(
        make_conversation(provider="chatgpt", external_id="c3", subject=None)
    )

    page = await store.list_conversations(ConversationFilters(subject="billing"))
    assert page.total == 1
    assert page.conversations[0].id == "claude:conv_1"

    page = await store.list_conversations(ConversationFilters(provider="ChatGPT"))
    assert page.total == 2
    assert {c.provider_id for c in page.conversations} == {"chatgpt"}


async def test_list_conversations_paginates(store: SQLiteConversationStore):
    """Test page/limit handling."""
    for i in range(5):
        await store.upsert_conversation(make_conversation(external_id=f"c{i}"))

    page = await store.list_conversations(ConversationFilters(page=2, limit=2))
    assert page.total == 5
    assert len(page.conversations) == 2
    assert page.total_pages == 3


async def test_subjects_and_providers(store: SQLiteConversationStore):
    """Test distinct subject and provider listings."""
    await store.upsert_conversation(make_conversation())
    await store.upsert_conversation(
        make_conversation(provider="chatgpt", external_id="c2", subject="Travel plans")
    )
    await store.upsert_conversation(
        make_conversation(provider="chatgpt", external_id="c3", subject=None)
    )

    assert await store.list_subjects() == ["Billing migration", "Travel plans"]
    assert await store.list_providers() == ["chatgpt", "claude"]


async def test_get_missing_conversation(store: SQLiteConversationStore):
    """Test that a missing conversation returns None."""
    assert await store.get_conversation("claude:nope") is None


async def test_concurrent_first_use_initializes_once(tmp_path: Path, monkeypatch):
    """Test racing first calls share one connection and see the schema."""
    connect = repository.aiosqlite.connect
    opened = []

    def counting_connect(*args, **kwargs):
        opened.append(args)
        return connect(*args, **kwargs)

    monkeypatch.setattr(repository.aiosqlite, "connect", counting_connect)
    store = SQLiteConversationStore(tmp_path / "race.db")
    try:
        _, total, subjects = await asyncio.gather(
            store.upsert_conversation(make_conversation()),
            store.count(),
            store.list_subjects(),
        )
    finally:
        await store.close()

    assert len(opened) == 1
    assert total in (0, 1)
    assert subjects in ([], ["Billing migration"])
