"""
SQLite Conversation Store - Durable storage for canonical conversations.

Features:
- Async operations via aiosqlite
- Idempotent upserts (messages merged by id)
- Subject/provider filtering with pagination
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from chatledger.config.errors import StorageError
from chatledger.domains.conversations import (
    Conversation,
    ConversationFilters,
    ConversationPage,
    merge_conversations,
)

logger = logging.getLogger(__name__)

__all__ = ["SQLiteConversationStore"]


class SQLiteConversationStore:
    """
    SQLite store for canonical conversations.

    Example:
        >>> store = SQLiteConversationStore("data/chatledger.db")
        >>> await store.initialize()
        >>> await store.upsert_conversation(conversation)
        >>> page = await store.list_conversations(ConversationFilters(subject="billing"))
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._init_lock = asyncio.Lock()
        self._initialized = False

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._initialized and self._connection is not None:
            return self._connection
        async with self._init_lock:
            if self._connection is None:
                self._connection = await aiosqlite.connect(str(self.db_path))
                self._connection.row_factory = aiosqlite.Row
            if not self._initialized:
                await self._create_schema(self._connection)
                self._initialized = True
            return self._connection

    async def initialize(self) -> None:
        """Initialize database schema."""
        await self._get_connection()

    async def _create_schema(self, conn: aiosqlite.Connection) -> None:
        await conn.executescript("""
            CREATE TABLE IF NOT EXISTS conversations (
                id TEXT PRIMARY KEY,
                provider_id TEXT NOT NULL,
                external_id TEXT NOT NULL,
                title TEXT,
                subject TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                message_count INTEGER NOT NULL DEFAULT 0,
                data TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_conversations_provider ON conversations(provider_id);
            CREATE INDEX IF NOT EXISTS idx_conversations_subject ON conversations(subject);
            CREATE INDEX IF NOT EXISTS idx_conversations_updated ON conversations(updated_at);
        """)
        await conn.commit()
        logger.info("Database initialized: %s", self.db_path)

    @staticmethod
    def _row_to_conversation(row: aiosqlite.Row) -> Conversation:
        return Conversation.model_validate(json.loads(row["data"]))

    async def upsert_conversation(self, conversation: Conversation) -> Conversation:
        """
        Insert or merge a conversation.

        Raises:
            StorageError: Database write failed
        """
        conn = await self._get_connection()

        async with self._write_lock:
            try:
                cursor = await conn.execute(
                    "SELECT data FROM conversations WHERE id = ?", (conversation.id,)
                )
                row = await cursor.fetchone()
                stored = conversation
                if row:
                    stored = merge_conversations(self._row_to_conversation(row), conversation)

                await conn.execute(
                    """
                    INSERT INTO conversations
                    (id, provider_id, external_id, title, subject, created_at, updated_at,
                     message_count, data)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        title = excluded.title,
                        subject = excluded.subject,
                        created_at = excluded.created_at,
                        updated_at = excluded.updated_at,
                        message_count = excluded.message_count,
                        data = excluded.data
                    """,
                    (
                        stored.id,
                        stored.provider_id,
                        stored.external_id,
                        stored.title,
                        stored.subject,
                        stored.created_at.isoformat(),
                        stored.updated_at.isoformat(),
                        stored.message_count,
                        stored.model_dump_json(),
                    ),
                )
                await conn.commit()
            except aiosqlite.Error as e:
                logger.error("Failed to store conversation %s: %s", conversation.id, e)
                raise StorageError(
                    f"Failed to store conversation {conversation.id}",
                    {"conversation_id": conversation.id, "error": str(e)},
                ) from e

        return stored

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get conversation by canonical ID."""
        conn = await self._get_connection()

        cursor = await conn.execute(
            "SELECT data FROM conversations WHERE id = ?", (conversation_id,)
        )
        row = await cursor.fetchone()

        if row:
            return self._row_to_conversation(row)
        return None

    async def list_conversations(self, filters: ConversationFilters) -> ConversationPage:
        """
        List conversations, most recently updated first.

        Args:
            filters: Subject substring / provider filters and paging

        Returns:
            One page of conversations with the total match count
        """
        conn = await self._get_connection()

        clauses: list[str] = []
        params: list[Any] = []
        if filters.provider:
            clauses.append("LOWER(provider_id) = LOWER(?)")
            params.append(filters.provider)
        if filters.subject:
            clauses.append("LOWER(subject) LIKE ?")
            params.append(f"%{filters.subject.lower()}%")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        cursor = await conn.execute(f"SELECT COUNT(*) FROM conversations {where}", params)
        row = await cursor.fetchone()
        total = row[0] if row else 0

        cursor = await conn.execute(
            f"""
            SELECT data FROM conversations {where}
            ORDER BY updated_at DESC
            LIMIT ? OFFSET ?
            """,
            [*params, filters.limit, (filters.page - 1) * filters.limit],
        )
        rows = await cursor.fetchall()

        return ConversationPage(
            conversations=[self._row_to_conversation(r) for r in rows],
            page=filters.page,
            limit=filters.limit,
            total=total,
        )

    async def list_subjects(self) -> list[str]:
        """Distinct non-empty subjects."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT DISTINCT subject FROM conversations "
            "WHERE subject IS NOT NULL AND subject != '' ORDER BY subject"
        )
        return [row[0] for row in await cursor.fetchall()]

    async def list_providers(self) -> list[str]:
        """Distinct provider IDs."""
        conn = await self._get_connection()
        cursor = await conn.execute(
            "SELECT DISTINCT provider_id FROM conversations ORDER BY provider_id"
        )
        return [row[0] for row in await cursor.fetchall()]

    async def count(self) -> int:
        """Get total conversation count."""
        conn = await self._get_connection()
        cursor = await conn.execute("SELECT COUNT(*) FROM conversations")
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            self._initialized = False
