"""
SQLite Adapter - Durable conversation store.
"""

from .repository import SQLiteConversationStore

__all__ = ["SQLiteConversationStore"]
