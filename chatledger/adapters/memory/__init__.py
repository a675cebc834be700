"""
Memory Adapter - Process-local conversation store.
"""

from .store import InMemoryConversationStore

__all__ = ["InMemoryConversationStore"]
