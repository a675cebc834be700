"""
Adapters - External service integrations.

All external I/O (conversation storage, webhook delivery, provider executors)
is wrapped here to isolate domains from third-party changes.
"""

from .fixtures import FixtureExecutor, FixtureVerifier, build_fixture_registry
from .memory import InMemoryConversationStore
from .sqlite import SQLiteConversationStore
from .webhook import HttpxWebhookSink

__all__ = [
    "FixtureExecutor",
    "FixtureVerifier",
    "build_fixture_registry",
    "InMemoryConversationStore",
    "SQLiteConversationStore",
    "HttpxWebhookSink",
]
