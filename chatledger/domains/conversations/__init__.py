"""
Conversations Domain - Canonical records and the Result Normalizer.

This domain handles:
- Canonical conversation and message models
- Normalizing provider payloads (aliases, ordering, dedupe)
- Merging re-extracted conversations
"""

from .contracts import ConversationStore, PayloadNormalizer
from .models import (
    Conversation,
    ConversationError,
    ConversationFilters,
    ConversationPage,
    ExtractionMetadata,
    ExtractionOutput,
    Message,
    MessageRole,
    ToolCallRecord,
)
from .normalizer import ResultNormalizer, canonical_id, merge_conversations, parse_timestamp

__all__ = [
    # Models
    "Conversation",
    "ConversationError",
    "ConversationFilters",
    "ConversationPage",
    "ExtractionMetadata",
    "ExtractionOutput",
    "Message",
    "MessageRole",
    "ToolCallRecord",
    # Contracts
    "ConversationStore",
    "PayloadNormalizer",
    # Implementations
    "ResultNormalizer",
    "canonical_id",
    "merge_conversations",
    "parse_timestamp",
]
