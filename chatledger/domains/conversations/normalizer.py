"""
Result Normalizer - Provider payloads to canonical conversations.

Pure functions only: no I/O, no shared state. A malformed conversation is
reported alongside the successes instead of failing the whole batch.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Any

from chatledger.config.errors import ErrorCode, MalformedPayload

from .models import (
    Conversation,
    ConversationError,
    ExtractionMetadata,
    ExtractionOutput,
    Message,
    MessageRole,
    ToolCallRecord,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ResultNormalizer",
    "canonical_id",
    "merge_conversations",
    "parse_timestamp",
]

# Canonical field -> provider field names, tried in order
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "conversation_id": ("id", "uuid", "conversation_id"),
    "title": ("title", "name", "summary"),
    "subject": ("subject", "project_name", "project"),
    "messages": ("messages", "chat_messages", "turns"),
    "created_at": ("created_at", "create_time", "createdAt"),
    "updated_at": ("updated_at", "update_time", "updatedAt"),
    "message_id": ("id", "uuid", "message_id", "provider_message_id"),
    "role": ("role", "sender", "author"),
    "content": ("content", "text", "body"),
    "timestamp": ("timestamp", "created_at", "create_time"),
    "tool_calls": ("tool_calls", "mcp_tool_calls"),
}

PROVIDER_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "claude": {
        "messages": ("chat_messages", "messages"),
        "role": ("sender", "role"),
        "content": ("text", "content"),
    },
    "chatgpt": {
        "created_at": ("create_time", "created_at"),
        "updated_at": ("update_time", "updated_at"),
        "timestamp": ("create_time", "timestamp"),
    },
}

ROLE_ALIASES: dict[str, MessageRole] = {
    "user": MessageRole.USER,
    "human": MessageRole.USER,
    "you": MessageRole.USER,
    "assistant": MessageRole.ASSISTANT,
    "ai": MessageRole.ASSISTANT,
    "bot": MessageRole.ASSISTANT,
    "model": MessageRole.ASSISTANT,
}


def canonical_id(provider_id: str, external_id: str) -> str:
    """Provider-namespaced conversation id."""
    return f"{provider_id}:{external_id}"


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()


def parse_timestamp(value: Any) -> datetime:
    """
    Parse ISO strings, epoch seconds/milliseconds or datetimes into aware UTC.

    Raises:
        ValueError: Value cannot be interpreted as a point in time
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"timestamp out of range: {value!r}") from e
    if isinstance(value, str) and value.strip():
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"unsupported timestamp: {value!r}")


def merge_conversations(existing: Conversation, incoming: Conversation) -> Conversation:
    """
    Merge a re-extracted conversation into the stored one.

    Messages are unioned by id (incoming wins) and re-sorted; the record
    keeps the earliest creation time and the latest update time.
    """
    if existing.id != incoming.id:
        raise ValueError(f"cannot merge {incoming.id} into {existing.id}")

    by_id: dict[str, Message] = {m.id: m for m in existing.messages}
    for message in incoming.messages:
        by_id[message.id] = message
    messages = sorted(by_id.values(), key=lambda m: m.timestamp)

    return Conversation(
        id=existing.id,
        provider_id=existing.provider_id,
        external_id=existing.external_id,
        title=incoming.title or existing.title,
        subject=incoming.subject or existing.subject,
        created_at=min(existing.created_at, incoming.created_at),
        updated_at=max(existing.updated_at, incoming.updated_at),
        messages=messages,
    )


class ResultNormalizer:
    """
    Converts provider extraction payloads into canonical records.

    Example:
        >>> output = ResultNormalizer().normalize("claude", payload)
        >>> output.metadata.total_conversations
        1
    """

    def __init__(self, clock=None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _aliases(self, provider_id: str, field: str) -> tuple[str, ...]:
        return PROVIDER_ALIASES.get(provider_id, {}).get(field, FIELD_ALIASES[field])

    def _pick(self, provider_id: str, raw: dict[str, Any], field: str) -> Any:
        for name in self._aliases(provider_id, field):
            if raw.get(name) is not None:
                return raw[name]
        return None

    def normalize(self, provider_id: str, payload: dict[str, Any]) -> ExtractionOutput:
        """
        Normalize a raw payload.

        Args:
            provider_id: Provider the payload came from
            payload: ``{"conversations": [...], "metadata": {...}}``

        Returns:
            ExtractionOutput with conversations, per-conversation errors and metadata
        """
        raw_meta = payload.get("metadata")
        if not isinstance(raw_meta, dict):
            raw_meta = {}
        try:
            extracted_at = parse_timestamp(raw_meta.get("extraction_timestamp"))
        except ValueError:
            extracted_at = self._clock()

        raw_conversations = payload.get("conversations") or []
        if not isinstance(raw_conversations, list):
            raw_conversations = []
            logger.warning("Payload from %s has non-list conversations", provider_id)

        merged: dict[str, Conversation] = {}
        errors: list[ConversationError] = []

        for index, raw in enumerate(raw_conversations):
            external_id = None
            if isinstance(raw, dict):
                found = self._pick(provider_id, raw, "conversation_id")
                external_id = str(found) if found not in (None, "") else None
            try:
                conversation = self._conversation(provider_id, raw, extracted_at)
            except MalformedPayload as e:
                errors.append(
                    ConversationError(
                        index=index,
                        external_id=external_id,
                        code=e.code.value,
                        field=e.field,
                        message=e.message,
                    )
                )
                continue
            except (TypeError, ValueError) as e:
                # values of the wrong shape deeper in the record
                errors.append(
                    ConversationError(
                        index=index,
                        external_id=external_id,
                        code=ErrorCode.MALFORMED_PAYLOAD.value,
                        field="conversation",
                        message=str(e),
                    )
                )
                continue

            if conversation.id in merged:
                conversation = merge_conversations(merged[conversation.id], conversation)
            merged[conversation.id] = conversation

        if errors:
            logger.warning(
                "Normalized %s payload with %d malformed conversations",
                provider_id,
                len(errors),
            )

        conversations = list(merged.values())
        return ExtractionOutput(
            conversations=conversations,
            errors=errors,
            metadata=ExtractionMetadata(
                provider=provider_id,
                extraction_method=str(raw_meta.get("extraction_method") or "unknown"),
                total_conversations=len(conversations),
                extraction_timestamp=extracted_at,
            ),
        )

    def _conversation(
        self,
        provider_id: str,
        raw: Any,
        extracted_at: datetime,
    ) -> Conversation:
        if not isinstance(raw, dict):
            raise MalformedPayload("conversation must be an object", field="conversation")

        external_id = self._pick(provider_id, raw, "conversation_id")
        if external_id in (None, ""):
            raise MalformedPayload("conversation id is missing", field="id")
        external_id = str(external_id)

        created_raw = self._pick(provider_id, raw, "created_at")
        updated_raw = self._pick(provider_id, raw, "updated_at")
        try:
            created_at = parse_timestamp(created_raw) if created_raw is not None else None
            updated_at = parse_timestamp(updated_raw) if updated_raw is not None else None
        except ValueError as e:
            raise MalformedPayload(str(e), field="created_at") from e

        raw_messages = self._pick(provider_id, raw, "messages") or []
        if not isinstance(raw_messages, list):
            raise MalformedPayload("messages must be a list", field="messages")

        fallback = created_at or extracted_at
        seen: dict[str, Message] = {}
        for index, raw_message in enumerate(raw_messages):
            message = self._message(provider_id, raw_message, f"messages[{index}]", fallback)
            seen.setdefault(message.id, message)

        # Stable sort: out-of-order input is reordered, ties keep input order
        messages = sorted(seen.values(), key=lambda m: m.timestamp)

        if created_at is None:
            created_at = messages[0].timestamp if messages else extracted_at
        last_ts = messages[-1].timestamp if messages else created_at
        updated_at = max(updated_at or last_ts, last_ts, created_at)

        subject = self._pick(provider_id, raw, "subject")
        title = self._pick(provider_id, raw, "title")
        return Conversation(
            id=canonical_id(provider_id, external_id),
            provider_id=provider_id,
            external_id=external_id,
            title=str(title) if title is not None else "",
            subject=str(subject) if subject is not None else None,
            created_at=created_at,
            updated_at=updated_at,
            messages=messages,
        )

    def _message(
        self,
        provider_id: str,
        raw: Any,
        path: str,
        fallback: datetime,
    ) -> Message:
        if not isinstance(raw, dict):
            raise MalformedPayload("message must be an object", field=path)

        role_raw = self._pick(provider_id, raw, "role")
        if isinstance(role_raw, dict):
            role_raw = role_raw.get("role")
        if role_raw in (None, ""):
            raise MalformedPayload("message role is missing", field=f"{path}.role")
        role = ROLE_ALIASES.get(str(role_raw).lower())
        if role is None:
            raise MalformedPayload(f"unsupported role {role_raw!r}", field=f"{path}.role")

        content = self._content(self._pick(provider_id, raw, "content"))
        if content is None:
            raise MalformedPayload("message content is missing", field=f"{path}.content")

        ts_raw = self._pick(provider_id, raw, "timestamp")
        try:
            timestamp = parse_timestamp(ts_raw) if ts_raw is not None else fallback
        except ValueError as e:
            raise MalformedPayload(str(e), field=f"{path}.timestamp") from e

        native_id = self._pick(provider_id, raw, "message_id")
        if native_id not in (None, ""):
            message_id = str(native_id)
        else:
            digest = hashlib.sha256(
                f"{timestamp.isoformat()}|{content_hash(content)}".encode()
            ).hexdigest()
            message_id = f"h:{digest[:24]}"

        tool_calls = []
        for call in self._pick(provider_id, raw, "tool_calls") or []:
            if isinstance(call, dict) and call.get("tool"):
                tool_calls.append(
                    ToolCallRecord(
                        tool=str(call["tool"]),
                        parameters=call.get("parameters") or {},
                        result=call.get("result"),
                    )
                )

        return Message(
            id=message_id,
            role=role,
            content=content,
            timestamp=timestamp,
            tool_calls=tool_calls,
        )

    @staticmethod
    def _content(value: Any) -> str | None:
        """Flatten string, ``{"parts": [...]}`` or block-list content."""
        if value is None:
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, dict) and isinstance(value.get("parts"), list):
            return "\n".join(str(p) for p in value["parts"] if p is not None)
        if isinstance(value, list):
            texts = [
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in value
            ]
            return "\n".join(t for t in texts if t)
        return str(value)
