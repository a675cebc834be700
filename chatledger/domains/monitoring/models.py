"""
Monitoring Models - Data types for polling sessions and webhook notifications.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from chatledger.domains.conversations import Message
from chatledger.domains.work import ErrorInfo, StateChange


class SessionState(str, Enum):
    """Monitoring session lifecycle."""

    STARTING = "starting"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"
    ERROR = "error"


SESSION_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.STARTING: frozenset({SessionState.ACTIVE, SessionState.ERROR, SessionState.STOPPED}),
    SessionState.ACTIVE: frozenset({SessionState.PAUSED, SessionState.ERROR, SessionState.STOPPED}),
    SessionState.PAUSED: frozenset({SessionState.ACTIVE, SessionState.STOPPED}),
    SessionState.ERROR: frozenset({SessionState.STOPPED}),
    SessionState.STOPPED: frozenset(),
}


class MonitoringSession(BaseModel):
    """Long-lived polling session for one provider credential."""

    id: str
    provider_id: str
    tool_name: str
    credential_fingerprint: str
    polling_interval: float
    webhook_url: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)  # credential fields masked
    state: SessionState = SessionState.STARTING
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_poll_at: datetime | None = None
    next_poll_at: datetime | None = None
    conversations_captured: int = 0
    messages_captured: int = 0
    polls_completed: int = 0
    consecutive_failures: int = 0
    webhooks_delivered: int = 0
    deliveries_failed: int = 0
    last_error: ErrorInfo | None = None
    history: list[StateChange] = Field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.state in (SessionState.STARTING, SessionState.ACTIVE, SessionState.PAUSED)


def dedupe_key(provider_id: str, conversation_id: str, message_id: str) -> str:
    """Stable key so downstream consumers can drop repeated deliveries."""
    return hashlib.sha256(f"{provider_id}|{conversation_id}|{message_id}".encode()).hexdigest()


class WebhookNotification(BaseModel):
    """One captured message, as delivered to the session webhook."""

    session_id: str
    provider_id: str
    conversation_id: str
    conversation_title: str = ""
    message: Message
    poll_cycle: int
    dedupe_key: str
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def payload(self) -> dict[str, Any]:
        return {"type": "new_message", **self.model_dump(mode="json")}


class WebhookAck(BaseModel):
    """Outcome of a successful delivery."""

    delivered: bool = True
    status_code: int | None = None
    attempts: int = 1
