"""
Monitoring Domain - Monitoring Session Manager.

This domain handles:
- Long-lived polling sessions per validated credential
- Failure backoff and the Error threshold
- Webhook notifications for captured messages
"""

from .contracts import WebhookSink
from .manager import POLL_TRANSIENT_ERRORS, MonitoringSessionManager
from .models import (
    SESSION_TRANSITIONS,
    MonitoringSession,
    SessionState,
    WebhookAck,
    WebhookNotification,
    dedupe_key,
)

__all__ = [
    # Contracts
    "WebhookSink",
    # Models
    "MonitoringSession",
    "SessionState",
    "SESSION_TRANSITIONS",
    "WebhookAck",
    "WebhookNotification",
    "dedupe_key",
    # Implementations
    "MonitoringSessionManager",
    "POLL_TRANSIENT_ERRORS",
]
