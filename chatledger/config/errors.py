"""
Error Taxonomy - Consistent error codes across the orchestrator.

Usage:
    from chatledger.config.errors import ErrorCode, ChatLedgerError

    raise UnknownProvider("poe")
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Registry errors
    UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"

    # Credential errors
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    CREDENTIALS_NOT_VALIDATED = "CREDENTIALS_NOT_VALIDATED"
    RATE_LIMITED = "RATE_LIMITED"

    # Provider / executor errors
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    EXECUTION_TIMEOUT = "EXECUTION_TIMEOUT"

    # Input errors
    SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"
    MALFORMED_PAYLOAD = "MALFORMED_PAYLOAD"

    # Conflicts
    JOB_ALREADY_RUNNING = "JOB_ALREADY_RUNNING"
    SESSION_ALREADY_ACTIVE = "SESSION_ALREADY_ACTIVE"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"

    # Lookups
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"

    # Delivery / storage
    WEBHOOK_DELIVERY_FAILED = "WEBHOOK_DELIVERY_FAILED"
    STORAGE_FAILED = "STORAGE_FAILED"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class ChatLedgerError(Exception):
    """Base exception with error code support."""

    retryable: bool = False

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class UnknownProvider(ChatLedgerError):
    """Provider id is not in the registry."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(
            ErrorCode.UNKNOWN_PROVIDER,
            f"Unknown provider: {provider_id}",
            {"provider_id": provider_id},
        )


class UnknownTool(ChatLedgerError):
    """Tool name is not registered for the provider."""

    def __init__(self, provider_id: str, tool_name: str) -> None:
        super().__init__(
            ErrorCode.UNKNOWN_TOOL,
            f"Unknown tool {tool_name!r} for provider {provider_id}",
            {"provider_id": provider_id, "tool_name": tool_name},
        )


class InvalidCredentials(ChatLedgerError):
    """Provider verifier rejected the credential."""

    def __init__(self, provider_id: str, message: str = "Invalid credentials or expired session") -> None:
        super().__init__(
            ErrorCode.INVALID_CREDENTIALS,
            message,
            {"provider_id": provider_id},
        )


class CredentialsNotValidated(ChatLedgerError):
    """No fresh validation record authorizes the requested work."""

    def __init__(self, provider_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            ErrorCode.CREDENTIALS_NOT_VALIDATED,
            f"Credentials for {provider_id} must be validated before starting work",
            {"provider_id": provider_id, **(details or {})},
        )


class RateLimited(ChatLedgerError):
    """Too many attempts within the sliding window."""

    retryable = True

    def __init__(self, message: str, retry_after: float) -> None:
        self.retry_after = retry_after
        super().__init__(
            ErrorCode.RATE_LIMITED,
            message,
            {"retry_after": round(retry_after, 3)},
        )


class ProviderUnavailable(ChatLedgerError):
    """Provider (or its verifier) could not be reached."""

    retryable = True

    def __init__(self, provider_id: str, message: str = "Provider unavailable") -> None:
        super().__init__(
            ErrorCode.PROVIDER_UNAVAILABLE,
            message,
            {"provider_id": provider_id},
        )


class ExecutionError(ChatLedgerError):
    """Executor failed with a provider-specific error."""

    def __init__(self, provider_id: str, tool_name: str, detail: str) -> None:
        super().__init__(
            ErrorCode.EXECUTION_ERROR,
            f"{tool_name} failed on {provider_id}: {detail}",
            {"provider_id": provider_id, "tool_name": tool_name, "detail": detail},
        )


class ExecutionTimeout(ChatLedgerError):
    """Executor did not answer within the gateway timeout."""

    retryable = True

    def __init__(self, provider_id: str, tool_name: str, timeout_seconds: float) -> None:
        super().__init__(
            ErrorCode.EXECUTION_TIMEOUT,
            f"{tool_name} on {provider_id} timed out after {timeout_seconds}s",
            {
                "provider_id": provider_id,
                "tool_name": tool_name,
                "timeout_seconds": timeout_seconds,
            },
        )


class SchemaValidationError(ChatLedgerError):
    """Parameters do not satisfy the tool schema."""

    def __init__(self, tool_name: str, violations: list[dict[str, str]]) -> None:
        self.violations = violations
        fields = ", ".join(v["field"] for v in violations)
        super().__init__(
            ErrorCode.SCHEMA_VALIDATION_ERROR,
            f"Invalid parameters for {tool_name}: {fields}",
            {"tool_name": tool_name, "violations": violations},
        )

    @property
    def fields(self) -> list[str]:
        """Names of every offending field."""
        return [v["field"] for v in self.violations]


class MalformedPayload(ChatLedgerError):
    """A provider payload item is missing required fields."""

    def __init__(self, message: str, field: str, details: dict[str, Any] | None = None) -> None:
        self.field = field
        super().__init__(
            ErrorCode.MALFORMED_PAYLOAD,
            message,
            {"field": field, **(details or {})},
        )


class JobAlreadyRunning(ChatLedgerError):
    """Another extraction job holds the (provider, credential) slot."""

    def __init__(self, provider_id: str, running_job_id: str) -> None:
        super().__init__(
            ErrorCode.JOB_ALREADY_RUNNING,
            f"An extraction job is already running for this {provider_id} credential",
            {"provider_id": provider_id, "running_job_id": running_job_id},
        )


class SessionAlreadyActive(ChatLedgerError):
    """Another monitoring session holds the (provider, credential) slot."""

    def __init__(self, provider_id: str, active_session_id: str) -> None:
        super().__init__(
            ErrorCode.SESSION_ALREADY_ACTIVE,
            f"A monitoring session is already active for this {provider_id} credential",
            {"provider_id": provider_id, "active_session_id": active_session_id},
        )


class InvalidStateTransition(ChatLedgerError):
    """Requested transition is not allowed from the current state."""

    def __init__(self, entity: str, entity_id: str, current: str, target: str) -> None:
        super().__init__(
            ErrorCode.INVALID_STATE_TRANSITION,
            f"Cannot move {entity} {entity_id} from {current} to {target}",
            {"id": entity_id, "current": current, "target": target},
        )


class JobNotFound(ChatLedgerError):
    """Unknown extraction job id."""

    def __init__(self, job_id: str) -> None:
        super().__init__(ErrorCode.JOB_NOT_FOUND, f"Job not found: {job_id}", {"job_id": job_id})


class SessionNotFound(ChatLedgerError):
    """Unknown monitoring session id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            ErrorCode.SESSION_NOT_FOUND,
            f"Monitoring session not found: {session_id}",
            {"session_id": session_id},
        )


class WebhookDeliveryError(ChatLedgerError):
    """Webhook sink gave up delivering a notification."""

    retryable = True

    def __init__(self, url: str, detail: str, attempts: int) -> None:
        super().__init__(
            ErrorCode.WEBHOOK_DELIVERY_FAILED,
            f"Webhook delivery to {url} failed: {detail}",
            {"url": url, "attempts": attempts},
        )


class StorageError(ChatLedgerError):
    """Conversation store errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.STORAGE_FAILED, message, details)


# Errors the retry policies treat as transient
TRANSIENT_ERRORS: tuple[type[ChatLedgerError], ...] = (ProviderUnavailable, ExecutionTimeout)
