"""
Configuration - Application settings and error taxonomy.
"""

from .errors import (
    TRANSIENT_ERRORS,
    ChatLedgerError,
    CredentialsNotValidated,
    ErrorCode,
    ExecutionError,
    ExecutionTimeout,
    InvalidCredentials,
    InvalidStateTransition,
    JobAlreadyRunning,
    JobNotFound,
    MalformedPayload,
    ProviderUnavailable,
    RateLimited,
    SchemaValidationError,
    SessionAlreadyActive,
    SessionNotFound,
    StorageError,
    UnknownProvider,
    UnknownTool,
    WebhookDeliveryError,
)
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ErrorCode",
    "ChatLedgerError",
    "TRANSIENT_ERRORS",
    "UnknownProvider",
    "UnknownTool",
    "InvalidCredentials",
    "CredentialsNotValidated",
    "RateLimited",
    "ProviderUnavailable",
    "ExecutionError",
    "ExecutionTimeout",
    "SchemaValidationError",
    "MalformedPayload",
    "JobAlreadyRunning",
    "SessionAlreadyActive",
    "InvalidStateTransition",
    "JobNotFound",
    "SessionNotFound",
    "WebhookDeliveryError",
    "StorageError",
]
