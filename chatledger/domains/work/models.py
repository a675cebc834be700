"""
Work Models - State history and error snapshots.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from chatledger.config.errors import ChatLedgerError, ErrorCode


class StateChange(BaseModel):
    """One entry in a job or session history."""

    model_config = {"frozen": True}

    from_state: str | None = None
    to_state: str
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reason: str = ""


class ErrorInfo(BaseModel):
    """Terminal error kind plus detail."""

    model_config = {"frozen": True}

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = False

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorInfo:
        if isinstance(exc, ChatLedgerError):
            return cls(
                code=exc.code.value,
                message=exc.message,
                details=exc.details,
                retryable=exc.retryable,
            )
        return cls(
            code=ErrorCode.INTERNAL_ERROR.value,
            message=str(exc) or type(exc).__name__,
            details={"type": type(exc).__name__},
        )
