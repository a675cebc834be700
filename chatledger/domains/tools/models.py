"""
Tool Models - Data types for tool invocation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from chatledger.domains.providers import ToolOperation


class ToolResult(BaseModel):
    """Raw executor result plus timing."""

    tool_name: str
    provider_id: str
    operation: ToolOperation
    data: dict[str, Any] = Field(default_factory=dict)
    elapsed_ms: float = 0.0
    invoked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
