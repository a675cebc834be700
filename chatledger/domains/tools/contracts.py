"""
Tool Contracts - What jobs and sessions need from the gateway.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from chatledger.domains.providers import ToolDescriptor

from .models import ToolResult


@runtime_checkable
class ToolInvoker(Protocol):
    """Contract for schema-checked tool dispatch."""

    def prepare(
        self,
        tool_name: str,
        provider_id: str,
        parameters: dict[str, Any] | None,
    ) -> tuple[ToolDescriptor, dict[str, Any]]:
        """Validate parameters and return the tool with defaults applied."""
        ...

    async def invoke(
        self,
        tool_name: str,
        provider_id: str,
        parameters: dict[str, Any] | None,
        since: datetime | None = None,
    ) -> ToolResult:
        """
        Invoke a tool.

        Args:
            tool_name: Registered tool name
            provider_id: Provider id
            parameters: Raw tool parameters, secrets included
            since: Previous poll time for polling tools

        Returns:
            ToolResult with the raw payload
        """
        ...
