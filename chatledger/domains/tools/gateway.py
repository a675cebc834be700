"""
Tool Invocation Gateway - Schema validation and executor dispatch.

Pure routing: holds no job state and is safe to call concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Any

from chatledger.config.errors import ChatLedgerError, ExecutionError, ExecutionTimeout
from chatledger.domains.providers import (
    Credential,
    ProviderRegistry,
    ToolDescriptor,
    ToolOperation,
)

from .models import ToolResult
from .schema import validate_parameters

logger = logging.getLogger(__name__)

__all__ = ["ToolGateway"]


class ToolGateway:
    """
    Routes tool invocations to provider executors.

    Example:
        >>> gateway = ToolGateway(registry, timeout_seconds=10)
        >>> result = await gateway.invoke(
        ...     "extract_claude_conversations", "claude", {"session_cookie": "abc"}
        ... )
        >>> result.data["metadata"]["total_conversations"]
        1
    """

    def __init__(self, registry: ProviderRegistry, timeout_seconds: float = 30.0) -> None:
        """
        Initialize gateway.

        Args:
            registry: Provider registry with executors
            timeout_seconds: Upper bound on a single executor call
        """
        self._registry = registry
        self._timeout = timeout_seconds

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def prepare(
        self,
        tool_name: str,
        provider_id: str,
        parameters: dict[str, Any] | None,
    ) -> tuple[ToolDescriptor, dict[str, Any]]:
        """
        Look up the tool and validate parameters.

        Returns:
            The tool descriptor and the parameters with defaults applied

        Raises:
            UnknownProvider / UnknownTool: Lookup failed
            SchemaValidationError: Parameters violate the schema
        """
        tool = self._registry.get_tool(provider_id, tool_name)
        params = validate_parameters(tool.name, tool.parameters, parameters or {})
        return tool, params

    async def invoke(
        self,
        tool_name: str,
        provider_id: str,
        parameters: dict[str, Any] | None,
        since: datetime | None = None,
    ) -> ToolResult:
        """
        Invoke a tool on a provider.

        Args:
            tool_name: Registered tool name
            provider_id: Provider id
            parameters: Tool parameters (validated here)
            since: Previous poll time, used by polling tools

        Returns:
            ToolResult with the raw payload and elapsed time

        Raises:
            SchemaValidationError: Executor is never called
            ExecutionTimeout: Executor exceeded the timeout
            ExecutionError: Executor raised a provider-specific error
        """
        tool, params = self.prepare(tool_name, provider_id, parameters)
        descriptor = self._registry.describe(provider_id)
        credential = Credential.from_parameters(descriptor, params)
        executor = self._registry.executor(provider_id)

        if tool.operation == ToolOperation.POLL:
            call = executor.poll_for_new(credential, params, since)
        elif tool.operation == ToolOperation.EXPORT:
            call = executor.export(credential, params)
        else:
            call = executor.extract(credential, params)

        start = time.perf_counter()
        try:
            data = await asyncio.wait_for(call, self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                "Tool %s on %s timed out after %.1fs", tool_name, provider_id, self._timeout
            )
            raise ExecutionTimeout(provider_id, tool_name, self._timeout) from e
        except ChatLedgerError:
            raise
        except Exception as e:
            logger.warning("Tool %s on %s failed: %s", tool_name, provider_id, e)
            raise ExecutionError(provider_id, tool_name, str(e) or type(e).__name__) from e

        if not isinstance(data, dict):
            raise ExecutionError(
                provider_id, tool_name, f"executor returned {type(data).__name__}, expected object"
            )

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("Tool %s on %s completed in %.1fms", tool_name, provider_id, elapsed_ms)
        return ToolResult(
            tool_name=tool_name,
            provider_id=provider_id,
            operation=tool.operation,
            data=data,
            elapsed_ms=elapsed_ms,
        )
