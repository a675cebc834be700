"""
Tool Routes - Tool catalog and direct invocation.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from chatledger.domains.orchestration import ChatLedgerOrchestrator
from chatledger.domains.providers import ToolDescriptor
from chatledger.domains.tools import ToolResult
from chatledger.interfaces.api.deps import get_orchestrator

router = APIRouter()


class ToolListResponse(BaseModel):
    """Registered tools."""

    tools: list[ToolDescriptor]
    total: int


class InvokeRequest(BaseModel):
    """Tool invocation request body."""

    tool_name: str = Field(..., min_length=1)
    provider_id: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)


@router.get("", response_model=ToolListResponse)
async def list_tools(
    provider: str | None = None,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """List tools, optionally for one provider."""
    tools = orchestrator.list_tools(provider)
    return ToolListResponse(tools=tools, total=len(tools))


@router.post("/invoke", response_model=ToolResult)
async def invoke_tool(
    request: InvokeRequest,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """
    Invoke a tool and wait for its raw result.

    - **tool_name**: Registered tool name
    - **provider_id**: Provider the tool belongs to
    - **parameters**: Tool parameters, validated against the tool schema
    """
    return await orchestrator.invoke_tool(request.tool_name, request.provider_id, request.parameters)
