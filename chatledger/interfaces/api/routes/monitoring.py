"""
Monitoring Routes - Monitoring session endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from chatledger.domains.monitoring import MonitoringSession, SessionState
from chatledger.domains.orchestration import ChatLedgerOrchestrator
from chatledger.interfaces.api.deps import get_orchestrator

router = APIRouter()


class StartSessionRequest(BaseModel):
    """Monitoring session request body."""

    tool_name: str = Field(..., min_length=1)
    provider_id: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)
    webhook_url: str | None = None


class SessionListResponse(BaseModel):
    """Session snapshots."""

    sessions: list[MonitoringSession]
    total: int


@router.post("/sessions", response_model=MonitoringSession, status_code=status.HTTP_201_CREATED)
async def start_session(
    request: StartSessionRequest,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """
    Start monitoring a provider for new messages.

    Only one session may be active per provider credential.
    """
    session_id = await orchestrator.start_monitoring(
        request.provider_id, request.tool_name, request.parameters, request.webhook_url
    )
    return orchestrator.get_session_status(session_id)


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    provider: str | None = None,
    state: SessionState | None = None,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """List sessions, newest first."""
    sessions = orchestrator.list_sessions(provider, state)
    return SessionListResponse(sessions=sessions, total=len(sessions))


@router.get("/sessions/{session_id}", response_model=MonitoringSession)
async def get_session(
    session_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Get session state and counters."""
    return orchestrator.get_session_status(session_id)


@router.post("/sessions/{session_id}/stop", response_model=MonitoringSession)
async def stop_session(
    session_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Stop a session."""
    return await orchestrator.stop_monitoring(session_id)


@router.post("/sessions/{session_id}/pause", response_model=MonitoringSession)
async def pause_session(
    session_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Pause polling."""
    return await orchestrator.pause_monitoring(session_id)


@router.post("/sessions/{session_id}/resume", response_model=MonitoringSession)
async def resume_session(
    session_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Resume polling."""
    return await orchestrator.resume_monitoring(session_id)
