"""
Conversation Routes - Browse the conversation store.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from chatledger.config.errors import ChatLedgerError, ErrorCode
from chatledger.domains.conversations import Conversation, ConversationFilters
from chatledger.domains.orchestration import ChatLedgerOrchestrator
from chatledger.interfaces.api.deps import get_orchestrator

router = APIRouter()


class ConversationListResponse(BaseModel):
    """One page of conversations."""

    conversations: list[Conversation]
    page: int
    limit: int
    total: int
    total_pages: int


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    subject: str | None = None,
    provider: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """
    List conversations.

    - **subject**: Case-insensitive substring match
    - **provider**: Exact provider id
    """
    result = await orchestrator.list_conversations(
        ConversationFilters(subject=subject, provider=provider, page=page, limit=limit)
    )
    return ConversationListResponse(
        conversations=result.conversations,
        page=result.page,
        limit=result.limit,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/subjects", response_model=list[str])
async def list_subjects(orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator)):
    """Distinct conversation subjects."""
    return await orchestrator.list_subjects()


@router.get("/providers", response_model=list[str])
async def list_providers(orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator)):
    """Providers that have stored conversations."""
    return await orchestrator.list_conversation_providers()


@router.get("/{conversation_id}", response_model=Conversation)
async def get_conversation(
    conversation_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Get one conversation with all its messages."""
    conversation = await orchestrator.get_conversation(conversation_id)
    if conversation is None:
        raise ChatLedgerError(
            ErrorCode.NOT_FOUND,
            f"Conversation not found: {conversation_id}",
            {"conversation_id": conversation_id},
        )
    return conversation
