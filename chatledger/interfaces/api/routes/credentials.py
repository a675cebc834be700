"""
Credential Routes - Credential validation.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from chatledger.domains.orchestration import ChatLedgerOrchestrator
from chatledger.interfaces.api.deps import get_orchestrator

router = APIRouter()


class ValidateRequest(BaseModel):
    """Credential validation request body."""

    provider_id: str = Field(..., min_length=1)
    credentials: dict[str, str | None] = Field(default_factory=dict)


class ValidateResponse(BaseModel):
    """Validation outcome. Secrets are never echoed back."""

    valid: bool
    provider_id: str
    fingerprint: str
    permissions: list[str]
    expires_at: datetime | None
    message: str


@router.post("/validate", response_model=ValidateResponse)
async def validate_credentials(
    request: ValidateRequest,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """
    Validate provider credentials.

    A valid result is cached until it expires; extraction jobs and
    monitoring sessions require one.
    """
    record = await orchestrator.validate_credentials(request.provider_id, request.credentials)
    return ValidateResponse(
        valid=record.valid,
        provider_id=record.provider_id,
        fingerprint=record.fingerprint,
        permissions=record.permissions,
        expires_at=record.expires_at,
        message=record.message,
    )
