"""
Provider Routes - Provider catalog endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from chatledger.domains.orchestration import ChatLedgerOrchestrator
from chatledger.domains.providers import PollingBounds, ProviderDescriptor
from chatledger.interfaces.api.deps import get_orchestrator

router = APIRouter()


class ProviderSummary(BaseModel):
    """Provider as listed in the catalog."""

    id: str
    name: str
    description: str
    capabilities: list[str]
    tools_count: int
    auth_methods: list[str]
    extraction_methods: list[str]
    credential_fields: list[str]
    scope_fields: list[str]
    polling: PollingBounds

    @classmethod
    def from_descriptor(cls, descriptor: ProviderDescriptor) -> ProviderSummary:
        return cls(
            id=descriptor.id,
            name=descriptor.display_name,
            description=descriptor.description,
            capabilities=descriptor.capabilities,
            tools_count=descriptor.tools_count,
            auth_methods=list(descriptor.auth_methods),
            extraction_methods=list(descriptor.extraction_methods),
            credential_fields=list(descriptor.credential_fields),
            scope_fields=list(descriptor.scope_fields),
            polling=descriptor.polling,
        )


class ProviderListResponse(BaseModel):
    """Provider catalog."""

    providers: list[ProviderSummary]
    total: int


@router.get("", response_model=ProviderListResponse)
async def list_providers(
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """List every registered provider with its capabilities."""
    providers = [ProviderSummary.from_descriptor(d) for d in orchestrator.list_providers()]
    return ProviderListResponse(providers=providers, total=len(providers))


@router.get("/{provider_id}", response_model=ProviderDescriptor)
async def get_provider(
    provider_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Full descriptor for one provider, including tool schemas."""
    return orchestrator.describe_provider(provider_id)
