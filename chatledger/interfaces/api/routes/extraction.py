"""
Extraction Routes - Extraction job endpoints.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from chatledger.domains.extraction import ExtractionJob, ExtractionStats, JobState
from chatledger.domains.orchestration import ChatLedgerOrchestrator
from chatledger.interfaces.api.deps import get_orchestrator

router = APIRouter()


class SubmitJobRequest(BaseModel):
    """Extraction job request body."""

    tool_name: str = Field(..., min_length=1)
    provider_id: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)


class SubmitJobResponse(BaseModel):
    """Accepted job."""

    job_id: str
    status: JobState
    estimated_completion: datetime | None = None


class JobListResponse(BaseModel):
    """Job snapshots."""

    jobs: list[ExtractionJob]
    total: int


@router.post("/jobs", response_model=SubmitJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_job(
    request: SubmitJobRequest,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """
    Submit an extraction job. Returns immediately; poll the job for progress.

    Requires credentials validated through `/api/credentials/validate`.
    """
    job_id = await orchestrator.submit_extraction_job(
        request.provider_id, request.tool_name, request.parameters
    )
    job = orchestrator.get_job_status(job_id)
    descriptor = orchestrator.describe_provider(job.provider_id)
    started = job.started_at or datetime.now(timezone.utc)
    return SubmitJobResponse(
        job_id=job_id,
        status=job.state,
        estimated_completion=started + timedelta(seconds=descriptor.expected_extraction_seconds),
    )


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(
    provider: str | None = None,
    state: JobState | None = None,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """List jobs, newest first."""
    jobs = orchestrator.list_jobs(provider, state)
    return JobListResponse(jobs=jobs, total=len(jobs))


@router.get("/jobs/{job_id}", response_model=ExtractionJob)
async def get_job(
    job_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Get status, progress and result of a job."""
    return orchestrator.get_job_status(job_id)


@router.post("/jobs/{job_id}/cancel", response_model=ExtractionJob)
async def cancel_job(
    job_id: str,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Cancel a job. Cancelling a finished job returns it unchanged."""
    return await orchestrator.cancel_job(job_id)


@router.get("/status", response_model=ExtractionStats)
async def extraction_status(
    provider: str | None = None,
    orchestrator: ChatLedgerOrchestrator = Depends(get_orchestrator),
):
    """Aggregate extraction statistics, optionally for one provider."""
    return orchestrator.extraction_status(provider)
