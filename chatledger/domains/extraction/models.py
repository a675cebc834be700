"""
Extraction Models - Data types for extraction jobs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from chatledger.domains.conversations import ExtractionOutput
from chatledger.domains.work import ErrorInfo, StateChange


class JobState(str, Enum):
    """Extraction job lifecycle."""

    QUEUED = "queued"
    VALIDATING = "validating"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATES


TERMINAL_JOB_STATES = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED})

JOB_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.QUEUED: frozenset({JobState.VALIDATING, JobState.FAILED, JobState.CANCELLED}),
    JobState.VALIDATING: frozenset({JobState.RUNNING, JobState.FAILED, JobState.CANCELLED}),
    JobState.RUNNING: frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED}),
    JobState.SUCCEEDED: frozenset(),
    JobState.FAILED: frozenset(),
    JobState.CANCELLED: frozenset(),
}


class ExtractionJob(BaseModel):
    """
    One-shot extraction job.

    ``parameters`` never holds secrets: credential fields are masked
    before the job is created.
    """

    id: str
    provider_id: str
    tool_name: str
    credential_fingerprint: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    state: JobState = JobState.QUEUED
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    attempts: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    finished_at: datetime | None = None
    result: ExtractionOutput | None = None
    error: ErrorInfo | None = None
    history: list[StateChange] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None:
            return None
        end = self.finished_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()


class ExtractionStats(BaseModel):
    """Aggregate job statistics, optionally for one provider."""

    provider_id: str | None = None
    active_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    cancelled_jobs: int = 0
    last_extraction: datetime | None = None
    total_conversations_captured: int = 0
    success_rate: float = 0.0
