"""
Tests for the Extraction Job Scheduler.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chatledger.adapters.memory import InMemoryConversationStore
from chatledger.config.errors import (
    CredentialsNotValidated,
    InvalidCredentials,
    JobAlreadyRunning,
    JobNotFound,
    ProviderUnavailable,
    SchemaValidationError,
)
from chatledger.domains.conversations import ResultNormalizer
from chatledger.domains.credentials import CredentialValidator
from chatledger.domains.providers import (
    ProviderBinding,
    ProviderDescriptor,
    ProviderRegistry,
    ToolCategory,
    ToolDescriptor,
    ToolOperation,
    VerificationResult,
)
from chatledger.domains.tools import ToolGateway

from .models import JobState
from .scheduler import ExtractionScheduler

PARAMS = {"token": "secret-token"}

PAYLOAD = {
    "conversations": [
        {
            "id": "conv_1",
            "title": "Hello",
            "messages": [
                {"role": "user", "content": "hi", "timestamp": "2024-01-15T11:00:00Z"},
                {"role": "assistant", "content": "hello", "timestamp": "2024-01-15T11:00:05Z"},
            ],
        }
    ],
    "metadata": {"extraction_method": "api_integration"},
}

DESCRIPTOR = ProviderDescriptor(
    id="acme",
    display_name="Acme",
    credential_fields=["token"],
    expected_extraction_seconds=1.0,
    tools=[
        ToolDescriptor(
            name="extract_acme",
            category=ToolCategory.CHAT_EXTRACTION,
            operation=ToolOperation.EXTRACT,
            provider_id="acme",
            parameters={
                "type": "object",
                "properties": {
                    "token": {"type": "string"},
                    "max_conversations": {"type": "number", "default": 100},
                },
                "required": ["token"],
            },
        )
    ],
)


class ScriptedExecutor:
    """Extract returns scripted outcomes in order; the last one repeats."""

    def __init__(self, *outcomes: Any, gate: asyncio.Event | None = None) -> None:
        self.outcomes = list(outcomes) or [PAYLOAD]
        self.gate = gate
        self.calls = 0

    async def extract(self, credential, parameters):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def poll_for_new(self, credential, parameters, since):
        return {}

    async def export(self, credential, parameters):
        return {}


class AcceptingVerifier:
    async def verify(self, credential):
        return VerificationResult(valid=True, permissions=["read_conversations"])


class Harness:
    """Scheduler wired to a scripted executor."""

    def __init__(self, executor: ScriptedExecutor, max_attempts: int = 3) -> None:
        self.executor = executor
        self.registry = ProviderRegistry(
            [ProviderBinding(DESCRIPTOR, executor, AcceptingVerifier())]
        )
        self.validator = CredentialValidator(self.registry)
        self.store = InMemoryConversationStore()
        self.scheduler = ExtractionScheduler(
            self.registry,
            ToolGateway(self.registry, timeout_seconds=2.0),
            self.validator,
            ResultNormalizer(),
            self.store,
            max_attempts=max_attempts,
            backoff_initial_seconds=0,
            backoff_max_seconds=0,
        )

    async def validated(self) -> Harness:
        await self.validator.validate("acme", PARAMS)
        return self


async def test_job_succeeds() -> None:
    """Test a validated job runs to completion and stores its conversations."""
    harness = await Harness(ScriptedExecutor()).validated()

    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    assert job.state == JobState.RUNNING
    assert job.parameters == {"token": "***", "max_conversations": 100}

    job = await harness.scheduler.wait(job.id, timeout=2)

    assert job.state == JobState.SUCCEEDED
    assert job.progress == 100.0
    assert job.attempts == 1
    assert job.result.metadata.total_conversations == 1
    assert [h.to_state for h in job.history] == ["queued", "validating", "running", "succeeded"]
    stored = await harness.store.get_conversation("acme:conv_1")
    assert stored is not None and stored.message_count == 2


async def test_submit_requires_validation() -> None:
    harness = Harness(ScriptedExecutor())

    with pytest.raises(CredentialsNotValidated) as exc_info:
        await harness.scheduler.submit("acme", "extract_acme", PARAMS)

    job = harness.scheduler.get_status(exc_info.value.details["job_id"])
    assert job.state == JobState.FAILED
    assert job.error.code == "CREDENTIALS_NOT_VALIDATED"
    assert harness.executor.calls == 0


async def test_schema_errors_create_no_job() -> None:
    harness = await Harness(ScriptedExecutor()).validated()

    with pytest.raises(SchemaValidationError):
        await harness.scheduler.submit("acme", "extract_acme", {"max_conversations": "all"})

    assert harness.scheduler.list_jobs() == []


async def test_concurrent_submits_single_winner() -> None:
    """Test two submits for one credential leave exactly one job running."""
    gate = asyncio.Event()
    harness = await Harness(ScriptedExecutor(gate=gate)).validated()

    results = await asyncio.gather(
        harness.scheduler.submit("acme", "extract_acme", PARAMS),
        harness.scheduler.submit("acme", "extract_acme", PARAMS),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], JobAlreadyRunning)
    assert len(harness.scheduler.list_jobs(state=JobState.RUNNING)) == 1

    gate.set()
    await harness.scheduler.shutdown()


async def test_cancel_discards_late_result() -> None:
    gate = asyncio.Event()
    harness = await Harness(ScriptedExecutor(gate=gate)).validated()
    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    await asyncio.sleep(0.01)

    cancelled = await harness.scheduler.cancel(job.id)
    gate.set()
    await asyncio.sleep(0.05)

    assert cancelled.state == JobState.CANCELLED
    assert harness.scheduler.get_status(job.id).state == JobState.CANCELLED
    assert await harness.store.count() == 0

    # Slot is free again
    again = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    assert (await harness.scheduler.wait(again.id, timeout=2)).state == JobState.SUCCEEDED


async def test_cancel_terminal_job_is_noop() -> None:
    harness = await Harness(ScriptedExecutor()).validated()
    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    await harness.scheduler.wait(job.id, timeout=2)

    job = await harness.scheduler.cancel(job.id)

    assert job.state == JobState.SUCCEEDED


async def test_transient_failures_are_retried() -> None:
    executor = ScriptedExecutor(ProviderUnavailable("acme"), ProviderUnavailable("acme"), PAYLOAD)
    harness = await Harness(executor).validated()

    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    job = await harness.scheduler.wait(job.id, timeout=2)

    assert job.state == JobState.SUCCEEDED
    assert job.attempts == 3
    assert job.result.metadata.total_conversations == 1
    assert job.result.metadata.extraction_method == "api_integration"


async def test_retries_exhausted() -> None:
    harness = await Harness(ScriptedExecutor(ProviderUnavailable("acme")), max_attempts=2).validated()

    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    job = await harness.scheduler.wait(job.id, timeout=2)

    assert job.state == JobState.FAILED
    assert job.attempts == 2
    assert job.error.code == "PROVIDER_UNAVAILABLE"
    assert job.error.retryable


async def test_permanent_failure_is_not_retried() -> None:
    harness = await Harness(ScriptedExecutor(InvalidCredentials("acme"))).validated()

    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    job = await harness.scheduler.wait(job.id, timeout=2)

    assert job.state == JobState.FAILED
    assert job.attempts == 1
    assert job.error.code == "INVALID_CREDENTIALS"


async def test_progress_is_capped_while_running() -> None:
    gate = asyncio.Event()
    harness = await Harness(ScriptedExecutor(gate=gate)).validated()
    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)

    await asyncio.sleep(0.05)
    running = harness.scheduler.get_status(job.id)

    assert 0 < running.progress <= 99.0
    gate.set()
    await harness.scheduler.wait(job.id, timeout=2)


async def test_snapshots_are_copies() -> None:
    harness = await Harness(ScriptedExecutor()).validated()
    job = await harness.scheduler.submit("acme", "extract_acme", PARAMS)

    job.parameters["token"] = "leaked"

    assert harness.scheduler.get_status(job.id).parameters["token"] == "***"
    await harness.scheduler.wait(job.id, timeout=2)


async def test_stats() -> None:
    executor = ScriptedExecutor(PAYLOAD, InvalidCredentials("acme"))
    harness = await Harness(executor).validated()

    first = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    await harness.scheduler.wait(first.id, timeout=2)
    second = await harness.scheduler.submit("acme", "extract_acme", PARAMS)
    await harness.scheduler.wait(second.id, timeout=2)

    stats = harness.scheduler.stats("acme")
    assert stats.completed_jobs == 1
    assert stats.failed_jobs == 1
    assert stats.active_jobs == 0
    assert stats.success_rate == 50.0
    assert stats.total_conversations_captured == 1
    assert stats.last_extraction is not None


async def test_unknown_job() -> None:
    harness = Harness(ScriptedExecutor())

    with pytest.raises(JobNotFound):
        harness.scheduler.get_status("job_missing")
    with pytest.raises(JobNotFound):
        await harness.scheduler.cancel("job_missing")
