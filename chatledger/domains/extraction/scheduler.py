"""
Extraction Job Scheduler - One-shot extraction jobs.

Each accepted job runs as its own asyncio task:
1. Look up the credential's validation record
2. Claim the (provider, credential) slot
3. Invoke the extraction tool (transient failures retried)
4. Normalize and store the conversations
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chatledger.config.errors import (
    TRANSIENT_ERRORS,
    CredentialsNotValidated,
    InvalidStateTransition,
    JobAlreadyRunning,
    JobNotFound,
)
from chatledger.domains.conversations import ConversationStore, PayloadNormalizer
from chatledger.domains.credentials import ValidationAuthority
from chatledger.domains.providers import Credential, ProviderRegistry
from chatledger.domains.tools import ToolInvoker, ToolResult
from chatledger.domains.work import ActiveWorkRegistry, ErrorInfo, StateChange, slot_key

from .models import JOB_TRANSITIONS, ExtractionJob, ExtractionStats, JobState

logger = logging.getLogger(__name__)

__all__ = ["ExtractionScheduler"]

MAX_PROGRESS_BEFORE_DONE = 99.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExtractionScheduler:
    """
    Runs extraction jobs in the background.

    Example:
        >>> scheduler = ExtractionScheduler(registry, gateway, validator, normalizer, store)
        >>> job = await scheduler.submit("claude", "extract_claude_conversations", params)
        >>> job = await scheduler.wait(job.id, timeout=30)
        >>> job.state
        <JobState.SUCCEEDED: 'succeeded'>
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        gateway: ToolInvoker,
        validations: ValidationAuthority,
        normalizer: PayloadNormalizer,
        store: ConversationStore,
        slots: ActiveWorkRegistry | None = None,
        max_attempts: int = 3,
        backoff_initial_seconds: float = 1.0,
        backoff_max_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            registry: Provider registry (descriptors for redaction and timing)
            gateway: Tool gateway used to run the extraction tool
            validations: Source of existing validation records
            normalizer: Payload normalizer
            store: Conversation store receiving results
            slots: Active-job registry (created if None)
            max_attempts: Attempts per job for transient failures
            backoff_initial_seconds: First retry delay
            backoff_max_seconds: Retry delay cap
            clock: Source of the current UTC time
        """
        self._registry = registry
        self._gateway = gateway
        self._validations = validations
        self._normalizer = normalizer
        self._store = store
        self._slots = slots or ActiveWorkRegistry("jobs")
        self._max_attempts = max_attempts
        self._backoff_initial = backoff_initial_seconds
        self._backoff_max = backoff_max_seconds
        self._clock = clock

        self._jobs: dict[str, ExtractionJob] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._done: dict[str, asyncio.Event] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    async def submit(
        self,
        provider_id: str,
        tool_name: str,
        parameters: dict[str, Any] | None,
    ) -> ExtractionJob:
        """
        Accept an extraction job and start it in the background.

        Args:
            provider_id: Provider id
            tool_name: Extraction tool name
            parameters: Tool parameters including credential fields

        Returns:
            Snapshot of the Running job

        Raises:
            UnknownProvider / UnknownTool / SchemaValidationError: Rejected before a job exists
            CredentialsNotValidated: No fresh validation record (job recorded as Failed)
            JobAlreadyRunning: Slot held by another job (job recorded as Failed)
        """
        _, params = self._gateway.prepare(tool_name, provider_id, parameters)
        descriptor = self._registry.describe(provider_id)
        credential = Credential.from_parameters(descriptor, params)

        job = ExtractionJob(
            id=f"job_{uuid.uuid4().hex}",
            provider_id=provider_id,
            tool_name=tool_name,
            credential_fingerprint=credential.fingerprint,
            parameters=descriptor.redact(params),
            created_at=self._clock(),
            history=[StateChange(to_state=JobState.QUEUED.value, at=self._clock())],
        )
        self._jobs[job.id] = job
        self._locks[job.id] = asyncio.Lock()
        self._done[job.id] = asyncio.Event()
        logger.info("Job %s queued: %s/%s", job.id, provider_id, tool_name)

        self._transition(job, JobState.VALIDATING)
        record = await self._validations.lookup(provider_id, credential.fingerprint)
        if record is None or not record.is_fresh(self._clock()):
            error = CredentialsNotValidated(provider_id, {"job_id": job.id})
            self._fail(job, error)
            raise error

        key = slot_key(provider_id, credential.fingerprint)
        if not self._slots.try_acquire(key, job.id):
            error = JobAlreadyRunning(provider_id, self._slots.holder(key) or "unknown")
            error.details["job_id"] = job.id
            self._fail(job, error)
            raise error

        job.started_at = self._clock()
        self._transition(job, JobState.RUNNING)
        self._tasks[job.id] = asyncio.create_task(
            self._run(job, params, key), name=f"extraction-{job.id}"
        )
        return self._snapshot(job)

    async def _run(self, job: ExtractionJob, params: dict[str, Any], key: str) -> None:
        lock = self._locks[job.id]
        try:
            result = await self._invoke_with_retry(job, params)
            output = self._normalizer.normalize(job.provider_id, result.data)

            async with lock:
                if job.is_terminal:
                    logger.info("Discarding late result for %s job %s", job.state.value, job.id)
                    return
                for conversation in output.conversations:
                    await self._store.upsert_conversation(conversation)
                job.result = output
                job.progress = 100.0
                self._transition(job, JobState.SUCCEEDED)

            logger.info(
                "Job %s succeeded: %d conversations, %d errors",
                job.id,
                output.metadata.total_conversations,
                len(output.errors),
            )
        except asyncio.CancelledError:
            logger.debug("Job %s task cancelled", job.id)
            raise
        except Exception as e:
            async with lock:
                if not job.is_terminal:
                    logger.warning("Job %s failed: %s", job.id, e)
                    self._fail(job, e)
        finally:
            self._slots.release(key, job.id)

    async def _invoke_with_retry(self, job: ExtractionJob, params: dict[str, Any]) -> ToolResult:
        def log_retry(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            logger.warning(
                "Job %s attempt %d failed (%s), retrying",
                job.id,
                state.attempt_number,
                error,
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_initial, max=self._backoff_max),
            before_sleep=log_retry,
            reraise=True,
        )

        async def attempt_once() -> ToolResult:
            job.attempts += 1
            return await self._gateway.invoke(job.tool_name, job.provider_id, params)

        return await retrying(attempt_once)

    async def cancel(self, job_id: str, reason: str = "cancelled by caller") -> ExtractionJob:
        """
        Cancel a job.

        Cancelling a terminal job is a no-op that returns its snapshot.

        Raises:
            JobNotFound: Unknown job id
        """
        job = self._get(job_id)
        async with self._locks[job_id]:
            if job.is_terminal:
                return self._snapshot(job)

            self._transition(job, JobState.CANCELLED, reason)
            task = self._tasks.get(job_id)
            if task is not None and not task.done():
                task.cancel()
            self._slots.release(slot_key(job.provider_id, job.credential_fingerprint), job_id)

        logger.info("Job %s cancelled: %s", job_id, reason)
        return self._snapshot(job)

    def get_status(self, job_id: str) -> ExtractionJob:
        """
        Snapshot of a job with current synthetic progress.

        Raises:
            JobNotFound: Unknown job id
        """
        job = self._get(job_id)
        if job.state == JobState.RUNNING and job.started_at is not None:
            descriptor = self._registry.describe(job.provider_id)
            expected = max(descriptor.expected_extraction_seconds, 0.001)
            elapsed = (self._clock() - job.started_at).total_seconds()
            estimate = min(elapsed / expected * 100.0, MAX_PROGRESS_BEFORE_DONE)
            job.progress = max(job.progress, round(estimate, 1))
        return self._snapshot(job)

    async def wait(self, job_id: str, timeout: float | None = None) -> ExtractionJob:
        """
        Wait until the job is terminal.

        Returns the current snapshot if the timeout elapses first.
        """
        done = self._done.get(job_id)
        if done is None:
            raise JobNotFound(job_id)
        try:
            await asyncio.wait_for(done.wait(), timeout)
        except asyncio.TimeoutError:
            logger.debug("Timed out waiting for job %s", job_id)
        return self.get_status(job_id)

    def list_jobs(
        self,
        provider_id: str | None = None,
        state: JobState | None = None,
    ) -> list[ExtractionJob]:
        """Job snapshots, newest first."""
        jobs = [
            j
            for j in self._jobs.values()
            if (provider_id is None or j.provider_id == provider_id)
            and (state is None or j.state == state)
        ]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return [self.get_status(j.id) for j in jobs]

    def stats(self, provider_id: str | None = None) -> ExtractionStats:
        """Aggregate counts across jobs, optionally for one provider."""
        jobs = [j for j in self._jobs.values() if provider_id is None or j.provider_id == provider_id]
        succeeded = [j for j in jobs if j.state == JobState.SUCCEEDED]
        failed = sum(1 for j in jobs if j.state == JobState.FAILED)
        finished = len(succeeded) + failed

        return ExtractionStats(
            provider_id=provider_id,
            active_jobs=sum(1 for j in jobs if not j.is_terminal),
            completed_jobs=len(succeeded),
            failed_jobs=failed,
            cancelled_jobs=sum(1 for j in jobs if j.state == JobState.CANCELLED),
            last_extraction=max((j.finished_at for j in succeeded if j.finished_at), default=None),
            total_conversations_captured=sum(
                j.result.metadata.total_conversations for j in succeeded if j.result
            ),
            success_rate=round(len(succeeded) / finished * 100, 1) if finished else 0.0,
        )

    async def shutdown(self) -> None:
        """Cancel outstanding jobs and wait for their tasks."""
        for job in list(self._jobs.values()):
            if not job.is_terminal:
                await self.cancel(job.id, reason="scheduler shutdown")
        tasks = [t for t in self._tasks.values() if not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Extraction scheduler stopped")

    def _get(self, job_id: str) -> ExtractionJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def _snapshot(self, job: ExtractionJob) -> ExtractionJob:
        return job.model_copy(deep=True)

    def _transition(self, job: ExtractionJob, target: JobState, reason: str = "") -> None:
        if target not in JOB_TRANSITIONS[job.state]:
            raise InvalidStateTransition("job", job.id, job.state.value, target.value)

        now = self._clock()
        job.history.append(
            StateChange(from_state=job.state.value, to_state=target.value, at=now, reason=reason)
        )
        logger.debug("Job %s: %s -> %s", job.id, job.state.value, target.value)
        job.state = target
        if target.is_terminal:
            job.finished_at = now
            self._done[job.id].set()

    def _fail(self, job: ExtractionJob, error: BaseException) -> None:
        job.error = ErrorInfo.from_exception(error)
        self._transition(job, JobState.FAILED, job.error.code)
