"""
Monitoring Session Manager - Long-lived polling sessions.

Each session is an asyncio task that polls its provider on an interval,
stores new messages and notifies the session webhook. Pause, resume and
stop are cooperative: they flip state and wake the loop, which checks
before every poll and again before applying a poll's results.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from chatledger.config.errors import (
    ChatLedgerError,
    CredentialsNotValidated,
    ExecutionError,
    ExecutionTimeout,
    InvalidStateTransition,
    ProviderUnavailable,
    SchemaValidationError,
    SessionAlreadyActive,
    SessionNotFound,
    WebhookDeliveryError,
)
from chatledger.domains.conversations import ConversationStore, ExtractionOutput, PayloadNormalizer
from chatledger.domains.credentials import ValidationAuthority
from chatledger.domains.providers import Credential, ProviderRegistry, ToolOperation
from chatledger.domains.tools import ToolInvoker
from chatledger.domains.work import ActiveWorkRegistry, ErrorInfo, StateChange, slot_key

from .contracts import WebhookSink
from .models import (
    SESSION_TRANSITIONS,
    MonitoringSession,
    SessionState,
    WebhookNotification,
    dedupe_key,
)

logger = logging.getLogger(__name__)

__all__ = ["MonitoringSessionManager", "POLL_TRANSIENT_ERRORS"]

# Poll failures that back off instead of ending the session
POLL_TRANSIENT_ERRORS = (ProviderUnavailable, ExecutionTimeout, ExecutionError)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _SessionControl:
    """Loop-side handles for one session."""

    def __init__(self) -> None:
        self.stop = asyncio.Event()
        self.wake = asyncio.Event()
        self.task: asyncio.Task[None] | None = None


class MonitoringSessionManager:
    """
    Starts and supervises monitoring sessions.

    Example:
        >>> manager = MonitoringSessionManager(registry, gateway, validator, normalizer, store, sink)
        >>> session = await manager.start(
        ...     "claude", "monitor_claude_projects", params, webhook_url="https://hooks.example/x"
        ... )
        >>> await manager.pause(session.id)
        >>> await manager.stop(session.id)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        gateway: ToolInvoker,
        validations: ValidationAuthority,
        normalizer: PayloadNormalizer,
        store: ConversationStore,
        sink: WebhookSink | None = None,
        slots: ActiveWorkRegistry | None = None,
        max_consecutive_failures: int = 5,
        backoff_max_seconds: float = 600.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize manager.

        Args:
            registry: Provider registry (polling bounds, credential fields)
            gateway: Tool gateway used for each poll
            validations: Source of existing validation records
            normalizer: Payload normalizer
            store: Conversation store receiving captured messages
            sink: Webhook sink (notifications skipped if None)
            slots: Active-session registry (created if None)
            max_consecutive_failures: Transient failures tolerated before Error
            backoff_max_seconds: Cap on the failure backoff delay
            clock: Source of the current UTC time
        """
        self._registry = registry
        self._gateway = gateway
        self._validations = validations
        self._normalizer = normalizer
        self._store = store
        self._sink = sink
        self._slots = slots or ActiveWorkRegistry("sessions")
        self._max_failures = max_consecutive_failures
        self._backoff_max = backoff_max_seconds
        self._clock = clock

        self._sessions: dict[str, MonitoringSession] = {}
        self._controls: dict[str, _SessionControl] = {}

    async def start(
        self,
        provider_id: str,
        tool_name: str,
        parameters: dict[str, Any] | None,
        webhook_url: str | None = None,
    ) -> MonitoringSession:
        """
        Start a monitoring session.

        Args:
            provider_id: Provider id
            tool_name: Polling tool name
            parameters: Tool parameters including credential fields
            webhook_url: Notification target (overrides ``parameters["webhook_url"]``)

        Returns:
            Snapshot of the Active session; the first poll is due immediately

        Raises:
            UnknownProvider / UnknownTool: Lookup failed
            SchemaValidationError: Bad parameters or polling interval out of bounds
            CredentialsNotValidated: No fresh validation record
            SessionAlreadyActive: Another session holds the credential slot
        """
        merged = dict(parameters or {})
        if webhook_url is not None:
            merged["webhook_url"] = webhook_url
        tool, params = self._gateway.prepare(tool_name, provider_id, merged)

        if tool.operation != ToolOperation.POLL:
            raise SchemaValidationError(
                tool_name, [{"field": "tool_name", "message": "tool does not support polling"}]
            )

        descriptor = self._registry.describe(provider_id)
        bounds = descriptor.polling
        interval = float(params.get("polling_interval", bounds.default_seconds))
        if not bounds.contains(interval):
            raise SchemaValidationError(
                tool_name,
                [
                    {
                        "field": "polling_interval",
                        "message": (
                            f"must be between {bounds.min_seconds:g} and "
                            f"{bounds.max_seconds:g} seconds"
                        ),
                    }
                ],
            )
        params["polling_interval"] = interval

        credential = Credential.from_parameters(descriptor, params)
        now = self._clock()
        session = MonitoringSession(
            id=f"monitor_{provider_id}_{uuid.uuid4().hex[:12]}",
            provider_id=provider_id,
            tool_name=tool_name,
            credential_fingerprint=credential.fingerprint,
            polling_interval=interval,
            webhook_url=params.get("webhook_url"),
            parameters=descriptor.redact(params),
            created_at=now,
            history=[StateChange(to_state=SessionState.STARTING.value, at=now)],
        )
        self._sessions[session.id] = session
        self._controls[session.id] = _SessionControl()

        record = await self._validations.lookup(provider_id, credential.fingerprint)
        if record is None or not record.is_fresh(self._clock()):
            error = CredentialsNotValidated(provider_id, {"session_id": session.id})
            self._enter_error(session, error)
            raise error

        key = slot_key(provider_id, credential.fingerprint)
        if not self._slots.try_acquire(key, session.id):
            error = SessionAlreadyActive(provider_id, self._slots.holder(key) or "unknown")
            error.details["session_id"] = session.id
            self._enter_error(session, error)
            raise error

        session.next_poll_at = self._clock()
        self._transition(session, SessionState.ACTIVE)
        control = self._controls[session.id]
        control.task = asyncio.create_task(
            self._loop(session, params, key), name=f"monitor-{session.id}"
        )
        logger.info(
            "Monitoring session %s started: %s/%s every %gs",
            session.id,
            provider_id,
            tool_name,
            interval,
        )
        return self._snapshot(session)

    async def _loop(self, session: MonitoringSession, params: dict[str, Any], key: str) -> None:
        control = self._controls[session.id]
        since: datetime | None = None
        try:
            while not control.stop.is_set():
                if session.state == SessionState.PAUSED:
                    await control.wake.wait()
                    control.wake.clear()
                    continue
                if session.state != SessionState.ACTIVE:
                    break

                delay = (session.next_poll_at - self._clock()).total_seconds()
                if delay > 0:
                    try:
                        await asyncio.wait_for(control.wake.wait(), delay)
                    except asyncio.TimeoutError:
                        pass
                    control.wake.clear()
                    continue

                attempt_at = self._clock()
                try:
                    result = await self._gateway.invoke(
                        session.tool_name, session.provider_id, params, since=since
                    )
                except POLL_TRANSIENT_ERRORS as e:
                    self._record_failure(session, attempt_at, e)
                    continue

                session.last_poll_at = attempt_at
                session.next_poll_at = attempt_at + timedelta(seconds=session.polling_interval)
                if control.stop.is_set():
                    break

                output = self._normalizer.normalize(session.provider_id, result.data)
                await self._apply(session, output, control)
                since = attempt_at
                session.consecutive_failures = 0
                session.polls_completed += 1
                session.next_poll_at = max(
                    self._clock(), attempt_at
                ) + timedelta(seconds=session.polling_interval)
        except asyncio.CancelledError:
            logger.debug("Monitoring task %s cancelled", session.id)
            raise
        except ChatLedgerError as e:
            logger.warning("Monitoring session %s failed: %s", session.id, e)
            self._enter_error(session, e)
        except Exception as e:
            logger.exception("Monitoring session %s crashed", session.id)
            self._enter_error(session, e)
        finally:
            self._slots.release(key, session.id)
            logger.info("Monitoring loop %s exited (%s)", session.id, session.state.value)

    def _record_failure(
        self,
        session: MonitoringSession,
        attempt_at: datetime,
        error: ChatLedgerError,
    ) -> None:
        session.last_poll_at = attempt_at
        session.consecutive_failures += 1
        session.last_error = ErrorInfo.from_exception(error)

        if session.consecutive_failures >= self._max_failures:
            logger.warning(
                "Monitoring session %s giving up after %d consecutive failures",
                session.id,
                session.consecutive_failures,
            )
            self._enter_error(session, error)
            return

        interval = session.polling_interval
        backoff = min(interval * 2**session.consecutive_failures, self._backoff_max)
        delay = max(interval, backoff)
        session.next_poll_at = attempt_at + timedelta(seconds=delay)
        logger.warning(
            "Poll %s failed (%s), attempt %d, next in %.1fs",
            session.id,
            error.code.value,
            session.consecutive_failures,
            delay,
        )

    async def _apply(
        self,
        session: MonitoringSession,
        output: ExtractionOutput,
        control: _SessionControl,
    ) -> None:
        """Store captured conversations, then notify one message at a time."""
        for conversation in output.conversations:
            await self._store.upsert_conversation(conversation)
        session.conversations_captured += len(output.conversations)
        session.messages_captured += output.message_count

        if self._sink is None or not session.webhook_url:
            return

        cycle = session.polls_completed + 1
        for conversation in output.conversations:
            for message in conversation.messages:
                if control.stop.is_set():
                    return
                notification = WebhookNotification(
                    session_id=session.id,
                    provider_id=session.provider_id,
                    conversation_id=conversation.id,
                    conversation_title=conversation.title,
                    message=message,
                    poll_cycle=cycle,
                    dedupe_key=dedupe_key(session.provider_id, conversation.id, message.id),
                    captured_at=self._clock(),
                )
                try:
                    await self._sink.deliver(
                        session.webhook_url, notification.payload(), notification.dedupe_key
                    )
                except WebhookDeliveryError as e:
                    session.deliveries_failed += 1
                    logger.warning("Webhook delivery failed for %s: %s", session.id, e)
                else:
                    session.webhooks_delivered += 1

    async def pause(self, session_id: str) -> MonitoringSession:
        """
        Pause polling. Pausing a paused session is a no-op.

        Raises:
            SessionNotFound: Unknown session id
            InvalidStateTransition: Session is not Active
        """
        session = self._get(session_id)
        if session.state != SessionState.PAUSED:
            self._transition(session, SessionState.PAUSED)
            self._controls[session_id].wake.set()
            logger.info("Monitoring session %s paused", session_id)
        return self._snapshot(session)

    async def resume(self, session_id: str) -> MonitoringSession:
        """
        Resume polling; the next poll is one interval from now.

        Raises:
            SessionNotFound: Unknown session id
            InvalidStateTransition: Session is not Paused
        """
        session = self._get(session_id)
        if session.state != SessionState.ACTIVE:
            self._transition(session, SessionState.ACTIVE)
            session.next_poll_at = self._clock() + timedelta(seconds=session.polling_interval)
            self._controls[session_id].wake.set()
            logger.info("Monitoring session %s resumed", session_id)
        return self._snapshot(session)

    async def stop(self, session_id: str) -> MonitoringSession:
        """
        Stop a session. Stopping a stopped session is a no-op.

        The loop finishes cooperatively: no poll starts and no result is
        applied after this returns.

        Raises:
            SessionNotFound: Unknown session id
        """
        session = self._get(session_id)
        control = self._controls[session_id]
        if session.state != SessionState.STOPPED:
            self._transition(session, SessionState.STOPPED)
            logger.info("Monitoring session %s stopped", session_id)
        control.stop.set()
        control.wake.set()
        self._slots.release(slot_key(session.provider_id, session.credential_fingerprint), session_id)
        return self._snapshot(session)

    def get_status(self, session_id: str) -> MonitoringSession:
        """
        Snapshot of a session.

        Raises:
            SessionNotFound: Unknown session id
        """
        return self._snapshot(self._get(session_id))

    def list_sessions(
        self,
        provider_id: str | None = None,
        state: SessionState | None = None,
    ) -> list[MonitoringSession]:
        """Session snapshots, newest first."""
        sessions = [
            s
            for s in self._sessions.values()
            if (provider_id is None or s.provider_id == provider_id)
            and (state is None or s.state == state)
        ]
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return [self._snapshot(s) for s in sessions]

    async def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Stop every session and wait for the loops to exit."""
        for session in list(self._sessions.values()):
            if session.state != SessionState.STOPPED:
                await self.stop(session.id)

        tasks = [c.task for c in self._controls.values() if c.task and not c.task.done()]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=grace_seconds)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Monitoring manager stopped")

    def _get(self, session_id: str) -> MonitoringSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def _snapshot(self, session: MonitoringSession) -> MonitoringSession:
        return session.model_copy(deep=True)

    def _transition(
        self,
        session: MonitoringSession,
        target: SessionState,
        reason: str = "",
    ) -> None:
        if target not in SESSION_TRANSITIONS[session.state]:
            raise InvalidStateTransition("session", session.id, session.state.value, target.value)
        session.history.append(
            StateChange(
                from_state=session.state.value,
                to_state=target.value,
                at=self._clock(),
                reason=reason,
            )
        )
        logger.debug("Session %s: %s -> %s", session.id, session.state.value, target.value)
        session.state = target

    def _enter_error(self, session: MonitoringSession, error: BaseException) -> None:
        """Record the error; move to Error unless the session already left Starting/Active."""
        session.last_error = ErrorInfo.from_exception(error)
        if SessionState.ERROR in SESSION_TRANSITIONS[session.state]:
            self._transition(session, SessionState.ERROR, session.last_error.code)
