"""
ChatLedger Orchestrator - Single entry point for the API and CLI.

Wires the registry, validator, gateway, normalizer, store, scheduler and
monitor together. Every collaborator is passed in (or built by
``build_orchestrator``); nothing here is module-level state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from chatledger.config.settings import Settings, get_settings
from chatledger.domains.conversations import (
    Conversation,
    ConversationFilters,
    ConversationPage,
    ConversationStore,
    ResultNormalizer,
)
from chatledger.domains.credentials import (
    CredentialValidator,
    SlidingWindowRateLimiter,
    ValidationRecord,
)
from chatledger.domains.extraction import ExtractionJob, ExtractionScheduler, ExtractionStats
from chatledger.domains.monitoring import MonitoringSession, MonitoringSessionManager, WebhookSink
from chatledger.domains.providers import ProviderDescriptor, ProviderRegistry, ToolDescriptor
from chatledger.domains.tools import ToolGateway, ToolResult

if TYPE_CHECKING:
    from chatledger.domains.extraction import JobState
    from chatledger.domains.monitoring import SessionState

logger = logging.getLogger(__name__)

__all__ = ["ChatLedgerOrchestrator", "build_orchestrator", "build_store"]


class ChatLedgerOrchestrator:
    """
    Facade over the extraction and monitoring services.

    Example:
        >>> orchestrator = build_orchestrator()
        >>> await orchestrator.validate_credentials("claude", {"session_cookie": "abc"})
        >>> job_id = await orchestrator.submit_extraction_job(
        ...     "claude", "extract_claude_conversations", {"session_cookie": "abc"}
        ... )
        >>> orchestrator.get_job_status(job_id).state
        <JobState.RUNNING: 'running'>
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        validator: CredentialValidator,
        gateway: ToolGateway,
        store: ConversationStore,
        scheduler: ExtractionScheduler,
        monitor: MonitoringSessionManager,
        sink: WebhookSink | None = None,
    ) -> None:
        self.registry = registry
        self.validator = validator
        self.gateway = gateway
        self.store = store
        self.scheduler = scheduler
        self.monitor = monitor
        self.sink = sink

    # --- Providers and tools ---

    def list_providers(self) -> list[ProviderDescriptor]:
        return self.registry.list_providers()

    def describe_provider(self, provider_id: str) -> ProviderDescriptor:
        return self.registry.describe(provider_id)

    def list_tools(self, provider_id: str | None = None) -> list[ToolDescriptor]:
        return self.registry.list_tools(provider_id)

    async def invoke_tool(
        self,
        tool_name: str,
        provider_id: str,
        parameters: dict[str, Any] | None,
    ) -> ToolResult:
        """Direct, synchronous-from-the-caller's-view tool invocation."""
        return await self.gateway.invoke(tool_name, provider_id, parameters)

    # --- Credentials ---

    async def validate_credentials(
        self,
        provider_id: str,
        credentials: dict[str, Any],
    ) -> ValidationRecord:
        return await self.validator.validate(provider_id, credentials)

    # --- Extraction ---

    async def submit_extraction_job(
        self,
        provider_id: str,
        tool_name: str,
        parameters: dict[str, Any] | None,
    ) -> str:
        """
        Submit an extraction job.

        Returns:
            Job id; poll ``get_job_status`` for progress and result
        """
        job = await self.scheduler.submit(provider_id, tool_name, parameters)
        return job.id

    def get_job_status(self, job_id: str) -> ExtractionJob:
        return self.scheduler.get_status(job_id)

    async def cancel_job(self, job_id: str) -> ExtractionJob:
        return await self.scheduler.cancel(job_id)

    def list_jobs(
        self,
        provider_id: str | None = None,
        state: JobState | None = None,
    ) -> list[ExtractionJob]:
        return self.scheduler.list_jobs(provider_id, state)

    def extraction_status(self, provider_id: str | None = None) -> ExtractionStats:
        return self.scheduler.stats(provider_id)

    # --- Monitoring ---

    async def start_monitoring(
        self,
        provider_id: str,
        tool_name: str,
        parameters: dict[str, Any] | None,
        webhook_url: str | None = None,
    ) -> str:
        """
        Start a monitoring session.

        Returns:
            Session id; poll ``get_session_status`` for counters
        """
        session = await self.monitor.start(provider_id, tool_name, parameters, webhook_url)
        return session.id

    async def stop_monitoring(self, session_id: str) -> MonitoringSession:
        return await self.monitor.stop(session_id)

    async def pause_monitoring(self, session_id: str) -> MonitoringSession:
        return await self.monitor.pause(session_id)

    async def resume_monitoring(self, session_id: str) -> MonitoringSession:
        return await self.monitor.resume(session_id)

    def get_session_status(self, session_id: str) -> MonitoringSession:
        return self.monitor.get_status(session_id)

    def list_sessions(
        self,
        provider_id: str | None = None,
        state: SessionState | None = None,
    ) -> list[MonitoringSession]:
        return self.monitor.list_sessions(provider_id, state)

    # --- Conversations ---

    async def list_conversations(self, filters: ConversationFilters) -> ConversationPage:
        return await self.store.list_conversations(filters)

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return await self.store.get_conversation(conversation_id)

    async def list_subjects(self) -> list[str]:
        return await self.store.list_subjects()

    async def list_conversation_providers(self) -> list[str]:
        return await self.store.list_providers()

    async def shutdown(self) -> None:
        """Stop sessions and jobs, then release adapters."""
        await self.monitor.shutdown()
        await self.scheduler.shutdown()
        for resource in (self.sink, self.store):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
        logger.info("Orchestrator shut down")


def build_store(settings: Settings) -> ConversationStore:
    """Conversation store selected by ``settings.store_backend``."""
    if settings.store_backend == "sqlite":
        from chatledger.adapters.sqlite import SQLiteConversationStore

        return SQLiteConversationStore(settings.db_path)

    from chatledger.adapters.memory import InMemoryConversationStore

    return InMemoryConversationStore()


def build_orchestrator(
    settings: Settings | None = None,
    registry: ProviderRegistry | None = None,
    store: ConversationStore | None = None,
    sink: WebhookSink | None = None,
) -> ChatLedgerOrchestrator:
    """
    Build a fully wired orchestrator.

    Args:
        settings: Application settings (cached settings if None)
        registry: Provider registry (fixture executors for every built-in provider if None)
        store: Conversation store (chosen by ``settings.store_backend`` if None)
        sink: Webhook sink (httpx sink if None)

    Returns:
        ChatLedgerOrchestrator
    """
    settings = settings or get_settings()

    if registry is None:
        from chatledger.adapters.fixtures import build_fixture_registry

        registry = build_fixture_registry(latency_seconds=settings.fixture_latency_seconds)
    if store is None:
        store = build_store(settings)
    if sink is None:
        from chatledger.adapters.webhook import HttpxWebhookSink

        sink = HttpxWebhookSink(
            timeout=settings.webhook_timeout_seconds,
            max_attempts=settings.webhook_max_attempts,
        )

    validator = CredentialValidator(
        registry,
        rate_limiter=SlidingWindowRateLimiter(
            limit=settings.validation_rate_limit,
            window_seconds=settings.validation_rate_window_seconds,
        ),
        ttl_seconds=settings.validation_ttl_seconds,
        verify_timeout_seconds=settings.tool_timeout_seconds,
    )
    gateway = ToolGateway(registry, timeout_seconds=settings.tool_timeout_seconds)
    normalizer = ResultNormalizer()

    scheduler = ExtractionScheduler(
        registry,
        gateway,
        validator,
        normalizer,
        store,
        max_attempts=settings.job_max_attempts,
        backoff_initial_seconds=settings.job_backoff_initial_seconds,
        backoff_max_seconds=settings.job_backoff_max_seconds,
    )
    monitor = MonitoringSessionManager(
        registry,
        gateway,
        validator,
        normalizer,
        store,
        sink,
        max_consecutive_failures=settings.monitor_max_consecutive_failures,
        backoff_max_seconds=settings.monitor_backoff_max_seconds,
    )

    logger.info(
        "Orchestrator built: %d providers, %s store",
        len(registry),
        type(store).__name__,
    )
    return ChatLedgerOrchestrator(registry, validator, gateway, store, scheduler, monitor, sink)
