"""
Tests for the orchestrator facade, wired with fixture providers.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest

from chatledger.adapters.memory import InMemoryConversationStore
from chatledger.adapters.sqlite import SQLiteConversationStore
from chatledger.config import Settings
from chatledger.config.errors import (
    CredentialsNotValidated,
    InvalidCredentials,
    SchemaValidationError,
    UnknownProvider,
)
from chatledger.domains.conversations import ConversationFilters
from chatledger.domains.extraction import JobState
from chatledger.domains.monitoring import SessionState
from chatledger.domains.providers import ToolOperation
from chatledger.domains.tools import ToolResult

from .orchestrator import ChatLedgerOrchestrator, build_orchestrator, build_store

CLAUDE_PARAMS = {"session_cookie": "cookie-123"}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        fixture_latency_seconds=0.0,
        job_backoff_initial_seconds=0.0,
        store_backend="memory",
    )


@pytest.fixture
async def orchestrator(settings: Settings) -> AsyncGenerator[ChatLedgerOrchestrator, None]:
    orch = build_orchestrator(settings, sink=AsyncMock())
    yield orch
    await orch.shutdown()


async def test_claude_extraction(orchestrator: ChatLedgerOrchestrator) -> None:
    """Test validate, submit and completion for the built-in Claude fixture."""
    record = await orchestrator.validate_credentials("claude", CLAUDE_PARAMS)
    assert record.valid

    job_id = await orchestrator.submit_extraction_job(
        "claude", "extract_claude_conversations", CLAUDE_PARAMS
    )
    job = await orchestrator.scheduler.wait(job_id, timeout=5)

    assert job.state == JobState.SUCCEEDED
    assert job.result.metadata.total_conversations == 1
    assert job.result.metadata.extraction_method == "api_scraping"

    page = await orchestrator.list_conversations(ConversationFilters(provider="claude"))
    assert page.total == 1
    assert page.conversations[0].id == "claude:claude_conv_1"
    assert await orchestrator.list_conversation_providers() == ["claude"]

    stats = orchestrator.extraction_status("claude")
    assert stats.completed_jobs == 1
    assert stats.success_rate == 100.0


async def test_re_extraction_keeps_one_record(orchestrator: ChatLedgerOrchestrator) -> None:
    await orchestrator.validate_credentials("claude", CLAUDE_PARAMS)

    for _ in range(2):
        job_id = await orchestrator.submit_extraction_job(
            "claude", "extract_claude_conversations", CLAUDE_PARAMS
        )
        job = await orchestrator.scheduler.wait(job_id, timeout=5)
        assert job.state == JobState.SUCCEEDED

    page = await orchestrator.list_conversations(ConversationFilters())
    assert page.total == 1
    assert page.conversations[0].message_count == 2


async def test_empty_token_is_rejected(orchestrator: ChatLedgerOrchestrator) -> None:
    """Test a blank ChatGPT token fails validation and cannot start a job."""
    params = {"session_token": ""}

    with pytest.raises(InvalidCredentials):
        await orchestrator.validate_credentials("chatgpt", params)

    with pytest.raises(CredentialsNotValidated):
        await orchestrator.submit_extraction_job(
            "chatgpt", "extract_chatgpt_conversations", params
        )

    jobs = orchestrator.list_jobs(provider_id="chatgpt")
    assert [j.state for j in jobs] == [JobState.FAILED]


async def test_missing_parameters(orchestrator: ChatLedgerOrchestrator) -> None:
    with pytest.raises(SchemaValidationError) as exc_info:
        await orchestrator.submit_extraction_job("claude", "extract_claude_conversations", {})

    assert exc_info.value.fields == ["session_cookie"]


async def test_unknown_provider(orchestrator: ChatLedgerOrchestrator) -> None:
    with pytest.raises(UnknownProvider):
        orchestrator.describe_provider("poe")


async def test_invoke_tool_directly(orchestrator: ChatLedgerOrchestrator) -> None:
    """Test direct invocation returns the raw payload without a validation record."""
    result = await orchestrator.invoke_tool(
        "export_chatgpt_conversation", "chatgpt", {"conversation_id": "chatgpt_conv_2"}
    )

    assert isinstance(result, ToolResult)
    assert result.operation == ToolOperation.EXPORT
    assert result.data["content"]["title"] == "React Component Design"


async def test_monitoring_lifecycle(settings: Settings) -> None:
    sink = AsyncMock()
    orchestrator = build_orchestrator(settings, sink=sink)
    try:
        await orchestrator.validate_credentials("claude", CLAUDE_PARAMS)
        session_id = await orchestrator.start_monitoring(
            "claude", "monitor_claude_projects", CLAUDE_PARAMS, "https://hooks.test/claude"
        )

        session = orchestrator.get_session_status(session_id)
        assert session.state == SessionState.ACTIVE
        assert session.polling_interval == 60
        assert session.webhook_url == "https://hooks.test/claude"

        paused = await orchestrator.pause_monitoring(session_id)
        assert paused.state == SessionState.PAUSED
        resumed = await orchestrator.resume_monitoring(session_id)
        assert resumed.state == SessionState.ACTIVE

        stopped = await orchestrator.stop_monitoring(session_id)
        assert stopped.state == SessionState.STOPPED
        assert orchestrator.list_sessions(state=SessionState.STOPPED)[0].id == session_id
    finally:
        await orchestrator.shutdown()


async def test_shutdown_closes_adapters(settings: Settings) -> None:
    sink = AsyncMock()
    store = InMemoryConversationStore()
    store.close = AsyncMock()
    orchestrator = build_orchestrator(settings, store=store, sink=sink)

    await orchestrator.shutdown()

    sink.close.assert_awaited_once()
    store.close.assert_awaited_once()


def test_build_store_backends(tmp_path) -> None:
    assert isinstance(build_store(Settings(store_backend="memory")), InMemoryConversationStore)

    sqlite = build_store(Settings(store_backend="sqlite", db_path=tmp_path / "c.db"))
    assert isinstance(sqlite, SQLiteConversationStore)
