"""
Tests for the Tool Invocation Gateway and parameter schema checks.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest

from chatledger.config.errors import (
    ExecutionError,
    ExecutionTimeout,
    ProviderUnavailable,
    SchemaValidationError,
    UnknownTool,
)
from chatledger.domains.providers import (
    ProviderBinding,
    ProviderRegistry,
    ToolOperation,
    default_descriptors,
)

from .gateway import ToolGateway
from .schema import check_parameters, validate_parameters


class RecordingExecutor:
    """Executor that records calls and returns or raises on demand."""

    def __init__(self, result: Any = None, error: Exception | None = None, delay: float = 0.0):
        self.calls: list[tuple[str, dict[str, Any], Any]] = []
        self.result = {"conversations": []} if result is None else result
        self.error = error
        self.delay = delay

    async def _run(self, operation: str, parameters: dict[str, Any], since: Any = None) -> Any:
        self.calls.append((operation, parameters, since))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result

    async def extract(self, credential, parameters):
        return await self._run("extract", parameters)

    async def poll_for_new(self, credential, parameters, since):
        return await self._run("poll", parameters, since)

    async def export(self, credential, parameters):
        return await self._run("export", parameters)


def make_gateway(executor: RecordingExecutor, timeout: float = 1.0) -> ToolGateway:
    registry = ProviderRegistry(
        [ProviderBinding(d, executor, object()) for d in default_descriptors()]
    )
    return ToolGateway(registry, timeout_seconds=timeout)


# --- Gateway Tests ---


async def test_invoke_applies_defaults() -> None:
    """Test defaults reach the executor and the payload comes back."""
    executor = RecordingExecutor({"conversations": [{"id": "c1"}]})
    gateway = make_gateway(executor)

    result = await gateway.invoke(
        "extract_chatgpt_conversations", "chatgpt", {"session_token": "abc"}
    )

    assert result.data == {"conversations": [{"id": "c1"}]}
    assert result.operation == ToolOperation.EXTRACT
    assert result.elapsed_ms >= 0
    operation, params, _ = executor.calls[0]
    assert operation == "extract"
    assert params["max_conversations"] == 100
    assert params["include_archived"] is False


async def test_missing_required_field_is_named() -> None:
    """Test the error names the missing field and the executor is never called."""
    executor = RecordingExecutor()
    gateway = make_gateway(executor)

    with pytest.raises(SchemaValidationError) as exc_info:
        await gateway.invoke("extract_chatgpt_conversations", "chatgpt", {})

    assert exc_info.value.fields == ["session_token"]
    assert executor.calls == []


async def test_every_violation_is_reported() -> None:
    executor = RecordingExecutor()
    gateway = make_gateway(executor)

    with pytest.raises(SchemaValidationError) as exc_info:
        await gateway.invoke(
            "extract_chatgpt_conversations",
            "chatgpt",
            {"max_conversations": "ten", "include_archived": "yes"},
        )

    assert set(exc_info.value.fields) == {
        "session_token",
        "max_conversations",
        "include_archived",
    }
    assert executor.calls == []


async def test_poll_tool_passes_since() -> None:
    executor = RecordingExecutor()
    gateway = make_gateway(executor)
    since = datetime(2024, 1, 15, tzinfo=timezone.utc)

    await gateway.invoke(
        "monitor_claude_projects",
        "claude",
        {"session_cookie": "abc", "webhook_url": "https://hooks.test/x"},
        since=since,
    )

    operation, params, seen_since = executor.calls[0]
    assert operation == "poll"
    assert seen_since == since
    assert params["polling_interval"] == 60


async def test_export_dispatch() -> None:
    executor = RecordingExecutor({"content": "x"})
    gateway = make_gateway(executor)

    await gateway.invoke("export_chatgpt_conversation", "chatgpt", {"conversation_id": "c1"})

    assert executor.calls[0][0] == "export"
    assert executor.calls[0][1]["format"] == "json"


async def test_timeout() -> None:
    gateway = make_gateway(RecordingExecutor(delay=1.0), timeout=0.01)

    with pytest.raises(ExecutionTimeout) as exc_info:
        await gateway.invoke("extract_claude_conversations", "claude", {"session_cookie": "a"})

    assert exc_info.value.retryable
    assert exc_info.value.details["timeout_seconds"] == 0.01


async def test_executor_error_is_wrapped() -> None:
    gateway = make_gateway(RecordingExecutor(error=RuntimeError("selector not found")))

    with pytest.raises(ExecutionError) as exc_info:
        await gateway.invoke("extract_claude_conversations", "claude", {"session_cookie": "a"})

    assert exc_info.value.details["detail"] == "selector not found"
    assert not exc_info.value.retryable


async def test_orchestrator_errors_pass_through() -> None:
    gateway = make_gateway(RecordingExecutor(error=ProviderUnavailable("claude")))

    with pytest.raises(ProviderUnavailable):
        await gateway.invoke("extract_claude_conversations", "claude", {"session_cookie": "a"})


async def test_non_object_payload() -> None:
    gateway = make_gateway(RecordingExecutor(result=["not", "a", "dict"]))

    with pytest.raises(ExecutionError, match="expected object"):
        await gateway.invoke("extract_claude_conversations", "claude", {"session_cookie": "a"})


async def test_unknown_tool() -> None:
    gateway = make_gateway(RecordingExecutor())

    with pytest.raises(UnknownTool):
        await gateway.invoke("extract_everything", "claude", {"session_cookie": "a"})


# --- Schema Tests ---

SCHEMA = {
    "type": "object",
    "properties": {
        "format": {"type": "string", "enum": ["json", "markdown"], "default": "json"},
        "project_ids": {"type": "array", "items": {"type": "string"}},
        "date_range": {
            "type": "object",
            "properties": {"start_date": {"type": "string", "format": "date"}},
        },
        "count": {"type": "integer"},
    },
    "required": [],
    "additionalProperties": False,
}


def test_enum_violation() -> None:
    _, violations = check_parameters(SCHEMA, {"format": "pdf"})
    assert violations == [{"field": "format", "message": "must be one of 'json', 'markdown'"}]


def test_nested_paths() -> None:
    """Test nested violations carry dotted and indexed paths."""
    _, violations = check_parameters(
        SCHEMA,
        {"project_ids": ["p1", 2], "date_range": {"start_date": "15/01/2024"}},
    )
    assert [v["field"] for v in violations] == ["project_ids.1", "date_range.start_date"]


def test_unknown_fields_rejected() -> None:
    _, violations = check_parameters(SCHEMA, {"colour": "red"})
    assert violations == [{"field": "colour", "message": "unknown field"}]


def test_integer_excludes_bool_and_float() -> None:
    _, violations = check_parameters(SCHEMA, {"count": True})
    assert violations[0]["field"] == "count"
    _, violations = check_parameters(SCHEMA, {"count": 1.5})
    assert violations[0]["field"] == "count"


def test_parameters_must_be_object() -> None:
    with pytest.raises(SchemaValidationError) as exc_info:
        validate_parameters("tool", SCHEMA, ["a"])
    assert exc_info.value.fields == ["$"]


def test_defaults_are_copied() -> None:
    """Test mutable defaults are not shared between calls."""
    schema = {"type": "object", "properties": {"tags": {"type": "array", "default": []}}}
    first = validate_parameters("tool", schema, {})
    first["tags"].append("x")
    assert validate_parameters("tool", schema, {})["tags"] == []


def test_numeric_and_string_bounds() -> None:
    """Test range, length and pattern keywords are enforced."""
    schema = {
        "type": "object",
        "properties": {
            "limit": {"type": "number", "minimum": 5},
            "code": {"type": "string", "maxLength": 3, "pattern": "^[a-z]+$"},
        },
    }

    _, violations = check_parameters(schema, {"limit": 1, "code": "ABCD"})

    assert [v["field"] for v in violations] == ["limit", "code", "code"]


def test_required_reported_before_value_errors() -> None:
    schema = {
        "type": "object",
        "properties": {"count": {"type": "integer"}},
        "required": ["token"],
    }

    _, violations = check_parameters(schema, {"count": "x", "token": None})

    assert violations[0] == {"field": "token", "message": "required field is missing"}
    assert violations[1]["field"] == "count"
