"""
Tests for provider descriptors, credentials and the registry.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from chatledger.config.errors import UnknownProvider, UnknownTool

from .catalog import default_descriptors
from .contracts import CredentialVerifier, ProviderExecutor
from .models import Credential, PollingBounds, ToolCategory, ToolOperation
from .registry import ProviderBinding, ProviderRegistry

DESCRIPTORS = {d.id: d for d in default_descriptors()}


def make_registry() -> ProviderRegistry:
    return ProviderRegistry(
        [ProviderBinding(d, MagicMock(), MagicMock()) for d in DESCRIPTORS.values()]
    )


# --- Catalog Tests ---


def test_catalog_providers() -> None:
    """Test every built-in provider is present."""
    assert set(DESCRIPTORS) == {"chatgpt", "claude", "gemini", "perplexity", "custom"}


def test_claude_descriptor() -> None:
    """Test Claude tools and capabilities."""
    claude = DESCRIPTORS["claude"]
    assert claude.tools_count == 2
    assert claude.capabilities == ["chat_extraction", "project_monitoring"]
    assert claude.tool("monitor_claude_projects").operation == ToolOperation.POLL
    assert claude.tool("missing") is None


def test_monitoring_tools_require_webhook() -> None:
    """Test every polling tool asks for a webhook URL and an interval."""
    for descriptor in DESCRIPTORS.values():
        for tool in descriptor.tools:
            if tool.operation != ToolOperation.POLL:
                continue
            assert "webhook_url" in tool.required_parameters
            assert tool.parameters["properties"]["polling_interval"]["type"] == "number"


def test_chatgpt_tools() -> None:
    """Test ChatGPT exposes extraction, monitoring and export."""
    categories = [t.category for t in DESCRIPTORS["chatgpt"].tools]
    assert categories == [
        ToolCategory.CHAT_EXTRACTION,
        ToolCategory.REAL_TIME_MONITORING,
        ToolCategory.DATA_EXPORT,
    ]


def test_descriptor_is_immutable() -> None:
    """Test descriptors are frozen."""
    with pytest.raises(ValidationError):
        DESCRIPTORS["claude"].display_name = "Other"  # type: ignore


# --- PollingBounds Tests ---


def test_polling_bounds_contains() -> None:
    bounds = PollingBounds(min_seconds=10, max_seconds=60, default_seconds=30)
    assert bounds.contains(10)
    assert bounds.contains(60)
    assert not bounds.contains(9.9)
    assert not bounds.contains(61)


def test_polling_bounds_order() -> None:
    """Test default must sit inside the bounds."""
    with pytest.raises(ValidationError):
        PollingBounds(min_seconds=10, max_seconds=60, default_seconds=5)


# --- Credential Tests ---


def test_credential_from_parameters() -> None:
    """Test credential and scope fields are picked from tool parameters."""
    cred = Credential.from_parameters(
        DESCRIPTORS["claude"],
        {"session_cookie": "abc", "organization_id": "org_1", "max_conversations": 5},
    )
    assert cred.secret("session_cookie") == "abc"
    assert cred.scope == {"organization_id": "org_1"}
    assert cred.secret("missing") == ""


def test_credential_hides_secrets() -> None:
    """Test secrets never show up in repr or dumps."""
    cred = Credential.from_parameters(DESCRIPTORS["claude"], {"session_cookie": "topsecret"})
    assert "topsecret" not in repr(cred)
    assert "topsecret" not in cred.model_dump_json()


def test_fingerprint_is_stable_and_scoped() -> None:
    """Test fingerprint depends on secret and scope only."""
    claude = DESCRIPTORS["claude"]
    a = Credential.from_parameters(claude, {"session_cookie": "abc"})
    b = Credential.from_parameters(claude, {"session_cookie": "abc", "max_conversations": 9})
    c = Credential.from_parameters(claude, {"session_cookie": "abc", "organization_id": "org"})
    d = Credential.from_parameters(claude, {"session_cookie": "xyz"})

    assert a.fingerprint == b.fingerprint
    assert a.fingerprint != c.fingerprint
    assert a.fingerprint != d.fingerprint
    assert len(a.fingerprint) == 64


def test_redact_masks_credential_fields() -> None:
    redacted = DESCRIPTORS["chatgpt"].redact({"session_token": "abc", "max_conversations": 5})
    assert redacted == {"session_token": "***", "max_conversations": 5}


# --- Registry Tests ---


def test_registry_lookups() -> None:
    registry = make_registry()

    assert len(registry) == 5
    assert "claude" in registry
    assert registry.describe("claude").display_name == "Claude"
    assert registry.get_tool("claude", "extract_claude_conversations").provider_id == "claude"
    assert len(registry.list_tools("chatgpt")) == 3
    assert len(registry.list_tools()) == sum(d.tools_count for d in DESCRIPTORS.values())


def test_registry_unknown_provider() -> None:
    registry = make_registry()
    with pytest.raises(UnknownProvider) as exc_info:
        registry.describe("poe")
    assert exc_info.value.details == {"provider_id": "poe"}

    with pytest.raises(UnknownProvider):
        registry.executor("poe")


def test_registry_unknown_tool() -> None:
    """Test a tool from another provider is unknown."""
    registry = make_registry()
    with pytest.raises(UnknownTool):
        registry.get_tool("claude", "extract_chatgpt_conversations")


def test_registry_rejects_duplicates() -> None:
    registry = make_registry()
    with pytest.raises(ValueError, match="already registered"):
        registry.register(ProviderBinding(DESCRIPTORS["claude"], MagicMock(), MagicMock()))


def test_protocols_are_runtime_checkable() -> None:
    """Test executor and verifier contracts accept duck-typed objects."""

    class Executor:
        extract = AsyncMock()
        poll_for_new = AsyncMock()
        export = AsyncMock()

    class Verifier:
        verify = AsyncMock()

    assert isinstance(Executor(), ProviderExecutor)
    assert isinstance(Verifier(), CredentialVerifier)
    assert not isinstance(Verifier(), ProviderExecutor)
