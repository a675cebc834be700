"""
Fixture Executors - Deterministic stand-ins for provider scrapers.

Real executors drive a browser or a private web API; these return canned
payloads after a configurable latency so the orchestrator can run end to end
without network access.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any

from chatledger.domains.providers import (
    DEFAULT_PERMISSIONS,
    Credential,
    ProviderBinding,
    ProviderDescriptor,
    ProviderRegistry,
    VerificationResult,
    default_descriptors,
)

from .data import FIXTURE_PAYLOADS

logger = logging.getLogger(__name__)

__all__ = ["FixtureExecutor", "FixtureVerifier", "build_fixture_registry"]


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class FixtureExecutor:
    """Executor serving a static payload for one provider."""

    def __init__(
        self,
        provider_id: str,
        payload: dict[str, Any] | None = None,
        latency_seconds: float = 0.0,
    ) -> None:
        self.provider_id = provider_id
        self._payload = payload or {
            "conversations": [],
            "metadata": {
                "provider": provider_id,
                "extraction_method": "unknown",
                "total_conversations": 0,
            },
        }
        self._latency = latency_seconds

    async def _simulate(self) -> None:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

    def _snapshot(self) -> dict[str, Any]:
        payload = copy.deepcopy(self._payload)
        payload.setdefault("metadata", {})
        payload["metadata"].setdefault(
            "extraction_timestamp", datetime.now(timezone.utc).isoformat()
        )
        return payload

    async def extract(
        self,
        credential: Credential,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        await self._simulate()
        payload = self._snapshot()
        limit = parameters.get("max_conversations")
        if isinstance(limit, (int, float)) and limit >= 0:
            payload["conversations"] = payload["conversations"][: int(limit)]
        logger.debug(
            "Fixture extract %s: %d conversations",
            self.provider_id,
            len(payload["conversations"]),
        )
        return payload

    async def poll_for_new(
        self,
        credential: Credential,
        parameters: dict[str, Any],
        since: datetime | None,
    ) -> dict[str, Any]:
        await self._simulate()
        payload = self._snapshot()
        if since is None:
            return payload

        fresh = []
        for conversation in payload["conversations"]:
            messages = [
                m
                for m in conversation.get("messages", [])
                if "timestamp" in m and _parse_ts(m["timestamp"]) > since
            ]
            if messages:
                fresh.append({**conversation, "messages": messages})
        payload["conversations"] = fresh
        return payload

    async def export(
        self,
        credential: Credential,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        await self._simulate()
        conversation_id = parameters["conversation_id"]
        for conversation in self._payload.get("conversations", []):
            if conversation.get("id") == conversation_id:
                break
        else:
            raise LookupError(f"conversation {conversation_id} not found")

        fmt = parameters.get("format", "json")
        exported: dict[str, Any] = {"conversation_id": conversation_id, "format": fmt}
        if fmt == "json":
            exported["content"] = copy.deepcopy(conversation)
        elif fmt == "markdown":
            lines = [f"# {conversation.get('title', '')}", ""]
            for message in conversation.get("messages", []):
                lines.append(f"**{message['role']}**: {message['content']}")
                lines.append("")
            exported["content"] = "\n".join(lines)
        else:
            parts = [f"<h1>{conversation.get('title', '')}</h1>"]
            for message in conversation.get("messages", []):
                parts.append(f"<p class=\"{message['role']}\">{message['content']}</p>")
            exported["content"] = "\n".join(parts)

        if parameters.get("include_metadata", True):
            exported["metadata"] = copy.deepcopy(self._payload.get("metadata", {}))
        return exported


class FixtureVerifier:
    """Accepts a credential when every required secret field is non-empty."""

    def __init__(self, descriptor: ProviderDescriptor, latency_seconds: float = 0.0) -> None:
        self._descriptor = descriptor
        self._latency = latency_seconds

    async def verify(self, credential: Credential) -> VerificationResult:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

        missing = [
            name
            for name in self._descriptor.credential_fields
            if not credential.secret(name).strip()
        ]
        if missing:
            return VerificationResult(
                valid=False,
                message="Invalid credentials or expired session",
            )
        return VerificationResult(
            valid=True,
            permissions=list(DEFAULT_PERMISSIONS),
            message="Credentials validated successfully",
        )


def build_fixture_registry(
    latency_seconds: float = 0.0,
    descriptors: list[ProviderDescriptor] | None = None,
) -> ProviderRegistry:
    """Registry with fixture executors bound to every descriptor."""
    registry = ProviderRegistry()
    for descriptor in descriptors or default_descriptors():
        registry.register(
            ProviderBinding(
                descriptor=descriptor,
                executor=FixtureExecutor(
                    descriptor.id,
                    FIXTURE_PAYLOADS.get(descriptor.id),
                    latency_seconds=latency_seconds,
                ),
                verifier=FixtureVerifier(descriptor),
            )
        )
    return registry
