"""
Provider Registry - Read-only lookup of providers, tools and executors.

Bindings are registered once at startup; afterwards the registry is only read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from chatledger.config.errors import UnknownProvider, UnknownTool

from .contracts import CredentialVerifier, ProviderExecutor
from .models import ProviderDescriptor, ToolDescriptor

logger = logging.getLogger(__name__)

__all__ = ["ProviderBinding", "ProviderRegistry"]


@dataclass(frozen=True)
class ProviderBinding:
    """A descriptor together with the capabilities that serve it."""

    descriptor: ProviderDescriptor
    executor: ProviderExecutor
    verifier: CredentialVerifier


class ProviderRegistry:
    """
    Static catalog of providers.

    Example:
        >>> registry = ProviderRegistry([ProviderBinding(desc, executor, verifier)])
        >>> registry.describe("claude").display_name
        'Claude'
    """

    def __init__(self, bindings: list[ProviderBinding] | None = None) -> None:
        self._bindings: dict[str, ProviderBinding] = {}
        for binding in bindings or []:
            self.register(binding)

    def register(self, binding: ProviderBinding) -> None:
        """Add a provider binding. Provider ids must be unique."""
        provider_id = binding.descriptor.id
        if provider_id in self._bindings:
            raise ValueError(f"Provider already registered: {provider_id}")
        self._bindings[provider_id] = binding
        logger.debug(
            "Registered provider %s with %d tools",
            provider_id,
            binding.descriptor.tools_count,
        )

    def _binding(self, provider_id: str) -> ProviderBinding:
        binding = self._bindings.get(provider_id)
        if binding is None:
            raise UnknownProvider(provider_id)
        return binding

    def describe(self, provider_id: str) -> ProviderDescriptor:
        return self._binding(provider_id).descriptor

    def list_providers(self) -> list[ProviderDescriptor]:
        return [binding.descriptor for binding in self._bindings.values()]

    def list_tools(self, provider_id: str | None = None) -> list[ToolDescriptor]:
        """Tools for one provider, or for every provider when None."""
        if provider_id is not None:
            return list(self.describe(provider_id).tools)
        return [tool for desc in self.list_providers() for tool in desc.tools]

    def get_tool(self, provider_id: str, tool_name: str) -> ToolDescriptor:
        tool = self.describe(provider_id).tool(tool_name)
        if tool is None:
            raise UnknownTool(provider_id, tool_name)
        return tool

    def executor(self, provider_id: str) -> ProviderExecutor:
        return self._binding(provider_id).executor

    def verifier(self, provider_id: str) -> CredentialVerifier:
        return self._binding(provider_id).verifier

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)
