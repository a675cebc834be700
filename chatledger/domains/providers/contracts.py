"""
Provider Contracts - Capabilities each provider plugs into the registry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from .models import Credential, VerificationResult


@runtime_checkable
class ProviderExecutor(Protocol):
    """
    Contract for provider executors (scraping, private APIs, ...).

    Executors return raw provider payloads; the Result Normalizer turns
    them into canonical conversations.

    Example:
        >>> class MyExecutor:
        ...     async def extract(self, credential, parameters): ...
        ...     async def poll_for_new(self, credential, parameters, since): ...
        ...     async def export(self, credential, parameters): ...
        >>> assert isinstance(MyExecutor(), ProviderExecutor)
    """

    async def extract(
        self,
        credential: Credential,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Extract conversations from the provider.

        Args:
            credential: Provider credential
            parameters: Schema-validated tool parameters

        Returns:
            Raw payload with ``conversations`` and ``metadata`` keys
        """
        ...

    async def poll_for_new(
        self,
        credential: Credential,
        parameters: dict[str, Any],
        since: datetime | None,
    ) -> dict[str, Any]:
        """
        Fetch conversations with messages newer than ``since``.

        Args:
            credential: Provider credential
            parameters: Schema-validated tool parameters
            since: Time of the previous poll, None on the first poll

        Returns:
            Raw payload in the same shape as ``extract``
        """
        ...

    async def export(
        self,
        credential: Credential,
        parameters: dict[str, Any],
    ) -> dict[str, Any]:
        """Export a single conversation in the requested format."""
        ...


@runtime_checkable
class CredentialVerifier(Protocol):
    """Contract for provider-specific credential checks."""

    async def verify(self, credential: Credential) -> VerificationResult:
        """
        Check a credential against the provider.

        Raises:
            ProviderUnavailable: Provider could not be reached
        """
        ...
