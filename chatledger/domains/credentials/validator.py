"""
Credential Validator - Checks credentials and issues time-bound records.

The actual check is delegated to the provider's verifier; this class owns
caching, rate limiting and error mapping.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from chatledger.config.errors import (
    ChatLedgerError,
    InvalidCredentials,
    ProviderUnavailable,
)
from chatledger.domains.providers import Credential, ProviderRegistry

from .cache import ValidationCache
from .models import ValidationRecord
from .rate_limit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

__all__ = ["CredentialValidator"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialValidator:
    """
    Validates provider credentials.

    Example:
        >>> validator = CredentialValidator(registry)
        >>> record = await validator.validate("claude", {"session_cookie": "abc"})
        >>> record.valid
        True
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: ValidationCache | None = None,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        ttl_seconds: int = 24 * 60 * 60,
        verify_timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize validator.

        Args:
            registry: Provider registry supplying verifiers
            cache: Record cache (created if None)
            rate_limiter: Per-credential attempt limiter (5 / minute if None)
            ttl_seconds: Lifetime of a successful validation
            verify_timeout_seconds: Upper bound on a verifier call
            clock: Source of the current UTC time
        """
        self._registry = registry
        self._clock = clock
        self._cache = cache or ValidationCache(clock=clock)
        self._limiter = rate_limiter or SlidingWindowRateLimiter()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._verify_timeout = verify_timeout_seconds

    def credential_for(
        self,
        provider_id: str,
        credential: Credential | dict[str, Any],
    ) -> Credential:
        """Coerce raw credential fields into a Credential for the provider."""
        descriptor = self._registry.describe(provider_id)
        if isinstance(credential, Credential):
            if credential.provider_id != provider_id:
                raise InvalidCredentials(
                    provider_id, "Credential was issued for a different provider"
                )
            return credential
        return Credential.from_parameters(descriptor, credential)

    async def validate(
        self,
        provider_id: str,
        credential: Credential | dict[str, Any],
    ) -> ValidationRecord:
        """
        Validate a credential against its provider.

        Returns:
            A valid ValidationRecord (possibly served from cache)

        Raises:
            UnknownProvider: Provider id not registered
            RateLimited: Too many attempts for this credential
            ProviderUnavailable: Verifier unreachable (retryable)
            InvalidCredentials: Verifier rejected the credential
        """
        cred = self.credential_for(provider_id, credential)
        fingerprint = cred.fingerprint

        cached = await self._cache.get(provider_id, fingerprint)
        if cached is not None:
            logger.debug("Validation cache hit: %s/%s", provider_id, fingerprint[:12])
            return cached

        await self._limiter.acquire(f"{provider_id}:{fingerprint}")

        verifier = self._registry.verifier(provider_id)
        try:
            outcome = await asyncio.wait_for(verifier.verify(cred), self._verify_timeout)
        except ChatLedgerError:
            raise
        except (asyncio.TimeoutError, ConnectionError, OSError) as e:
            logger.warning("Verifier for %s unreachable: %s", provider_id, e)
            raise ProviderUnavailable(
                provider_id, f"Credential verifier unreachable: {e}"
            ) from e

        issued_at = self._clock()
        if not outcome.valid:
            await self._cache.invalidate(provider_id, fingerprint)
            logger.info("Credential rejected by %s: %s", provider_id, fingerprint[:12])
            raise InvalidCredentials(
                provider_id, outcome.message or "Invalid credentials or expired session"
            )

        record = ValidationRecord(
            provider_id=provider_id,
            fingerprint=fingerprint,
            valid=True,
            issued_at=issued_at,
            expires_at=issued_at + self._ttl,
            permissions=outcome.permissions,
            message=outcome.message or "Credentials validated successfully",
        )
        await self._cache.put(record)
        logger.info(
            "Credential validated for %s: %s (expires %s)",
            provider_id,
            fingerprint[:12],
            record.expires_at.isoformat() if record.expires_at else "never",
        )
        return record

    async def lookup(self, provider_id: str, fingerprint: str) -> ValidationRecord | None:
        """Fresh valid record for the credential, or None."""
        return await self._cache.get(provider_id, fingerprint)

    async def invalidate(self, provider_id: str, fingerprint: str | None = None) -> int:
        return await self._cache.invalidate(provider_id, fingerprint)
