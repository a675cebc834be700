"""
Webhook Client - Posts new-message notifications to session webhooks.

Features:
- Async HTTP client (httpx)
- Retries on transport errors and 5xx with exponential backoff
- Idempotency key header so receivers can drop repeats
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chatledger.config.errors import WebhookDeliveryError
from chatledger.domains.monitoring import WebhookAck

logger = logging.getLogger(__name__)

__all__ = ["HttpxWebhookSink"]

USER_AGENT = "chatledger-webhooks/1.0"


class _RetryableStatus(Exception):
    """Receiver answered with a status worth retrying."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class HttpxWebhookSink:
    """
    Webhook sink backed by httpx.

    Example:
        >>> sink = HttpxWebhookSink(timeout=5.0)
        >>> ack = await sink.deliver("https://hooks.example/abc", {"type": "new_message"}, "k1")
        >>> ack.status_code
        200
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_initial_seconds: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize sink.

        Args:
            timeout: Request timeout in seconds
            max_attempts: Attempts per notification
            backoff_initial_seconds: First retry delay
            client: Pre-built client (tests inject one with a mock transport)
        """
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._backoff_initial = backoff_initial_seconds
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def deliver(self, url: str, payload: dict[str, Any], dedupe_key: str) -> WebhookAck:
        """
        POST one notification.

        Args:
            url: Webhook URL
            payload: JSON body
            dedupe_key: Sent as ``Idempotency-Key``

        Returns:
            WebhookAck with the final status code and attempt count

        Raises:
            WebhookDeliveryError: 4xx answer, or retries exhausted
        """
        client = await self._get_client()
        headers = {"Idempotency-Key": dedupe_key, "Content-Type": "application/json"}
        attempts = 0

        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self._backoff_initial, max=10),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    response = await client.post(url, json=payload, headers=headers)
                    if response.status_code >= 500 or response.status_code == 429:
                        raise _RetryableStatus(response.status_code)
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.warning("Webhook %s failed after %d attempts: %s", url, attempts, cause)
            raise WebhookDeliveryError(url, str(cause), attempts) from cause

        if response.status_code >= 400:
            raise WebhookDeliveryError(url, f"HTTP {response.status_code}", attempts)

        logger.debug("Webhook delivered to %s (%d, key %s)", url, response.status_code, dedupe_key[:12])
        return WebhookAck(delivered=True, status_code=response.status_code, attempts=attempts)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
