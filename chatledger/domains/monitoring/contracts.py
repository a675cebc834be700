"""
Monitoring Contracts - Interfaces for webhook delivery.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import WebhookAck


@runtime_checkable
class WebhookSink(Protocol):
    """
    Contract for delivering new-message notifications.

    Implementations retry on their own and raise WebhookDeliveryError
    once they give up.
    """

    async def deliver(self, url: str, payload: dict[str, Any], dedupe_key: str) -> WebhookAck:
        """
        Deliver one notification.

        Args:
            url: Session webhook URL
            payload: JSON-serializable notification body
            dedupe_key: Idempotency key for the receiver

        Returns:
            WebhookAck

        Raises:
            WebhookDeliveryError: Delivery failed after retries
        """
        ...
