"""
Webhook Adapter - HTTP delivery of monitoring notifications.
"""

from .client import HttpxWebhookSink

__all__ = ["HttpxWebhookSink"]
