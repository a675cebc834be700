"""Tests for the httpx webhook sink."""

import httpx
import pytest

from chatledger.config.errors import WebhookDeliveryError

from .client import HttpxWebhookSink


def make_sink(handler, max_attempts: int = 3) -> HttpxWebhookSink:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxWebhookSink(max_attempts=max_attempts, backoff_initial_seconds=0, client=client)


class TestHttpxWebhookSink:
    """Tests for HttpxWebhookSink."""

    async def test_delivers_json_with_idempotency_key(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        sink = make_sink(handler)
        ack = await sink.deliver("https://hooks.test/a", {"type": "new_message"}, "key-1")

        assert ack.delivered
        assert ack.status_code == 200
        assert ack.attempts == 1
        assert seen[0].headers["Idempotency-Key"] == "key-1"
        assert b"new_message" in seen[0].content
        await sink.close()

    async def test_retries_server_errors(self):
        statuses = iter([503, 502, 204])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses))

        sink = make_sink(handler)
        ack = await sink.deliver("https://hooks.test/a", {}, "k")

        assert ack.status_code == 204
        assert ack.attempts == 3

    async def test_gives_up_after_max_attempts(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            raise httpx.ConnectError("refused", request=request)

        sink = make_sink(handler, max_attempts=2)
        with pytest.raises(WebhookDeliveryError) as exc_info:
            await sink.deliver("https://hooks.test/a", {}, "k")

        assert exc_info.value.details["attempts"] == 2
        assert len(calls) == 2

    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(410)

        sink = make_sink(handler)
        with pytest.raises(WebhookDeliveryError):
            await sink.deliver("https://hooks.test/a", {}, "k")

        assert len(calls) == 1
