"""Tests for single HTTP delivery attempts."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from courier.exceptions import DeliveryError, DeliveryTimeout, NetworkError, ReceiverRejected
from courier.models import WebhookPayload
from courier.webhooks import build_headers, build_payload, post_envelope, sign_payload

URL = "https://receiver.test/hook"


@pytest.fixture
def payload() -> WebhookPayload:
    return sign_payload(
        build_payload("org_1", "client.goal.achieved", {"goalId": "g_1"}),
        "secret",
    )


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestBuildHeaders:
    """Tests for request headers."""

    def test_first_attempt_headers(self, payload: WebhookPayload):
        headers = build_headers(payload)

        assert headers["Content-Type"] == "application/json"
        assert headers["X-Webhook-Event"] == "client.goal.achieved"
        assert headers["X-Webhook-Signature"] == payload.signature
        assert headers["X-Webhook-Id"] == payload.id
        assert headers["X-Webhook-Timestamp"] == payload.to_wire()["timestamp"]
        assert "X-Webhook-Retry" not in headers

    def test_retry_header_carries_attempt_number(self, payload: WebhookPayload):
        assert build_headers(payload, attempt_number=3)["X-Webhook-Retry"] == "3"


class TestPostEnvelope:
    """Tests for post_envelope."""

    async def test_success_returns_response(self, payload: WebhookPayload):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202, text="accepted")

        async with client_for(handler) as client:
            response = await post_envelope(client, URL, payload)

        assert response.status_code == 202
        assert seen[0].method == "POST"
        body = json.loads(seen[0].content)
        assert body["id"] == payload.id
        assert body["organizationId"] == "org_1"
        assert body["signature"] == seen[0].headers["X-Webhook-Signature"]

    @pytest.mark.parametrize("status_code", [400, 404, 500, 503])
    async def test_non_2xx_raises_receiver_rejected(
        self, payload: WebhookPayload, status_code: int
    ):
        async with client_for(lambda r: httpx.Response(status_code, text="nope")) as client:
            with pytest.raises(ReceiverRejected) as exc_info:
                await post_envelope(client, URL, payload)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.response_body == "nope"
        assert exc_info.value.message == f"HTTP {status_code}: nope"
        assert isinstance(exc_info.value, DeliveryError)

    async def test_rejected_body_truncated(self, payload: WebhookPayload):
        async with client_for(lambda r: httpx.Response(500, text="e" * 5000)) as client:
            with pytest.raises(ReceiverRejected) as exc_info:
                await post_envelope(client, URL, payload)

        assert len(exc_info.value.response_body) == 1000

    async def test_transport_timeout_raises_delivery_timeout(self, payload: WebhookPayload):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with client_for(handler) as client:
            with pytest.raises(DeliveryTimeout) as exc_info:
                await post_envelope(client, URL, payload, timeout=10.0)

        assert exc_info.value.message == "Request timeout after 10s"

    async def test_slow_receiver_hits_hard_timeout(self, payload: WebhookPayload):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200)

        async with client_for(handler) as client:
            with pytest.raises(DeliveryTimeout):
                await post_envelope(client, URL, payload, timeout=0.05)

    async def test_connect_error_raises_network_error(self, payload: WebhookPayload):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as client:
            with pytest.raises(NetworkError, match="connection refused"):
                await post_envelope(client, URL, payload)

    async def test_retry_header_sent(self, payload: WebhookPayload):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        async with client_for(handler) as client:
            await post_envelope(client, URL, payload, attempt_number=2)

        assert seen[0].headers["X-Webhook-Retry"] == "2"
