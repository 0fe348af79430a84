"""HTTP delivery of signed envelopes.

A single POST per attempt with a hard timeout. Any response that is not
2xx, a timeout, or a transport error is raised as a DeliveryError subclass
so callers handle every retryable outcome the same way.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import httpx

from courier.exceptions import DeliveryTimeout, NetworkError, ReceiverRejected
from courier.models import RESPONSE_BODY_LIMIT

if TYPE_CHECKING:
    from courier.models import WebhookPayload

DEFAULT_TIMEOUT_SECONDS = 10.0

HEADER_EVENT = "X-Webhook-Event"
HEADER_SIGNATURE = "X-Webhook-Signature"
HEADER_TIMESTAMP = "X-Webhook-Timestamp"
HEADER_ID = "X-Webhook-Id"
HEADER_RETRY = "X-Webhook-Retry"


def build_headers(payload: WebhookPayload, attempt_number: int = 1) -> dict[str, str]:
    """Headers for one attempt. X-Webhook-Retry is only sent on retries."""
    wire = payload.to_wire()
    headers = {
        "Content-Type": "application/json",
        HEADER_EVENT: payload.event,
        HEADER_SIGNATURE: payload.signature,
        HEADER_TIMESTAMP: wire["timestamp"],
        HEADER_ID: payload.id,
    }
    if attempt_number > 1:
        headers[HEADER_RETRY] = str(attempt_number)
    return headers


def encode_body(payload: WebhookPayload) -> bytes:
    """JSON body exactly as sent, signature included."""
    return json.dumps(payload.to_wire(), separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


async def post_envelope(
    client: httpx.AsyncClient,
    url: str,
    payload: WebhookPayload,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    attempt_number: int = 1,
) -> httpx.Response:
    """POST a signed envelope to a receiver.

    Args:
        client: Shared HTTP client.
        url: Receiver endpoint.
        payload: Signed envelope.
        timeout: Hard limit for the whole attempt in seconds.
        attempt_number: 1 for the first attempt, >1 for retries.

    Returns:
        The 2xx response.

    Raises:
        ReceiverRejected: Non-2xx response.
        DeliveryTimeout: No complete response within the timeout.
        NetworkError: Connection or protocol failure.
    """
    try:
        async with asyncio.timeout(timeout):
            response = await client.post(
                url,
                content=encode_body(payload),
                headers=build_headers(payload, attempt_number),
                timeout=timeout,
            )
    except (httpx.TimeoutException, TimeoutError) as e:
        raise DeliveryTimeout(timeout) from e
    except httpx.HTTPError as e:
        raise NetworkError(str(e) or type(e).__name__) from e

    if not response.is_success:
        body = response.text[:RESPONSE_BODY_LIMIT] if response.text else None
        raise ReceiverRejected(response.status_code, body)

    return response
