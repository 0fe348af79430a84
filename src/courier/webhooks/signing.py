"""HMAC-SHA256 signing of webhook envelopes.

Wire contract for receivers:
    1. Parse the JSON body and remove the "signature" field.
    2. Serialize the rest with sorted keys and no whitespace:
       json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    3. HMAC-SHA256 the UTF-8 bytes with the shared secret and compare the
       hex digest against the "sha256=<hex>" value of X-Webhook-Signature
       (the same value is also in the body's "signature" field).
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import TYPE_CHECKING, Any

from pydantic_core import PydanticSerializationError

from courier.exceptions import SigningError

if TYPE_CHECKING:
    from courier.models import WebhookPayload

SIGNATURE_PREFIX = "sha256="


def canonical_json(body: dict[str, Any]) -> str:
    """Stable serialization of an envelope body without its signature.

    Raises:
        SigningError: If the body contains values JSON cannot represent.
    """
    unsigned = {k: v for k, v in body.items() if k != "signature"}
    try:
        return json.dumps(
            unsigned,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise SigningError(f"Payload cannot be serialized: {e}") from e


def canonical_payload(payload: WebhookPayload) -> str:
    """Canonical string that gets signed for an envelope."""
    try:
        body = payload.to_wire()
    except PydanticSerializationError as e:
        raise SigningError(f"Payload cannot be serialized: {e}") from e
    return canonical_json(body)


def compute_signature(payload: str, secret: str) -> str:
    """Compute HMAC-SHA256 signature for a canonical payload.

    Args:
        payload: Canonical JSON string to sign.
        secret: Shared secret for HMAC.

    Returns:
        Signature in format "sha256=<hex_digest>".

    Raises:
        SigningError: If payload or secret are not strings.
    """
    if not isinstance(payload, str) or not isinstance(secret, str):
        raise SigningError("Payload and secret must be strings")

    signature = hmac.new(
        key=secret.encode("utf-8"),
        msg=payload.encode("utf-8"),
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"{SIGNATURE_PREFIX}{signature}"


def verify_signature(payload: str, secret: str, signature: str) -> bool:
    """Verify HMAC-SHA256 signature for a canonical payload.

    Returns:
        True if signature is valid, False otherwise.
    """
    try:
        expected = compute_signature(payload, secret)
    except SigningError:
        return False
    return hmac.compare_digest(expected, signature)


def verify_body(raw_body: bytes | str, secret: str, signature: str) -> bool:
    """Receiver-side check of a raw POST body against its signature header."""
    try:
        body = json.loads(raw_body)
        canonical = canonical_json(body)
    except (ValueError, SigningError, AttributeError):
        return False
    return verify_signature(canonical, secret, signature)


def sign_payload(payload: WebhookPayload, secret: str | None) -> WebhookPayload:
    """Return a copy of the envelope carrying its signature.

    An envelope for a receiver without a stored secret is returned with an
    empty signature.

    Raises:
        SigningError: If the envelope cannot be canonicalized.
    """
    canonical = canonical_payload(payload)
    signature = compute_signature(canonical, secret) if secret else ""
    return payload.model_copy(update={"signature": signature})
