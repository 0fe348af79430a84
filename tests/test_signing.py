"""Tests for webhook envelope signing."""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import UTC, datetime

import pytest

from courier.exceptions import SigningError
from courier.models import WebhookPayload
from courier.webhooks import (
    build_payload,
    canonical_json,
    canonical_payload,
    compute_signature,
    encode_body,
    sign_payload,
    verify_body,
    verify_signature,
)

SECRET = "c0ffee" * 10


@pytest.fixture
def payload() -> WebhookPayload:
    return build_payload(
        "org_1",
        "payment.received",
        {"amount": 4900, "currency": "usd", "userName": "Zoë"},
        now=datetime(2026, 1, 5, 9, 30, tzinfo=UTC),
    )


class TestCanonicalJson:
    """Tests for the canonical form that gets signed."""

    def test_sorts_keys_and_strips_whitespace(self):
        assert canonical_json({"b": 1, "a": {"d": 2, "c": 3}}) == '{"a":{"c":3,"d":2},"b":1}'

    def test_excludes_signature(self):
        assert canonical_json({"a": 1, "signature": "sha256=abc"}) == '{"a":1}'

    def test_independent_of_key_order(self):
        one = canonical_json({"event": "x", "data": {"a": 1, "b": 2}})
        two = canonical_json({"data": {"b": 2, "a": 1}, "event": "x"})
        assert one == two

    def test_keeps_non_ascii(self):
        assert canonical_json({"name": "Zoë"}) == '{"name":"Zoë"}'

    def test_nan_raises_signing_error(self):
        with pytest.raises(SigningError):
            canonical_json({"value": float("nan")})

    def test_unserializable_raises_signing_error(self):
        with pytest.raises(SigningError):
            canonical_json({"value": object()})

    def test_non_string_data_keys_raise_signing_error(self):
        with pytest.raises(SigningError, match="Invalid event data"):
            build_payload("org_1", "payment.received", {1: "x"})

    def test_payload_uses_wire_aliases(self, payload: WebhookPayload):
        canonical = canonical_payload(payload)
        assert '"organizationId":"org_1"' in canonical
        assert "signature" not in canonical


class TestComputeSignature:
    """Tests for HMAC computation."""

    def test_matches_hmac_sha256(self):
        expected = hmac.new(SECRET.encode(), b'{"a":1}', hashlib.sha256).hexdigest()
        assert compute_signature('{"a":1}', SECRET) == f"sha256={expected}"

    def test_deterministic(self):
        assert compute_signature("body", SECRET) == compute_signature("body", SECRET)

    def test_different_secrets_differ(self):
        assert compute_signature("body", SECRET) != compute_signature("body", "other")

    def test_single_byte_change_changes_signature(self, payload: WebhookPayload):
        canonical = canonical_payload(payload)
        original = compute_signature(canonical, SECRET)

        for index in (0, len(canonical) // 2, len(canonical) - 1):
            flipped = chr(ord(canonical[index]) ^ 1)
            tampered = canonical[:index] + flipped + canonical[index + 1 :]
            assert compute_signature(tampered, SECRET) != original
            assert not verify_signature(tampered, SECRET, original)

    def test_non_string_input_raises(self):
        with pytest.raises(SigningError):
            compute_signature(b"body", SECRET)  # type: ignore[arg-type]

    def test_verify_signature(self):
        signature = compute_signature("body", SECRET)
        assert verify_signature("body", SECRET, signature)
        assert not verify_signature("body", "wrong", signature)
        assert not verify_signature("tampered", SECRET, signature)


class TestSignPayload:
    """Tests for signing whole envelopes."""

    def test_signature_covers_envelope_without_signature(self, payload: WebhookPayload):
        signed = sign_payload(payload, SECRET)

        assert signed.signature.startswith("sha256=")
        assert signed.signature == compute_signature(canonical_payload(payload), SECRET)

    def test_returns_copy(self, payload: WebhookPayload):
        signed = sign_payload(payload, SECRET)

        assert payload.signature == ""
        assert signed.id == payload.id
        assert signed.timestamp == payload.timestamp

    def test_resigning_is_stable(self, payload: WebhookPayload):
        once = sign_payload(payload, SECRET)
        twice = sign_payload(once, SECRET)
        assert once.signature == twice.signature

    def test_no_secret_gives_empty_signature(self, payload: WebhookPayload):
        assert sign_payload(payload, None).signature == ""
        assert sign_payload(payload, "").signature == ""

    def test_receiver_can_verify_sent_body(self, payload: WebhookPayload):
        signed = sign_payload(payload, SECRET)
        body = encode_body(signed)

        assert verify_body(body, SECRET, signed.signature)
        assert json.loads(body)["signature"] == signed.signature

    def test_receiver_rejects_tampered_body(self, payload: WebhookPayload):
        signed = sign_payload(payload, SECRET)
        body = json.loads(encode_body(signed))
        body["data"]["amount"] = 1

        assert not verify_body(json.dumps(body), SECRET, signed.signature)

    def test_verify_body_rejects_garbage(self):
        assert not verify_body(b"not json", SECRET, "sha256=00")
