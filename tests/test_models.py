"""Unit tests for Courier data models."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import SecretStr, ValidationError

from courier.models import (
    ALL_EVENT_TYPES,
    RESPONSE_BODY_LIMIT,
    WEBHOOK_EVENTS,
    CheckinCompletedData,
    DeliveryLog,
    Integration,
    PaymentReceivedData,
    WebhookPayload,
    WebhookSettings,
    generate_id,
)

NOW = datetime(2026, 2, 1, 8, 0, tzinfo=UTC)


def make_log(**overrides) -> DeliveryLog:
    defaults = {
        "organization_id": "org_1",
        "integration_id": "int_1",
        "provider": "zapier",
        "event": "client.goal.achieved",
        "webhook_url": "https://example.com/hook",
    }
    defaults.update(overrides)
    return DeliveryLog(**defaults)


class TestGenerateId:
    def test_prefix(self):
        assert generate_id("dlv").startswith("dlv_")

    def test_unique(self):
        assert generate_id("dlv") != generate_id("dlv")


class TestEventTypes:
    """Tests for the event enumeration."""

    def test_every_event_has_metadata(self):
        assert len(ALL_EVENT_TYPES) == 18
        for event in ALL_EVENT_TYPES:
            assert {"name", "description", "category"} <= set(WEBHOOK_EVENTS[event])

    def test_unknown_event_rejected(self):
        with pytest.raises(ValidationError):
            WebhookPayload(
                event="client.exploded",  # type: ignore[arg-type]
                organization_id="org_1",
            )


class TestWebhookPayload:
    """Tests for the wire envelope."""

    def test_wire_format_uses_camel_case_org(self):
        payload = WebhookPayload(
            id="evt-1",
            event="payment.received",
            timestamp=NOW,
            organization_id="org_1",
            data={"amount": 100},
        )

        wire = payload.to_wire()

        assert wire == {
            "id": "evt-1",
            "event": "payment.received",
            "timestamp": "2026-02-01T08:00:00Z",
            "organizationId": "org_1",
            "data": {"amount": 100},
            "signature": "",
        }

    def test_accepts_alias_on_input(self):
        payload = WebhookPayload.model_validate(
            {"event": "payment.received", "organizationId": "org_1"}
        )
        assert payload.organization_id == "org_1"

    def test_is_frozen(self):
        payload = WebhookPayload(event="payment.received", organization_id="org_1")
        with pytest.raises(ValidationError):
            payload.signature = "sha256=x"  # type: ignore[misc]

    def test_ids_are_unique(self):
        a = WebhookPayload(event="payment.received", organization_id="org_1")
        b = WebhookPayload(event="payment.received", organization_id="org_1")
        assert a.id != b.id


class TestDeliveryLog:
    """Tests for delivery log transitions."""

    def test_defaults(self):
        log = make_log()
        assert log.id.startswith("dlv_")
        assert log.status == "pending"
        assert log.attempt_number == 1
        assert log.max_attempts == 4
        assert not log.is_retry

    def test_attempt_cannot_exceed_cap(self):
        with pytest.raises(ValidationError):
            make_log(attempt_number=5, max_attempts=4)

    def test_mark_delivered(self):
        log = make_log(next_retry_at=NOW)
        log.mark_delivered(200, "ok", now=NOW)

        assert log.status == "delivered"
        assert log.http_status == 200
        assert log.delivered_at == NOW
        assert log.next_retry_at is None

    def test_mark_failed_truncates_body(self):
        log = make_log()
        log.mark_failed("HTTP 500", 500, "x" * (RESPONSE_BODY_LIMIT + 50))

        assert log.status == "failed"
        assert log.error == "HTTP 500"
        assert len(log.response_body) == RESPONSE_BODY_LIMIT

    def test_mark_retrying_advances_attempt(self):
        log = make_log()
        log.mark_failed("HTTP 503", 503)
        log.mark_retrying(NOW + timedelta(seconds=5))

        assert log.status == "retrying"
        assert log.attempt_number == 2
        assert log.next_retry_at == NOW + timedelta(seconds=5)
        assert log.error == "HTTP 503"
        assert log.is_retry

    def test_mark_retrying_requires_error(self):
        with pytest.raises(ValueError):
            make_log().mark_retrying(NOW)

    def test_is_due(self):
        log = make_log(status="retrying", error="boom", next_retry_at=NOW)
        assert log.is_due(NOW)
        assert not log.is_due(NOW - timedelta(seconds=1))
        assert not make_log(status="failed", next_retry_at=NOW).is_due(NOW)

    def test_is_exhausted(self):
        assert make_log(attempt_number=4, max_attempts=4).is_exhausted
        assert not make_log(attempt_number=3, max_attempts=4).is_exhausted


class TestIntegration:
    """Tests for receiver eligibility."""

    def make(self, **overrides) -> Integration:
        defaults = {
            "organization_id": "org_1",
            "provider": "zapier",
            "webhook_url": "https://example.com/hook",
            "settings": WebhookSettings(events=["client.goal.achieved"]),
        }
        defaults.update(overrides)
        return Integration(**defaults)

    def test_accepts_subscribed_event(self):
        integration = self.make()
        assert integration.accepts("client.goal.achieved")
        assert integration.ineligibility_reason("client.goal.achieved") is None

    def test_rejects_unsubscribed_event(self):
        integration = self.make()
        assert not integration.accepts("payment.received")
        assert "not subscribed" in integration.ineligibility_reason("payment.received")

    def test_rejects_disconnected(self):
        integration = self.make(status="disconnected")
        assert not integration.accepts("client.goal.achieved")
        assert integration.ineligibility_reason("client.goal.achieved") == "status is disconnected"

    def test_rejects_missing_url(self):
        integration = self.make(webhook_url=None)
        assert integration.ineligibility_reason("client.goal.achieved") == "no webhook URL"

    def test_secret_never_serialized(self):
        integration = self.make(webhook_secret=SecretStr("s3cret"), has_secret=True)

        assert "webhook_secret" not in integration.model_dump()
        assert "s3cret" not in integration.model_dump_json()
        assert "s3cret" not in repr(integration)
        assert integration.secret_value() == "s3cret"

    def test_settings_defaults(self):
        settings = WebhookSettings()
        assert settings.events == []
        assert settings.retry_on_failure is True
        assert settings.include_client_data is False


class TestEventData:
    """Tests for typed event data."""

    def test_serializes_camel_case(self):
        data = CheckinCompletedData(
            user_id="u_1",
            user_name="Ana",
            checkin_id="c_1",
            checkin_type="morning",
            timestamp=NOW,
        )

        assert data.to_data() == {
            "userId": "u_1",
            "userName": "Ana",
            "checkinId": "c_1",
            "checkinType": "morning",
            "timestamp": "2026-02-01T08:00:00Z",
        }

    def test_accepts_camel_case_input(self):
        data = PaymentReceivedData.model_validate(
            {
                "userId": "u_1",
                "userName": "Ana",
                "userEmail": "ana@example.com",
                "amount": 4900,
                "currency": "usd",
                "productType": "program",
                "productId": "p_1",
                "productName": "Strength",
                "stripePaymentId": "pi_1",
                "receivedAt": NOW.isoformat(),
            }
        )
        assert data.amount == 4900

    def test_rejects_invalid_currency(self):
        with pytest.raises(ValidationError):
            PaymentReceivedData(
                user_id="u_1",
                user_name="Ana",
                user_email="ana@example.com",
                amount=1,
                currency="dollars",
                product_type="program",
                product_id="p_1",
                product_name="Strength",
                stripe_payment_id="pi_1",
                received_at=NOW,
            )
