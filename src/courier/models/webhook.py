"""Webhook models for outbound event notifications.

Provides the event type enumeration, the signed envelope sent over the
wire, and the delivery log that tracks one envelope through its attempts.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import generate_id, utc_now

# Event types that can trigger webhooks. Extend by appending.
EventType = Literal[
    "client.checkin.completed",
    "client.checkin.missed",
    "client.goal.created",
    "client.goal.achieved",
    "client.goal.updated",
    "client.habit.completed",
    "coaching.session.scheduled",
    "coaching.session.completed",
    "coaching.session.cancelled",
    "coaching.note.created",
    "program.purchased",
    "program.completed",
    "squad.member.joined",
    "squad.member.left",
    "squad.call.scheduled",
    "squad.call.completed",
    "payment.received",
    "payment.failed",
]

# Display metadata for every event type, grouped by category
WEBHOOK_EVENTS: dict[str, dict[str, str]] = {
    "client.checkin.completed": {
        "name": "Check-in Completed",
        "description": "Triggered when a client completes their daily check-in",
        "category": "Check-ins",
    },
    "client.checkin.missed": {
        "name": "Check-in Missed",
        "description": "Triggered when a client misses their check-in window",
        "category": "Check-ins",
    },
    "client.goal.created": {
        "name": "Goal Created",
        "description": "Triggered when a client creates a new goal",
        "category": "Goals",
    },
    "client.goal.achieved": {
        "name": "Goal Achieved",
        "description": "Triggered when a client marks a goal as achieved",
        "category": "Goals",
    },
    "client.goal.updated": {
        "name": "Goal Updated",
        "description": "Triggered when a client updates their goal",
        "category": "Goals",
    },
    "client.habit.completed": {
        "name": "Habit Completed",
        "description": "Triggered when a client completes a habit for the day",
        "category": "Habits",
    },
    "coaching.session.scheduled": {
        "name": "Session Scheduled",
        "description": "Triggered when a coaching session is scheduled",
        "category": "Coaching",
    },
    "coaching.session.completed": {
        "name": "Session Completed",
        "description": "Triggered when a coaching session ends",
        "category": "Coaching",
    },
    "coaching.session.cancelled": {
        "name": "Session Cancelled",
        "description": "Triggered when a coaching session is cancelled",
        "category": "Coaching",
    },
    "coaching.note.created": {
        "name": "Note Created",
        "description": "Triggered when a coach creates a session note",
        "category": "Coaching",
    },
    "program.purchased": {
        "name": "Program Purchased",
        "description": "Triggered when a client purchases a program",
        "category": "Programs",
    },
    "program.completed": {
        "name": "Program Completed",
        "description": "Triggered when a client completes a program",
        "category": "Programs",
    },
    "squad.member.joined": {
        "name": "Squad Member Joined",
        "description": "Triggered when someone joins a squad",
        "category": "Squads",
    },
    "squad.member.left": {
        "name": "Squad Member Left",
        "description": "Triggered when someone leaves a squad",
        "category": "Squads",
    },
    "squad.call.scheduled": {
        "name": "Squad Call Scheduled",
        "description": "Triggered when a squad call is scheduled",
        "category": "Squads",
    },
    "squad.call.completed": {
        "name": "Squad Call Completed",
        "description": "Triggered when a squad call ends",
        "category": "Squads",
    },
    "payment.received": {
        "name": "Payment Received",
        "description": "Triggered when a payment is successfully processed",
        "category": "Payments",
    },
    "payment.failed": {
        "name": "Payment Failed",
        "description": "Triggered when a payment fails",
        "category": "Payments",
    },
}

ALL_EVENT_TYPES: list[EventType] = list(WEBHOOK_EVENTS)  # type: ignore[arg-type]

DeliveryStatus = Literal["pending", "delivered", "failed", "retrying"]

# Response bodies kept on a log are truncated to this many characters
RESPONSE_BODY_LIMIT = 1000


class WebhookPayload(BaseModel):
    """Envelope sent to receivers.

    Immutable once built. Serialized with camelCase `organizationId` to
    match the wire format.

    Attributes:
        id: Globally unique event id, the receiver's idempotency key.
        event: Event type.
        timestamp: When the envelope was built (UTC).
        organization_id: Tenant the event belongs to.
        data: Event-specific data.
        signature: HMAC over the canonical envelope without this field.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    event: EventType
    timestamp: datetime = Field(default_factory=utc_now)
    organization_id: str = Field(alias="organizationId")
    data: dict[str, Any] = Field(default_factory=dict)
    signature: str = Field(default="")

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible body exactly as POSTed."""
        return self.model_dump(mode="json", by_alias=True)


class DeliveryLog(BaseModel):
    """Durable record of one envelope's delivery lineage.

    Attributes:
        id: Unique identifier for this log.
        organization_id: Tenant that owns the receiver.
        integration_id: Receiver integration id.
        provider: Receiver provider key.
        event: Event type delivered.
        webhook_url: Destination URL at the time of the first attempt.
        payload: Envelope as sent (None when it could not be serialized).
        status: pending, delivered, failed or retrying.
        http_status: Status code of the last attempt, if any response.
        response_body: Truncated body of the last response.
        error: Error from the most recent failed attempt.
        attempt_number: Current attempt (1-indexed).
        max_attempts: Attempt cap including the first attempt.
        next_retry_at: When the sweep may pick this log up again.
        created_at: When the first attempt started.
        delivered_at: When a 2xx response was received.
        updated_at: When this log was last written.
        version: Incremented on every write.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("dlv"))
    organization_id: str
    integration_id: str
    provider: str
    event: EventType
    webhook_url: str
    payload: WebhookPayload | None = None
    status: DeliveryStatus = "pending"
    http_status: int | None = None
    response_body: str | None = None
    error: str | None = None
    attempt_number: int = Field(default=1, ge=1)
    max_attempts: int = Field(default=4, ge=1)
    next_retry_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    delivered_at: datetime | None = None
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_attempt_cap(self) -> "DeliveryLog":
        if self.attempt_number > self.max_attempts:
            raise ValueError(
                f"attempt_number ({self.attempt_number}) exceeds "
                f"max_attempts ({self.max_attempts})"
            )
        return self

    @property
    def is_exhausted(self) -> bool:
        return self.attempt_number >= self.max_attempts

    @property
    def is_retry(self) -> bool:
        return self.attempt_number > 1

    def is_due(self, now: datetime) -> bool:
        """Retrying and its next slot has arrived."""
        return (
            self.status == "retrying"
            and self.next_retry_at is not None
            and self.next_retry_at <= now
        )

    def mark_delivered(
        self,
        http_status: int,
        response_body: str | None = None,
        now: datetime | None = None,
    ) -> "DeliveryLog":
        """Mark delivery as successful."""
        self.status = "delivered"
        self.http_status = http_status
        self.response_body = response_body[:RESPONSE_BODY_LIMIT] if response_body else None
        self.delivered_at = now or utc_now()
        self.next_retry_at = None
        return self

    def mark_failed(
        self,
        error: str,
        http_status: int | None = None,
        response_body: str | None = None,
    ) -> "DeliveryLog":
        """Mark the current attempt as failed. Terminal unless a retry is scheduled."""
        self.status = "failed"
        self.error = error
        self.http_status = http_status
        self.response_body = response_body[:RESPONSE_BODY_LIMIT] if response_body else None
        self.next_retry_at = None
        return self

    def mark_retrying(self, next_retry_at: datetime) -> "DeliveryLog":
        """Advance to the next attempt slot. Keeps the last error."""
        if self.error is None:
            raise ValueError("A retrying log must carry the error of its last attempt")
        self.status = "retrying"
        self.attempt_number += 1
        self.next_retry_at = next_retry_at
        return self


__all__ = [
    "ALL_EVENT_TYPES",
    "RESPONSE_BODY_LIMIT",
    "WEBHOOK_EVENTS",
    "DeliveryLog",
    "DeliveryStatus",
    "EventType",
    "WebhookPayload",
]
