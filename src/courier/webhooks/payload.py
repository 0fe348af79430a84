"""Envelope construction."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from courier.exceptions import SigningError
from courier.models import WebhookPayload, utc_now

if TYPE_CHECKING:
    from courier.models import EventType


def build_payload(
    organization_id: str,
    event: EventType,
    data: dict[str, Any],
    now: datetime | None = None,
) -> WebhookPayload:
    """Build an unsigned envelope with a fresh id and timestamp.

    Args:
        organization_id: Tenant the event belongs to.
        event: Event type.
        data: Event-specific data (copied; later caller mutations do not leak in).
        now: Timestamp override, defaults to the current UTC time.

    Returns:
        Unsigned WebhookPayload.

    Raises:
        SigningError: The data cannot form an envelope (not a mapping, or
            keys that are not strings).
    """
    # pydantic's ValidationError is a ValueError
    try:
        return WebhookPayload(
            id=str(uuid4()),
            event=event,
            timestamp=now or utc_now(),
            organization_id=organization_id,
            data=dict(data),
        )
    except (TypeError, ValueError) as e:
        raise SigningError(f"Invalid event data: {e}") from e
