"""Data models for Courier.

Receivers:
    - Integration: a tenant's connection to an automation platform
    - WebhookSettings: subscribed events and retry behavior

Delivery:
    - WebhookPayload: the signed envelope sent over the wire
    - DeliveryLog: durable record of one envelope's attempts

Event data:
    - CheckinCompletedData, GoalAchievedData, SessionCompletedData,
      ProgramPurchasedData, SquadMemberJoinedData, PaymentReceivedData
"""

from .base import generate_id, utc_now
from .events import (
    CheckinCompletedData,
    EventData,
    GoalAchievedData,
    PaymentReceivedData,
    ProgramPurchasedData,
    SessionCompletedData,
    SquadMemberJoinedData,
)
from .integration import (
    WEBHOOK_PROVIDERS,
    Integration,
    IntegrationStatus,
    SyncStatus,
    WebhookSettings,
)
from .webhook import (
    ALL_EVENT_TYPES,
    RESPONSE_BODY_LIMIT,
    WEBHOOK_EVENTS,
    DeliveryLog,
    DeliveryStatus,
    EventType,
    WebhookPayload,
)

__all__ = [
    "generate_id",
    "utc_now",
    # Receivers
    "WEBHOOK_PROVIDERS",
    "Integration",
    "IntegrationStatus",
    "SyncStatus",
    "WebhookSettings",
    # Delivery
    "ALL_EVENT_TYPES",
    "RESPONSE_BODY_LIMIT",
    "WEBHOOK_EVENTS",
    "DeliveryLog",
    "DeliveryStatus",
    "EventType",
    "WebhookPayload",
    # Event data
    "CheckinCompletedData",
    "EventData",
    "GoalAchievedData",
    "PaymentReceivedData",
    "ProgramPurchasedData",
    "SessionCompletedData",
    "SquadMemberJoinedData",
]
