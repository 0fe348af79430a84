"""Courier: signed outbound webhooks for automation platforms.

Notifies a tenant's connected automation receivers (Zapier, Make) when
platform events occur. Every envelope is HMAC-signed, every attempt is
recorded in a durable delivery log, and failures are retried on a fixed
backoff table.

Quick Start:
    from courier.service import CourierService

    async with CourierService.create() as courier:
        report = await courier.dispatch_event(
            organization_id="org_123",
            event="client.goal.achieved",
            data={"goalId": "goal_1", "goalTitle": "Run 5k"},
        )

        # Periodically (worker or cron endpoint)
        await courier.scheduler.process_retries()
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, settings

# Exceptions
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    CourierError,
    DeliveryError,
    DeliveryTimeout,
    IntegrationLookupError,
    NetworkError,
    ReceiverRejected,
    SigningError,
    StorageError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)

# Models
from .models import (
    DeliveryLog,
    EventType,
    Integration,
    WebhookPayload,
    WebhookSettings,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "CourierError",
    "IntegrationLookupError",
    "SigningError",
    "DeliveryError",
    "NetworkError",
    "DeliveryTimeout",
    "ReceiverRejected",
    "StorageError",
    "ConfigurationError",
    "AuthenticationError",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "unbind_context",
    # Models
    "DeliveryLog",
    "EventType",
    "Integration",
    "WebhookPayload",
    "WebhookSettings",
]
