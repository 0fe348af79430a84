"""Integration models for connected automation receivers.

One Integration exists per (organization, provider). The signing secret is
stored encrypted and only materialized on an Integration when explicitly
requested by the registry.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .base import generate_id, utc_now
from .webhook import EventType

IntegrationStatus = Literal["connected", "disconnected", "expired", "error"]

SyncStatus = Literal["success", "error"]

# Providers that deliver over plain webhooks
WEBHOOK_PROVIDERS: tuple[str, ...] = ("zapier", "make")


class WebhookSettings(BaseModel):
    """Receiver-specific settings for webhook providers.

    Attributes:
        events: Event types this receiver subscribes to.
        include_client_data: Whether client PII may be sent to this receiver.
        retry_on_failure: Whether failed deliveries are retried.
    """

    model_config = ConfigDict(extra="forbid")

    events: list[EventType] = Field(default_factory=list, description="Subscribed events")
    include_client_data: bool = Field(default=False, description="Allow client PII")
    retry_on_failure: bool = Field(default=True, description="Retry failed deliveries")


class Integration(BaseModel):
    """A tenant's connection to an automation platform.

    Attributes:
        id: Unique identifier for this integration.
        organization_id: Tenant that owns the integration.
        provider: Provider key (zapier, make, ...).
        status: Connection status.
        webhook_url: Receiver endpoint.
        webhook_secret: Decrypted signing secret, only set when requested.
        has_secret: Whether a signing secret is stored.
        settings: Subscription and retry settings.
        last_sync_at: When the last delivery finished.
        last_sync_status: Outcome of the last delivery.
        last_sync_error: Error from the last failed delivery.
        connected_at: When the integration was connected.
        updated_at: When the integration was last modified.
        connected_by: User who connected the integration.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("int"))
    organization_id: str = Field(description="Owning organization")
    provider: str = Field(min_length=1, description="Provider key")
    status: IntegrationStatus = Field(default="connected", description="Connection status")
    webhook_url: str | None = Field(default=None, description="Receiver endpoint")
    webhook_secret: SecretStr | None = Field(
        default=None,
        exclude=True,
        description="Decrypted signing secret (never serialized)",
    )
    has_secret: bool = Field(default=False, description="Whether a secret is stored")
    settings: WebhookSettings = Field(default_factory=WebhookSettings)
    last_sync_at: datetime | None = Field(default=None)
    last_sync_status: SyncStatus | None = Field(default=None)
    last_sync_error: str | None = Field(default=None)
    connected_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    connected_by: str | None = Field(default=None, description="User who connected it")

    @property
    def is_connected(self) -> bool:
        return self.status == "connected"

    def subscribes_to(self, event: EventType) -> bool:
        """Check if this integration subscribes to the given event type."""
        return event in self.settings.events

    def accepts(self, event: EventType) -> bool:
        """Connected, subscribed, and reachable."""
        return self.is_connected and self.subscribes_to(event) and bool(self.webhook_url)

    def ineligibility_reason(self, event: EventType) -> str | None:
        """Why accepts() is False, or None when the integration is eligible."""
        if not self.is_connected:
            return f"status is {self.status}"
        if not self.subscribes_to(event):
            return f"not subscribed to {event}"
        if not self.webhook_url:
            return "no webhook URL"
        return None

    def secret_value(self) -> str | None:
        """Plain secret for the signing step, if one was loaded."""
        if self.webhook_secret is None:
            return None
        return self.webhook_secret.get_secret_value()


__all__ = [
    "WEBHOOK_PROVIDERS",
    "Integration",
    "IntegrationStatus",
    "SyncStatus",
    "WebhookSettings",
]
