"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from courier.models import DeliveryLog, DeliveryStatus


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status (healthy, unhealthy).
        version: API version.
        storage_connected: Whether storage is connected.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "unhealthy"]
    version: str
    storage_connected: bool


class RetrySweepResponse(BaseModel):
    """Counters from one retry sweep."""

    model_config = ConfigDict(extra="forbid")

    organizations: int = Field(ge=0, description="Tenants scanned")
    processed: int = Field(ge=0, description="Logs re-attempted")
    delivered: int = Field(ge=0, description="Re-attempts that got a 2xx")
    rescheduled: int = Field(ge=0, description="Re-attempts moved to their next slot")
    failed: int = Field(ge=0, description="Logs that became terminally failed")
    skipped: int = Field(ge=0, description="Logs already advanced by another sweep")
    errors: int = Field(ge=0, description="Rows or tenants that raised unexpectedly")
    swept_at: datetime


class CleanupResponse(BaseModel):
    """Result of a housekeeping run."""

    model_config = ConfigDict(extra="forbid")

    deleted: int = Field(ge=0, description="Logs deleted")
    cutoff: datetime = Field(description="Logs created before this were eligible")


class DeliveryLogResponse(BaseModel):
    """A delivery log as shown to operators. The envelope itself is omitted."""

    model_config = ConfigDict(extra="forbid")

    id: str
    integration_id: str
    provider: str
    event: str
    webhook_url: str
    status: DeliveryStatus
    http_status: int | None = None
    response_body: str | None = None
    error: str | None = None
    attempt_number: int
    max_attempts: int
    next_retry_at: datetime | None = None
    created_at: datetime
    delivered_at: datetime | None = None

    @classmethod
    def from_log(cls, log: DeliveryLog) -> DeliveryLogResponse:
        return cls(
            id=log.id,
            integration_id=log.integration_id,
            provider=log.provider,
            event=log.event,
            webhook_url=log.webhook_url,
            status=log.status,
            http_status=log.http_status,
            response_body=log.response_body,
            error=log.error,
            attempt_number=log.attempt_number,
            max_attempts=log.max_attempts,
            next_retry_at=log.next_retry_at,
            created_at=log.created_at,
            delivered_at=log.delivered_at,
        )


class DeliveryLogListResponse(BaseModel):
    """Recent delivery logs for a tenant, newest first."""

    model_config = ConfigDict(extra="forbid")

    organization_id: str
    logs: list[DeliveryLogResponse] = Field(default_factory=list)
    count: int = Field(ge=0)
