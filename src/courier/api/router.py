"""FastAPI router for Courier API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from courier import __version__
from courier.config import Settings
from courier.config import settings as default_settings
from courier.service import CourierService

from .auth import CronAuthDependency
from .schemas import (
    CleanupResponse,
    DeliveryLogListResponse,
    DeliveryLogResponse,
    HealthResponse,
    RetrySweepResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Service instance (set by app lifespan)
_service: CourierService | None = None


def set_service(service: CourierService | None) -> None:
    """Set the global service instance."""
    global _service
    _service = service


async def get_service() -> CourierService:
    """Dependency to get the CourierService instance."""
    if _service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _service


def get_settings() -> Settings:
    """Settings of the running service, or the environment's."""
    return _service.settings if _service is not None else default_settings


ServiceDep = Annotated[CourierService, Depends(get_service)]
CronAuth = Depends(CronAuthDependency(get_settings))


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check() -> HealthResponse:
    """Check service health."""
    if _service is not None:
        return HealthResponse(status="healthy", version=__version__, storage_connected=True)
    return HealthResponse(status="unhealthy", version=__version__, storage_connected=False)


@router.post(
    "/cron/webhook-retries",
    response_model=RetrySweepResponse,
    tags=["cron"],
    dependencies=[CronAuth],
)
async def run_webhook_retries(service: ServiceDep) -> RetrySweepResponse:
    """Re-attempt every delivery whose retry slot has arrived.

    Safe to call concurrently with other sweeps or with the worker.
    """
    now = service.dispatcher.now()
    result = await service.scheduler.process_retries(now)
    return RetrySweepResponse(**result.to_dict(), swept_at=now)


@router.post(
    "/cron/webhook-cleanup",
    response_model=CleanupResponse,
    tags=["cron"],
    dependencies=[CronAuth],
)
async def run_webhook_cleanup(service: ServiceDep) -> CleanupResponse:
    """Delete delivery logs older than the retention window."""
    now = service.dispatcher.now()
    deleted = await service.scheduler.cleanup_old_logs(now)
    return CleanupResponse(
        deleted=deleted,
        cutoff=now - service.scheduler.retention,
    )


@router.get(
    "/organizations/{organization_id}/webhook-logs",
    response_model=DeliveryLogListResponse,
    tags=["webhooks"],
)
async def list_webhook_logs(
    organization_id: str,
    service: ServiceDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> DeliveryLogListResponse:
    """Get a tenant's most recent delivery logs, newest first."""
    logs = await service.storage.list_delivery_logs(organization_id, limit=limit)
    return DeliveryLogListResponse(
        organization_id=organization_id,
        logs=[DeliveryLogResponse.from_log(log) for log in logs],
        count=len(logs),
    )
