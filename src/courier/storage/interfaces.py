"""Storage contracts the dispatcher depends on.

The dispatcher only needs these narrow operations, so any backend that
implements them (Qdrant here, a fake in tests) can be plugged in.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from courier.models import DeliveryLog, Integration, SyncStatus


@runtime_checkable
class IntegrationRegistry(Protocol):
    """Read access to receivers plus sync-status bookkeeping."""

    @abstractmethod
    async def get_integration(
        self,
        organization_id: str,
        provider: str,
        with_secret: bool = False,
    ) -> Integration | None:
        """Look up a tenant's integration for one provider.

        The signing secret is only populated when `with_secret` is True.
        """
        ...

    @abstractmethod
    async def update_sync_status(
        self,
        organization_id: str,
        provider: str,
        status: SyncStatus,
        error: str | None = None,
    ) -> None:
        """Record the outcome of the latest delivery on the integration."""
        ...

    @abstractmethod
    async def list_organization_ids(self) -> list[str]:
        """All tenants that have at least one integration."""
        ...


@runtime_checkable
class DeliveryLogStore(Protocol):
    """Durable delivery log rows keyed by (organization, log id).

    `save_delivery_log` replaces the whole row in a single write, so
    concurrent writers resolve last-writer-wins without partial updates.
    """

    @abstractmethod
    async def save_delivery_log(self, log: DeliveryLog) -> DeliveryLog:
        """Create or replace a log row. Bumps `version` and `updated_at`."""
        ...

    @abstractmethod
    async def get_delivery_log(self, organization_id: str, log_id: str) -> DeliveryLog | None:
        ...

    @abstractmethod
    async def get_due_retries(
        self,
        organization_id: str,
        now: datetime,
        limit: int,
    ) -> list[DeliveryLog]:
        """Logs in `retrying` whose `next_retry_at <= now`, oldest slot first."""
        ...

    @abstractmethod
    async def list_log_organization_ids(self) -> list[str]:
        """All tenants that own at least one delivery log."""
        ...

    @abstractmethod
    async def list_delivery_logs(
        self,
        organization_id: str,
        limit: int = 50,
    ) -> list[DeliveryLog]:
        """Most recent logs for a tenant, newest first."""
        ...

    @abstractmethod
    async def delete_logs_before(
        self,
        organization_id: str,
        cutoff: datetime,
        limit: int,
    ) -> int:
        """Delete up to `limit` logs created before `cutoff`. Returns count."""
        ...
