"""Retry sweep and log housekeeping.

Both entry points are meant to be called periodically, by the worker loop
or by an external cron hitting the API. Runs are safe to overlap: a row is
re-read before it is re-attempted and skipped if another sweep already
moved it on.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from courier.config import Settings
from courier.config import settings as default_settings

from .dispatcher import Delivered, Failed

if TYPE_CHECKING:
    from courier.models import DeliveryLog
    from courier.storage import DeliveryLogStore, IntegrationRegistry

    from .dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)


@dataclass
class RetrySweepResult:
    """Counters for one retry sweep."""

    organizations: int = 0
    processed: int = 0
    delivered: int = 0
    rescheduled: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class RetryScheduler:
    """Re-attempts due deliveries and purges old delivery logs."""

    def __init__(
        self,
        dispatcher: WebhookDispatcher,
        registry: IntegrationRegistry,
        logs: DeliveryLogStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        settings = settings or default_settings
        self._dispatcher = dispatcher
        self._registry = registry
        self._logs = logs
        self._batch_size = settings.retry_batch_size
        self._retention = timedelta(days=settings.log_retention_days)
        self._cleanup_batch_size = settings.cleanup_batch_size
        self._clock = clock or dispatcher.now

    @property
    def retention(self) -> timedelta:
        return self._retention

    async def process_retries(self, now: datetime | None = None) -> RetrySweepResult:
        """Re-attempt every retrying log whose slot has arrived.

        At most retry_batch_size rows are taken per tenant; anything left
        over is picked up by the next sweep.

        Args:
            now: Sweep time. Defaults to the clock.

        Returns:
            Counters for this sweep.
        """
        now = now or self._clock()
        result = RetrySweepResult()

        for organization_id in await self._organization_ids():
            result.organizations += 1
            try:
                due = await self._logs.get_due_retries(organization_id, now, self._batch_size)
            except Exception:
                logger.exception("Failed to load due retries for org %s", organization_id)
                result.errors += 1
                continue

            for log in due:
                try:
                    await self._process_one(log, now, result)
                except Exception:
                    logger.exception("Retry failed for log %s", log.id)
                    result.errors += 1

        if result.processed or result.errors:
            logger.info(
                "Retry sweep: %d processed, %d delivered, %d rescheduled, %d failed",
                result.processed,
                result.delivered,
                result.rescheduled,
                result.failed,
                extra=result.to_dict(),
            )
        return result

    async def _organization_ids(self) -> list[str]:
        """Tenants with integrations plus tenants that only have logs left."""
        with_integrations = await self._registry.list_organization_ids()
        with_logs = await self._logs.list_log_organization_ids()
        return sorted(set(with_integrations) | set(with_logs))

    async def _process_one(self, log: DeliveryLog, now: datetime, result: RetrySweepResult) -> None:
        current = await self._logs.get_delivery_log(log.organization_id, log.id)
        if current is None or current.version != log.version or not current.is_due(now):
            logger.debug("Log %s already advanced by another sweep", log.id)
            result.skipped += 1
            return

        result.processed += 1
        outcome = await self._dispatcher.redeliver(current)

        if isinstance(outcome, Delivered):
            result.delivered += 1
        elif isinstance(outcome, Failed) and outcome.retry_scheduled:
            result.rescheduled += 1
        else:
            result.failed += 1

    async def cleanup_old_logs(self, now: datetime | None = None) -> int:
        """Delete logs older than the retention window.

        At most cleanup_batch_size rows are removed per tenant per call.

        Returns:
            Number of rows deleted.
        """
        now = now or self._clock()
        cutoff = now - self._retention
        deleted = 0

        for organization_id in await self._organization_ids():
            try:
                count = await self._logs.delete_logs_before(
                    organization_id, cutoff, self._cleanup_batch_size
                )
            except Exception:
                logger.exception("Log cleanup failed for org %s", organization_id)
                continue
            if count:
                logger.info("Deleted %d old delivery logs for org %s", count, organization_id)
            deleted += count

        return deleted
