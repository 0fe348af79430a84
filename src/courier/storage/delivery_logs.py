"""Delivery log storage operations for Courier.

Each log row is one Qdrant point keyed by (organization, log id). Writes
always replace the whole point, which Qdrant applies atomically, so two
workers racing on the same row leave one consistent version behind.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from qdrant_client import models

from courier.models import DeliveryLog, utc_now
from courier.storage.retry import qdrant_retry

logger = logging.getLogger(__name__)

SCROLL_PAGE_SIZE = 256


def _org_condition(organization_id: str) -> models.FieldCondition:
    return models.FieldCondition(
        key="organization_id",
        match=models.MatchValue(value=organization_id),
    )


class DeliveryLogMixin:
    """Mixin providing delivery log operations for CourierStorage.

    This mixin expects the following attributes/methods from the base class:
    - _collection_name(kind) -> str
    - _build_key(record_id, organization_id) -> str
    - _key_to_point_id(key) -> str
    - _record_to_payload(record) / _payload_to_record(payload, cls)
    - _upsert(kind, key, payload) / _retrieve(kind, key)
    - client: AsyncQdrantClient
    """

    _collection_name: Any
    _build_key: Any
    _key_to_point_id: Any
    _record_to_payload: Any
    _payload_to_record: Any
    _upsert: Any
    _retrieve: Any
    client: Any

    async def save_delivery_log(self, log: DeliveryLog) -> DeliveryLog:
        """Create or replace a delivery log row.

        Args:
            log: Log to persist. Its version and updated_at are advanced.

        Returns:
            The persisted log.
        """
        log.version += 1
        log.updated_at = utc_now()
        await self._write_log(log)
        return log

    @qdrant_retry
    async def _write_log(self, log: DeliveryLog) -> None:
        await self._upsert(
            "webhook_logs",
            self._build_key(log.id, log.organization_id),
            self._record_to_payload(log),
        )

    @qdrant_retry
    async def get_delivery_log(self, organization_id: str, log_id: str) -> DeliveryLog | None:
        """Get a delivery log by ID, or None if not found."""
        payload = await self._retrieve("webhook_logs", self._build_key(log_id, organization_id))
        if payload is None:
            return None
        log: DeliveryLog = self._payload_to_record(payload, DeliveryLog)
        return log

    @qdrant_retry
    async def get_due_retries(
        self,
        organization_id: str,
        now: datetime,
        limit: int,
    ) -> list[DeliveryLog]:
        """Get retrying logs whose next slot has arrived.

        Args:
            organization_id: Tenant to scan.
            now: Cutoff for next_retry_at.
            limit: Maximum rows returned.

        Returns:
            Due logs sorted by next_retry_at (oldest first). The limit is
            applied after ordering, so a backlog drains oldest slot first.
        """
        points, _ = await self.client.scroll(
            collection_name=self._collection_name("webhook_logs"),
            scroll_filter=models.Filter(
                must=[
                    _org_condition(organization_id),
                    models.FieldCondition(
                        key="status",
                        match=models.MatchValue(value="retrying"),
                    ),
                    models.FieldCondition(
                        key="next_retry_at_ts",
                        range=models.Range(lte=now.timestamp()),
                    ),
                ]
            ),
            limit=limit,
            order_by=models.OrderBy(key="next_retry_at_ts", direction=models.Direction.ASC),
            with_payload=True,
        )

        logs: list[DeliveryLog] = [
            self._payload_to_record(dict(p.payload), DeliveryLog)
            for p in points
            if p.payload is not None
        ]
        return logs

    @qdrant_retry
    async def list_log_organization_ids(self) -> list[str]:
        """All organizations that own at least one delivery log, sorted.

        Covers tenants whose integrations were deleted while logs remain.
        """
        organization_ids: set[str] = set()
        offset = None

        while True:
            points, offset = await self.client.scroll(
                collection_name=self._collection_name("webhook_logs"),
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=["organization_id"],
            )
            for point in points:
                if point.payload and point.payload.get("organization_id"):
                    organization_ids.add(point.payload["organization_id"])
            if offset is None:
                break

        return sorted(organization_ids)

    @qdrant_retry
    async def list_delivery_logs(
        self,
        organization_id: str,
        limit: int = 50,
    ) -> list[DeliveryLog]:
        """Get the most recent delivery logs for a tenant, newest first."""
        logs: list[DeliveryLog] = []
        offset = None

        while True:
            points, offset = await self.client.scroll(
                collection_name=self._collection_name("webhook_logs"),
                scroll_filter=models.Filter(must=[_org_condition(organization_id)]),
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
            )
            logs.extend(
                self._payload_to_record(dict(p.payload), DeliveryLog)
                for p in points
                if p.payload is not None
            )
            if offset is None:
                break

        logs.sort(key=lambda log: log.created_at, reverse=True)
        return logs[:limit]

    @qdrant_retry
    async def delete_logs_before(
        self,
        organization_id: str,
        cutoff: datetime,
        limit: int,
    ) -> int:
        """Delete one batch of logs created before the cutoff.

        Args:
            organization_id: Tenant to clean up.
            cutoff: Logs created strictly before this are removed.
            limit: Maximum rows deleted in this batch.

        Returns:
            Number of rows deleted.
        """
        collection = self._collection_name("webhook_logs")
        points, _ = await self.client.scroll(
            collection_name=collection,
            scroll_filter=models.Filter(
                must=[
                    _org_condition(organization_id),
                    models.FieldCondition(
                        key="created_at_ts",
                        range=models.Range(lt=cutoff.timestamp()),
                    ),
                ]
            ),
            limit=limit,
            with_payload=False,
        )
        if not points:
            return 0

        await self.client.delete(
            collection_name=collection,
            points_selector=models.PointIdsList(points=[p.id for p in points]),
            wait=True,
        )
        return len(points)
