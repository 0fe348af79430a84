"""Qdrant storage client for Courier.

This module provides the CourierStorage class that combines the
integration registry and the delivery log store through mixins.

Example:
    ```python
    from courier.security import SecretCipher
    from courier.storage import CourierStorage

    async with CourierStorage(cipher=SecretCipher(key)) as storage:
        integration = await storage.get_integration("org_1", "zapier")
        logs = await storage.list_delivery_logs("org_1")
    ```
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from courier.security import SecretCipher

from .base import StorageBase
from .delivery_logs import DeliveryLogMixin
from .integrations import IntegrationMixin

if TYPE_CHECKING:
    from courier.config import Settings

logger = logging.getLogger(__name__)


class CourierStorage(IntegrationMixin, DeliveryLogMixin, StorageBase):
    """Async Qdrant storage for integrations and delivery logs.

    Implements both IntegrationRegistry and DeliveryLogStore:
    - IntegrationMixin: save_integration, store_webhook_integration,
      get_integration, update_sync_status, delete_integration,
      list_organization_ids
    - DeliveryLogMixin: save_delivery_log, get_delivery_log,
      get_due_retries, list_log_organization_ids, list_delivery_logs,
      delete_logs_before

    Attributes:
        client: Async Qdrant client instance.
        cipher: Cipher for signing secrets at rest.
    """

    def __init__(
        self,
        cipher: SecretCipher,
        url: str | None = None,
        api_key: str | None = None,
        prefix: str | None = None,
    ) -> None:
        super().__init__(url=url, api_key=api_key, prefix=prefix)
        self.cipher = cipher

    @classmethod
    def from_settings(cls, settings: Settings) -> CourierStorage:
        """Build storage (not yet initialized) from configuration."""
        return cls(
            cipher=SecretCipher.from_settings(settings),
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            prefix=settings.collection_prefix,
        )

    async def __aenter__(self) -> CourierStorage:
        await self.initialize()
        return self
