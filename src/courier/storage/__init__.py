"""Storage backends for Courier.

This module provides the storage layer for integrations and webhook
delivery logs, persisted to Qdrant with per-organization isolation.

Example:
    ```python
    from courier.storage import CourierStorage

    async with CourierStorage.from_settings(settings) as storage:
        await storage.save_delivery_log(log)
        due = await storage.get_due_retries("org_1", now, limit=50)
    ```
"""

from .base import COLLECTION_NAMES, PLACEHOLDER_VECTOR
from .client import CourierStorage
from .interfaces import DeliveryLogStore, IntegrationRegistry

__all__ = [
    "CourierStorage",
    "DeliveryLogStore",
    "IntegrationRegistry",
    "COLLECTION_NAMES",
    "PLACEHOLDER_VECTOR",
]
