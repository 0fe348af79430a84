"""Courier service wiring storage, dispatcher and retry scheduler together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from courier.config import Settings
from courier.storage import CourierStorage
from courier.webhooks import RetryScheduler, WebhookDispatcher

if TYPE_CHECKING:
    import httpx

    from courier.models import EventType
    from courier.webhooks import DispatchReport

logger = logging.getLogger(__name__)


@dataclass
class CourierService:
    """High-level entry point for webhook dispatch.

    Example:
        ```python
        async with CourierService.create() as courier:
            await courier.dispatcher.dispatch_event(
                "org_1", "client.goal.achieved", {"goalId": "g_1"}
            )
            result = await courier.scheduler.process_retries()
        ```
    """

    storage: CourierStorage
    dispatcher: WebhookDispatcher
    scheduler: RetryScheduler
    settings: Settings

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> CourierService:
        """Create a CourierService from configuration.

        Args:
            settings: Optional settings. Uses environment if None.
            http_client: Optional shared HTTP client for deliveries.
        """
        if settings is None:
            settings = Settings()

        storage = CourierStorage.from_settings(settings)
        dispatcher = WebhookDispatcher(
            registry=storage,
            logs=storage,
            http_client=http_client,
            settings=settings,
        )
        scheduler = RetryScheduler(dispatcher, storage, storage, settings=settings)
        return cls(storage=storage, dispatcher=dispatcher, scheduler=scheduler, settings=settings)

    async def initialize(self) -> None:
        """Initialize storage collections."""
        await self.storage.initialize()

    async def close(self) -> None:
        """Finish background dispatches and release connections."""
        await self.dispatcher.aclose()
        await self.storage.close()

    async def __aenter__(self) -> CourierService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def dispatch_event(
        self,
        organization_id: str,
        event: EventType,
        data: dict[str, Any],
    ) -> DispatchReport:
        return await self.dispatcher.dispatch_event(organization_id, event, data)
