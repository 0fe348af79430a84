"""Webhook dispatch to a tenant's connected automation receivers.

For every configured provider the dispatcher looks up the tenant's
integration, builds and signs an envelope, records a delivery log, POSTs it
and records the outcome. Each receiver is its own failure domain, and the
public entry points never raise: a notification failure must not roll back
or block the business operation that triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

import httpx

from courier.config import Settings
from courier.config import settings as default_settings
from courier.exceptions import (
    DeliveryError,
    IntegrationLookupError,
    ReceiverRejected,
    SigningError,
)
from courier.models import DeliveryLog, EventData, utc_now

from .backoff import BackoffPolicy
from .payload import build_payload
from .signing import sign_payload
from .transport import post_envelope

if TYPE_CHECKING:
    from courier.models import EventType, Integration, SyncStatus, WebhookPayload
    from courier.storage import DeliveryLogStore, IntegrationRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivered:
    """The receiver answered 2xx."""

    provider: str
    log_id: str
    http_status: int
    kind: Literal["delivered"] = "delivered"


@dataclass(frozen=True)
class Failed:
    """The attempt failed. `log_id` is None when no log row could be written."""

    provider: str
    log_id: str | None
    error: str
    retry_scheduled: bool = False
    kind: Literal["failed"] = "failed"


@dataclass(frozen=True)
class Skipped:
    """No eligible receiver for this provider."""

    provider: str
    reason: str
    kind: Literal["skipped"] = "skipped"


DeliveryOutcome = Delivered | Failed | Skipped


@dataclass
class DispatchReport:
    """Per-receiver outcomes of one dispatch_event call."""

    organization_id: str
    event: str
    outcomes: list[DeliveryOutcome] = field(default_factory=list)

    @property
    def delivered(self) -> list[Delivered]:
        return [o for o in self.outcomes if isinstance(o, Delivered)]

    @property
    def failed(self) -> list[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]

    @property
    def skipped(self) -> list[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def log_ids(self) -> list[str]:
        return [o.log_id for o in self.outcomes if not isinstance(o, Skipped) and o.log_id]


class WebhookDispatcher:
    """Dispatches webhook events to connected receivers.

    Handles:
    - Finding the tenant's connected, subscribed receivers per provider
    - Signing envelopes with HMAC-SHA256
    - Delivering with a hard per-attempt timeout
    - Recording every attempt in the delivery log store
    - Scheduling retries on the backoff table

    The HTTP client is created once and shared by every attempt. Pass one in
    (e.g. with an httpx.MockTransport) to control the transport.

    Example:
        ```python
        async with WebhookDispatcher(storage, storage) as dispatcher:
            report = await dispatcher.dispatch_event(
                "org_1", "payment.received", {"amount": 500, "currency": "usd"}
            )
        ```
    """

    def __init__(
        self,
        registry: IntegrationRegistry,
        logs: DeliveryLogStore,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        providers: Sequence[str] | None = None,
        backoff: BackoffPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the webhook dispatcher.

        Args:
            registry: Integration lookups and sync-status updates.
            logs: Delivery log persistence.
            http_client: Shared HTTP client. One is created (and owned) if None.
            settings: Configuration. Defaults to the global settings.
            providers: Providers to check per event. Defaults to settings.
            backoff: Retry delay table. Defaults to settings.
            clock: Source of the current UTC time.
        """
        settings = settings or default_settings
        self._registry = registry
        self._logs = logs
        self._providers = list(providers if providers is not None else settings.webhook_providers)
        self._timeout = settings.webhook_timeout_seconds
        self._backoff = backoff or BackoffPolicy.from_delays(settings.retry_delays_seconds)
        self._clock = clock or utc_now
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_deliveries)
        self._background: set[asyncio.Task[DispatchReport]] = set()

    @property
    def providers(self) -> list[str]:
        return list(self._providers)

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    def now(self) -> datetime:
        return self._clock()

    async def aclose(self) -> None:
        """Wait for background dispatches, then close an owned HTTP client."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> WebhookDispatcher:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def dispatch_event(
        self,
        organization_id: str,
        event: EventType,
        data: dict[str, Any] | EventData,
    ) -> DispatchReport:
        """Dispatch an event to every eligible receiver of a tenant.

        Receivers are attempted concurrently. Never raises.

        Args:
            organization_id: Tenant the event belongs to.
            event: Event type.
            data: Event-specific data.

        Returns:
            DispatchReport with one outcome per configured provider.
        """
        if isinstance(data, EventData):
            data = data.to_data()

        report = DispatchReport(organization_id=organization_id, event=event)
        results = await asyncio.gather(
            *(self._dispatch_to_provider(organization_id, p, event, data) for p in self._providers),
            return_exceptions=True,
        )

        for provider, result in zip(self._providers, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "Webhook dispatch to %s failed for org %s: %s",
                    provider,
                    organization_id,
                    result,
                )
                report.outcomes.append(
                    Failed(provider=provider, log_id=None, error=f"Unexpected error: {result}")
                )
            else:
                report.outcomes.append(result)

        if report.delivered or report.failed:
            logger.info(
                "Dispatched %s for org %s: %d delivered, %d failed, %d skipped",
                event,
                organization_id,
                len(report.delivered),
                len(report.failed),
                len(report.skipped),
            )
        return report

    def dispatch_in_background(
        self,
        organization_id: str,
        event: EventType,
        data: dict[str, Any] | EventData,
    ) -> asyncio.Task[DispatchReport]:
        """Start dispatch_event as a detached task and return immediately.

        Must be called from a running event loop. The task is kept referenced
        until it finishes, and aclose() waits for it.
        """
        task = asyncio.create_task(
            self.dispatch_event(organization_id, event, data),
            name=f"webhook-dispatch:{organization_id}:{event}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _load_receiver(
        self,
        organization_id: str,
        provider: str,
        event: EventType,
    ) -> Integration:
        """Fetch an eligible receiver with its signing secret.

        Raises:
            IntegrationLookupError: Missing, disconnected, unsubscribed or without a URL.
        """
        integration = await self._registry.get_integration(organization_id, provider)
        if integration is None:
            raise IntegrationLookupError(organization_id, provider, "not configured")

        reason = integration.ineligibility_reason(event)
        if reason is not None:
            raise IntegrationLookupError(organization_id, provider, reason)

        with_secret = await self._registry.get_integration(
            organization_id, provider, with_secret=True
        )
        if with_secret is None:
            raise IntegrationLookupError(organization_id, provider, "removed during dispatch")
        return with_secret

    async def _dispatch_to_provider(
        self,
        organization_id: str,
        provider: str,
        event: EventType,
        data: dict[str, Any],
    ) -> DeliveryOutcome:
        """Deliver to one provider's receiver. Failures stay inside this call."""
        try:
            integration = await self._load_receiver(organization_id, provider, event)
        except IntegrationLookupError as e:
            logger.debug("Skipping %s for org %s: %s", provider, organization_id, e.reason)
            return Skipped(provider=provider, reason=e.reason)
        except Exception as e:
            logger.exception("Integration lookup failed for %s in org %s", provider, organization_id)
            return Failed(provider=provider, log_id=None, error=f"Integration lookup failed: {e}")

        log = DeliveryLog(
            organization_id=organization_id,
            integration_id=integration.id,
            provider=provider,
            event=event,
            webhook_url=integration.webhook_url or "",
            attempt_number=1,
            max_attempts=self._backoff.max_attempts,
            created_at=self._clock(),
        )

        try:
            secret = integration.secret_value()
            if secret is None:
                logger.warning(
                    "No signing secret for %s in org %s; sending unsigned", provider, organization_id
                )
            payload = sign_payload(build_payload(organization_id, event, data, self._clock()), secret)
        except SigningError as e:
            return await self._record_signing_failure(log, e)

        try:
            log.payload = payload
            await self._logs.save_delivery_log(log)
            return await self._attempt(
                log,
                payload,
                retry_on_failure=integration.settings.retry_on_failure,
            )
        except Exception as e:
            logger.exception("Webhook delivery error for %s in org %s", provider, organization_id)
            return Failed(provider=provider, log_id=log.id, error=f"Unexpected error: {e}")

    async def redeliver(self, log: DeliveryLog) -> DeliveryOutcome:
        """Re-attempt a retrying log with a signature from the current secret.

        The stored URL and envelope are reused; only the signature is
        recomputed, so a receiver that rotated its secret accepts the retry.
        A failure is rescheduled only while the receiver still has
        retry_on_failure enabled. Never raises.
        """
        try:
            integration = await self._registry.get_integration(
                log.organization_id, log.provider, with_secret=True
            )
            if integration is None or not integration.webhook_url:
                return await self._fail_terminally(log, "Integration not found or no webhook URL")
            if not integration.is_connected:
                return await self._fail_terminally(log, f"Integration is {integration.status}")
            if log.payload is None:
                return await self._fail_terminally(log, "Delivery log has no payload")

            try:
                payload = sign_payload(log.payload, integration.secret_value())
            except SigningError as e:
                return await self._fail_terminally(log, f"Signing failed: {e.message}")

            return await self._attempt(
                log,
                payload,
                retry_on_failure=integration.settings.retry_on_failure,
            )
        except Exception as e:
            logger.exception("Webhook retry error for log %s", log.id)
            return Failed(provider=log.provider, log_id=log.id, error=f"Unexpected error: {e}")

    def schedule_retry(self, log: DeliveryLog, now: datetime) -> bool:
        """Move a failed log to its next retry slot.

        Args:
            log: Log whose current attempt just failed (error already set).
            now: Time of the failed attempt.

        Returns:
            True if a retry was scheduled, False if attempts are exhausted.
        """
        if log.is_exhausted:
            log.status = "failed"
            log.next_retry_at = None
            logger.info(
                "Max attempts reached for log %s after %d attempts", log.id, log.attempt_number
            )
            return False

        next_retry_at = self._backoff.next_retry_at(log.attempt_number, now)
        log.mark_retrying(next_retry_at)
        logger.info(
            "Scheduled retry %d for log %s at %s",
            log.attempt_number,
            log.id,
            next_retry_at.isoformat(),
        )
        return True

    async def _attempt(
        self,
        log: DeliveryLog,
        payload: WebhookPayload,
        retry_on_failure: bool,
    ) -> DeliveryOutcome:
        """POST once and persist the outcome on the log."""
        async with self._semaphore:
            try:
                response = await post_envelope(
                    self._http,
                    log.webhook_url,
                    payload,
                    timeout=self._timeout,
                    attempt_number=log.attempt_number,
                )
            except DeliveryError as e:
                return await self._record_delivery_failure(log, e, retry_on_failure)

        log.mark_delivered(response.status_code, response.text, now=self._clock())
        await self._logs.save_delivery_log(log)
        await self._update_sync_status(log, "success")

        logger.info(
            "Webhook delivered: %s to %s (status %d, attempt %d)",
            log.event,
            log.provider,
            response.status_code,
            log.attempt_number,
        )
        return Delivered(provider=log.provider, log_id=log.id, http_status=response.status_code)

    async def _record_delivery_failure(
        self,
        log: DeliveryLog,
        error: DeliveryError,
        retry_on_failure: bool,
    ) -> Failed:
        if isinstance(error, ReceiverRejected):
            log.mark_failed(error.message, error.status_code, error.response_body)
        else:
            log.mark_failed(error.message)

        retry_scheduled = retry_on_failure and self.schedule_retry(log, self._clock())
        await self._logs.save_delivery_log(log)
        await self._update_sync_status(log, "error", error.message)

        logger.warning(
            "Webhook delivery failed: %s to %s (attempt %d): %s",
            log.event,
            log.provider,
            log.attempt_number,
            error.message,
        )
        return Failed(
            provider=log.provider,
            log_id=log.id,
            error=error.message,
            retry_scheduled=retry_scheduled,
        )

    async def _record_signing_failure(self, log: DeliveryLog, error: SigningError) -> Failed:
        logger.error(
            "Signing failed for %s in org %s: %s", log.provider, log.organization_id, error.message
        )
        return await self._fail_terminally(log, f"Signing failed: {error.message}")

    async def _fail_terminally(self, log: DeliveryLog, error: str) -> Failed:
        log.mark_failed(error)
        await self._logs.save_delivery_log(log)
        await self._update_sync_status(log, "error", error)
        return Failed(provider=log.provider, log_id=log.id, error=error)

    async def _update_sync_status(
        self,
        log: DeliveryLog,
        status: SyncStatus,
        error: str | None = None,
    ) -> None:
        """Best-effort sync-status bookkeeping; the log is the source of truth."""
        try:
            await self._registry.update_sync_status(
                log.organization_id, log.provider, status, error
            )
        except Exception:
            logger.exception(
                "Failed to update sync status for %s in org %s", log.provider, log.organization_id
            )
