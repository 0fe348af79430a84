"""Integration registry operations for Courier storage.

Integrations are keyed by (organization, provider). The signing secret is
kept in the point payload as a Fernet token under a private key and is only
decrypted when a caller asks for it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import SecretStr
from qdrant_client import models

from courier.models import Integration, utc_now
from courier.security import generate_webhook_secret
from courier.storage.retry import qdrant_retry

if TYPE_CHECKING:
    from courier.models import SyncStatus, WebhookSettings
    from courier.security import SecretCipher

logger = logging.getLogger(__name__)

# Payload key holding the encrypted secret; never part of the model
SECRET_FIELD = "webhook_secret_encrypted"

SCROLL_PAGE_SIZE = 256


class IntegrationMixin:
    """Mixin providing integration registry operations for CourierStorage.

    This mixin expects the following attributes/methods from the base class:
    - _collection_name(kind) -> str
    - _build_key(record_id, organization_id) -> str
    - _key_to_point_id(key) -> str
    - _record_to_payload(record) / _payload_to_record(payload, cls)
    - _upsert(kind, key, payload) / _retrieve(kind, key)
    - client: AsyncQdrantClient
    - cipher: SecretCipher
    """

    _collection_name: Any
    _build_key: Any
    _key_to_point_id: Any
    _record_to_payload: Any
    _payload_to_record: Any
    _upsert: Any
    _retrieve: Any
    client: Any
    cipher: SecretCipher

    def _integration_key(self, organization_id: str, provider: str) -> str:
        return self._build_key(f"integration:{provider}", organization_id)

    @qdrant_retry
    async def save_integration(
        self,
        integration: Integration,
        secret: str | None = None,
    ) -> Integration:
        """Create or replace an integration.

        Args:
            integration: Integration to store.
            secret: New plain signing secret. When None, any stored secret is kept.

        Returns:
            The stored integration, without its secret.
        """
        key = self._integration_key(integration.organization_id, integration.provider)
        existing = await self._retrieve("integrations", key)

        integration = integration.model_copy(update={"updated_at": utc_now()})
        payload = self._record_to_payload(integration)

        if secret is not None:
            payload[SECRET_FIELD] = self.cipher.encrypt(secret)
        elif existing is not None and existing.get(SECRET_FIELD):
            payload[SECRET_FIELD] = existing[SECRET_FIELD]
        else:
            payload[SECRET_FIELD] = None
        payload["has_secret"] = payload[SECRET_FIELD] is not None

        await self._upsert("integrations", key, payload)
        return self._to_integration(payload, with_secret=False)

    async def store_webhook_integration(
        self,
        organization_id: str,
        provider: str,
        webhook_url: str,
        settings: WebhookSettings,
        connected_by: str,
        secret: str | None = None,
    ) -> Integration:
        """Connect a webhook receiver, generating a signing secret.

        Reconnecting keeps the original `connected_at` and rotates the secret.
        """
        existing = await self.get_integration(organization_id, provider)

        integration = Integration(
            organization_id=organization_id,
            provider=provider,
            status="connected",
            webhook_url=webhook_url,
            settings=settings,
            connected_by=connected_by,
        )
        if existing is not None:
            integration = integration.model_copy(
                update={"id": existing.id, "connected_at": existing.connected_at}
            )

        stored = await self.save_integration(integration, secret=secret or generate_webhook_secret())
        logger.info(
            "Webhook integration connected",
            extra={"organization_id": organization_id, "provider": provider},
        )
        return stored

    @qdrant_retry
    async def get_integration(
        self,
        organization_id: str,
        provider: str,
        with_secret: bool = False,
    ) -> Integration | None:
        """Get a tenant's integration for a provider.

        Args:
            organization_id: Tenant to look up.
            provider: Provider key.
            with_secret: Decrypt and attach the signing secret.

        Returns:
            Integration or None if not found.
        """
        payload = await self._retrieve(
            "integrations", self._integration_key(organization_id, provider)
        )
        if payload is None:
            return None
        return self._to_integration(payload, with_secret=with_secret)

    @qdrant_retry
    async def update_sync_status(
        self,
        organization_id: str,
        provider: str,
        status: SyncStatus,
        error: str | None = None,
    ) -> None:
        """Record the latest delivery outcome on the integration.

        Uses a partial payload update so the stored secret is never rewritten.
        """
        key = self._integration_key(organization_id, provider)
        if await self._retrieve("integrations", key) is None:
            logger.debug(
                "Sync status update for missing integration",
                extra={"organization_id": organization_id, "provider": provider},
            )
            return

        now = utc_now().isoformat()
        await self.client.set_payload(
            collection_name=self._collection_name("integrations"),
            payload={
                "last_sync_at": now,
                "last_sync_status": status,
                "last_sync_error": error if status == "error" else None,
                "updated_at": now,
            },
            points=[self._key_to_point_id(key)],
            wait=True,
        )

    @qdrant_retry
    async def delete_integration(self, organization_id: str, provider: str) -> bool:
        """Remove a tenant's integration. Its delivery logs are kept.

        Returns:
            True if an integration was deleted.
        """
        key = self._integration_key(organization_id, provider)
        if await self._retrieve("integrations", key) is None:
            return False

        await self.client.delete(
            collection_name=self._collection_name("integrations"),
            points_selector=models.PointIdsList(points=[self._key_to_point_id(key)]),
            wait=True,
        )
        logger.info(
            "Deleted integration",
            extra={"organization_id": organization_id, "provider": provider},
        )
        return True

    @qdrant_retry
    async def list_organization_ids(self) -> list[str]:
        """All organizations with at least one integration, sorted."""
        organization_ids: set[str] = set()
        offset = None

        while True:
            points, offset = await self.client.scroll(
                collection_name=self._collection_name("integrations"),
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

    def _to_integration(self, payload: dict[str, Any], with_secret: bool) -> Integration:
        data = dict(payload)
        token = data.pop(SECRET_FIELD, None)
        integration: Integration = self._payload_to_record(data, Integration)
        if with_secret and token:
            integration = integration.model_copy(
                update={"webhook_secret": SecretStr(self.cipher.decrypt(token))}
            )
        return integration
