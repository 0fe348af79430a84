"""Base storage class and helpers.

Contains initialization, collection management, and shared utilities.
Courier records have no semantic content, so every point carries the same
single-dimension placeholder vector and all lookups go through payload
filters.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from qdrant_client import AsyncQdrantClient, models

from courier.config import settings

RecordT = TypeVar("RecordT", bound=BaseModel)

# Collection names by record kind
COLLECTION_NAMES = {
    "integrations": "integrations",
    "webhook_logs": "webhook_logs",
}

PLACEHOLDER_VECTOR = [1.0]

# Payload-only fields used for range filtering; stripped before validation
TIMESTAMP_INDEX_FIELDS = {
    "created_at": "created_at_ts",
    "next_retry_at": "next_retry_at_ts",
}

KEYWORD_INDEXES = {
    "integrations": ("organization_id", "provider"),
    "webhook_logs": ("organization_id", "integration_id", "status"),
}

FLOAT_INDEXES = {
    "integrations": (),
    "webhook_logs": ("created_at_ts", "next_retry_at_ts"),
}


def to_timestamp(value: datetime | None) -> float | None:
    """Epoch seconds for range filters."""
    return value.timestamp() if value is not None else None


class StorageBase:
    """Base class for Courier storage with initialization and helpers.

    Provides:
    - Client initialization and lifecycle management
    - Collection creation and indexing
    - Key building and point ID conversion
    - Payload serialization/deserialization
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        prefix: str | None = None,
    ) -> None:
        """Initialize storage client.

        Args:
            url: Qdrant server URL. Defaults to settings.qdrant_url.
            api_key: Qdrant API key. Defaults to settings.qdrant_api_key.
            prefix: Collection name prefix. Defaults to settings.collection_prefix.
        """
        self._url = url or settings.qdrant_url
        self._api_key = api_key or settings.qdrant_api_key
        self._prefix = prefix or settings.collection_prefix
        self._client: AsyncQdrantClient | None = None
        self._collections_initialized = False

    @property
    def client(self) -> AsyncQdrantClient:
        """Get the Qdrant client, raising if not initialized."""
        if self._client is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._client

    async def initialize(self) -> None:
        """Initialize the storage client and ensure collections exist."""
        self._client = AsyncQdrantClient(
            url=self._url,
            api_key=self._api_key,
        )
        await self._ensure_collections()
        self._collections_initialized = True

    async def close(self) -> None:
        """Close the storage client connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._collections_initialized = False

    async def __aenter__(self) -> StorageBase:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _collection_name(self, kind: str) -> str:
        """Get full collection name with prefix."""
        suffix = COLLECTION_NAMES.get(kind, kind)
        return f"{self._prefix}_{suffix}"

    @staticmethod
    def _build_key(record_id: str, organization_id: str) -> str:
        """Build a tenant-scoped storage key: {organization_id}/{record_id}."""
        return f"{organization_id}/{record_id}"

    @staticmethod
    def _key_to_point_id(key: str) -> str:
        """Convert a storage key to a valid Qdrant point ID.

        Qdrant requires point IDs to be UUIDs or unsigned integers.
        We hash the key to create a deterministic UUID-format string.
        """
        h = hashlib.sha256(key.encode()).hexdigest()[:32]
        return f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"

    async def _ensure_collections(self) -> None:
        """Ensure all required collections exist with payload indexes."""
        collections = await self.client.get_collections()
        existing = {c.name for c in collections.collections}

        for kind in COLLECTION_NAMES:
            collection_name = self._collection_name(kind)
            if collection_name in existing:
                continue

            await self.client.create_collection(
                collection_name=collection_name,
                vectors_config=models.VectorParams(
                    size=len(PLACEHOLDER_VECTOR),
                    distance=models.Distance.COSINE,
                ),
            )
            await self._create_indexes(kind, collection_name)

    async def _create_indexes(self, kind: str, collection_name: str) -> None:
        """Create payload indexes for efficient filtering."""
        for field_name in KEYWORD_INDEXES[kind]:
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=field_name,
                field_schema=models.PayloadSchemaType.KEYWORD,
            )
        for field_name in FLOAT_INDEXES[kind]:
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=field_name,
                field_schema=models.PayloadSchemaType.FLOAT,
            )

    def _record_to_payload(self, record: BaseModel) -> dict[str, Any]:
        """Convert a model to a Qdrant payload with range-filter helpers."""
        data = record.model_dump(mode="json", by_alias=True)
        for field_name, index_name in TIMESTAMP_INDEX_FIELDS.items():
            if hasattr(record, field_name):
                data[index_name] = to_timestamp(getattr(record, field_name))
        return data

    def _payload_to_record(self, payload: dict[str, Any], record_class: type[RecordT]) -> RecordT:
        """Convert a Qdrant payload back to a model."""
        data = {k: v for k, v in payload.items() if k not in TIMESTAMP_INDEX_FIELDS.values()}
        return record_class.model_validate(data)

    async def _upsert(self, kind: str, key: str, payload: dict[str, Any]) -> None:
        """Replace a whole point in one write."""
        await self.client.upsert(
            collection_name=self._collection_name(kind),
            points=[
                models.PointStruct(
                    id=self._key_to_point_id(key),
                    vector=PLACEHOLDER_VECTOR,
                    payload=payload,
                )
            ],
            wait=True,
        )

    async def _retrieve(self, kind: str, key: str) -> dict[str, Any] | None:
        """Fetch one point's payload by key."""
        results = await self.client.retrieve(
            collection_name=self._collection_name(kind),
            ids=[self._key_to_point_id(key)],
            with_payload=True,
        )
        if not results or results[0].payload is None:
            return None
        return dict(results[0].payload)
