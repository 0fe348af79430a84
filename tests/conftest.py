"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest
from cryptography.fernet import Fernet
from qdrant_client import AsyncQdrantClient

# Add tests directory to path so helpers can be imported from conftest
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from courier.config import Settings
from courier.models import WebhookSettings
from courier.security import SecretCipher
from courier.storage import CourierStorage
from courier.webhooks import RetryScheduler, WebhookDispatcher

ORG_ID = "org_test"
ZAPIER_URL = "https://hooks.zapier.test/catch/1"
MAKE_URL = "https://hook.make.test/abc"
ZAPIER_SECRET = "a" * 64
MAKE_SECRET = "b" * 64


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current += timedelta(seconds=seconds)
        return self.current


class FakeReceiver:
    """Records webhook requests and answers with queued responses.

    Responses are consumed in order; once the queue is empty the default
    status is returned. A queued exception is raised instead of answering.
    """

    def __init__(self, default_status: int = 200) -> None:
        self.default_status = default_status
        self.queue: list[int | Exception] = []
        self.requests: list[httpx.Request] = []

    def respond_with(self, *outcomes: int | Exception) -> None:
        self.queue.extend(outcomes)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.queue.pop(0) if self.queue else self.default_status
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text="ok" if outcome < 400 else "receiver error")

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def encryption_key() -> str:
    return Fernet.generate_key().decode()


@pytest.fixture
def cipher(encryption_key: str) -> SecretCipher:
    return SecretCipher(encryption_key)


@pytest.fixture
def test_settings(encryption_key: str) -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        env="test",
        encryption_key=encryption_key,
        collection_prefix="test",
        webhook_timeout_seconds=2.0,
        _env_file=None,
    )


@pytest.fixture
async def storage(cipher: SecretCipher):
    """Create an in-memory storage instance for testing.

    Uses qdrant-client's local mode with in-memory storage.
    """
    store = CourierStorage(cipher=cipher, prefix="test")
    store._client = AsyncQdrantClient(location=":memory:")
    await store._ensure_collections()
    store._collections_initialized = True

    yield store

    await store.close()


@pytest.fixture
def receiver() -> FakeReceiver:
    return FakeReceiver()


@pytest.fixture
async def http_client(receiver: FakeReceiver):
    async with httpx.AsyncClient(transport=httpx.MockTransport(receiver.handler)) as client:
        yield client


@pytest.fixture
async def dispatcher(
    storage: CourierStorage,
    http_client: httpx.AsyncClient,
    test_settings: Settings,
    clock: FakeClock,
):
    dispatcher = WebhookDispatcher(
        registry=storage,
        logs=storage,
        http_client=http_client,
        settings=test_settings,
        clock=clock,
    )
    yield dispatcher
    await dispatcher.aclose()


@pytest.fixture
def scheduler(
    dispatcher: WebhookDispatcher,
    storage: CourierStorage,
    test_settings: Settings,
) -> RetryScheduler:
    return RetryScheduler(dispatcher, storage, storage, settings=test_settings)


@pytest.fixture
def connect(storage: CourierStorage) -> Callable:
    """Connect a receiver for ORG_ID."""

    async def _connect(
        provider: str = "zapier",
        events: list[str] | None = None,
        url: str = ZAPIER_URL,
        secret: str = ZAPIER_SECRET,
        retry_on_failure: bool = True,
        organization_id: str = ORG_ID,
    ):
        return await storage.store_webhook_integration(
            organization_id=organization_id,
            provider=provider,
            webhook_url=url,
            settings=WebhookSettings(
                events=events if events is not None else ["client.goal.achieved"],
                retry_on_failure=retry_on_failure,
            ),
            connected_by="user_coach",
            secret=secret,
        )

    return _connect
