"""
Pytest fixtures: settings, token minting, stubbed backends, an in-memory Redis stand-in,
and a test client wired to both.
"""

import asyncio
import os
from datetime import timedelta
from typing import Any, Callable

# main builds the app at import time; required settings must exist first.
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-0123456789")
os.environ.setdefault("JWT_ISSUER", "https://auth.test/realms/mad")
os.environ.setdefault("JWT_AUDIENCE", "gateway")

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from core.config import Settings
from core.security import create_access_token
from main import create_app
from services.broker import MessageBroker
from services.http import create_http_client

AUTH_URL = "http://auth.test"
PROFILE_URL = "http://profile.test"
NOTES_URL = "http://notes.test"
LOGGING_URL = "http://logging.test"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "JWT_SECRET": "test-secret-with-enough-length-0123456789",
        "JWT_ISSUER": "https://auth.test/realms/mad",
        "JWT_AUDIENCE": "gateway",
        "AUTH_SERVICE_URL": AUTH_URL,
        "PROFILE_SERVICE_URL": PROFILE_URL,
        "NOTES_SERVICE_URL": NOTES_URL,
        "LOGGING_SERVICE_URL": LOGGING_URL,
        "BROKER_RECONNECT_ATTEMPTS": 2,
        "BROKER_RECONNECT_BACKOFF_SECONDS": 0.0,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakePubSub:
    """Mimics the redis.asyncio PubSub calls the broker makes."""

    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._queue: asyncio.Queue = asyncio.Queue()
        self.channels: set[str] = set()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        if self._redis.fail_subscribe:
            raise RedisConnectionError("connection refused")
        for channel in channels:
            self.channels.add(channel)
            self._redis.subscribers.setdefault(channel, []).append(self)
            self._queue.put_nowait({"type": "subscribe", "pattern": None, "channel": channel, "data": 1})

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels or tuple(self.channels):
            self.channels.discard(channel)
            subscribers = self._redis.subscribers.get(channel, [])
            if self in subscribers:
                subscribers.remove(self)

    async def get_message(self, ignore_subscribe_messages: bool = False, timeout: float = 0.0):
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if isinstance(item, Exception):
            raise item
        if ignore_subscribe_messages and item["type"] == "subscribe":
            return None
        return item

    async def aclose(self) -> None:
        await self.unsubscribe()
        self.closed = True

    def drop_connection(self) -> None:
        """Next get_message raises as if the socket died."""
        self.inject(RedisConnectionError("connection lost"))

    def inject(self, exc: Exception) -> None:
        """Next get_message raises exc."""
        self._queue.put_nowait(exc)


class FakeRedis:
    def __init__(self) -> None:
        self.subscribers: dict[str, list[FakePubSub]] = {}
        self.pubsubs: list[FakePubSub] = []
        self.published: list[tuple[str, str]] = []
        self.fail_subscribe = False
        self.fail_publish = False
        self.closed = False

    def pubsub(self) -> FakePubSub:
        pubsub = FakePubSub(self)
        self.pubsubs.append(pubsub)
        return pubsub

    async def publish(self, channel: str, message: str) -> int:
        if self.fail_publish:
            raise RedisConnectionError("broker down")
        self.published.append((channel, message))
        receivers = list(self.subscribers.get(channel, []))
        for pubsub in receivers:
            pubsub._queue.put_nowait({"type": "message", "pattern": None, "channel": channel, "data": message})
        return len(receivers)

    async def ping(self) -> bool:
        if self.fail_publish:
            raise RedisConnectionError("broker down")
        return True

    async def aclose(self) -> None:
        self.closed = True

    def live_connections(self, channel: str) -> int:
        return len(self.subscribers.get(channel, []))


class BackendStub:
    """httpx.MockTransport handler keyed on (method, url without query)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, status: int = 200, json: Any = None, text: str | None = None) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text)
            if json is None:
                return httpx.Response(status)
            return httpx.Response(status, json=json)

        self.routes[(method, url)] = respond

    def add_handler(self, method: str, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, url)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, str(request.url).split("?", 1)[0])
        handler = self.routes.get(key)
        if handler is None:
            return httpx.Response(404, json={"error": "not stubbed"})
        return handler(request)

    def requests_to(self, url_prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def token_factory(settings: Settings) -> Callable[..., str]:
    def make(subject: str = "user-1", expires_delta: timedelta | None = None, **claims: Any) -> str:
        return create_access_token(subject, settings, expires_delta=expires_delta, extra_claims=claims)

    return make


@pytest.fixture
def auth_headers(token_factory) -> dict[str, str]:
    """Bearer header for user-1."""
    return {"Authorization": f"Bearer {token_factory('user-1', preferred_username='alice')}"}


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def broker(settings: Settings, fake_redis: FakeRedis):
    broker = MessageBroker(settings, client=fake_redis)
    yield broker
    await broker.close()


@pytest.fixture
def backend() -> BackendStub:
    return BackendStub()


@pytest.fixture
def client(settings: Settings, backend: BackendStub, fake_redis: FakeRedis) -> TestClient:
    """Test client with stubbed backends and broker."""
    http_client = create_http_client(settings, transport=httpx.MockTransport(backend))
    app = create_app(settings, http_client=http_client, broker=MessageBroker(settings, client=fake_redis))
    return TestClient(app)
