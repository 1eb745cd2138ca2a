"""
Redis pub/sub broker.

Publishing goes through the shared connection pool. Each subscribed channel gets one
dedicated PubSub connection and one listener task, tracked in a registry keyed by
channel name. Callbacks registered on the same channel share that connection.

Channel lifecycle: UNSUBSCRIBED -> CONNECTING -> LISTENING -> CLOSING -> UNSUBSCRIBED.
A dropped connection sends the channel back to CONNECTING and the listener retries
with exponential backoff; when attempts run out the channel is FAILED and the next
subscribe() on it reconnects. Messages published while a channel is down are lost.
"""

import asyncio
import inspect
import itertools
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Awaitable, Callable

from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from core.config import Settings
from core.errors import BrokerError
from services.base import encode_body
from utils.logging import get_logger

logger = get_logger(__name__)

MessageCallback = Callable[[Any], Awaitable[None] | None]

_POLL_SECONDS = 1.0
_CONFIRM_SECONDS = 5.0
_MAX_BACKOFF_SECONDS = 8.0


class ChannelState(str, Enum):
    UNSUBSCRIBED = "unsubscribed"
    CONNECTING = "connecting"
    LISTENING = "listening"
    CLOSING = "closing"
    FAILED = "failed"


@lru_cache(maxsize=128)
def _adapter(message_type: Any) -> TypeAdapter:
    return TypeAdapter(message_type)


@dataclass(frozen=True)
class _Registration:
    id: int
    callback: MessageCallback
    adapter: TypeAdapter
    type_name: str


@dataclass
class _Channel:
    name: str
    state: ChannelState = ChannelState.CONNECTING
    registrations: list[_Registration] = field(default_factory=list)
    pubsub: PubSub | None = None
    task: asyncio.Task | None = None


class Subscription:
    """Handle for one registered callback. cancel() removes only this callback."""

    def __init__(self, broker: "MessageBroker", channel: str, registration_id: int) -> None:
        self._broker = broker
        self.channel = channel
        self.registration_id = registration_id

    async def cancel(self) -> None:
        await self._broker._remove_registration(self.channel, self.registration_id)

    def __repr__(self) -> str:
        return f"Subscription(channel={self.channel!r}, id={self.registration_id})"


class MessageBroker:
    def __init__(self, settings: Settings, client: Redis | None = None) -> None:
        if client is None:
            client = Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                password=settings.REDIS_PASSWORD,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
                socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
                health_check_interval=30,
                decode_responses=True,
            )
        self._client = client
        self._reconnect_attempts = settings.BROKER_RECONNECT_ATTEMPTS
        self._reconnect_backoff = settings.BROKER_RECONNECT_BACKOFF_SECONDS
        self._channels: dict[str, _Channel] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)
        logger.info("broker_init", extra={"redis": settings.redis_display_url})

    # Publishing

    async def publish(self, channel: str, message: Any) -> int:
        """Send message as JSON. Returns how many subscribers received it (0 is fine)."""
        payload = encode_body(message).decode()
        try:
            receivers = await self._client.publish(channel, payload)
        except RedisError as exc:
            logger.error("broker_publish_failed", extra={"channel": channel, "error": str(exc)})
            raise BrokerError(channel, "publish failed") from exc
        logger.debug("broker_published", extra={"channel": channel, "receivers": receivers})
        return receivers

    async def publish_best_effort(self, channel: str, message: Any) -> bool:
        """publish() for request paths that must not fail because of the broker."""
        try:
            await self.publish(channel, message)
        except BrokerError:
            return False
        return True

    # Subscriptions

    async def subscribe(self, channel: str, message_type: Any, callback: MessageCallback) -> Subscription:
        """
        Register callback for every message published to channel from now on.
        callback receives the message decoded as message_type; it may be sync or async.
        """
        registration = _Registration(
            id=next(self._ids),
            callback=callback,
            adapter=_adapter(message_type),
            type_name=getattr(message_type, "__name__", repr(message_type)),
        )
        async with self._lock:
            entry = self._channels.get(channel)
            if entry is None or entry.state is ChannelState.FAILED:
                if entry is None:
                    entry = _Channel(name=channel)
                    self._channels[channel] = entry
                await self._start(entry)
            entry.registrations.append(registration)
        logger.info(
            "broker_subscribed",
            extra={"channel": channel, "message_type": registration.type_name, "callbacks": len(entry.registrations)},
        )
        return Subscription(self, channel, registration.id)

    async def unsubscribe(self, channel: str, callback: MessageCallback | None = None) -> bool:
        """
        Drop callback from channel, or every callback when none is given. The connection
        closes once no callbacks remain. False if nothing was registered.
        """
        async with self._lock:
            entry = self._channels.get(channel)
            if entry is None:
                return False
            if callback is not None:
                remaining = [r for r in entry.registrations if r.callback != callback]
                if len(remaining) == len(entry.registrations):
                    return False
                entry.registrations = remaining
                if remaining:
                    return True
            del self._channels[channel]
            await self._teardown(entry)
        logger.info("broker_unsubscribed", extra={"channel": channel})
        return True

    async def close(self) -> None:
        async with self._lock:
            entries = list(self._channels.values())
            self._channels.clear()
            for entry in entries:
                await self._teardown(entry)
        await self._client.aclose()
        logger.info("broker_closed", extra={"channels": len(entries)})

    def state(self, channel: str) -> ChannelState:
        entry = self._channels.get(channel)
        return entry.state if entry else ChannelState.UNSUBSCRIBED

    def channels(self) -> dict[str, ChannelState]:
        return {name: entry.state for name, entry in self._channels.items()}

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            logger.warning("broker_ping_failed", extra={"error": str(exc)})
            return False

    # Internals

    async def _remove_registration(self, channel: str, registration_id: int) -> None:
        async with self._lock:
            entry = self._channels.get(channel)
            if entry is None:
                return
            entry.registrations = [r for r in entry.registrations if r.id != registration_id]
            if entry.registrations:
                return
            del self._channels[channel]
            await self._teardown(entry)
        logger.info("broker_unsubscribed", extra={"channel": channel})

    async def _start(self, entry: _Channel) -> None:
        """Open the channel's connection and spawn its listener. Caller holds the lock."""
        entry.state = ChannelState.CONNECTING
        try:
            entry.pubsub = await self._open(entry.name)
        except RedisError as exc:
            if entry.registrations:
                entry.state = ChannelState.FAILED
            else:
                self._channels.pop(entry.name, None)
            logger.error("broker_subscribe_failed", extra={"channel": entry.name, "error": str(exc)})
            raise BrokerError(entry.name, "subscribe failed") from exc
        entry.state = ChannelState.LISTENING
        entry.task = asyncio.create_task(self._listen(entry), name=f"broker-listener:{entry.name}")

    async def _open(self, channel: str) -> PubSub:
        pubsub = self._client.pubsub()
        try:
            await pubsub.subscribe(channel)
            await self._await_confirmation(pubsub, channel)
        except BaseException:
            await self._release(pubsub, channel)
            raise
        return pubsub

    @staticmethod
    async def _await_confirmation(pubsub: PubSub, channel: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + _CONFIRM_SECONDS
        while loop.time() < deadline:
            message = await pubsub.get_message(ignore_subscribe_messages=False, timeout=_POLL_SECONDS)
            if message and message.get("type") == "subscribe":
                return
        raise RedisTimeoutError(f"no subscribe confirmation for {channel}")

    async def _release(self, pubsub: PubSub | None, channel: str) -> None:
        if pubsub is None:
            return
        try:
            await pubsub.unsubscribe()
        except RedisError as exc:
            logger.debug("broker_unsubscribe_error", extra={"channel": channel, "error": str(exc)})
        try:
            await pubsub.aclose()
        except RedisError as exc:
            logger.debug("broker_close_error", extra={"channel": channel, "error": str(exc)})

    async def _teardown(self, entry: _Channel) -> None:
        """Caller holds the lock and has already removed entry from the registry."""
        entry.state = ChannelState.CLOSING
        task = entry.task
        entry.task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            await asyncio.wait([task])
        pubsub = entry.pubsub
        entry.pubsub = None
        await self._release(pubsub, entry.name)
        entry.registrations = []
        entry.state = ChannelState.UNSUBSCRIBED

    async def _listen(self, entry: _Channel) -> None:
        while entry.state is ChannelState.LISTENING:
            pubsub = entry.pubsub
            if pubsub is None:
                return
            try:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=_POLL_SECONDS)
            except RedisError as exc:
                logger.warning("broker_connection_lost", extra={"channel": entry.name, "error": str(exc)})
                if not await self._reconnect(entry):
                    return
                continue
            except ValueError as exc:
                # Frame already consumed (e.g. not UTF-8); the connection is still good.
                logger.error("broker_frame_dropped", extra={"channel": entry.name, "error": str(exc)})
                continue
            except Exception:
                logger.exception("broker_listener_error", extra={"channel": entry.name})
                if not await self._reconnect(entry):
                    return
                continue
            if message is None or message.get("type") != "message":
                continue
            await self._dispatch(entry, message["data"])

    async def _reconnect(self, entry: _Channel) -> bool:
        entry.state = ChannelState.CONNECTING
        stale, entry.pubsub = entry.pubsub, None
        await self._release(stale, entry.name)
        delay = self._reconnect_backoff
        for attempt in range(1, self._reconnect_attempts + 1):
            await asyncio.sleep(delay)
            if entry.state is not ChannelState.CONNECTING:
                return False
            try:
                pubsub = await self._open(entry.name)
            except RedisError as exc:
                logger.warning(
                    "broker_reconnect_failed",
                    extra={"channel": entry.name, "attempt": attempt, "error": str(exc)},
                )
                delay = min(max(delay, 0.05) * 2, _MAX_BACKOFF_SECONDS)
                continue
            if entry.state is not ChannelState.CONNECTING:
                await self._release(pubsub, entry.name)
                return False
            entry.pubsub = pubsub
            entry.state = ChannelState.LISTENING
            logger.info("broker_reconnected", extra={"channel": entry.name, "attempt": attempt})
            return True
        entry.state = ChannelState.FAILED
        logger.error(
            "broker_channel_failed",
            extra={"channel": entry.name, "attempts": self._reconnect_attempts},
        )
        return False

    async def _dispatch(self, entry: _Channel, data: str | bytes) -> None:
        for registration in tuple(entry.registrations):
            try:
                value = registration.adapter.validate_json(data)
            except ValidationError as exc:
                logger.error(
                    "broker_decode_failed",
                    extra={
                        "channel": entry.name,
                        "message_type": registration.type_name,
                        "errors": exc.error_count(),
                    },
                )
                continue
            try:
                result = registration.callback(value)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "broker_callback_failed",
                    extra={"channel": entry.name, "registration": registration.id},
                )
