"""
Broker tests against an in-memory Redis stand-in: delivery, channel sharing,
unsubscribe, failure isolation and reconnect behavior.
"""

from datetime import UTC, datetime

import pytest

from core.errors import BrokerError
from models.notes import NoteEvent
from services.broker import ChannelState, MessageBroker

from conftest import FakeRedis, make_settings, wait_for


def _event(note_id: str = "n1") -> NoteEvent:
    return NoteEvent(type="created", note_id=note_id, user_id="u1", title="hello", occurred_at=datetime.now(UTC))


@pytest.mark.asyncio
async def test_published_message_reaches_subscriber_decoded(broker: MessageBroker) -> None:
    received: list[NoteEvent] = []
    await broker.subscribe("notes.events", NoteEvent, received.append)
    assert broker.state("notes.events") is ChannelState.LISTENING

    event = _event()
    assert await broker.publish("notes.events", event) == 1
    assert await wait_for(lambda: len(received) == 1)
    assert received[0] == event


@pytest.mark.asyncio
async def test_plain_dict_messages_and_async_callbacks(broker: MessageBroker) -> None:
    received: list[dict] = []

    async def on_message(message: dict) -> None:
        received.append(message)

    await broker.subscribe("chat", dict, on_message)
    await broker.publish("chat", {"text": "hi", "roomId": 7})
    assert await wait_for(lambda: received == [{"text": "hi", "roomId": 7}])


@pytest.mark.asyncio
async def test_publish_without_subscribers_is_not_an_error(broker: MessageBroker) -> None:
    assert await broker.publish("nobody.listens", {"a": 1}) == 0


@pytest.mark.asyncio
async def test_callbacks_on_one_channel_share_a_connection(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    first: list[NoteEvent] = []
    second: list[NoteEvent] = []
    await broker.subscribe("notes.events", NoteEvent, first.append)
    await broker.subscribe("notes.events", NoteEvent, second.append)

    assert len(fake_redis.pubsubs) == 1
    assert fake_redis.live_connections("notes.events") == 1

    published = [f"n{i}" for i in range(5)]
    for note_id in published:
        await broker.publish("notes.events", _event(note_id))
    assert await wait_for(lambda: len(first) == 5 and len(second) == 5)
    assert [e.note_id for e in first] == published
    assert [e.note_id for e in second] == published


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery_and_closes_connection(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    received: list[dict] = []
    await broker.subscribe("chat", dict, received.append)

    assert await broker.unsubscribe("chat") is True
    assert broker.state("chat") is ChannelState.UNSUBSCRIBED
    assert fake_redis.live_connections("chat") == 0
    assert fake_redis.pubsubs[0].closed

    assert await broker.publish("chat", {"text": "late"}) == 0
    assert received == []
    assert await broker.unsubscribe("chat") is False


@pytest.mark.asyncio
async def test_cancel_removes_only_that_callback(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    kept: list[dict] = []
    dropped: list[dict] = []
    await broker.subscribe("chat", dict, kept.append)
    subscription = await broker.subscribe("chat", dict, dropped.append)

    await subscription.cancel()
    assert broker.state("chat") is ChannelState.LISTENING

    await broker.publish("chat", {"n": 1})
    assert await wait_for(lambda: len(kept) == 1)
    assert dropped == []


@pytest.mark.asyncio
async def test_unsubscribe_single_callback(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    kept: list[dict] = []
    dropped: list[dict] = []
    await broker.subscribe("chat", dict, kept.append)
    await broker.subscribe("chat", dict, dropped.append)

    assert await broker.unsubscribe("chat", dropped.append) is True
    assert await broker.unsubscribe("chat", dropped.append) is False
    assert fake_redis.live_connections("chat") == 1

    await broker.publish("chat", {"n": 1})
    assert await wait_for(lambda: len(kept) == 1)
    assert dropped == []

    assert await broker.unsubscribe("chat", kept.append) is True
    assert broker.state("chat") is ChannelState.UNSUBSCRIBED
    assert fake_redis.live_connections("chat") == 0


@pytest.mark.asyncio
async def test_cancelling_last_callback_releases_channel(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    subscription = await broker.subscribe("chat", dict, lambda message: None)
    await subscription.cancel()
    assert broker.state("chat") is ChannelState.UNSUBSCRIBED
    assert broker.channels() == {}
    assert fake_redis.live_connections("chat") == 0


@pytest.mark.asyncio
async def test_callback_may_unsubscribe_itself(broker: MessageBroker) -> None:
    received: list[dict] = []
    subscription = None

    async def once(message: dict) -> None:
        received.append(message)
        await subscription.cancel()

    subscription = await broker.subscribe("chat", dict, once)
    await broker.publish("chat", {"n": 1})
    assert await wait_for(lambda: broker.state("chat") is ChannelState.UNSUBSCRIBED)
    assert received == [{"n": 1}]


@pytest.mark.asyncio
async def test_failing_callback_does_not_block_others(broker: MessageBroker) -> None:
    received: list[NoteEvent] = []

    def explode(message: NoteEvent) -> None:
        raise RuntimeError("handler bug")

    await broker.subscribe("notes.events", NoteEvent, explode)
    await broker.subscribe("notes.events", NoteEvent, received.append)

    await broker.publish("notes.events", _event("n1"))
    await broker.publish("notes.events", _event("n2"))
    assert await wait_for(lambda: [e.note_id for e in received] == ["n1", "n2"])


@pytest.mark.asyncio
async def test_undecodable_message_skips_only_mismatched_callbacks(broker: MessageBroker) -> None:
    typed: list[NoteEvent] = []
    raw: list[dict] = []
    await broker.subscribe("notes.events", NoteEvent, typed.append)
    await broker.subscribe("notes.events", dict, raw.append)

    await broker.publish("notes.events", {"unexpected": "shape"})
    await broker.publish("notes.events", _event())
    assert await wait_for(lambda: len(raw) == 2 and len(typed) == 1)


@pytest.mark.asyncio
async def test_publish_failure_raises_broker_error(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    fake_redis.fail_publish = True
    with pytest.raises(BrokerError) as info:
        await broker.publish("chat", {"n": 1})
    assert info.value.channel == "chat"
    assert await broker.publish_best_effort("chat", {"n": 1}) is False
    assert await broker.ping() is False


@pytest.mark.asyncio
async def test_subscribe_failure_leaves_no_channel(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    fake_redis.fail_subscribe = True
    with pytest.raises(BrokerError):
        await broker.subscribe("chat", dict, lambda message: None)
    assert broker.state("chat") is ChannelState.UNSUBSCRIBED
    assert broker.channels() == {}


@pytest.mark.asyncio
async def test_dropped_connection_reconnects(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    received: list[dict] = []
    await broker.subscribe("chat", dict, received.append)

    fake_redis.pubsubs[0].drop_connection()
    assert await wait_for(lambda: len(fake_redis.pubsubs) == 2 and broker.state("chat") is ChannelState.LISTENING)
    assert fake_redis.pubsubs[0].closed

    await broker.publish("chat", {"n": 2})
    assert await wait_for(lambda: received == [{"n": 2}])


@pytest.mark.asyncio
async def test_undecodable_frame_keeps_listener_alive(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    received: list[dict] = []
    await broker.subscribe("chat", dict, received.append)

    fake_redis.pubsubs[0].inject(UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"))
    await broker.publish("chat", {"n": 1})

    assert await wait_for(lambda: received == [{"n": 1}])
    assert broker.state("chat") is ChannelState.LISTENING
    assert len(fake_redis.pubsubs) == 1


@pytest.mark.asyncio
async def test_unexpected_listener_error_reconnects(broker: MessageBroker, fake_redis: FakeRedis) -> None:
    received: list[dict] = []
    await broker.subscribe("chat", dict, received.append)

    fake_redis.pubsubs[0].inject(RuntimeError("parser bug"))
    assert await wait_for(lambda: len(fake_redis.pubsubs) == 2 and broker.state("chat") is ChannelState.LISTENING)

    await broker.publish("chat", {"n": 2})
    assert await wait_for(lambda: received == [{"n": 2}])


@pytest.mark.asyncio
async def test_exhausted_reconnect_fails_channel_until_resubscribed(
    broker: MessageBroker, fake_redis: FakeRedis
) -> None:
    earlier: list[dict] = []
    later: list[dict] = []
    await broker.subscribe("chat", dict, earlier.append)

    fake_redis.fail_subscribe = True
    fake_redis.pubsubs[0].drop_connection()
    assert await wait_for(lambda: broker.state("chat") is ChannelState.FAILED)
    assert await broker.publish("chat", {"n": "lost"}) == 0

    fake_redis.fail_subscribe = False
    await broker.subscribe("chat", dict, later.append)
    assert broker.state("chat") is ChannelState.LISTENING

    await broker.publish("chat", {"n": 3})
    assert await wait_for(lambda: earlier == [{"n": 3}] and later == [{"n": 3}])


@pytest.mark.asyncio
async def test_zero_reconnect_attempts_fails_immediately() -> None:
    redis = FakeRedis()
    broker = MessageBroker(make_settings(BROKER_RECONNECT_ATTEMPTS=0), client=redis)
    try:
        await broker.subscribe("chat", dict, lambda message: None)
        redis.pubsubs[0].drop_connection()
        assert await wait_for(lambda: broker.state("chat") is ChannelState.FAILED)
        assert len(redis.pubsubs) == 1
    finally:
        await broker.close()


@pytest.mark.asyncio
async def test_close_releases_everything(fake_redis: FakeRedis) -> None:
    broker = MessageBroker(make_settings(), client=fake_redis)
    await broker.subscribe("a", dict, lambda message: None)
    await broker.subscribe("b", dict, lambda message: None)
    assert broker.channels() == {"a": ChannelState.LISTENING, "b": ChannelState.LISTENING}

    await broker.close()
    assert broker.channels() == {}
    assert all(pubsub.closed for pubsub in fake_redis.pubsubs)
    assert fake_redis.closed
