# tests/test_invalidation.py
import asyncio
import json

from redis.exceptions import ConnectionError as RedisConnectionError

from tenant_overlay.context.engine import TenantContextEngine
from tenant_overlay.context.invalidation import (
    InProcessInvalidationBus,
    LocalInvalidationChannel,
    RedisInvalidationBus,
    decode_message,
    encode_message,
)

from .conftest import make_settings, wait_until


class RecordingRedis:
    def __init__(self):
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, message))


class QueuePubSub:
    def __init__(self, messages, fail_with=None):
        self.messages = messages
        self.fail_with = fail_with
        self.closed = False

    async def subscribe(self, channel):
        self.channel = channel

    async def unsubscribe(self, channel):
        pass

    async def aclose(self):
        self.closed = True

    async def listen(self):
        if self.fail_with is not None:
            raise self.fail_with
        while True:
            yield await self.messages.get()


class SubscribingRedis(RecordingRedis):
    def __init__(self, *pubsubs):
        super().__init__()
        self.pubsubs = list(pubsubs)

    async def ping(self):
        return True

    def pubsub(self):
        return self.pubsubs.pop(0)

    async def aclose(self):
        pass


def message_from(slug, origin="other"):
    return {"type": "message", "data": encode_message(slug, origin).encode("utf-8")}


async def test_in_process_buses_share_a_channel():
    channel = LocalInvalidationChannel()
    first = InProcessInvalidationBus(channel, instance_id="first")
    second = InProcessInvalidationBus(channel, instance_id="second")
    received = {"first": [], "second": []}
    first.subscribe(received["first"].append)
    second.subscribe(received["second"].append)
    await first.initialize()
    await second.initialize()

    await first.publish("acme")
    await first.publish(None)

    assert received == {"first": [], "second": ["acme", None]}

    await second.teardown()
    await first.publish("globex")
    assert received["second"] == ["acme", None]


def test_message_encoding():
    payload = decode_message(encode_message("acme", "instance-1").encode("utf-8"))

    assert payload == {"slug": "acme", "origin": "instance-1"}
    assert decode_message(b"not json") is None
    assert decode_message(json.dumps({"slug": "acme"})) is None


def test_redis_bus_delivers_messages_from_other_instances():
    bus = RedisInvalidationBus(channel="tenant_overlay:invalidate", instance_id="me")
    received = []
    bus.subscribe(received.append)

    bus.handle_message({"type": "subscribe", "data": 1})
    bus.handle_message({"type": "message", "data": encode_message("acme", "other").encode("utf-8")})
    bus.handle_message({"type": "message", "data": encode_message("globex", "me").encode("utf-8")})
    bus.handle_message({"type": "message", "data": b"{broken"})
    bus.handle_message({"type": "message", "data": encode_message(None, "other")})

    assert received == ["acme", None]


async def test_redis_bus_publishes_with_its_origin():
    client = RecordingRedis()
    bus = RedisInvalidationBus(channel="tenant_overlay:invalidate", instance_id="me", client=client)

    await bus.publish("acme")

    channel, message = client.published[0]
    assert channel == "tenant_overlay:invalidate"
    assert json.loads(message) == {"slug": "acme", "origin": "me"}


async def test_invalidation_reaches_other_engines(tenants, templates):
    channel = LocalInvalidationChannel()
    engines = [
        TenantContextEngine.from_settings(
            make_settings(), store=tenants, bus=InProcessInvalidationBus(channel), templates=templates
        )
        for _ in range(2)
    ]
    for engine in engines:
        await engine.start()
    try:
        writer, reader = engines
        await reader.get_context("acme")
        assert reader.cache.peek("acme") is not None

        await writer.invalidate("acme")

        assert reader.cache.peek("acme") is None
    finally:
        for engine in engines:
            await engine.close()


async def test_store_change_events_invalidate_the_cache(engine, tenants):
    before = await engine.get_context("acme")
    assert before.version == 0

    # A write made by another process sharing the store.
    await tenants.put_override("acme", {"limits": {"maxUsers": 10}})
    await wait_until(lambda: engine.cache.peek("acme") is None)

    after = await engine.get_context("acme")
    assert after.version == 1
    assert after.limits.max_users == 10
    assert before.limits.max_users == 25


async def test_redis_listener_survives_a_failing_handler():
    messages = asyncio.Queue()
    bus = RedisInvalidationBus(
        channel="tenant_overlay:invalidate", instance_id="me", client=SubscribingRedis(QueuePubSub(messages))
    )
    received = []

    def handler(slug):
        if slug == "broken":
            raise RuntimeError("handler failed")
        received.append(slug)

    bus.subscribe(handler)
    await bus.initialize()
    try:
        messages.put_nowait(message_from("broken"))
        messages.put_nowait(message_from("acme"))

        await wait_until(lambda: received == ["acme"])
        assert bus.describe()["listening"]
    finally:
        await bus.teardown()


async def test_redis_listener_resubscribes_after_losing_the_connection():
    messages = asyncio.Queue()
    dropped = QueuePubSub(messages, fail_with=RedisConnectionError("Connection reset by peer"))
    client = SubscribingRedis(dropped, QueuePubSub(messages))
    bus = RedisInvalidationBus(
        channel="tenant_overlay:invalidate", instance_id="me", client=client, reconnect_initial_delay=0
    )
    received = []
    bus.subscribe(received.append)
    await bus.initialize()
    try:
        messages.put_nowait(message_from("acme"))

        await wait_until(lambda: received == ["acme"])
        assert dropped.closed
        assert client.pubsubs == []
        assert bus.describe()["listening"]
    finally:
        await bus.teardown()
