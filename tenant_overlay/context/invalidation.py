# tenant_overlay/context/invalidation.py
"""
Cache-invalidation broadcast between engine instances.

A message names one slug, or no slug for "invalidate everything". Every
instance receives every message except the ones it published itself.
Delivery is best effort: a missed message leaves a stale entry that expires
with the cache TTL.
"""
import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Set

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

InvalidationHandler = Callable[[Optional[str]], None]


class AbstractInvalidationBus(ABC):
    def __init__(self, instance_id: Optional[str] = None):
        self.instance_id = instance_id or uuid.uuid4().hex
        self._handlers: List[InvalidationHandler] = []

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def teardown(self) -> None:
        pass

    @abstractmethod
    async def publish(self, slug: Optional[str]) -> None:
        """Tell every other instance to invalidate ``slug`` (None: everything)."""
        pass

    def subscribe(self, handler: InvalidationHandler) -> None:
        self._handlers.append(handler)

    def deliver(self, slug: Optional[str], origin: str) -> None:
        if origin == self.instance_id:
            return
        logger.debug(f"Invalidation from instance {origin} for tenant {slug or '<all>'}")
        for handler in list(self._handlers):
            handler(slug)

    def describe(self) -> dict:
        return {"backend": type(self).__name__, "instanceId": self.instance_id}


class LocalInvalidationChannel:
    """Connects the in-process buses of several engines living in one process."""

    def __init__(self) -> None:
        self.members: Set["InProcessInvalidationBus"] = set()


class InProcessInvalidationBus(AbstractInvalidationBus):
    def __init__(self, channel: Optional[LocalInvalidationChannel] = None, instance_id: Optional[str] = None):
        super().__init__(instance_id)
        self.channel = channel or LocalInvalidationChannel()

    async def initialize(self) -> None:
        self.channel.members.add(self)
        logger.info(f"InProcessInvalidationBus {self.instance_id} joined its channel.")

    async def teardown(self) -> None:
        self.channel.members.discard(self)

    async def publish(self, slug: Optional[str]) -> None:
        for member in list(self.channel.members):
            member.deliver(slug, self.instance_id)


def encode_message(slug: Optional[str], origin: str) -> str:
    return json.dumps({"slug": slug, "origin": origin})


def decode_message(data) -> Optional[dict]:
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        payload = json.loads(data)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed invalidation message: {data!r}")
        return None
    if not isinstance(payload, dict) or "origin" not in payload:
        logger.warning(f"Ignoring malformed invalidation message: {data!r}")
        return None
    return payload


class RedisInvalidationBus(AbstractInvalidationBus):
    """
    Broadcasts invalidations over a Redis pub/sub channel.

    The listener survives bad messages, failing handlers and dropped
    connections; after a connection error it resubscribes with exponential
    backoff. Messages published while it was disconnected are lost, which
    the cache TTL bounds.
    """

    def __init__(
        self,
        channel: str,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        instance_id: Optional[str] = None,
        client: Optional[aioredis.Redis] = None,
        reconnect_initial_delay: float = 0.5,
        reconnect_max_delay: float = 30.0,
    ):
        super().__init__(instance_id)
        self.channel = channel
        self._connection_params = {"host": host, "port": port, "db": db, "decode_responses": False}
        if password:
            self._connection_params["password"] = password
        self._redis_client: Optional[aioredis.Redis] = client
        self._pubsub = None
        self._listener: Optional[asyncio.Task] = None
        self.reconnect_initial_delay = reconnect_initial_delay
        self.reconnect_max_delay = reconnect_max_delay

    async def initialize(self) -> None:
        if self._listener is not None:
            logger.warning("Redis invalidation bus already initialized. Skipping re-initialization.")
            return
        if self._redis_client is None:
            logger.info(
                f"Connecting to Redis at {self._connection_params['host']}:"
                f"{self._connection_params['port']}, DB: {self._connection_params['db']}"
            )
            self._redis_client = aioredis.Redis(**self._connection_params)
        try:
            await self._redis_client.ping()
            logger.info("Successfully connected to Redis and pinged.")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}", exc_info=True)
            self._redis_client = None
            raise

        await self._subscribe()
        self._listener = asyncio.get_running_loop().create_task(
            self._listen(), name="tenant-overlay-invalidation-listener"
        )
        self._listener.add_done_callback(_log_listener_exit)

    async def _subscribe(self) -> None:
        self._pubsub = self._redis_client.pubsub()
        await self._pubsub.subscribe(self.channel)
        logger.info(f"RedisInvalidationBus {self.instance_id} subscribed to '{self.channel}'.")

    async def _drop_subscription(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.aclose()
        except RedisError as e:
            logger.debug(f"Ignoring error while closing a broken pub/sub connection: {e}")

    async def _listen(self) -> None:
        delay = self.reconnect_initial_delay
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                async for message in self._pubsub.listen():
                    delay = self.reconnect_initial_delay
                    self._dispatch(message)
            except RedisError as e:
                logger.warning(f"Invalidation listener lost its Redis connection ({e}); retrying in {delay}s.")
            else:
                logger.warning(f"Invalidation subscription to '{self.channel}' ended; resubscribing in {delay}s.")
            await self._drop_subscription()
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.reconnect_max_delay)

    def _dispatch(self, message: dict) -> None:
        try:
            self.handle_message(message)
        except Exception as e:
            logger.error(f"Invalidation handler failed for message {message!r}: {e}", exc_info=True)

    def handle_message(self, message: dict) -> None:
        if message.get("type") != "message":
            return
        payload = decode_message(message.get("data"))
        if payload is not None:
            self.deliver(payload.get("slug"), payload["origin"])

    async def publish(self, slug: Optional[str]) -> None:
        if self._redis_client is None:
            raise RuntimeError("RedisInvalidationBus not initialized. Call initialize() first.")
        await self._redis_client.publish(self.channel, encode_message(slug, self.instance_id))

    async def teardown(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
            self._pubsub = None
        if self._redis_client is not None:
            logger.info("Closing Redis connection.")
            await self._redis_client.aclose()
            self._redis_client = None
            logger.info("Redis connection closed.")

    def describe(self) -> dict:
        listening = self._listener is not None and not self._listener.done()
        return {**super().describe(), "channel": self.channel, "listening": listening}


def _log_listener_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Invalidation listener stopped: {exc!r}", exc_info=exc)
