"""Per-board pub/sub broadcast

Events are published on the channel ``board-{board_id}`` as
``{"event": name, "data": payload}``. Publishing is best effort: a failed
publish is logged and never fails the request that triggered it.
"""

import asyncio
import json
import logging
from typing import Optional, Set

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def board_channel(board_id: str) -> str:
    return f"board-{board_id}"


class Subscription:
    """Async iterator over the events of one channel"""

    async def get(self) -> dict:
        raise NotImplementedError

    async def close(self):
        pass

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict:
        return await self.get()


class Broadcaster:
    """Base broadcaster; subclasses implement the transport"""

    async def connect(self):
        pass

    async def disconnect(self):
        pass

    async def publish(self, channel: str, message: dict):
        raise NotImplementedError

    async def subscribe(self, channel: str) -> Subscription:
        raise NotImplementedError

    async def publish_board_event(self, board_id: str, event: str, data: dict) -> bool:
        """Publish an event to a board channel, logging instead of raising"""
        try:
            await self.publish(board_channel(board_id), {"event": event, "data": data})
            return True
        except Exception as e:
            logger.error(f"Broadcast of {event} to board {board_id} failed: {e}")
            return False


class _QueueSubscription(Subscription):

    def __init__(self, broadcaster: "MemoryBroadcaster", channel: str):
        self.broadcaster = broadcaster
        self.channel = channel
        self.queue: asyncio.Queue = asyncio.Queue()

    async def get(self) -> dict:
        return await self.queue.get()

    async def close(self):
        self.broadcaster.unsubscribe(self)


class MemoryBroadcaster(Broadcaster):
    """In-process broadcaster backed by asyncio queues"""

    def __init__(self):
        self.subscriptions: dict[str, Set[_QueueSubscription]] = {}

    async def publish(self, channel: str, message: dict):
        # Round-trip through JSON so subscribers never share objects with the publisher
        encoded = json.dumps(message)
        for subscription in list(self.subscriptions.get(channel, ())):
            subscription.queue.put_nowait(json.loads(encoded))

    async def subscribe(self, channel: str) -> Subscription:
        subscription = _QueueSubscription(self, channel)
        self.subscriptions.setdefault(channel, set()).add(subscription)
        return subscription

    def unsubscribe(self, subscription: _QueueSubscription):
        subscribers = self.subscriptions.get(subscription.channel)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self.subscriptions[subscription.channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self.subscriptions.get(channel, ()))


class _RedisSubscription(Subscription):

    def __init__(self, pubsub):
        self.pubsub = pubsub

    async def get(self) -> dict:
        while True:
            message = await self.pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message is None:
                continue
            try:
                return json.loads(message["data"])
            except (TypeError, ValueError) as e:
                logger.warning(f"Dropping undecodable broadcast message: {e}")

    async def close(self):
        await self.pubsub.unsubscribe()
        await self.pubsub.aclose()


class RedisBroadcaster(Broadcaster):
    """Broadcaster using Redis pub/sub, for multi-process deployments"""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.client: Optional[redis.Redis] = None

    async def connect(self):
        self.client = redis.from_url(
            self.redis_url,
            encoding="utf-8",
            decode_responses=True
        )
        logger.info("Redis connection established")

    async def disconnect(self):
        if self.client:
            await self.client.aclose()
            logger.info("Redis connection closed")

    async def publish(self, channel: str, message: dict):
        await self.client.publish(channel, json.dumps(message))

    async def subscribe(self, channel: str) -> Subscription:
        # Dedicated pubsub per subscriber
        pubsub = self.client.pubsub()
        await pubsub.subscribe(channel)
        return _RedisSubscription(pubsub)


def create_broadcaster(settings) -> Broadcaster:
    if settings.broadcast_backend == "redis":
        return RedisBroadcaster(settings.redis_url)
    return MemoryBroadcaster()
