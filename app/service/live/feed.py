from abc import ABC, abstractmethod
import asyncio
import json
import logging
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def evaluation_channel(submission_id: str) -> str:
    return f"evaluations:{submission_id}"


def owner_channel(user_id: str) -> str:
    return f"submissions:{user_id}"


class Subscription(ABC):
    """Stream of payloads published on one channel after subscribing."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[dict]:
        pass

    @abstractmethod
    async def close(self):
        pass


class ChangeFeed(ABC):
    """
    Row-change notification channel. Writers publish the full new row, live
    views subscribe per channel. Delivery is best effort: nothing is buffered
    for subscribers that are not connected yet.
    """

    @abstractmethod
    async def publish(self, channel: str, payload: dict):
        pass

    @abstractmethod
    async def subscribe(self, channel: str) -> Subscription:
        pass

    async def close(self):
        pass


# ──────────────────────────────────────────────────────────────────────────────
# In-process feed
# ──────────────────────────────────────────────────────────────────────────────
_CLOSED = object()


class _QueueSubscription(Subscription):
    def __init__(self, feed: "InMemoryChangeFeed", channel: str):
        self.feed = feed
        self.channel = channel
        self.queue: asyncio.Queue = asyncio.Queue()

    async def __aiter__(self):
        while True:
            payload = await self.queue.get()
            if payload is _CLOSED:
                return
            yield payload

    async def close(self):
        self.feed._unregister(self)
        self.queue.put_nowait(_CLOSED)


class InMemoryChangeFeed(ChangeFeed):
    def __init__(self):
        self._subscribers: dict[str, set[_QueueSubscription]] = {}

    async def publish(self, channel: str, payload: dict):
        subscribers = list(self._subscribers.get(channel, ()))
        logger.debug(f"Publishing on {channel} to {len(subscribers)} subscriber(s)")
        for subscription in subscribers:
            subscription.queue.put_nowait(payload)

    async def subscribe(self, channel: str) -> Subscription:
        subscription = _QueueSubscription(self, channel)
        self._subscribers.setdefault(channel, set()).add(subscription)
        return subscription

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def _unregister(self, subscription: _QueueSubscription):
        subscribers = self._subscribers.get(subscription.channel)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.channel]


# ──────────────────────────────────────────────────────────────────────────────
# Redis pub/sub feed
# ──────────────────────────────────────────────────────────────────────────────
class _RedisSubscription(Subscription):
    def __init__(self, pubsub):
        self.pubsub = pubsub

    async def __aiter__(self):
        async for message in self.pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                yield json.loads(message["data"])
            except json.JSONDecodeError as e:
                logger.error(f"Dropping malformed change event: {e}")

    async def close(self):
        await self.pubsub.unsubscribe()
        await self.pubsub.aclose()


class RedisChangeFeed(ChangeFeed):
    """Feed shared by every worker process through Redis pub/sub."""

    def __init__(self, url: Optional[str] = None, client: Optional[aioredis.Redis] = None):
        if client is None:
            client = aioredis.from_url(url, decode_responses=True)
        self.client = client

    async def publish(self, channel: str, payload: dict):
        await self.client.publish(channel, json.dumps(payload))

    async def subscribe(self, channel: str) -> Subscription:
        pubsub = self.client.pubsub()
        await pubsub.subscribe(channel)
        return _RedisSubscription(pubsub)

    async def close(self):
        await self.client.aclose()
