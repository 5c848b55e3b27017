import asyncio

import pytest
from fakeredis import FakeAsyncRedis

from app.service.live.feed import RedisChangeFeed


@pytest.fixture
def redis_feed():
    return RedisChangeFeed(client=FakeAsyncRedis(decode_responses=True))


async def first(subscription):
    iterator = subscription.__aiter__()
    return await asyncio.wait_for(iterator.__anext__(), timeout=2)


@pytest.mark.anyio
async def test_publish_reaches_subscriber(redis_feed):
    subscription = await redis_feed.subscribe("evaluations:abc")
    try:
        await redis_feed.publish("evaluations:abc", {"submission_id": "abc", "decision": "accepted"})
        assert await first(subscription) == {"submission_id": "abc", "decision": "accepted"}
    finally:
        await subscription.close()
        await redis_feed.close()


@pytest.mark.anyio
async def test_other_channels_are_not_delivered(redis_feed):
    subscription = await redis_feed.subscribe("submissions:dev-1")
    try:
        await redis_feed.publish("submissions:dev-2", {"submission_id": "x"})
        await redis_feed.publish("submissions:dev-1", {"submission_id": "y"})
        assert await first(subscription) == {"submission_id": "y"}
    finally:
        await subscription.close()
        await redis_feed.close()


@pytest.mark.anyio
async def test_malformed_payload_is_skipped(redis_feed):
    subscription = await redis_feed.subscribe("evaluations:abc")
    try:
        await redis_feed.client.publish("evaluations:abc", "{not json")
        await redis_feed.publish("evaluations:abc", {"ok": True})
        assert await first(subscription) == {"ok": True}
    finally:
        await subscription.close()
        await redis_feed.close()
