"""Live publish/subscribe delivery to connected sessions.

Publishing is fire-and-forget: a user with no connected session simply
misses the message and reads it later from the notification history.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict, deque
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

import redis
import redis.asyncio as aioredis

from volunteerhub.core.config import settings

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "user-"
SSE_EVENT_NAME = "notification"


def user_channel(user_id: UUID | str) -> str:
    return f"{CHANNEL_PREFIX}{user_id}"


class LiveSubscription(Protocol):
    async def get(self, timeout: float) -> dict[str, Any] | None: ...

    async def close(self) -> None: ...


class LiveBus(Protocol):
    def publish(self, user_id: UUID, payload: dict[str, Any]) -> None: ...

    async def subscribe(self, user_id: UUID) -> LiveSubscription: ...


class _QueueSubscription:
    def __init__(self, bus: InMemoryLiveBus, channel: str):
        self.bus = bus
        self.channel = channel
        self.loop = asyncio.get_running_loop()
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    async def get(self, timeout: float) -> dict[str, Any] | None:
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except TimeoutError:
            return None

    async def close(self) -> None:
        self.bus._subscribers[self.channel].discard(self)


class InMemoryLiveBus:
    """Process-local bus that also buffers the latest messages per user.

    Used when no Redis transport is configured and in tests.
    """

    def __init__(self, buffer_size: int = 50):
        self.buffer_size = buffer_size
        self._buffers: dict[str, deque[dict[str, Any]]] = defaultdict(
            lambda: deque(maxlen=self.buffer_size)
        )
        self._subscribers: dict[str, set[_QueueSubscription]] = defaultdict(set)

    def publish(self, user_id: UUID, payload: dict[str, Any]) -> None:
        channel = user_channel(user_id)
        self._buffers[channel].append(payload)
        for subscription in list(self._subscribers[channel]):
            subscription.loop.call_soon_threadsafe(subscription.queue.put_nowait, payload)

    async def subscribe(self, user_id: UUID) -> _QueueSubscription:
        subscription = _QueueSubscription(self, user_channel(user_id))
        self._subscribers[subscription.channel].add(subscription)
        return subscription

    def messages_for(self, user_id: UUID) -> list[dict[str, Any]]:
        return list(self._buffers.get(user_channel(user_id), ()))

    def clear(self) -> None:
        self._buffers.clear()


class _RedisSubscription:
    def __init__(self, client: aioredis.Redis, channel: str):
        self.client = client
        self.channel = channel
        self.pubsub = client.pubsub()

    async def get(self, timeout: float) -> dict[str, Any] | None:
        message = await self.pubsub.get_message(ignore_subscribe_messages=True, timeout=timeout)
        if not message or message.get("type") != "message":
            return None
        try:
            return json.loads(message.get("data") or "{}")  # type: ignore[no-any-return]
        except json.JSONDecodeError:
            logger.warning("Dropping malformed live message on %s", self.channel)
            return None

    async def close(self) -> None:
        await self.pubsub.unsubscribe(self.channel)
        await self.pubsub.aclose()
        await self.client.aclose()


class RedisLiveBus:
    """Redis pub/sub bus; works across multiple API worker processes."""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.client = redis.Redis.from_url(self.url, decode_responses=True)

    def publish(self, user_id: UUID, payload: dict[str, Any]) -> None:
        self.client.publish(user_channel(user_id), json.dumps(payload, default=str))

    async def subscribe(self, user_id: UUID) -> _RedisSubscription:
        client = aioredis.from_url(self.url, decode_responses=True)
        subscription = _RedisSubscription(client, user_channel(user_id))
        await subscription.pubsub.subscribe(subscription.channel)
        return subscription


async def stream_user_events(
    bus: LiveBus,
    user_id: UUID,
    heartbeat_seconds: float | None = None,
    poll_seconds: float = 1.0,
) -> AsyncGenerator[str, None]:
    """Server-Sent Events stream of one user's live channel.

    Emits a comment line every ``heartbeat_seconds`` so proxies keep the
    connection open.
    """
    interval = heartbeat_seconds if heartbeat_seconds is not None else settings.SSE_HEARTBEAT_SECONDS
    subscription = await bus.subscribe(user_id)
    try:
        yield ": connected\n\n"
        last_heartbeat = datetime.now(UTC).timestamp()
        while True:
            message = await subscription.get(timeout=min(poll_seconds, interval))
            now = datetime.now(UTC).timestamp()
            if now - last_heartbeat >= interval:
                yield ": ping\n\n"
                last_heartbeat = now
            if message is not None:
                yield f"event: {SSE_EVENT_NAME}\ndata: {json.dumps(message, default=str)}\n\n"
    finally:
        await subscription.close()


_live_bus: LiveBus | None = None


def get_live_bus() -> LiveBus:
    global _live_bus
    if _live_bus is None:
        if settings.LIVE_BUS_BACKEND == "redis":
            _live_bus = RedisLiveBus()
        else:
            _live_bus = InMemoryLiveBus()
    return _live_bus
