"""Tests for live delivery and the Server-Sent Events stream."""

import asyncio
import json
from uuid import uuid4

import pytest

from volunteerhub.core.config import settings
from volunteerhub.services import live_bus as live_bus_module
from volunteerhub.services.live_bus import (
    InMemoryLiveBus,
    get_live_bus,
    stream_user_events,
    user_channel,
)


class TestInMemoryLiveBus:
    def test_publish_buffers_per_user(self):
        bus = InMemoryLiveBus(buffer_size=2)
        alice, bob = uuid4(), uuid4()
        for n in range(3):
            bus.publish(alice, {"n": n})
        bus.publish(bob, {"n": 99})

        assert bus.messages_for(alice) == [{"n": 1}, {"n": 2}]
        assert bus.messages_for(bob) == [{"n": 99}]
        bus.clear()
        assert bus.messages_for(alice) == []

    def test_publish_without_subscribers_is_dropped_silently(self):
        bus = InMemoryLiveBus()
        bus.publish(uuid4(), {"title": "nobody listening"})

    @pytest.mark.asyncio
    async def test_subscriber_receives_only_own_channel(self):
        bus = InMemoryLiveBus()
        alice, bob = uuid4(), uuid4()
        subscription = await bus.subscribe(alice)

        bus.publish(bob, {"for": "bob"})
        bus.publish(alice, {"for": "alice"})

        assert await subscription.get(timeout=1) == {"for": "alice"}
        assert await subscription.get(timeout=0.01) is None
        await subscription.close()
        assert not bus._subscribers[user_channel(alice)]


class TestEventStream:
    @pytest.mark.asyncio
    async def test_stream_emits_published_notifications(self):
        bus = InMemoryLiveBus()
        user_id = uuid4()
        stream = stream_user_events(bus, user_id, heartbeat_seconds=60, poll_seconds=0.05)

        assert await stream.__anext__() == ": connected\n\n"
        next_chunk = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        bus.publish(user_id, {"title": "Registration approved"})

        chunk = await asyncio.wait_for(next_chunk, timeout=2)
        assert chunk.startswith("event: notification\ndata: ")
        data = json.loads(chunk.split("data: ", 1)[1])
        assert data == {"title": "Registration approved"}

        await stream.aclose()
        assert not bus._subscribers[user_channel(user_id)]

    @pytest.mark.asyncio
    async def test_stream_sends_heartbeats(self):
        bus = InMemoryLiveBus()
        stream = stream_user_events(bus, uuid4(), heartbeat_seconds=0.01, poll_seconds=0.01)

        assert await stream.__anext__() == ": connected\n\n"
        assert await asyncio.wait_for(stream.__anext__(), timeout=2) == ": ping\n\n"
        await stream.aclose()


class TestBusSelection:
    def test_memory_backend(self, monkeypatch):
        monkeypatch.setattr(live_bus_module, "_live_bus", None)
        monkeypatch.setattr(settings, "LIVE_BUS_BACKEND", "memory")
        assert isinstance(get_live_bus(), InMemoryLiveBus)
        assert get_live_bus() is get_live_bus()
