"""Unit tests for broadcast streams."""

from __future__ import annotations

import asyncio

import pytest

from realtime_client.streams import Broadcast


async def collect(subscription) -> list:
    return [item async for item in subscription]


class TestBroadcast:
    """Fan-out behaviour."""

    @pytest.mark.asyncio
    async def test_every_subscriber_gets_every_item(self) -> None:
        stream: Broadcast[int] = Broadcast("numbers")
        first = stream.subscribe()
        second = stream.subscribe()

        for n in range(3):
            stream.add(n)
        stream.close()

        assert await collect(first) == [0, 1, 2]
        assert await collect(second) == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_late_subscriber_misses_earlier_items(self) -> None:
        stream: Broadcast[str] = Broadcast()
        stream.add("early")
        late = stream.subscribe()
        stream.add("late")
        stream.close()

        assert await collect(late) == ["late"]

    @pytest.mark.asyncio
    async def test_add_without_subscribers_is_noop(self) -> None:
        stream: Broadcast[str] = Broadcast()
        stream.add("nobody listens")
        assert stream.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_close_ends_pending_iteration(self) -> None:
        stream: Broadcast[str] = Broadcast()
        subscription = stream.subscribe()
        reader = asyncio.create_task(collect(subscription))
        await asyncio.sleep(0)

        stream.close()

        assert await asyncio.wait_for(reader, 1.0) == []
        assert stream.is_closed

    @pytest.mark.asyncio
    async def test_add_after_close_is_dropped(self) -> None:
        stream: Broadcast[str] = Broadcast()
        subscription = stream.subscribe()
        stream.close()
        stream.add("too late")

        assert await collect(subscription) == []

    @pytest.mark.asyncio
    async def test_subscribe_after_close_finishes_immediately(self) -> None:
        stream: Broadcast[str] = Broadcast()
        stream.close()

        assert await collect(stream.subscribe()) == []

    @pytest.mark.asyncio
    async def test_cancel_removes_subscription(self) -> None:
        stream: Broadcast[str] = Broadcast()
        subscription = stream.subscribe()
        stream.add("queued")

        subscription.cancel()
        stream.add("after cancel")

        assert stream.subscriber_count == 0
        assert not subscription.is_active
        assert await collect(subscription) == []

    @pytest.mark.asyncio
    async def test_cancel_twice_is_safe(self) -> None:
        stream: Broadcast[str] = Broadcast()
        subscription = stream.subscribe()
        subscription.cancel()
        subscription.cancel()
        assert stream.subscriber_count == 0


class TestListen:
    """Callback-driven subscriptions."""

    @pytest.mark.asyncio
    async def test_listen_delivers_in_order(self) -> None:
        stream: Broadcast[int] = Broadcast()
        received: list[int] = []
        done = asyncio.Event()

        async def on_item(item: int) -> None:
            received.append(item)
            if item == 2:
                done.set()

        stream.listen(on_item)
        for n in range(3):
            stream.add(n)

        await asyncio.wait_for(done.wait(), 1.0)
        assert received == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_listen_survives_callback_errors(self) -> None:
        stream: Broadcast[int] = Broadcast()
        received: list[int] = []
        done = asyncio.Event()

        def on_item(item: int) -> None:
            if item == 0:
                raise RuntimeError("boom")
            received.append(item)
            done.set()

        stream.listen(on_item)
        stream.add(0)
        stream.add(1)

        await asyncio.wait_for(done.wait(), 1.0)
        assert received == [1]

    @pytest.mark.asyncio
    async def test_listen_cancel_stops_delivery(self) -> None:
        stream: Broadcast[int] = Broadcast()
        received: list[int] = []

        subscription = stream.listen(received.append)
        subscription.cancel()
        stream.add(1)
        await asyncio.sleep(0)

        assert received == []

    @pytest.mark.asyncio
    async def test_aclose_waits_for_listener_task(self) -> None:
        stream: Broadcast[int] = Broadcast()
        started = asyncio.Event()
        finished: list[str] = []

        async def on_item(_: int) -> None:
            started.set()
            try:
                await asyncio.sleep(10)
            finally:
                finished.append("cleaned up")

        subscription = stream.listen(on_item)
        stream.add(1)
        await asyncio.wait_for(started.wait(), 1.0)

        await subscription.aclose()

        assert finished == ["cleaned up"]
        assert stream.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_aclose_from_inside_callback(self) -> None:
        stream: Broadcast[int] = Broadcast()
        received: list[int] = []
        done = asyncio.Event()
        subscription = None

        async def on_item(item: int) -> None:
            received.append(item)
            await subscription.aclose()
            done.set()

        subscription = stream.listen(on_item)
        stream.add(1)
        stream.add(2)

        await asyncio.wait_for(done.wait(), 1.0)
        await asyncio.sleep(0)
        assert received == [1]
        assert not subscription.is_active
