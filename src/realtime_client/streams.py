"""Broadcast streams - multi-consumer fan-out channels.

Every subscriber gets its own queue, so consumers never steal items from
each other and a slow consumer never blocks the producer. Closing the
stream ends every subscription once its already-queued items are read.

Usage:
    states: Broadcast[ConnectionState] = Broadcast("connection_state")

    async for state in states.subscribe():
        ...

    states.listen(on_state)  # background task, sync or async callback
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """A single consumer of a Broadcast.

    Registered as soon as it is created; iterate it with ``async for``.
    """

    def __init__(self, stream: Broadcast[T]) -> None:
        self._stream = stream
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._done = False

    @property
    def is_active(self) -> bool:
        return not self._done

    def _put(self, item: Any) -> None:
        self._queue.put_nowait(item)

    def cancel(self) -> None:
        """Stop receiving items. Safe to call more than once."""
        if self._done:
            return
        self._done = True
        self._stream._remove(self)
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()

    async def aclose(self) -> None:
        """Cancel, then wait for a ``listen`` task to finish.

        Called from inside the listener callback it only cancels; the task
        ends once the callback returns.
        """
        self.cancel()
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        if self._done and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._done = True
            raise StopAsyncIteration
        return item


class Broadcast(Generic[T]):
    """Fan-out channel with any number of independent subscribers."""

    def __init__(self, name: str = "broadcast") -> None:
        self.name = name
        self._subscriptions: list[Subscription[T]] = []
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def add(self, item: T) -> None:
        """Deliver an item to every live subscription (never blocks)."""
        if self._closed:
            logger.debug(f"Dropping item on closed stream {self.name}")
            return
        for subscription in list(self._subscriptions):
            subscription._put(item)

    def subscribe(self) -> Subscription[T]:
        """Register a new consumer.

        A subscription taken on a closed stream finishes immediately.
        """
        subscription: Subscription[T] = Subscription(self)
        if self._closed:
            subscription._done = True
            subscription._put(_CLOSED)
        else:
            self._subscriptions.append(subscription)
        return subscription

    def listen(
        self, callback: Callable[[T], Awaitable[None] | None]
    ) -> Subscription[T]:
        """Feed every item, in order, to ``callback`` from a background task.

        Must be called with a running event loop. Callback errors are
        logged and do not stop the listener.
        """
        subscription = self.subscribe()

        async def pump() -> None:
            async for item in subscription:
                try:
                    result = callback(item)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.exception(f"Error in listener for stream {self.name}")

        subscription._task = asyncio.create_task(pump())
        return subscription

    def close(self) -> None:
        """Close the stream and end all subscriptions."""
        if self._closed:
            return
        self._closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription._put(_CLOSED)

    def _remove(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
