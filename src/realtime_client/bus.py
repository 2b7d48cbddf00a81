"""Event Bus - keyed pub/sub used by the realtime API client.

Events are dispatched under string keys. The API client dispatches every
event three times: under its own type (e.g. "response.audio.delta"), under
its direction wildcard ("client.*" or "server.*") and under "all".

Handler failures are logged and swallowed: one failing handler never stops
its siblings and never surfaces to the code that dispatched the event.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Handlers may be plain functions or coroutine functions
EventHandler = Callable[[Any], Awaitable[None] | None]


@dataclass
class _Registration:
    handler: EventHandler
    once: bool = False
    # Cleared on removal; dispatches already in flight skip inactive registrations
    active: bool = True


class EventBus:
    """Pub/sub with multiple ordered listeners per key.

    Listener lists are snapshotted before each dispatch, so handlers may
    register or remove listeners (including themselves) while running.
    Listeners added mid-dispatch wait for the next dispatch; listeners
    removed mid-dispatch (or already fired via ``once``) are skipped.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, list[_Registration]] = {}

    def on(self, key: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for a key.

        Args:
            key: Event key (event type, "client.*", "server.*" or "all")
            handler: Called with the dispatched payload

        Returns:
            Disposer that removes this registration
        """
        return self._add(key, _Registration(handler))

    def once(self, key: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler that is removed after its first invocation."""
        return self._add(key, _Registration(handler, once=True))

    def off(self, key: str, handler: EventHandler) -> None:
        """Remove the first registration of ``handler`` for ``key``, if any."""
        registrations = self._registrations.get(key)
        if not registrations:
            return
        for registration in registrations:
            if registration.handler == handler:
                self._discard(key, registration)
                return

    def clear(self, key: str | None = None) -> None:
        """Remove all listeners for a key, or for every key if omitted."""
        if key is None:
            removed = [r for regs in self._registrations.values() for r in regs]
            self._registrations = {}
        else:
            removed = self._registrations.pop(key, [])
        for registration in removed:
            registration.active = False

    def listener_count(self, key: str) -> int:
        return len(self._registrations.get(key, []))

    async def dispatch(self, key: str, payload: Any) -> None:
        """Invoke every listener of ``key`` in registration order.

        Each handler is awaited before the next one runs.
        """
        registrations = list(self._registrations.get(key, []))

        for registration in registrations:
            if not registration.active:
                continue
            if registration.once:
                self._discard(key, registration)
            try:
                result = registration.handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Error in handler for {key}")

    async def wait_for_next(self, key: str, timeout: float | None = None) -> Any:
        """Wait for the next payload dispatched under ``key``.

        Raises:
            TimeoutError: If nothing is dispatched within ``timeout`` seconds
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def resolve(payload: Any) -> None:
            if not future.done():
                future.set_result(payload)

        dispose = self.once(key, resolve)
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        finally:
            dispose()

    def _add(self, key: str, registration: _Registration) -> Callable[[], None]:
        self._registrations.setdefault(key, []).append(registration)

        def dispose() -> None:
            self._discard(key, registration)

        return dispose

    def _discard(self, key: str, registration: _Registration) -> None:
        registration.active = False
        registrations = self._registrations.get(key)
        if registrations is None:
            return
        # identity, not equality: the same handler may be registered twice
        for index, candidate in enumerate(registrations):
            if candidate is registration:
                del registrations[index]
                break
        if not registrations:
            self._registrations.pop(key, None)
