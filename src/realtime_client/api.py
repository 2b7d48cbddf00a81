"""Realtime API client.

Thin protocol layer over a RealtimeTransport: decodes inbound messages into
RealtimeEvents, stamps outbound events with an ``event_id`` and dispatches
both directions on the event bus.

Dispatch keys:
- Outbound: "<event type>", "client.*", "all" (before the event is written)
- Inbound: "<event type>", "server.*", "all"

Usage:
    api = RealtimeAPI(api_key=os.environ["OPENAI_API_KEY"])
    api.on("server.*", handle_server_event)

    if await api.connect():
        await api.send({"type": "session.update", "session": {"voice": "alloy"}})
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .bus import EventBus
from .config import RealtimeConfig
from .events import RealtimeEvent, RealtimeEventType
from .http import DEFAULT_TIMEOUT
from .redact import redact_audio
from .streams import Subscription
from .transport.base import (
    MicrophoneCallback,
    RealtimeTransport,
    SessionConfig,
    TransportKind,
)
from .transport.factory import DEFAULT_TRANSPORT, create_transport
from .utils import DEFAULT_MODEL, RealtimeModel, generate_id

logger = logging.getLogger(__name__)


class RealtimeAPI(EventBus):
    """Event-based session with the realtime API over one transport."""

    def __init__(
        self,
        transport_kind: TransportKind | str = DEFAULT_TRANSPORT,
        url: str | None = None,
        api_key: str | None = None,
        *,
        dangerously_allow_api_key_in_browser: bool = False,
        debug: bool = False,
        transport: RealtimeTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
        debug_http: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Create a client.

        Args:
            transport_kind: Transport to build when ``transport`` is not given
            url: Endpoint override
            api_key: API key
            dangerously_allow_api_key_in_browser: Permit an API key under Pyodide
            debug: Log every event sent and received (audio redacted)
            transport: Use this transport instead of building one
            http_client: Signaling client for the WebRTC transport
            debug_http: Log signaling HTTP traffic
            timeout: Signaling request timeout in seconds

        Raises:
            ValueError: If an API key is given in a browser without the override
        """
        super().__init__()
        self.debug = debug
        self._transport = transport or create_transport(
            transport_kind,
            url=url,
            api_key=api_key,
            dangerously_allow_api_key_in_browser=dangerously_allow_api_key_in_browser,
            debug=debug,
            http_client=http_client,
            debug_http=debug_http,
            timeout=timeout,
        )
        self._receive_subscription: Subscription[str] | None = None

    @classmethod
    def from_config(cls, config: RealtimeConfig, **kwargs: Any) -> RealtimeAPI:
        """Create a client from a RealtimeConfig (keyword arguments override)."""
        options: dict[str, Any] = {
            "transport_kind": config.transport_kind,
            "url": config.url,
            "api_key": config.api_key,
            "dangerously_allow_api_key_in_browser": config.dangerously_allow_api_key_in_browser,
            "debug": config.debug,
            "debug_http": config.debug_http,
            "timeout": config.timeout,
        }
        options.update(kwargs)
        return cls(**options)

    @property
    def transport(self) -> RealtimeTransport:
        return self._transport

    @property
    def transport_kind(self) -> TransportKind:
        return self._transport.transport_kind

    @property
    def is_connecting_or_connected(self) -> bool:
        return self._transport.is_connecting_or_connected

    @property
    def is_data_channel_opened(self) -> bool:
        return self._transport.is_data_channel_opened

    async def connect(
        self,
        model: str | RealtimeModel = DEFAULT_MODEL,
        session_config: SessionConfig | None = None,
        get_microphone: MicrophoneCallback | None = None,
    ) -> bool:
        """Connect the transport.

        ``model`` is passed separately because a session cannot switch
        models after it starts.

        Args:
            model: Model to use
            session_config: Session settings (used by WebRTC only; WebSocket
                sessions are configured with a "session.update" event)
            get_microphone: Local audio source for WebRTC

        Returns:
            Whether the connection was established

        Raises:
            RuntimeError: If already connecting or connected
        """
        self._start_receiving()
        connected = await self._transport.connect(model, session_config, get_microphone)
        if not connected and self._transport.is_disconnected:
            await self._stop_receiving()
        return connected

    async def disconnect(self) -> None:
        """Disconnect the transport and stop processing inbound messages."""
        await self._transport.disconnect()
        await self._stop_receiving()

    async def dispose(self) -> None:
        """Disconnect, close the transport's streams and drop all listeners."""
        if self._transport.is_connecting_or_connected:
            await self._transport.disconnect()
        await self._stop_receiving()
        await self._transport.dispose()
        self.clear()

    async def send(self, event: RealtimeEvent | Mapping[str, Any]) -> RealtimeEvent:
        """Send an event to the server.

        The event gets an ``event_id`` if it has none, is dispatched to
        local listeners, then written to the transport.

        Returns:
            The event as sent

        Raises:
            ConnectionError: If the data channel is not open
        """
        if not self.is_data_channel_opened:
            raise ConnectionError("RealtimeAPI is not connected")

        if not isinstance(event, RealtimeEvent):
            event = RealtimeEvent.from_wire(event)
        if not event.event_id:
            event = event.with_event_id(generate_id())

        self._log_event(event, from_client=True)

        await self.dispatch(event.type, event)
        await self.dispatch(RealtimeEventType.CLIENT_ALL.value, event)
        await self.dispatch(RealtimeEventType.ALL.value, event)

        if not await self._transport.send(event.to_wire()):
            raise ConnectionError(f"Transport closed before {event.type} could be sent")
        return event

    async def _receive(self, event: RealtimeEvent) -> None:
        self._log_event(event, from_client=False)

        await self.dispatch(event.type, event)
        await self.dispatch(RealtimeEventType.SERVER_ALL.value, event)
        await self.dispatch(RealtimeEventType.ALL.value, event)

    # =========================================================================
    # Inbound message loop
    # =========================================================================

    def _start_receiving(self) -> None:
        if self._receive_subscription is not None and self._receive_subscription.is_active:
            return
        self._receive_subscription = self._transport.on_text_message.listen(self._on_text_message)

    async def _stop_receiving(self) -> None:
        subscription, self._receive_subscription = self._receive_subscription, None
        if subscription is not None:
            await subscription.aclose()

    async def _on_text_message(self, message: str) -> None:
        """Decode and dispatch one inbound message (called in arrival order)."""
        try:
            event = RealtimeEvent.from_wire(json.loads(message))
        except ValueError as e:
            logger.warning(f"Dropping undecodable message: {e}")
            self._transport.notify_error(e)
            return
        await self._receive(event)

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def _log_event(self, event: RealtimeEvent, from_client: bool) -> None:
        if not self.debug:
            return
        # Redaction works on a copy; the event itself is sent untouched
        event_json = json.dumps(redact_audio(event.to_wire()))
        logger.info(f"{'sent' if from_client else 'received'}: {event.type} {event_json}")

    async def __aenter__(self) -> RealtimeAPI:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.dispose()
