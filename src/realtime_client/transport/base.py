"""Transport abstraction for the realtime API client.

Hides two structurally different network primitives behind one contract:
- WebSocketTransport: a persistent duplex socket, one JSON event per frame
- WebRTCTransport: a negotiated peer connection plus an "oai-events" data channel

Architecture:
- RealtimeTransport holds the shared fields (url, api key, state) and the
  connection state machine; subclasses implement the wire.
- State and traffic are published on four independent Broadcast streams:
  connection state, errors, binary messages and text messages.
- connect() returns a bool instead of raising for negotiation failures;
  programmer errors (double connect, API key in a browser) still raise.

State machine (per connection attempt):
    disconnected -> connecting -> connected -> data_channel_opened
    any state    -> disconnected (disconnect / failure / remote close)
"""

from __future__ import annotations

import logging
from abc import ABC
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel

from ..streams import Broadcast
from ..utils import DEFAULT_MODEL, RealtimeModel, is_browser

logger = logging.getLogger(__name__)

# Zero-argument coroutine returning a local media source (microphone)
MicrophoneCallback = Callable[[], Awaitable[Any]]

SessionConfig = Mapping[str, Any] | BaseModel


class TransportKind(str, Enum):
    """Available transports."""

    WEBSOCKET = "websocket"
    WEBRTC = "webrtc"


class ConnectionState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DATA_CHANNEL_OPENED = "data_channel_opened"


def session_config_to_dict(session_config: SessionConfig | None) -> dict[str, Any]:
    """Flatten a session config (mapping or pydantic model) into a dict."""
    if session_config is None:
        return {}
    if isinstance(session_config, BaseModel):
        return session_config.model_dump(mode="json", exclude_none=True)
    return dict(session_config)


class RealtimeTransport(ABC):
    """Base class for realtime transports.

    Subclasses set ``transport_kind`` and ``default_url`` and extend
    connect/disconnect/send, calling the base implementation first
    (connect, send) or last (disconnect).
    """

    transport_kind: ClassVar[TransportKind]
    default_url: ClassVar[str]

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        *,
        dangerously_allow_api_key_in_browser: bool = False,
        debug: bool = False,
    ) -> None:
        if is_browser() and api_key is not None and not dangerously_allow_api_key_in_browser:
            raise ValueError(
                "Cannot provide API key in the browser without "
                '"dangerously_allow_api_key_in_browser" set to True'
            )
        self.url = url or self.default_url
        self.api_key = api_key
        self.debug = debug

        self._connection_state = ConnectionState.DISCONNECTED
        # Bumped by every disconnect(); lets a slow connect() notice it was superseded
        self._generation = 0

        self.on_connection_state: Broadcast[ConnectionState] = Broadcast("connection_state")
        self.on_error: Broadcast[Exception] = Broadcast("error")
        self.on_binary_message: Broadcast[bytes] = Broadcast("binary_message")
        self.on_text_message: Broadcast[str] = Broadcast("text_message")

    def _log(self, level: int, message: str) -> None:
        """Log only when debug is enabled."""
        if self.debug:
            logger.log(level, f"[{self.transport_kind.value}] {message}")

    # =========================================================================
    # State
    # =========================================================================

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection_state

    @property
    def is_disconnected(self) -> bool:
        return self._connection_state == ConnectionState.DISCONNECTED

    @property
    def is_connecting_or_connected(self) -> bool:
        """True in every state except disconnected."""
        return not self.is_disconnected

    @property
    def is_data_channel_opened(self) -> bool:
        return self._connection_state == ConnectionState.DATA_CHANNEL_OPENED

    # =========================================================================
    # Notifications
    # =========================================================================

    def notify_connection_state(self, state: ConnectionState) -> None:
        self._connection_state = state
        self._log(logging.DEBUG, f"connection state: {state.value}")
        self.on_connection_state.add(state)

    def notify_error(self, error: Exception) -> None:
        self.on_error.add(error)

    def notify_binary_message(self, data: bytes) -> None:
        self.on_binary_message.add(data)

    def notify_text_message(self, message: str) -> None:
        self.on_text_message.add(message)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(
        self,
        model: str | RealtimeModel = DEFAULT_MODEL,
        session_config: SessionConfig | None = None,
        get_microphone: MicrophoneCallback | None = None,
    ) -> bool:
        """Start a connection attempt.

        The base implementation validates and enters ``connecting``;
        subclasses negotiate the actual channel.

        Raises:
            RuntimeError: If already connecting or connected
        """
        if self.api_key is None and self.url == self.default_url:
            self._log(logging.WARNING, f'No API key provided for connection to "{self.url}"')
        if self.is_connecting_or_connected:
            raise RuntimeError("Already connected")
        if is_browser() and self.api_key is not None:
            self._log(
                logging.WARNING,
                "Connecting using API key in the browser, this is not recommended",
            )
        self.notify_connection_state(ConnectionState.CONNECTING)
        return True

    async def disconnect(self) -> None:
        """Enter ``disconnected``. Idempotent."""
        self._generation += 1
        self.notify_connection_state(ConnectionState.DISCONNECTED)

    async def send(self, data: Any) -> bool:
        """Return whether the channel is open; subclasses write only if so."""
        return self.is_data_channel_opened

    async def dispose(self) -> None:
        """Close all four streams. The transport is unusable afterwards."""
        self.on_connection_state.close()
        self.on_error.close()
        self.on_binary_message.close()
        self.on_text_message.close()

    def _superseded(self, generation: int) -> bool:
        """True if disconnect() ran since ``generation`` was captured."""
        return generation != self._generation
