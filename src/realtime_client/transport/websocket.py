"""WebSocket transport.

The socket itself is the data channel: once the handshake completes the
transport goes straight from ``connected`` to ``data_channel_opened``.

Wire format:
- Outbound: one JSON event per text frame
- Inbound: every frame is published on ``on_text_message``
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosedOK
from websockets.frames import CloseCode

from ..utils import DEFAULT_MODEL, RealtimeModel, model_name
from .base import (
    ConnectionState,
    MicrophoneCallback,
    RealtimeTransport,
    SessionConfig,
    TransportKind,
)

logger = logging.getLogger(__name__)


class WebSocketTransport(RealtimeTransport):
    """Transport over a single duplex WebSocket connection."""

    transport_kind = TransportKind.WEBSOCKET
    default_url = "wss://api.openai.com/v1/realtime"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._ws: Any = None  # websockets.asyncio.client.ClientConnection
        self._reader_task: asyncio.Task[None] | None = None

    def _headers(self) -> dict[str, str]:
        if self.api_key is None:
            return {}
        return {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

    async def connect(
        self,
        model: str | RealtimeModel = DEFAULT_MODEL,
        session_config: SessionConfig | None = None,
        get_microphone: MicrophoneCallback | None = None,
    ) -> bool:
        """Open the socket to ``<url>?model=<model>``.

        ``session_config`` and ``get_microphone`` are accepted for interface
        parity and ignored: socket sessions are configured with a
        ``session.update`` event after connecting.
        """
        if not await super().connect(model, session_config, get_microphone):
            return False
        uri = f"{self.url}?model={model_name(model)}"
        self._log(logging.INFO, f'connect(model="{model_name(model)}", session_config={session_config})')
        generation = self._generation

        try:
            ws = await websockets.connect(uri, additional_headers=self._headers())
        except Exception as e:
            self._log(logging.ERROR, f'Could not connect to "{uri}"; e={e}')
            if not self._superseded(generation):
                await self.disconnect()
            return False

        if self._superseded(generation):
            self._log(logging.INFO, f'connect to "{uri}" aborted by disconnect()')
            await ws.close(code=CloseCode.NORMAL_CLOSURE)
            return False

        self._ws = ws
        self._log(logging.DEBUG, f'Connected to "{uri}"')
        self.notify_connection_state(ConnectionState.CONNECTED)

        self._reader_task = asyncio.create_task(self._read_loop(ws, uri))

        self._log(logging.DEBUG, f'Opened data channel to "{uri}"')
        self.notify_connection_state(ConnectionState.DATA_CHANNEL_OPENED)
        return True

    async def _read_loop(self, ws: Any, uri: str) -> None:
        """Publish inbound frames until the socket closes."""
        try:
            async for data in ws:
                if isinstance(data, bytes):
                    data = data.decode("utf-8")
                self.notify_text_message(data)
        except ConnectionClosedOK:
            pass
        except Exception as e:
            self._log(logging.ERROR, f'Error; disconnecting from "{uri}": {e}')
            self.notify_error(e)
        else:
            self._log(logging.DEBUG, f'Disconnected from "{uri}"')

        # Only tear down if this socket is still the current one
        if ws is self._ws:
            await self.disconnect()

    async def disconnect(self) -> None:
        """Close the socket with a normal-closure code. Safe to repeat."""
        self._log(logging.INFO, "disconnect()")
        ws, self._ws = self._ws, None
        reader, self._reader_task = self._reader_task, None

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

        if ws is not None:
            try:
                await ws.close(code=CloseCode.NORMAL_CLOSURE)
            except Exception as e:
                self._log(logging.WARNING, f"Error closing socket: {e}")

        await super().disconnect()

    async def send(self, data: Any) -> bool:
        """Write ``data`` as a JSON text frame if the channel is open."""
        if not await super().send(data) or self._ws is None:
            return False
        await self._ws.send(json.dumps(data))
        return True
