"""In-memory transport for tests and offline development."""

from __future__ import annotations

import json
from typing import Any

from ..utils import DEFAULT_MODEL, RealtimeModel, model_name
from .base import (
    ConnectionState,
    MicrophoneCallback,
    RealtimeTransport,
    SessionConfig,
    TransportKind,
)


class MockTransport(RealtimeTransport):
    """Transport with no I/O.

    Records every payload sent and lets tests inject inbound messages.

    Usage:
        transport = MockTransport()
        api = RealtimeAPI(transport=transport)
        await api.connect()

        transport.inject_text_message('{"type": "session.created"}')
        await api.send({"type": "response.create"})

        assert transport.sent[0]["type"] == "response.create"
    """

    transport_kind = TransportKind.WEBSOCKET
    default_url = "mock://realtime"

    def __init__(self, *args: Any, fail_connect: bool = False, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fail_connect = fail_connect
        self.sent: list[Any] = []
        self.sent_frames: list[str] = []
        self.connect_calls: list[tuple[str, SessionConfig | None]] = []

    async def connect(
        self,
        model: str | RealtimeModel = DEFAULT_MODEL,
        session_config: SessionConfig | None = None,
        get_microphone: MicrophoneCallback | None = None,
    ) -> bool:
        if not await super().connect(model, session_config, get_microphone):
            return False
        self.connect_calls.append((model_name(model), session_config))
        if self.fail_connect:
            await self.disconnect()
            return False
        self.notify_connection_state(ConnectionState.CONNECTED)
        self.notify_connection_state(ConnectionState.DATA_CHANNEL_OPENED)
        return True

    async def send(self, data: Any) -> bool:
        if not await super().send(data):
            return False
        frame = json.dumps(data)
        self.sent.append(json.loads(frame))
        self.sent_frames.append(frame)
        return True

    def inject_text_message(self, message: str | dict[str, Any]) -> None:
        """Simulate an inbound text frame (dicts are JSON-encoded)."""
        if not isinstance(message, str):
            message = json.dumps(message)
        self.notify_text_message(message)

    def inject_binary_message(self, data: bytes) -> None:
        self.notify_binary_message(data)

    def clear(self) -> None:
        """Forget recorded traffic."""
        self.sent.clear()
        self.sent_frames.clear()
        self.connect_calls.clear()
