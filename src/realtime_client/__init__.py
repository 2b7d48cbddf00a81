"""Realtime Client - event-based sessions with the OpenAI Realtime API.

Provides two interchangeable transports:
- websocket: one persistent duplex socket (default)
- webrtc: SDP-negotiated peer connection with an event data channel

RealtimeAPI wraps either transport and exposes the session as a typed
pub/sub event bus.
"""

from .api import RealtimeAPI
from .bus import EventBus, EventHandler
from .config import RealtimeConfig
from .events import RealtimeEvent, RealtimeEventType
from .redact import redact_audio
from .streams import Broadcast, Subscription
from .transport import (
    DEFAULT_TRANSPORT,
    ConnectionState,
    MockTransport,
    RealtimeTransport,
    SignalingError,
    TransportKind,
    WebRTCTransport,
    WebSocketTransport,
    create_transport,
    create_webrtc_transport,
    create_websocket_transport,
)
from .utils import DEFAULT_MODEL, RealtimeModel, generate_id

__all__ = [
    # Client
    "RealtimeAPI",
    "RealtimeConfig",
    # Events
    "EventBus",
    "EventHandler",
    "RealtimeEvent",
    "RealtimeEventType",
    "redact_audio",
    # Streams
    "Broadcast",
    "Subscription",
    # Transports
    "ConnectionState",
    "DEFAULT_TRANSPORT",
    "MockTransport",
    "RealtimeTransport",
    "SignalingError",
    "TransportKind",
    "WebRTCTransport",
    "WebSocketTransport",
    "create_transport",
    "create_webrtc_transport",
    "create_websocket_transport",
    # Utilities
    "DEFAULT_MODEL",
    "RealtimeModel",
    "generate_id",
]
