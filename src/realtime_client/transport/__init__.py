"""Transport abstraction layer.

Two interchangeable transports carry realtime events:
- WebSocket - one persistent duplex socket, JSON text frames
- WebRTC - SDP-negotiated peer connection with an "oai-events" data channel

Both publish connection state, errors, binary and text messages on
independent broadcast streams, so the API client never depends on the
underlying network primitive.
"""

from .base import (
    ConnectionState,
    MicrophoneCallback,
    RealtimeTransport,
    SessionConfig,
    TransportKind,
    session_config_to_dict,
)
from .factory import (
    DEFAULT_TRANSPORT,
    create_transport,
    create_webrtc_transport,
    create_websocket_transport,
)
from .mock import MockTransport
from .webrtc import DATA_CHANNEL_LABEL, SignalingError, WebRTCTransport
from .websocket import WebSocketTransport

__all__ = [
    # Base abstractions
    "ConnectionState",
    "MicrophoneCallback",
    "RealtimeTransport",
    "SessionConfig",
    "TransportKind",
    "session_config_to_dict",
    # Implementations
    "WebSocketTransport",
    "WebRTCTransport",
    "MockTransport",
    "DATA_CHANNEL_LABEL",
    "SignalingError",
    # Factory functions
    "DEFAULT_TRANSPORT",
    "create_transport",
    "create_webrtc_transport",
    "create_websocket_transport",
]
