"""Factory functions for transports."""

from __future__ import annotations

import httpx

from ..http import DEFAULT_TIMEOUT
from .base import RealtimeTransport, TransportKind
from .webrtc import WebRTCTransport
from .websocket import WebSocketTransport

DEFAULT_TRANSPORT = TransportKind.WEBSOCKET


def create_websocket_transport(
    url: str | None = None,
    api_key: str | None = None,
    dangerously_allow_api_key_in_browser: bool = False,
    debug: bool = False,
) -> WebSocketTransport:
    """Create a WebSocket transport.

    Args:
        url: Endpoint (default: wss://api.openai.com/v1/realtime)
        api_key: API key sent with the handshake
        dangerously_allow_api_key_in_browser: Permit an API key under Pyodide
        debug: Enable diagnostic logging
    """
    return WebSocketTransport(
        url,
        api_key,
        dangerously_allow_api_key_in_browser=dangerously_allow_api_key_in_browser,
        debug=debug,
    )


def create_webrtc_transport(
    url: str | None = None,
    api_key: str | None = None,
    dangerously_allow_api_key_in_browser: bool = False,
    debug: bool = False,
    http_client: httpx.AsyncClient | None = None,
    debug_http: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
) -> WebRTCTransport:
    """Create a WebRTC transport.

    Args:
        url: Endpoint (default: https://api.openai.com/v1/realtime)
        api_key: API key used to request the ephemeral token
        dangerously_allow_api_key_in_browser: Permit an API key under Pyodide
        debug: Enable diagnostic logging
        http_client: Signaling client; one is created if omitted
        debug_http: Log signaling requests and responses (API key masked)
        timeout: Signaling request timeout in seconds
    """
    return WebRTCTransport(
        url,
        api_key,
        dangerously_allow_api_key_in_browser=dangerously_allow_api_key_in_browser,
        debug=debug,
        http_client=http_client,
        debug_http=debug_http,
        timeout=timeout,
    )


def create_transport(
    kind: TransportKind | str = DEFAULT_TRANSPORT,
    url: str | None = None,
    api_key: str | None = None,
    dangerously_allow_api_key_in_browser: bool = False,
    debug: bool = False,
    http_client: httpx.AsyncClient | None = None,
    debug_http: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
) -> RealtimeTransport:
    """Create the transport for ``kind``.

    Raises:
        ValueError: If ``kind`` is unknown, or an API key is given in a
            browser without the override
    """
    kind = TransportKind(kind)
    if kind == TransportKind.WEBRTC:
        return create_webrtc_transport(
            url,
            api_key,
            dangerously_allow_api_key_in_browser,
            debug,
            http_client=http_client,
            debug_http=debug_http,
            timeout=timeout,
        )
    return create_websocket_transport(url, api_key, dangerously_allow_api_key_in_browser, debug)
