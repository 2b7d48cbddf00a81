"""WebRTC transport.

Connection flow:
1. POST <url>/sessions with the API key -> ephemeral token (client_secret.value)
2. Create a peer connection (no ICE servers: the remote end is a server)
3. Attach microphone tracks, if a microphone callback was given
4. Create the "oai-events" data channel, then the SDP offer
5. POST the offer to <url>?model=<model> with the ephemeral token -> SDP answer
6. Apply the answer: state -> connected
7. The data channel opens later: state -> data_channel_opened

Any failure in 1-6 tears the attempt down and makes connect() return False.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from aiortc import (
    MediaStreamTrack,
    RTCConfiguration,
    RTCPeerConnection,
    RTCSessionDescription,
)

from ..http import DEFAULT_TIMEOUT, create_http_client
from ..utils import DEFAULT_MODEL, RealtimeModel, is_successful, model_name
from .base import (
    ConnectionState,
    MicrophoneCallback,
    RealtimeTransport,
    SessionConfig,
    TransportKind,
    session_config_to_dict,
)

logger = logging.getLogger(__name__)

DATA_CHANNEL_LABEL = "oai-events"


class SignalingError(Exception):
    """Ephemeral token exchange or SDP negotiation failed."""


def _local_tracks(source: Any) -> list[MediaStreamTrack]:
    """Extract audio tracks from a microphone source.

    Accepts a single track, a player-like object with an ``audio`` track
    (e.g. aiortc's MediaPlayer), or an iterable of tracks.
    """
    if source is None:
        return []
    if isinstance(source, MediaStreamTrack):
        return [source]
    if hasattr(source, "audio"):
        return [source.audio] if source.audio is not None else []
    return list(source)


class WebRTCTransport(RealtimeTransport):
    """Transport over a WebRTC peer connection and its data channel."""

    transport_kind = TransportKind.WEBRTC
    default_url = "https://api.openai.com/v1/realtime"

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        *,
        dangerously_allow_api_key_in_browser: bool = False,
        debug: bool = False,
        http_client: httpx.AsyncClient | None = None,
        debug_http: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(
            url,
            api_key,
            dangerously_allow_api_key_in_browser=dangerously_allow_api_key_in_browser,
            debug=debug,
        )
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._debug_http = debug_http
        self._timeout = timeout
        self._peer_connection: RTCPeerConnection | None = None
        self._data_channel: Any = None  # aiortc.RTCDataChannel

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The signaling client, created on first use if none was injected."""
        if self._http_client is None:
            self._http_client = create_http_client(debug=self._debug_http, timeout=self._timeout)
        return self._http_client

    async def connect(
        self,
        model: str | RealtimeModel = DEFAULT_MODEL,
        session_config: SessionConfig | None = None,
        get_microphone: MicrophoneCallback | None = None,
    ) -> bool:
        """Connect to the realtime API over WebRTC.

        Args:
            model: Model to use
            session_config: Sent with the ephemeral token request
            get_microphone: Returns the local audio source to stream

        Returns:
            True once the answer is applied; False if any step failed
        """
        if not await super().connect(model, session_config, get_microphone):
            return False
        name = model_name(model)
        self._log(logging.INFO, f'connect(model="{name}", session_config={session_config})')
        generation = self._generation

        try:
            if self.api_key is None:
                raise SignalingError("An API key is required to request an ephemeral token")
            token = await self._request_ephemeral_token(
                self.api_key,
                {"model": name, **session_config_to_dict(session_config)},
            )
            self._raise_if_superseded(generation)
            await self._negotiate(token, name, get_microphone, generation)
            return True
        except Exception as e:
            self._log(logging.ERROR, f"connect: error: {e}")
            # A superseding disconnect() has already closed what this attempt built
            if not self._superseded(generation):
                await self.disconnect()
            return False

    async def _request_ephemeral_token(self, api_key: str, body: dict[str, Any]) -> str:
        response = await self.http_client.post(
            f"{self.url}/sessions",
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json=body,
        )
        try:
            value = response.json()["client_secret"]["value"]
        except (ValueError, KeyError, TypeError) as e:
            raise SignalingError(
                f"No client_secret.value in session response (status {response.status_code})"
            ) from e
        if not isinstance(value, str) or not value:
            raise SignalingError("client_secret.value is not a non-empty string")
        return value

    async def _negotiate(
        self,
        token: str,
        model: str,
        get_microphone: MicrophoneCallback | None,
        generation: int,
    ) -> None:
        self._log(logging.DEBUG, "negotiate(...)")
        pc = RTCPeerConnection(configuration=RTCConfiguration(iceServers=[]))
        self._peer_connection = pc

        @pc.on("connectionstatechange")
        async def on_connection_state_change() -> None:
            if pc is not self._peer_connection:
                return
            self._log(logging.DEBUG, f"peer connection: {pc.connectionState}")
            if pc.connectionState == "failed":
                self.notify_error(ConnectionError("Peer connection failed"))
                await self.disconnect()

        sending_audio = False
        if get_microphone is not None:
            source = await get_microphone()
            self._raise_if_superseded(generation)
            for track in _local_tracks(source):
                pc.addTrack(track)
                sending_audio = sending_audio or track.kind == "audio"
        if not sending_audio:
            pc.addTransceiver("audio", direction="recvonly")

        channel = pc.createDataChannel(DATA_CHANNEL_LABEL)
        self._data_channel = channel
        self._bind_data_channel(channel)

        offer = await pc.createOffer()
        await pc.setLocalDescription(offer)
        self._raise_if_superseded(generation)
        local = pc.localDescription
        self._log(logging.DEBUG, f'Created offer "{local.sdp if local else offer.sdp}"')

        answer_sdp = await self._send_sdp_to_server(model, token, local.sdp if local else offer.sdp)
        self._log(logging.DEBUG, f'Got answer "{answer_sdp}"')
        self._raise_if_superseded(generation)
        await pc.setRemoteDescription(RTCSessionDescription(sdp=answer_sdp, type="answer"))
        self._raise_if_superseded(generation)

        self._log(logging.INFO, "Connected!")
        # The data channel may already have opened; never step back from it
        if self.connection_state == ConnectionState.CONNECTING:
            self.notify_connection_state(ConnectionState.CONNECTED)

    async def _send_sdp_to_server(self, model: str, token: str, offer_sdp: str | None) -> str:
        if not offer_sdp:
            raise SignalingError("Offer SDP is empty and cannot be used")

        # Exactly "application/sdp" is accepted; a bytes body carries no charset parameter
        response = await self.http_client.post(
            f"{self.url}?model={model}",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/sdp",
            },
            content=offer_sdp.encode("utf-8"),
        )

        if not is_successful(response.status_code):
            self._log(
                logging.ERROR,
                f"Failed to get remote SDP answer; status_code={response.status_code}; "
                f"body={response.text}",
            )
            raise SignalingError("Remote SDP negotiation failed")

        if not response.text:
            raise SignalingError("Received empty answer SDP")
        return response.text

    def _bind_data_channel(self, channel: Any) -> None:
        @channel.on("open")
        def on_open() -> None:
            if channel is not self._data_channel:
                return
            self._log(logging.DEBUG, "data channel: open")
            self.notify_connection_state(ConnectionState.DATA_CHANNEL_OPENED)

        @channel.on("close")
        async def on_close() -> None:
            if channel is not self._data_channel:
                return
            self._log(logging.DEBUG, "data channel: closed")
            await self.disconnect()

        @channel.on("message")
        def on_message(message: str | bytes) -> None:
            if isinstance(message, bytes):
                self.notify_binary_message(message)
            else:
                self.notify_text_message(message)

    def _raise_if_superseded(self, generation: int) -> None:
        if self._superseded(generation):
            raise SignalingError("Connection attempt aborted by disconnect()")

    async def disconnect(self) -> None:
        """Close the data channel, then the peer connection. Safe to repeat."""
        self._log(logging.INFO, "disconnect()")
        channel, self._data_channel = self._data_channel, None
        pc, self._peer_connection = self._peer_connection, None
        if channel is not None:
            channel.close()
        if pc is not None:
            await pc.close()
        await super().disconnect()

    async def send(self, data: Any) -> bool:
        """Write ``data`` as JSON text on the data channel if it is open."""
        if not await super().send(data) or self._data_channel is None:
            return False
        self._data_channel.send(json.dumps(data))
        return True

    async def dispose(self) -> None:
        await super().dispose()
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
