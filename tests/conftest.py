"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from aiortc import RTCSessionDescription
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from realtime_client.transport import MockTransport

OFFER_SDP = "v=0\r\no=- 1 1 IN IP4 0.0.0.0\r\ns=-\r\nt=0 0\r\nm=audio 9 UDP/TLS/RTP/SAVPF 111\r\n"
ANSWER_SDP = "v=0\r\no=- 2 2 IN IP4 0.0.0.0\r\ns=-\r\nt=0 0\r\nm=audio 9 UDP/TLS/RTP/SAVPF 111\r\n"
SIGNALING_URL = "http://testserver/v1/realtime"


# =============================================================================
# Event recording
# =============================================================================


class EventRecorder:
    """Bus handler that records payloads and lets tests wait for them."""

    def __init__(self) -> None:
        self.events: list[Any] = []
        self._changed = asyncio.Event()

    def __call__(self, payload: Any) -> None:
        self.events.append(payload)
        self._changed.set()

    async def wait_for(self, count: int, timeout: float = 1.0) -> list[Any]:
        async def wait() -> None:
            while len(self.events) < count:
                self._changed.clear()
                await self._changed.wait()

        await asyncio.wait_for(wait(), timeout)
        return self.events


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport(api_key="sk-test")


# =============================================================================
# Fake signaling server (served in-process through httpx.ASGITransport)
# =============================================================================


class SignalingServer:
    """Records signaling requests and answers with canned responses."""

    def __init__(
        self,
        session_response: Any = None,
        answer_status: int = 201,
        answer_body: str = ANSWER_SDP,
    ) -> None:
        self.session_response = (
            session_response
            if session_response is not None
            else {"id": "sess_001", "client_secret": {"value": "ek_ephemeral", "expires_at": 0}}
        )
        self.answer_status = answer_status
        self.answer_body = answer_body
        self.session_requests: list[dict[str, Any]] = []
        self.offer_requests: list[dict[str, Any]] = []

    async def sessions(self, request: Request) -> Response:
        self.session_requests.append(
            {"headers": dict(request.headers), "json": await request.json()}
        )
        return JSONResponse(self.session_response)

    async def offer(self, request: Request) -> Response:
        self.offer_requests.append(
            {
                "headers": dict(request.headers),
                "query": dict(request.query_params),
                "body": await request.body(),
            }
        )
        return Response(self.answer_body, status_code=self.answer_status, media_type="application/sdp")

    def app(self) -> Starlette:
        return Starlette(
            routes=[
                Route("/v1/realtime/sessions", self.sessions, methods=["POST"]),
                Route("/v1/realtime", self.offer, methods=["POST"]),
            ]
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=self.app()))


@pytest.fixture
def signaling_server() -> SignalingServer:
    return SignalingServer()


# =============================================================================
# Fake aiortc peer connection
# =============================================================================


class FakeEmitter:
    """Minimal stand-in for the pyee emitter aiortc objects inherit."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable[..., Any]]] = {}

    def on(self, name: str, handler: Callable[..., Any] | None = None) -> Any:
        def register(fn: Callable[..., Any]) -> Callable[..., Any]:
            self._handlers.setdefault(name, []).append(fn)
            return fn

        return register(handler) if handler is not None else register

    async def fire(self, name: str, *args: Any) -> None:
        for handler in list(self._handlers.get(name, [])):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result


class FakeDataChannel(FakeEmitter):
    def __init__(self, label: str) -> None:
        super().__init__()
        self.label = label
        self.readyState = "connecting"
        self.sent: list[str | bytes] = []
        self.close_calls = 0

    def send(self, data: str | bytes) -> None:
        self.sent.append(data)

    def close(self) -> None:
        self.close_calls += 1
        self.readyState = "closed"


class FakePeerConnection(FakeEmitter):
    instances: list[FakePeerConnection] = []

    def __init__(self, configuration: Any = None) -> None:
        super().__init__()
        self.configuration = configuration
        self.tracks: list[Any] = []
        self.transceivers: list[tuple[str, str]] = []
        self.channels: list[FakeDataChannel] = []
        self.localDescription: RTCSessionDescription | None = None
        self.remoteDescription: RTCSessionDescription | None = None
        self.connectionState = "new"
        self.close_calls = 0
        self.offer_sdp = OFFER_SDP
        FakePeerConnection.instances.append(self)

    def addTrack(self, track: Any) -> None:
        self.tracks.append(track)

    def addTransceiver(self, kind: str, direction: str = "sendrecv") -> None:
        self.transceivers.append((kind, direction))

    def createDataChannel(self, label: str) -> FakeDataChannel:
        channel = FakeDataChannel(label)
        self.channels.append(channel)
        return channel

    async def createOffer(self) -> RTCSessionDescription:
        return RTCSessionDescription(sdp=self.offer_sdp, type="offer")

    async def setLocalDescription(self, description: RTCSessionDescription) -> None:
        self.localDescription = description

    async def setRemoteDescription(self, description: RTCSessionDescription) -> None:
        self.remoteDescription = description

    async def close(self) -> None:
        self.close_calls += 1
        self.connectionState = "closed"


@pytest.fixture
def fake_peer_connection(monkeypatch: pytest.MonkeyPatch) -> type[FakePeerConnection]:
    """Replace aiortc's RTCPeerConnection inside the WebRTC transport."""
    FakePeerConnection.instances = []
    monkeypatch.setattr(
        "realtime_client.transport.webrtc.RTCPeerConnection", FakePeerConnection
    )
    return FakePeerConnection
