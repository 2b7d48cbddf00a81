"""Unit tests for the signaling HTTP client and its logging hooks."""

from __future__ import annotations

import logging

import httpx
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from realtime_client.http import create_http_client, log_request, log_response


async def echo(request: Request) -> JSONResponse:
    return JSONResponse({"received": len(await request.body())}, status_code=201)


def logging_client() -> httpx.AsyncClient:
    app = Starlette(routes=[Route("/echo", echo, methods=["POST"])])
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        event_hooks={"request": [log_request], "response": [log_response]},
    )


class TestCreateHttpClient:
    @pytest.mark.asyncio
    async def test_debug_installs_hooks(self) -> None:
        async with create_http_client(debug=True) as client:
            assert client.event_hooks["request"] == [log_request]
            assert client.event_hooks["response"] == [log_response]

    @pytest.mark.asyncio
    async def test_quiet_by_default(self) -> None:
        async with create_http_client() as client:
            assert client.event_hooks["request"] == []
            assert client.event_hooks["response"] == []

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        async with create_http_client(timeout=5.0) as client:
            assert client.timeout.read == 5.0


class TestLoggingHooks:
    @pytest.mark.asyncio
    async def test_logs_exchange_and_masks_key(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="realtime_client.http")

        async with logging_client() as client:
            response = await client.post(
                "http://testserver/echo",
                headers={"Authorization": "Bearer sk-very-secret"},
                content=b"v=0\r\n",
            )

        assert response.status_code == 201
        assert response.json() == {"received": 5}
        assert "--> POST http://testserver/echo" in caplog.text
        assert "--> END POST (5-byte body)" in caplog.text
        assert "<-- 201 http://testserver/echo" in caplog.text
        assert '{"received":5}' in caplog.text
        assert "Bearer ***" in caplog.text
        assert "sk-very-secret" not in caplog.text
