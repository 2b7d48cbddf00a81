"""HTTP client for WebRTC signaling.

The transport never reaches for a process-wide client: callers inject an
``httpx.AsyncClient`` (tests hand in one backed by an ASGI app) or the
transport builds its own with ``create_http_client``.
"""

from __future__ import annotations

import logging
import time

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_SENSITIVE_HEADERS = {"authorization"}


def _format_headers(headers: httpx.Headers) -> list[str]:
    lines = []
    for name, value in headers.items():
        if name.lower() in _SENSITIVE_HEADERS:
            value = f"{value[:len('Bearer ')]}***"
        lines.append(f"{name}: {value}")
    return lines


async def log_request(request: httpx.Request) -> None:
    """Request hook: log method, URL, headers and body size."""
    request.extensions["realtime_started_at"] = time.monotonic()
    logger.info(f"--> {request.method} {request.url}")
    for line in _format_headers(request.headers):
        logger.info(line)
    try:
        length = len(request.content)
    except httpx.RequestNotRead:
        length = 0
    logger.info(f"--> END {request.method} ({length}-byte body)")


async def log_response(response: httpx.Response) -> None:
    """Response hook: log status, elapsed time, headers and body."""
    started_at = response.request.extensions.get("realtime_started_at")
    elapsed_ms = int((time.monotonic() - started_at) * 1000) if started_at else 0
    await response.aread()
    logger.info(f"<-- {response.status_code} {response.request.url} ({elapsed_ms}ms)")
    for line in _format_headers(response.headers):
        logger.info(line)
    for line in response.text.splitlines():
        logger.info(line)
    logger.info(f"<-- END HTTP ({len(response.content)}-byte body)")


def create_http_client(debug: bool = False, timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Create the signaling client.

    Args:
        debug: Log every request and response (API keys are masked)
        timeout: Request timeout in seconds
    """
    event_hooks = {"request": [log_request], "response": [log_response]} if debug else None
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout), event_hooks=event_hooks)
