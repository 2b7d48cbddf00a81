"""Client configuration with environment-variable fallbacks."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .http import DEFAULT_TIMEOUT
from .transport.base import TransportKind
from .transport.factory import DEFAULT_TRANSPORT


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes")


@dataclass
class RealtimeConfig:
    """Settings for a RealtimeAPI client.

    Environment variables (see ``from_env``):
    - OPENAI_API_KEY: API key
    - OPENAI_REALTIME_URL: endpoint override
    - OPENAI_REALTIME_TRANSPORT: "websocket" | "webrtc"
    - OPENAI_REALTIME_DEBUG: "1" / "true" / "yes" enables diagnostic logging
    - OPENAI_REALTIME_DEBUG_HTTP: same, for signaling HTTP traffic
    """

    transport_kind: TransportKind = DEFAULT_TRANSPORT
    url: str | None = None  # None: the transport's default URL
    api_key: str | None = None
    dangerously_allow_api_key_in_browser: bool = False
    debug: bool = False
    debug_http: bool = False
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> RealtimeConfig:
        """Build a config from the environment.

        Raises:
            ValueError: If OPENAI_REALTIME_TRANSPORT names an unknown transport
        """
        transport = os.getenv("OPENAI_REALTIME_TRANSPORT")
        try:
            kind = TransportKind(transport.lower()) if transport else DEFAULT_TRANSPORT
        except ValueError as e:
            raise ValueError(
                f"Unknown transport {transport!r}; expected one of "
                f"{', '.join(k.value for k in TransportKind)}"
            ) from e

        return cls(
            transport_kind=kind,
            url=os.getenv("OPENAI_REALTIME_URL") or None,
            api_key=os.getenv("OPENAI_API_KEY") or None,
            debug=_env_flag("OPENAI_REALTIME_DEBUG"),
            debug_http=_env_flag("OPENAI_REALTIME_DEBUG_HTTP"),
        )
