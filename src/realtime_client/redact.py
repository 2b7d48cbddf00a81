"""Redaction of base64 audio payloads for debug logs."""

from __future__ import annotations

from typing import Any

AUDIO_DELTA_TYPE = "response.audio.delta"

_KEEP = 10


def truncate(value: str) -> str:
    """Keep the first and last 10 characters of a string of 20 or more."""
    if len(value) < 2 * _KEEP:
        return value
    return f"{value[:_KEEP]}...{value[-_KEEP:]}"


def redact_audio(value: Any) -> Any:
    """Return a deep copy of a JSON tree with audio payloads shortened.

    Replaced: any string under an ``audio`` key, and a string ``delta``
    inside an object whose ``type`` is ``response.audio.delta``. The input
    is never modified.
    """
    if isinstance(value, dict):
        redacted: dict[Any, Any] = {}
        for key, item in value.items():
            is_audio = key == "audio" or (key == "delta" and value.get("type") == AUDIO_DELTA_TYPE)
            if is_audio and isinstance(item, str):
                redacted[key] = truncate(item)
            else:
                redacted[key] = redact_audio(item)
        return redacted
    if isinstance(value, list | tuple):
        return [redact_audio(item) for item in value]
    return value
