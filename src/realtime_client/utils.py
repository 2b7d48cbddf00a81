"""Shared helpers: event ids, model names, HTTP status classes."""

from __future__ import annotations

import secrets
import sys
from enum import Enum

# Digits and letters without the visually ambiguous 0, O, I and l
ID_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


class RealtimeModel(str, Enum):
    """Realtime-capable models."""

    GPT_4O_REALTIME_PREVIEW = "gpt-4o-realtime-preview"
    GPT_4O_MINI_REALTIME_PREVIEW = "gpt-4o-mini-realtime-preview"


DEFAULT_MODEL = RealtimeModel.GPT_4O_MINI_REALTIME_PREVIEW


def model_name(model: str | RealtimeModel) -> str:
    """Return the wire name of a model given as enum member or plain string."""
    if isinstance(model, RealtimeModel):
        return model.value
    return model


def generate_id(prefix: str = "evt_", length: int = 21) -> str:
    """Generate a random identifier such as ``evt_x7Kq...``.

    Args:
        prefix: Literal prefix
        length: Total length, prefix included

    Raises:
        ValueError: If length leaves no room after the prefix
    """
    if length <= len(prefix):
        raise ValueError(f"length ({length}) must exceed prefix length ({len(prefix)})")
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(length - len(prefix)))
    return f"{prefix}{suffix}"


def is_browser() -> bool:
    """True when running inside a browser (Pyodide/Emscripten)."""
    return sys.platform == "emscripten"


def is_informational(status_code: int) -> bool:
    return 100 <= status_code <= 199


def is_successful(status_code: int) -> bool:
    return 200 <= status_code <= 299


def is_redirection(status_code: int) -> bool:
    return 300 <= status_code <= 399


def is_client_error(status_code: int) -> bool:
    return 400 <= status_code <= 499


def is_server_error(status_code: int) -> bool:
    return 500 <= status_code <= 999
