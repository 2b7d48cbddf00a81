"""Realtime event envelope.

Every message exchanged once the channel is open is a JSON object with a
``type`` discriminator and an ``event_id``. The remaining fields depend on
the event type; they are kept verbatim as extra model fields, so unknown or
newer event types round-trip without loss.

Example (client event):
    {
        "event_id": "evt_7Hk2mQ9pLx3Vb8NcR4t",
        "type": "session.update",
        "session": {"voice": "alloy", "modalities": ["text", "audio"]}
    }

Example (server event):
    {
        "event_id": "event_123",
        "type": "response.audio.delta",
        "response_id": "resp_001",
        "delta": "UklGRiQAAABXQVZF..."
    }
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class RealtimeEventType(str, Enum):
    """Routing keys and common event types."""

    # Wildcard routing keys
    ALL = "all"
    CLIENT_ALL = "client.*"
    SERVER_ALL = "server.*"

    # Client events
    SESSION_UPDATE = "session.update"
    INPUT_AUDIO_BUFFER_APPEND = "input_audio_buffer.append"
    INPUT_AUDIO_BUFFER_COMMIT = "input_audio_buffer.commit"
    INPUT_AUDIO_BUFFER_CLEAR = "input_audio_buffer.clear"
    CONVERSATION_ITEM_CREATE = "conversation.item.create"
    CONVERSATION_ITEM_TRUNCATE = "conversation.item.truncate"
    CONVERSATION_ITEM_DELETE = "conversation.item.delete"
    RESPONSE_CREATE = "response.create"
    RESPONSE_CANCEL = "response.cancel"

    # Server events
    ERROR = "error"
    SESSION_CREATED = "session.created"
    SESSION_UPDATED = "session.updated"
    CONVERSATION_ITEM_CREATED = "conversation.item.created"
    RESPONSE_CREATED = "response.created"
    RESPONSE_AUDIO_DELTA = "response.audio.delta"
    RESPONSE_AUDIO_TRANSCRIPT_DELTA = "response.audio_transcript.delta"
    RESPONSE_TEXT_DELTA = "response.text.delta"
    RESPONSE_DONE = "response.done"


class RealtimeEvent(BaseModel):
    """A single event on the wire, in either direction."""

    model_config = ConfigDict(extra="allow")

    type: str
    event_id: str | None = None

    @classmethod
    def create(cls, event_type: str | RealtimeEventType, **fields: Any) -> RealtimeEvent:
        """Factory method for creating events."""
        return cls(
            type=event_type.value if isinstance(event_type, RealtimeEventType) else event_type,
            **fields,
        )

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> RealtimeEvent:
        """Decode a JSON object into an event.

        Raises:
            ValueError: If the data is not an object
            pydantic.ValidationError: If ``type`` is missing or not a string
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Event must be a JSON object, got {type(data).__name__}")
        return cls.model_validate(dict(data))

    @classmethod
    def from_json(cls, text: str) -> RealtimeEvent:
        return cls.from_wire(json.loads(text))

    def to_wire(self) -> dict[str, Any]:
        """Encode as a JSON-ready dict (``event_id`` omitted while unset)."""
        data = self.model_dump(mode="json")
        if data.get("event_id") is None:
            data.pop("event_id", None)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_wire())

    def with_event_id(self, event_id: str) -> RealtimeEvent:
        """Return a copy carrying ``event_id``."""
        return self.model_copy(update={"event_id": event_id})
