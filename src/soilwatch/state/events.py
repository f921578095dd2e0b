"""Normalized streaming events.

The Realtime Database REST streaming API emits server-sent events whose
``data`` is JSON.  Every frame is converted into a :class:`StreamEvent`
before it touches the local tree.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from soilwatch.exceptions import SoilwatchDataShapeError


class StreamEventType(StrEnum):
    PUT = "put"
    PATCH = "patch"
    KEEP_ALIVE = "keep-alive"
    CANCEL = "cancel"
    AUTH_REVOKED = "auth_revoked"


class StreamEvent(BaseModel):
    """A decoded stream frame."""

    model_config = ConfigDict(frozen=True)

    type: StreamEventType
    path: str = Field(default="/", description="Path relative to the subscribed location")
    data: Any = None

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        stripped = value.strip().strip("/")
        return f"/{stripped}" if stripped else "/"

    @property
    def terminal(self) -> bool:
        return self.type in (StreamEventType.CANCEL, StreamEventType.AUTH_REVOKED)


def decode_stream_event(event: str, data: str) -> StreamEvent | None:
    """Build a :class:`StreamEvent` from an SSE ``event``/``data`` pair.

    Unknown event names return ``None`` so callers can ignore them.

    Raises
    ------
    SoilwatchDataShapeError
        If a put/patch frame does not carry ``{"path": ..., "data": ...}``.
    """
    try:
        event_type = StreamEventType(event.strip())
    except ValueError:
        return None

    if event_type not in (StreamEventType.PUT, StreamEventType.PATCH):
        # keep-alive carries null; cancel/auth_revoked carry a reason string.
        return StreamEvent(type=event_type, data=_loads_lenient(data))

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as exc:
        raise SoilwatchDataShapeError(f"{event_type} frame is not JSON: {data[:64]}") from exc
    if not isinstance(payload, dict) or "path" not in payload:
        raise SoilwatchDataShapeError(f"{event_type} frame missing path")
    return StreamEvent(type=event_type, path=str(payload["path"]), data=payload.get("data"))


def _loads_lenient(data: str) -> Any:
    if not data.strip():
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return data
