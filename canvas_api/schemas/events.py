"""Real-time event frames exchanged over the collaboration socket.

Every frame is a JSON object ``{"event": <name>, "data": {...}}``. Inbound
payload field names follow the web client's camelCase convention.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InboundEvent(str, Enum):
    JOIN_ROOM = "join-room"
    EDIT = "edit"
    CURSOR_MOVE = "cursor-move"


class OutboundEvent(str, Enum):
    CONNECTED = "connected"
    ROOM_JOINED = "room-joined"
    DOCUMENT_UPDATED = "document-updated"
    CURSOR_MOVED = "cursor-moved"
    USER_LEFT = "user-left"
    ERROR = "error"


class EventFrame(BaseModel):
    """Envelope of an inbound frame."""

    event: InboundEvent
    data: dict[str, Any] = Field(default_factory=dict)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(..., min_length=1, alias="documentId")


class JoinRoomPayload(_Payload):
    pass


class EditPayload(_Payload):
    content: str


class CursorMovePayload(_Payload):
    position: Any = None


PAYLOAD_MODELS: dict[InboundEvent, type[_Payload]] = {
    InboundEvent.JOIN_ROOM: JoinRoomPayload,
    InboundEvent.EDIT: EditPayload,
    InboundEvent.CURSOR_MOVE: CursorMovePayload,
}


def frame(event: OutboundEvent, **data: Any) -> dict[str, Any]:
    """Build an outbound frame."""
    return {"event": event.value, "data": data}
