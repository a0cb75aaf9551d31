"""WebSocket endpoint for real-time canvas collaboration.

Auth:
    ``Authorization: Bearer <token>`` header, or ``?token=<token>`` for browser
    clients that cannot set headers. Connections without a valid token are
    closed with 1008 (policy violation) before being accepted.

Frames are JSON objects ``{"event": ..., "data": {...}}``:
    inbound:  join-room, edit, cursor-move
    outbound: connected, room-joined, document-updated, cursor-moved,
              user-left, error

Errors caused by one frame (bad payload, missing canvas, no write access) are
reported to the sender only and leave the connection open. Binary frames get
the same ``invalid_event`` error as malformed text frames.
"""

from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from canvas_api.core.errors import (
    AppError,
    AuthenticationAppError,
    DependencyAppError,
    SessionClosedAppError,
)
from canvas_api.core.logging import clear_request_id, set_identity, set_request_id
from canvas_api.core.resources import Resources
from canvas_api.schemas.events import (
    PAYLOAD_MODELS,
    EventFrame,
    InboundEvent,
    OutboundEvent,
    frame,
)
from canvas_api.services.room_service import RoomCoordinator
from canvas_api.services.session_gateway import Session, SessionGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


async def handle_frame(rooms: RoomCoordinator, session: Session, raw: str) -> None:
    """Parse one inbound frame and run it against the room coordinator."""
    document_id: str | None = None
    try:
        envelope = EventFrame.model_validate_json(raw)
        payload = PAYLOAD_MODELS[envelope.event].model_validate(envelope.data)
        document_id = payload.document_id

        if envelope.event is InboundEvent.JOIN_ROOM:
            rooms.join(session, document_id)
            await session.send(
                frame(
                    OutboundEvent.ROOM_JOINED,
                    documentId=document_id,
                    members=len(rooms.members(document_id)),
                )
            )
        elif envelope.event is InboundEvent.EDIT:
            await rooms.apply_edit(session, document_id, payload.content)
        else:
            await rooms.move_cursor(session, document_id, payload.position)

    except ValidationError as exc:
        logger.info("ws.invalid_event", extra={"error_count": exc.error_count()})
        await session.send(
            frame(OutboundEvent.ERROR, code="invalid_event", message="Malformed event frame.")
        )
    except (AuthenticationAppError, SessionClosedAppError):
        raise
    except DependencyAppError as exc:
        logger.error("ws.dependency_failed", extra={"error_code": exc.code, "document_id": document_id})
        await session.send(
            frame(
                OutboundEvent.ERROR,
                code="internal_error",
                message="The operation could not be completed. Please retry.",
                documentId=document_id,
            )
        )
    except AppError as exc:
        await session.send(
            frame(OutboundEvent.ERROR, code=exc.code, message=exc.message, documentId=document_id)
        )


@router.websocket("/ws")
async def collaboration_socket(websocket: WebSocket) -> None:
    resources: Resources = websocket.app.state.resources
    rooms = resources.rooms
    session = Session(websocket)
    set_request_id(session.session_id)

    try:
        identity = await resources.gateway.authenticate_session(
            session, websocket.headers, websocket.query_params
        )
    except AuthenticationAppError as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        clear_request_id()
        return

    await websocket.accept()
    try:
        SessionGateway.require_identity(session)
    except AuthenticationAppError as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        clear_request_id()
        return

    set_identity(identity)
    logger.info("ws.connected", extra={"session_id": session.session_id})
    await session.send(
        frame(OutboundEvent.CONNECTED, sessionId=session.session_id, identity=identity)
    )

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            raw = message.get("text")
            if raw is None:
                logger.info("ws.binary_frame", extra={"session_id": session.session_id})
                await session.send(
                    frame(
                        OutboundEvent.ERROR,
                        code="invalid_event",
                        message="Binary frames are not supported.",
                    )
                )
                continue

            try:
                await handle_frame(rooms, session, raw)
            except (WebSocketDisconnect, AuthenticationAppError, SessionClosedAppError):
                raise
            except Exception:
                logger.exception("ws.event_failed", extra={"session_id": session.session_id})
                await session.send(
                    frame(
                        OutboundEvent.ERROR,
                        code="internal_error",
                        message="An unexpected error occurred.",
                    )
                )
    except WebSocketDisconnect as exc:
        logger.info("ws.disconnected", extra={"session_id": session.session_id, "close_code": exc.code})
    except SessionClosedAppError:
        # The transport already failed during a broadcast; nothing left to close.
        logger.info("ws.session_closed", extra={"session_id": session.session_id})
    except AuthenticationAppError as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
    finally:
        # Peers must still get user-left when this handler is being cancelled.
        with anyio.CancelScope(shield=True):
            await rooms.leave(session)
        session.mark_disconnected()
        set_identity(None)
        clear_request_id()
