"""Per-document collaboration rooms over authenticated sessions.

State lives in three index maps (room -> session ids, session -> room ids,
session id -> Session) rather than object references between rooms and
sessions, so cleanup on disconnect touches only the rooms a session joined.

Rooms are per process. Sessions for the same document connected to different
instances do not see each other's edits; a cross-process fan-out (e.g. Redis
pub/sub) would plug in at ``_broadcast``.

Designed for a single event loop: membership changes never await, so they are
atomic with respect to other connections.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from canvas_api.adapters.documents.base import AbstractDocumentStore
from canvas_api.core.errors import NotFoundAppError, PermissionAppError
from canvas_api.schemas.events import OutboundEvent, frame
from canvas_api.services.session_gateway import Session, SessionGateway

logger = logging.getLogger(__name__)


class RoomCoordinator:
    """Room membership, edit authorization and broadcast."""

    def __init__(self, documents: AbstractDocumentStore) -> None:
        self._documents = documents
        self._rooms: dict[str, set[str]] = {}
        self._memberships: dict[str, set[str]] = {}
        self._sessions: dict[str, Session] = {}

    # ---------- membership ----------

    def join(self, session: Session, document_id: str) -> bool:
        """Add ``session`` to the room of ``document_id``.

        No permission check: receiving updates needs only read visibility.

        Returns:
            True if the session was added, False if it was already a member.
        """
        SessionGateway.require_identity(session)

        members = self._rooms.setdefault(document_id, set())
        if session.session_id in members:
            return False

        members.add(session.session_id)
        self._memberships.setdefault(session.session_id, set()).add(document_id)
        self._sessions[session.session_id] = session
        logger.info(
            "room.joined",
            extra={
                "document_id": document_id,
                "session_id": session.session_id,
                "room_size": len(members),
            },
        )
        return True

    def _forget(self, session_id: str) -> set[str]:
        """Remove a session from every room; return the rooms it was in."""
        rooms = self._memberships.pop(session_id, set())
        self._sessions.pop(session_id, None)
        for document_id in rooms:
            members = self._rooms.get(document_id)
            if members is None:
                continue
            members.discard(session_id)
            if not members:
                del self._rooms[document_id]
        return rooms

    async def leave(self, session: Session) -> None:
        """Remove ``session`` from all rooms and tell the remaining members."""
        rooms = self._forget(session.session_id)
        if not rooms:
            return

        logger.info(
            "room.left",
            extra={"session_id": session.session_id, "rooms": sorted(rooms)},
        )
        for document_id in rooms:
            await self._broadcast(
                document_id,
                frame(OutboundEvent.USER_LEFT, documentId=document_id, identity=session.identity),
                exclude=session.session_id,
            )

    def members(self, document_id: str) -> set[str]:
        """Session ids currently in the room (a copy)."""
        return set(self._rooms.get(document_id, ()))

    def rooms_of(self, session: Session) -> set[str]:
        return set(self._memberships.get(session.session_id, ()))

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    # ---------- events ----------

    async def apply_edit(self, session: Session, document_id: str, content: str) -> int:
        """Authorize an edit and relay it to the other room members.

        Nothing is persisted here; saving content is the client's explicit,
        debounced call to the canvas API.

        Returns:
            Number of sessions the update was delivered to.

        Raises:
            NotFoundAppError: If the document does not exist.
            PermissionAppError: If the sender is neither owner nor writer.
        """
        identity = SessionGateway.require_identity(session)

        canvas = await self._documents.find_document(document_id)
        if canvas is None:
            raise NotFoundAppError(
                code="canvas_not_found",
                message="Canvas not found.",
                details={"document_id": document_id},
            )

        if not canvas.can_write(identity):
            logger.warning(
                "room.edit_denied",
                extra={"document_id": document_id, "session_id": session.session_id},
            )
            raise PermissionAppError(
                code="edit_forbidden",
                message="You do not have permission to edit this canvas.",
                details={"document_id": document_id},
            )

        return await self._broadcast(
            document_id,
            frame(OutboundEvent.DOCUMENT_UPDATED, documentId=document_id, content=content),
            exclude=session.session_id,
        )

    async def move_cursor(self, session: Session, document_id: str, position: Any) -> int:
        """Relay an ephemeral cursor position; no authorization, no state change."""
        identity = SessionGateway.require_identity(session)
        return await self._broadcast(
            document_id,
            frame(
                OutboundEvent.CURSOR_MOVED,
                documentId=document_id,
                identity=identity,
                position=position,
            ),
            exclude=session.session_id,
        )

    # ---------- delivery ----------

    async def _broadcast(
        self,
        document_id: str,
        message: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> int:
        """Send ``message`` to every member except ``exclude``.

        Recipients whose transport fails are dropped from all rooms.
        """
        targets = [
            self._sessions[sid]
            for sid in self._rooms.get(document_id, ())
            if sid != exclude and sid in self._sessions
        ]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(target.send(message) for target in targets),
            return_exceptions=True,
        )

        delivered = 0
        for target, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.info(
                    "room.delivery_failed",
                    extra={
                        "document_id": document_id,
                        "session_id": target.session_id,
                        "error_type": type(result).__name__,
                    },
                )
                self._forget(target.session_id)
                target.mark_disconnected()
            else:
                delivered += 1
        return delivered
