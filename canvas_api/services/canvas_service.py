"""Canvas CRUD and sharing rules.

Access model:
- read: owner or any collaborator
- write (content, title): owner or a ``write`` collaborator
- sharing (collaborator list): owner only

This is also the explicit save path for content edited in real time; the
room broadcast never persists anything on its own.
"""

from __future__ import annotations

import logging

from canvas_api.adapters.documents.base import AbstractDocumentStore
from canvas_api.core.errors import NotFoundAppError, PermissionAppError, ValidationAppError
from canvas_api.schemas.canvas import (
    DEFAULT_CONTENT,
    DEFAULT_TITLE,
    AccessLevel,
    Canvas,
    Collaborator,
)

logger = logging.getLogger(__name__)


class CanvasService:
    """Application service over the document store."""

    def __init__(self, documents: AbstractDocumentStore) -> None:
        self._documents = documents

    async def _load(self, canvas_id: str) -> Canvas:
        canvas = await self._documents.find_document(canvas_id)
        if canvas is None:
            raise NotFoundAppError(
                code="canvas_not_found",
                message="Canvas not found.",
                details={"document_id": canvas_id},
            )
        return canvas

    async def create(self, owner_id: str, title: str | None = None) -> Canvas:
        canvas = await self._documents.create_document(
            owner_id,
            title=(title or "").strip() or DEFAULT_TITLE,
            content=DEFAULT_CONTENT,
        )
        logger.info("canvas.created", extra={"document_id": canvas.id})
        return canvas

    async def list_for(self, identity: str) -> list[Canvas]:
        return await self._documents.list_documents(identity)

    async def get_for(self, canvas_id: str, identity: str) -> Canvas:
        """Return the canvas if ``identity`` may read it.

        Raises:
            NotFoundAppError: If the canvas does not exist.
            PermissionAppError: If the identity has no access.
        """
        canvas = await self._load(canvas_id)
        if not canvas.can_read(identity):
            raise PermissionAppError(
                code="canvas_forbidden",
                message="You do not have permission to access this canvas.",
                details={"document_id": canvas_id},
            )
        return canvas

    async def _writable(self, canvas_id: str, identity: str) -> Canvas:
        canvas = await self.get_for(canvas_id, identity)
        if not canvas.can_write(identity):
            raise PermissionAppError(
                code="edit_forbidden",
                message="You do not have permission to edit this canvas.",
                details={"document_id": canvas_id},
            )
        return canvas

    async def update_content(self, canvas_id: str, identity: str, content: str) -> Canvas:
        await self._writable(canvas_id, identity)
        return await self._documents.save_content(canvas_id, content)

    async def update_title(self, canvas_id: str, identity: str, title: str) -> Canvas:
        await self._writable(canvas_id, identity)
        title = title.strip()
        if not title:
            raise ValidationAppError(code="invalid_title", message="A valid title is required.")
        return await self._documents.save_title(canvas_id, title)

    async def _owned(self, canvas_id: str, identity: str) -> Canvas:
        canvas = await self._load(canvas_id)
        if canvas.owner_id != identity:
            raise PermissionAppError(
                code="sharing_forbidden",
                message="Only the owner can manage collaborators.",
                details={"document_id": canvas_id},
            )
        return canvas

    async def share(
        self,
        canvas_id: str,
        owner_id: str,
        collaborator_id: str,
        access: AccessLevel,
    ) -> Canvas:
        """Grant ``collaborator_id`` access, or change an existing grant."""
        canvas = await self._owned(canvas_id, owner_id)
        if collaborator_id == canvas.owner_id:
            raise ValidationAppError(
                code="owner_not_collaborator",
                message="The owner cannot be added as a collaborator.",
                details={"document_id": canvas_id},
            )

        collaborators = [c for c in canvas.collaborators if c.user_id != collaborator_id]
        collaborators.append(Collaborator(user_id=collaborator_id, access=access))
        logger.info(
            "canvas.shared",
            extra={"document_id": canvas_id, "collaborator": collaborator_id, "access": access.value},
        )
        return await self._documents.update_document_permissions(canvas_id, collaborators)

    async def unshare(self, canvas_id: str, owner_id: str, collaborator_id: str) -> Canvas:
        canvas = await self._owned(canvas_id, owner_id)
        collaborators = [c for c in canvas.collaborators if c.user_id != collaborator_id]
        if len(collaborators) == len(canvas.collaborators):
            raise NotFoundAppError(
                code="collaborator_not_found",
                message="Collaborator not found on this canvas.",
                details={"document_id": canvas_id},
            )
        return await self._documents.update_document_permissions(canvas_id, collaborators)
