"""Document store interface.

The core only reads users and documents by id; content and permission writes
go through the explicit save paths used by ``CanvasService``. Implementations
raise ``DependencyAppError`` when the backing database is unreachable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from canvas_api.schemas.canvas import Canvas, Collaborator, UserRecord
from canvas_api.schemas.plan import Plan


class AbstractDocumentStore(ABC):
    """Source of truth for users and canvases."""

    @abstractmethod
    async def find_user(self, identity: str) -> UserRecord | None:
        raise NotImplementedError

    @abstractmethod
    async def upsert_user(
        self,
        identity: str,
        *,
        email: str | None = None,
        plan: Plan | None = None,
    ) -> UserRecord:
        """Create the user or update the provided (non-None) fields."""
        raise NotImplementedError

    @abstractmethod
    async def find_document(self, document_id: str) -> Canvas | None:
        raise NotImplementedError

    @abstractmethod
    async def list_documents(self, identity: str) -> list[Canvas]:
        """Return canvases owned by or shared with ``identity``, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def create_document(self, owner_id: str, *, title: str, content: str) -> Canvas:
        raise NotImplementedError

    @abstractmethod
    async def save_content(self, document_id: str, content: str) -> Canvas:
        raise NotImplementedError

    @abstractmethod
    async def save_title(self, document_id: str, title: str) -> Canvas:
        raise NotImplementedError

    @abstractmethod
    async def update_document_permissions(
        self,
        document_id: str,
        collaborators: list[Collaborator],
    ) -> Canvas:
        """Replace the collaborator list of a canvas."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources held by the store."""
