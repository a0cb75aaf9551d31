"""In-process document store.

Suitable for a single instance and for tests. Returned models are copies, so
callers cannot mutate stored state without going through the store.
"""

from __future__ import annotations

import threading
import uuid

from canvas_api.adapters.documents.base import AbstractDocumentStore
from canvas_api.core.errors import NotFoundAppError
from canvas_api.schemas.canvas import Canvas, Collaborator, UserRecord, utcnow
from canvas_api.schemas.plan import Plan


def _missing(document_id: str) -> NotFoundAppError:
    return NotFoundAppError(
        code="canvas_not_found",
        message="Canvas not found.",
        details={"document_id": document_id},
    )


class InMemoryDocumentStore(AbstractDocumentStore):
    """Users and canvases held in dictionaries keyed by id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, UserRecord] = {}
        self._documents: dict[str, Canvas] = {}

    async def find_user(self, identity: str) -> UserRecord | None:
        with self._lock:
            user = self._users.get(identity)
            return user.model_copy() if user else None

    async def upsert_user(
        self,
        identity: str,
        *,
        email: str | None = None,
        plan: Plan | None = None,
    ) -> UserRecord:
        with self._lock:
            user = self._users.get(identity) or UserRecord(id=identity)
            updates = {k: v for k, v in {"email": email, "plan": plan}.items() if v is not None}
            user = user.model_copy(update=updates)
            self._users[identity] = user
            return user.model_copy()

    async def find_document(self, document_id: str) -> Canvas | None:
        with self._lock:
            canvas = self._documents.get(document_id)
            return canvas.model_copy(deep=True) if canvas else None

    async def list_documents(self, identity: str) -> list[Canvas]:
        with self._lock:
            visible = [c for c in self._documents.values() if c.can_read(identity)]
            visible.sort(key=lambda c: c.updated_at, reverse=True)
            return [c.model_copy(deep=True) for c in visible]

    async def create_document(self, owner_id: str, *, title: str, content: str) -> Canvas:
        canvas = Canvas(id=uuid.uuid4().hex, owner_id=owner_id, title=title, content=content)
        with self._lock:
            self._documents[canvas.id] = canvas
            return canvas.model_copy(deep=True)

    async def save_content(self, document_id: str, content: str) -> Canvas:
        return self._update(document_id, content=content)

    async def save_title(self, document_id: str, title: str) -> Canvas:
        return self._update(document_id, title=title)

    async def update_document_permissions(
        self,
        document_id: str,
        collaborators: list[Collaborator],
    ) -> Canvas:
        return self._update(
            document_id,
            collaborators=[c.model_copy() for c in collaborators],
        )

    def _update(self, document_id: str, **fields) -> Canvas:
        with self._lock:
            canvas = self._documents.get(document_id)
            if canvas is None:
                raise _missing(document_id)
            canvas = canvas.model_copy(update={**fields, "updated_at": utcnow()}, deep=True)
            self._documents[document_id] = canvas
            return canvas.model_copy(deep=True)
