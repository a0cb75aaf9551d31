"""Canvas (document) and user models shared by the store, services and routes."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from canvas_api.schemas.plan import Plan

DEFAULT_TITLE = "Untitled Canvas"
DEFAULT_CONTENT = "# Welcome to your new canvas!\n\nStart typing here..."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccessLevel(str, Enum):
    """Access granted to a collaborator."""

    READ = "read"
    WRITE = "write"


class Collaborator(BaseModel):
    """A (user, access level) pair on a canvas."""

    user_id: str = Field(..., min_length=1, description="Identity of the collaborator")
    access: AccessLevel = Field(AccessLevel.READ, description="Granted access level")


class Canvas(BaseModel):
    """A collaborative markdown document.

    The owner is implicitly write-capable and never listed among the
    collaborators; each collaborator appears at most once.
    """

    id: str
    title: str = DEFAULT_TITLE
    content: str = DEFAULT_CONTENT
    owner_id: str
    collaborators: list[Collaborator] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def access_for(self, identity: str) -> AccessLevel | None:
        """Return the effective access of ``identity`` (None when it has none)."""
        if identity == self.owner_id:
            return AccessLevel.WRITE
        for collaborator in self.collaborators:
            if collaborator.user_id == identity:
                return collaborator.access
        return None

    def can_read(self, identity: str) -> bool:
        return self.access_for(identity) is not None

    def can_write(self, identity: str) -> bool:
        return self.access_for(identity) == AccessLevel.WRITE


class UserRecord(BaseModel):
    """User record as seen by the core: identity, optional email and plan."""

    id: str = Field(..., min_length=1)
    email: str | None = None
    plan: Plan | None = None

    @field_validator("plan", mode="before")
    @classmethod
    def _coerce_plan(cls, value: object) -> Plan | None:
        # Stored records may carry legacy or misspelled plan names.
        if value is None or isinstance(value, Plan):
            return value
        return Plan.parse(str(value))


class CreateCanvasRequest(BaseModel):
    title: str | None = Field(None, max_length=200)


class UpdateContentRequest(BaseModel):
    content: str


class UpdateTitleRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class ShareCanvasRequest(BaseModel):
    """Grant (or change) a collaborator's access."""

    model_config = ConfigDict(populate_by_name=True)

    collaborator_id: str = Field(..., min_length=1, alias="collaboratorId")
    access: AccessLevel = Field(..., alias="accessType")


class ProfileResponse(BaseModel):
    id: str
    plan: Plan


class SyncProfileRequest(BaseModel):
    """Profile fields the caller may sync; the plan is owned by billing."""

    email: str | None = Field(None, max_length=320)
