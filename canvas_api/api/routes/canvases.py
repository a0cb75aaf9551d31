from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from canvas_api.core.auth import CurrentIdentity
from canvas_api.core.rate_limit import enforce_rate_limit
from canvas_api.core.resources import Resources, get_resources
from canvas_api.schemas.canvas import (
    Canvas,
    CreateCanvasRequest,
    ShareCanvasRequest,
    UpdateContentRequest,
    UpdateTitleRequest,
)
from canvas_api.services.canvas_service import CanvasService

router = APIRouter(
    prefix="/canvases",
    tags=["Canvases"],
    dependencies=[Depends(enforce_rate_limit)],
)


def get_canvas_service(
    resources: Annotated[Resources, Depends(get_resources)],
) -> CanvasService:
    return resources.canvases


Canvases = Annotated[CanvasService, Depends(get_canvas_service)]


@router.get("", response_model=list[Canvas])
async def list_canvases(identity: CurrentIdentity, canvases: Canvases) -> list[Canvas]:
    """List canvases owned by or shared with the caller."""
    return await canvases.list_for(identity)


@router.post("", response_model=Canvas, status_code=status.HTTP_201_CREATED)
async def create_canvas(
    body: CreateCanvasRequest,
    identity: CurrentIdentity,
    canvases: Canvases,
) -> Canvas:
    """Create a canvas owned by the caller."""
    return await canvases.create(identity, body.title)


@router.get("/{canvas_id}", response_model=Canvas)
async def read_canvas(canvas_id: str, identity: CurrentIdentity, canvases: Canvases) -> Canvas:
    return await canvases.get_for(canvas_id, identity)


@router.put("/{canvas_id}/content", response_model=Canvas)
async def save_content(
    canvas_id: str,
    body: UpdateContentRequest,
    identity: CurrentIdentity,
    canvases: Canvases,
) -> Canvas:
    """Persist canvas content (the save path behind real-time editing).

    Raises:
        PermissionAppError: 403 unless the caller is owner or a write collaborator.
    """
    return await canvases.update_content(canvas_id, identity, body.content)


@router.patch("/{canvas_id}/title", response_model=Canvas)
async def rename_canvas(
    canvas_id: str,
    body: UpdateTitleRequest,
    identity: CurrentIdentity,
    canvases: Canvases,
) -> Canvas:
    return await canvases.update_title(canvas_id, identity, body.title)


@router.put("/{canvas_id}/collaborators", response_model=Canvas)
async def share_canvas(
    canvas_id: str,
    body: ShareCanvasRequest,
    identity: CurrentIdentity,
    canvases: Canvases,
) -> Canvas:
    """Grant or change a collaborator's access (owner only)."""
    return await canvases.share(canvas_id, identity, body.collaborator_id, body.access)


@router.delete("/{canvas_id}/collaborators/{collaborator_id}", response_model=Canvas)
async def unshare_canvas(
    canvas_id: str,
    collaborator_id: str,
    identity: CurrentIdentity,
    canvases: Canvases,
) -> Canvas:
    """Revoke a collaborator's access (owner only)."""
    return await canvases.unshare(canvas_id, identity, collaborator_id)
