from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from canvas_api.core.auth import CurrentIdentity
from canvas_api.core.rate_limit import enforce_rate_limit
from canvas_api.core.resources import Resources, get_resources
from canvas_api.schemas.canvas import ProfileResponse, SyncProfileRequest

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get("/me", response_model=ProfileResponse)
async def read_profile(
    identity: CurrentIdentity,
    resources: Annotated[Resources, Depends(get_resources)],
) -> ProfileResponse:
    """Return the caller's identity and current subscription plan."""
    plan = await resources.plan_resolver.resolve_plan(identity)
    return ProfileResponse(id=identity, plan=plan)


@router.put("/me", response_model=ProfileResponse)
async def sync_profile(
    body: SyncProfileRequest,
    identity: CurrentIdentity,
    resources: Annotated[Resources, Depends(get_resources)],
) -> ProfileResponse:
    """Create the caller's user record or update its profile fields.

    Plan values are never taken from the caller; they are written to the
    user record by the billing integration.
    """
    await resources.documents.upsert_user(identity, email=body.email)
    plan = await resources.plan_resolver.resolve_plan(identity)
    return ProfileResponse(id=identity, plan=plan)
