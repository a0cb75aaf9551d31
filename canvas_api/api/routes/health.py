from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from canvas_api.core.resources import Resources, get_resources

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check used by load balancers.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(
    resources: Annotated[Resources, Depends(get_resources)],
) -> JSONResponse:
    """Readiness check reporting whether the fast store answers.

    A degraded fast store does not stop the API (rate limiting fails open),
    so the status code stays 200 and the body says ``degraded``.
    """

    fast_store_ok = await resources.fast_store.ping()
    return JSONResponse(
        {
            "status": "ok" if fast_store_ok else "degraded",
            "fast_store": "up" if fast_store_ok else "down",
        }
    )
