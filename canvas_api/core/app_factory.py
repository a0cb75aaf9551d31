from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
resource lifecycle) to improve testability compared to a monolithic main.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canvas_api.api.routes import (
    canvases_router,
    health_router,
    realtime_router,
    users_router,
)
from canvas_api.core.config import parse_csv, settings
from canvas_api.core.exception_handlers import setup_exception_handlers
from canvas_api.core.logging import configure_logging
from canvas_api.core.middleware import request_id_middleware
from canvas_api.core.openapi import apply_openapi_customizations
from canvas_api.core.resources import Resources, build_resources


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    resources: Resources = app.state.resources
    await resources.startup()
    try:
        yield
    finally:
        await resources.close()


def create_app(resources: Resources | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        resources: Pre-built resources (tests); built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Canvas Collaboration API",
        description=(
            "Collaborative markdown canvases: owners share canvases with read or "
            "write collaborators, edits are relayed in real time over a WebSocket, "
            "and HTTP usage is rate limited per subscription plan."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )
    app.state.resources = resources or build_resources(settings)

    # Middleware
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(parse_csv(settings.app.allowed_origins)),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", settings.log.request_id_header],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(canvases_router, prefix="/v1")
    app.include_router(users_router, prefix="/v1")
    app.include_router(realtime_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
