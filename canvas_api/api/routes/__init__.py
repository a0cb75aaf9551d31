from __future__ import annotations

from canvas_api.api.routes.canvases import router as canvases_router
from canvas_api.api.routes.health import router as health_router
from canvas_api.api.routes.realtime import router as realtime_router
from canvas_api.api.routes.users import router as users_router

__all__ = ["canvases_router", "health_router", "realtime_router", "users_router"]
