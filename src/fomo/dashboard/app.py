"""FastAPI dashboard application factory with WebSocket hub."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from fomo.dashboard.routes import api, ws
from fomo.dashboard.routes.ws import DashboardHub


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application with WebSocket hub and routes.
    """
    app = FastAPI(
        title="FOMO Chart",
        lifespan=lifespan,
    )

    # Route handlers read the session from app.state; main.py wires it
    app.state.hub = DashboardHub()
    app.state.session = None

    app.include_router(api.router, prefix="/api")
    app.include_router(ws.router)

    return app
