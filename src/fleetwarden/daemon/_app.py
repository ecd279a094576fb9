"""Control application factory.

This module provides a factory function for creating the in-process
FastAPI control application that exposes fleet control endpoints.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI

from ._api import create_control_router

if TYPE_CHECKING:
    from ._fleet import FleetSupervisor


def create_control_app(fleet: FleetSupervisor) -> FastAPI:
    """Create the FastAPI control application.

    Args:
        fleet: The FleetSupervisor to control.

    Returns:
        A FastAPI application with fleet control endpoints.
    """
    app = FastAPI(
        title="fleetwarden",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(create_control_router(fleet))
    return app
