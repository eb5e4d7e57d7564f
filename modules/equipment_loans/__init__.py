"""Equipment loan module entry point."""

from __future__ import annotations

from fastapi import FastAPI

__all__ = ["register_api"]


def register_api(app: FastAPI) -> None:
    """Register FastAPI routes for the equipment loan module.

    Safe to call more than once; the router is mounted on the first call only.
    """
    from .api import router as loans_router

    if getattr(app.state, "equipment_loans_registered", False):
        return
    app.include_router(loans_router)
    app.state.equipment_loans_registered = True
