"""FastAPI dependency providers for application services."""

from __future__ import annotations

from fastapi import HTTPException, Request

from ..jobs import RunManager


def get_run_manager(request: Request) -> RunManager:
    manager = getattr(request.app.state, "run_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="MANAGER_UNAVAILABLE")
    return manager


__all__ = ["get_run_manager"]
