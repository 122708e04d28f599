"""Operations endpoints (health checks for orchestrators and admins)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from identity_access.domain import Identity
from persistence.ports import StoreProtocol
from web.deps import admin_required, get_store

operations_router = APIRouter(tags=["Operations"])
logger = logging.getLogger("stint.web.operations")


def _private_response(body: dict, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers={"Cache-Control": "private, no-store"})


@operations_router.get("/health")
async def health_check():
    """Liveness check. Public; carries no runtime detail."""
    return _private_response({"status": "healthy"})


@operations_router.get("/internal/health/store")
async def store_health(
    _admin: Identity = Depends(admin_required),
    store: StoreProtocol = Depends(get_store),
):
    """
    Probe the persistent store.

    Permissions:
        Caller must be an admin (auth via stint_session).
    """
    try:
        store.ping()
    except Exception as exc:
        logger.warning("store health check failed: %s", exc.__class__.__name__)
        return _private_response({"status": "unavailable", "store": type(store).__name__}, status_code=503)
    return _private_response({"status": "healthy", "store": type(store).__name__})
