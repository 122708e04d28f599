"""
Admin-only JSON endpoints: users, allowlist, access requests, audit log.

Permissions:
    Every route requires role admin (`admin_required`). The allow flag of the
    admin is not consulted.
Security:
    All responses carry `Cache-Control: private, no-store`.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from audit_trail.recorder import MAX_RECENT, AuditRecorder
from identity_access.access_requests import AccessRequestService
from identity_access.admin import AllowlistService, UserAdminService
from identity_access.domain import Identity
from web.deps import (
    access_request_service,
    admin_required,
    allowlist_service,
    audit_recorder,
    user_admin_service,
)

admin_router = APIRouter(prefix="/api/admin", tags=["Admin"])

_NO_STORE = {"Cache-Control": "private, no-store"}


def _private(body: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=_NO_STORE)


class UserPatchPayload(BaseModel):
    role: Optional[str] = None
    is_allowed: Any = None


class AllowlistPayload(BaseModel):
    email: Optional[str] = None


# --- users ---------------------------------------------------------------

@admin_router.get("/users")
async def list_users(
    _admin: Identity = Depends(admin_required),
    users: UserAdminService = Depends(user_admin_service),
):
    return _private(users.list_users())


@admin_router.patch("/users/{user_id}")
async def patch_user(
    user_id: int,
    payload: UserPatchPayload,
    admin: Identity = Depends(admin_required),
    users: UserAdminService = Depends(user_admin_service),
):
    """Change role and/or allow flag; only fields present in the body are applied."""
    changes = payload.model_dump(exclude_unset=True)
    users.update_user(admin, user_id, changes)
    return _private({"ok": True})


@admin_router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    admin: Identity = Depends(admin_required),
    users: UserAdminService = Depends(user_admin_service),
):
    """Revoke access; the user row is kept."""
    users.remove_user(admin, user_id)
    return _private({"ok": True})


# --- allowlist -----------------------------------------------------------

@admin_router.get("/allowlist")
async def list_allowlist(
    _admin: Identity = Depends(admin_required),
    allowlist: AllowlistService = Depends(allowlist_service),
):
    return _private(allowlist.list_entries())


@admin_router.post("/allowlist")
async def add_allowlist(
    payload: AllowlistPayload,
    admin: Identity = Depends(admin_required),
    allowlist: AllowlistService = Depends(allowlist_service),
):
    allowlist.add(admin, payload.email)
    return _private({"ok": True})


@admin_router.delete("/allowlist/{email}")
async def remove_allowlist(
    email: str,
    admin: Identity = Depends(admin_required),
    allowlist: AllowlistService = Depends(allowlist_service),
):
    allowlist.remove(admin, email)
    return _private({"ok": True})


# --- access requests -----------------------------------------------------

@admin_router.get("/requests")
async def list_requests(
    _admin: Identity = Depends(admin_required),
    requests_svc: AccessRequestService = Depends(access_request_service),
):
    return _private(requests_svc.list_pending())


@admin_router.post("/requests/{request_id}/approve")
async def approve_request(
    request_id: int,
    admin: Identity = Depends(admin_required),
    requests_svc: AccessRequestService = Depends(access_request_service),
):
    requests_svc.approve(admin, request_id)
    return _private({"ok": True})


@admin_router.post("/requests/{request_id}/reject")
async def reject_request(
    request_id: int,
    admin: Identity = Depends(admin_required),
    requests_svc: AccessRequestService = Depends(access_request_service),
):
    requests_svc.reject(admin, request_id)
    return _private({"ok": True})


# --- audit ---------------------------------------------------------------

@admin_router.get("/audit")
async def recent_audit(
    _admin: Identity = Depends(admin_required),
    audit: AuditRecorder = Depends(audit_recorder),
):
    return _private(audit.recent(MAX_RECENT))
