"""
Request-scoped dependencies: store access, identity resolution and guards.

Why:
    Handlers receive the caller's `Identity` as an explicit argument resolved
    per request; nothing is read from globals or thread-locals. The guards
    themselves live in `identity_access.guards` and stay framework-free.

Behavior:
    - `current_identity`: session cookie -> session store -> fresh user row.
      Role and allow flag are therefore always current. Session-store failures
      are logged and treated as anonymous.
    - `auth_required` / `admin_required` / `uploader_required` /
      `session_required` wrap the guard predicates for `Depends(...)`.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request

from audit_trail.recorder import AuditRecorder
from curriculum.services.interview import InterviewService
from curriculum.services.terms import TermsService
from identity_access import guards
from identity_access.access_requests import AccessRequestService
from identity_access.admin import AllowlistService, UserAdminService
from identity_access.domain import Identity
from identity_access.login import LoginService
from learner_progress.tracker import ProgressTracker
from persistence.ports import StoreProtocol
from speech.cache import SpeechCache

from .auth_utils import SESSION_COOKIE_NAME

logger = logging.getLogger("stint.web.auth")


def get_store(request: Request) -> StoreProtocol:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("store not initialized")
    return store


def get_session_store(request: Request):
    return request.app.state.session_store


def current_identity(request: Request) -> Optional[Identity]:
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if not sid:
        return None
    try:
        rec = get_session_store(request).get(sid)
    except Exception as exc:
        logger.warning("Session store get failed: %s", exc.__class__.__name__)
        return None
    if rec is None:
        return None
    user = get_store(request).get_user(rec.user_id)
    if user is None:
        return None
    return Identity(user=user, session_id=rec.session_id)


def session_required(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
    return guards.require_identity(identity)


def auth_required(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
    return guards.require_auth(identity)


def admin_required(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
    return guards.require_admin(identity)


def uploader_required(identity: Optional[Identity] = Depends(current_identity)) -> Identity:
    return guards.require_uploader(identity)


# --- service factories (one instance per request, bound to the app store) ---

def audit_recorder(store: StoreProtocol = Depends(get_store)) -> AuditRecorder:
    return AuditRecorder(store)


def login_service(store: StoreProtocol = Depends(get_store)) -> LoginService:
    return LoginService(store)


def user_admin_service(
    store: StoreProtocol = Depends(get_store), audit: AuditRecorder = Depends(audit_recorder)
) -> UserAdminService:
    return UserAdminService(store=store, audit=audit)


def allowlist_service(
    store: StoreProtocol = Depends(get_store), audit: AuditRecorder = Depends(audit_recorder)
) -> AllowlistService:
    return AllowlistService(store=store, audit=audit)


def access_request_service(
    store: StoreProtocol = Depends(get_store), audit: AuditRecorder = Depends(audit_recorder)
) -> AccessRequestService:
    return AccessRequestService(store=store, audit=audit)


def terms_service(
    store: StoreProtocol = Depends(get_store), audit: AuditRecorder = Depends(audit_recorder)
) -> TermsService:
    return TermsService(store=store, audit=audit)


def interview_service(
    store: StoreProtocol = Depends(get_store), audit: AuditRecorder = Depends(audit_recorder)
) -> InterviewService:
    return InterviewService(store=store, audit=audit)


def progress_tracker(store: StoreProtocol = Depends(get_store)) -> ProgressTracker:
    return ProgressTracker(store)


def speech_cache(store: StoreProtocol = Depends(get_store)) -> SpeechCache:
    return SpeechCache(store)
