"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep the OAuth browser flow and the session endpoints in a dedicated
    router; login resolution itself lives in `identity_access.login`.

Endpoints:
    - GET  /auth/google            start the authorization-code flow (PKCE)
    - GET  /auth/google/callback   finish it, create the session cookie
    - GET  /api/auth/me            who am I (never fails)
    - POST /api/auth/logout        drop the session (always ok)
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from identity_access.domain import Identity
from identity_access.login import LoginService, ProviderProfile
from identity_access.oidc import OIDCClient, OIDCConfig
from identity_access.tokens import IDTokenVerificationError, verify_id_token
from web import config
from web.auth_utils import SESSION_COOKIE_NAME, clear_session_cookie, set_session_cookie
from web.deps import current_identity, get_session_store, login_service

auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("stint.web.auth")

# Allowed in-app redirect paths: absolute, no double slashes, no traversal.
INAPP_PATH_PATTERN = re.compile(r"^(?!.*//)(?!.*\.\.)/[A-Za-z0-9._\-/]*$")
MAX_INAPP_REDIRECT_LEN = 256
ACCESS_DENIED_PATH = "/access-denied"

_NO_STORE = {"Cache-Control": "private, no-store"}


def _error(code: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": code}, status_code=status_code, headers=_NO_STORE)


def _oidc_config(request: Request) -> Optional[OIDCConfig]:
    return getattr(request.app.state, "oidc_config", None)


@auth_router.get("/auth/google")
async def auth_google(request: Request, redirect: str | None = None):
    """
    Start OIDC flow with PKCE and server-side state; redirect to the provider.

    Behavior:
        - Generates code_verifier + S256 code_challenge, state and nonce.
        - Validates optional `redirect` to be an absolute in-app path; external
          URLs are ignored. The validated path is stored with the state.
        - 503 `oauth_not_configured` when client credentials are missing.
    Permissions:
        Public.
    """
    cfg = _oidc_config(request)
    if cfg is None:
        return _error("oauth_not_configured", 503)
    code_verifier = OIDCClient.generate_code_verifier()
    code_challenge = OIDCClient.code_challenge_s256(code_verifier)
    safe_redirect = redirect if (isinstance(redirect, str) and _is_inapp_path(redirect)) else None
    rec = request.app.state.state_store.create(code_verifier=code_verifier, redirect=safe_redirect)
    url = OIDCClient(cfg).build_authorization_url(state=rec.state, code_challenge=code_challenge, nonce=rec.nonce)
    return RedirectResponse(url=url, status_code=302, headers=_NO_STORE)


@auth_router.get("/auth/google/callback")
async def auth_google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    logins: LoginService = Depends(login_service),
):
    """
    Finish the OIDC flow.

    Behavior:
        - Validates and consumes the server-side state (single use, 15 min).
        - Exchanges the code, verifies the ID token (signature, issuer,
          audience, expiry, nonce) and runs login resolution.
        - Creates a 7-day server-side session and sets the cookie.
        - Redirects to the stored in-app path (default "/") when the user is
          allowed, otherwise to `/access-denied`.
    Security:
        Error responses carry only a stable code; provider errors are logged
        by exception class.
    """
    cfg = _oidc_config(request)
    if cfg is None:
        return _error("oauth_not_configured", 503)
    if not code or not state:
        return _error("invalid_code_or_state", 400)
    rec = request.app.state.state_store.pop_valid(state)
    if not rec:
        return _error("invalid_code_or_state", 400)
    try:
        tokens = OIDCClient(cfg).exchange_code_for_tokens(code=code, code_verifier=rec.code_verifier)
    except Exception as exc:
        logger.warning("Token exchange failed: %s", exc.__class__.__name__)
        return _error("token_exchange_failed", 400)
    id_token = tokens.get("id_token")
    if not id_token or not isinstance(id_token, str):
        return _error("invalid_id_token", 400)
    try:
        claims = verify_id_token(id_token=id_token, cfg=cfg, nonce=rec.nonce)
    except IDTokenVerificationError as exc:
        logger.warning("ID token verification failed: %s", exc.code)
        return _error("invalid_id_token", 400)
    try:
        profile = ProviderProfile.from_claims(claims)
    except (KeyError, ValueError):
        return _error("invalid_id_token", 400)

    user = logins.resolve(profile)
    sess = get_session_store(request).create(user_id=user.id)
    dest = (rec.redirect or "/") if user.is_allowed else ACCESS_DENIED_PATH
    resp = RedirectResponse(url=dest, status_code=302, headers=_NO_STORE)
    set_session_cookie(resp, sess.session_id, app_url=config.app_url(), max_age=sess.ttl_seconds)
    logger.info("login user_id=%s allowed=%s", user.id, user.is_allowed)
    return resp


@auth_router.get("/api/auth/me")
async def auth_me(identity: Optional[Identity] = Depends(current_identity)):
    """Return `{authenticated:false}` or the caller's public profile."""
    if identity is None:
        return JSONResponse({"authenticated": False}, headers=_NO_STORE)
    return JSONResponse({"authenticated": True, "user": identity.user.public_view()}, headers=_NO_STORE)


@auth_router.post("/api/auth/logout")
async def auth_logout(request: Request):
    """
    Delete the server-side session (if any) and expire the cookie.

    Permissions:
        Public; never fails.
    """
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if sid:
        try:
            get_session_store(request).delete(sid)
        except Exception as exc:
            logger.warning("Session delete failed during logout: %s", exc.__class__.__name__)
    resp = JSONResponse({"ok": True}, headers=_NO_STORE)
    clear_session_cookie(resp, app_url=config.app_url())
    return resp


def _is_inapp_path(value: str) -> bool:
    """Return True if value is an absolute in-app path, e.g., "/", "/quiz/2".

    Examples (rejected):
        "quiz" (not absolute), "https://evil.com", "//evil.com", "/a?b", "/.."
    """
    if not value or not isinstance(value, str):
        return False
    if len(value) > MAX_INAPP_REDIRECT_LEN:
        return False
    return bool(INAPP_PATH_PATTERN.match(value))
