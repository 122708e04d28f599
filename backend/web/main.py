"Stint study app (FastAPI adapter)"
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.errors import AppError
from identity_access.oidc import load_oidc_config
from identity_access.stores import SessionStore, StateStore
from persistence.bootstrap import build_store_from_env

from web import config as _cfg
from web.ratelimit import RateLimiter, client_ip, scope_for_path
from web.routes.admin import admin_router
from web.routes.auth import auth_router
from web.routes.curation import curation_router
from web.routes.operations import operations_router
from web.routes.security import _is_same_origin, requires_origin_check
from web.routes.study import study_router

try:
    from dotenv import load_dotenv
    if _cfg.should_load_dotenv():
        load_dotenv()
except ImportError:
    pass

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

logger = logging.getLogger("stint.web")

_NO_STORE = {"Cache-Control": "private, no-store"}


def _build_session_store():
    if _cfg.sessions_backend() == "db":
        from identity_access.stores_db import DBSessionStore

        try:
            store = DBSessionStore()
        except RuntimeError as exc:
            raise SystemExit(f"Session store unavailable: {exc}") from exc
        try:
            purged = store.purge_expired()
            logger.info("expired sessions purged count=%s", purged)
        except Exception as exc:
            logger.warning("Session purge failed: %s", exc.__class__.__name__)
        return store
    return SessionStore()


app = FastAPI(title="Stint", description="Gated flashcards, quizzes and interview practice", version="0.1.0")

# --- State wiring ---------------------------------------------------------------
# Handlers reach these through `web.deps`; tests replace them per case.

app.state.store = build_store_from_env()
app.state.session_store = _build_session_store()
app.state.state_store = StateStore()
app.state.limiter = RateLimiter()
app.state.oidc_config = load_oidc_config(_cfg.app_url())
if app.state.oidc_config is None:
    logger.warning("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set; /auth/google answers 503")

# --- Error rendering ----------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers=_NO_STORE)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "bad_request", "detail": "invalid_input"}, status_code=400, headers=_NO_STORE)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error path=%s error=%s", request.url.path, exc.__class__.__name__)
    return JSONResponse({"error": "internal_error"}, status_code=500, headers=_NO_STORE)


# --- Middlewares (last registered runs first) ---------------------------------


@app.middleware("http")
async def same_origin_guard(request: Request, call_next):
    if requires_origin_check(request) and not _is_same_origin(request):
        return JSONResponse({"error": "csrf_violation"}, status_code=403, headers=_NO_STORE)
    return await call_next(request)


@app.middleware("http")
async def rate_limit(request: Request, call_next):
    scope = scope_for_path(request.url.path)
    if scope is None:
        return await call_next(request)
    limit, window = _cfg.rate_limit(scope)
    ip = client_ip(request)
    allowed, retry_after = request.app.state.limiter.check(f"{scope}:ip:{ip}", limit=limit, per_seconds=window)
    if not allowed:
        logger.warning("rate limited scope=%s", scope)
        headers = dict(_NO_STORE)
        headers["Retry-After"] = str(retry_after)
        return JSONResponse({"error": "rate_limited"}, status_code=429, headers=headers)
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    # JSON-only backend: nothing may load or embed from these responses.
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'self'")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    # Origin/Referer fallback in the write guard needs the origin on same-site requests.
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), camera=()")
    if _cfg.app_url().startswith("https://"):
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    if request.url.path.startswith(("/api/", "/internal/", "/auth/")):
        response.headers.setdefault("Cache-Control", "private, no-store")
    return response


# --- Routers ------------------------------------------------------------------

app.include_router(auth_router)
app.include_router(study_router)
app.include_router(admin_router)
app.include_router(curation_router)
app.include_router(operations_router)
