"""
Configuration and startup security checks.

Why: A gated learning tool must not accidentally go live with an in-memory
store, plaintext database traffic or a broken login. This module reads the
environment in one place and provides a single guard that enforces minimal
production safety constraints without burdening local development.

Permissions: The caller needs no special privileges. The functions read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
import sys

DEFAULT_APP_URL = "http://localhost:3000"

# (limit, window seconds) per rate-limit scope.
_RATE_DEFAULTS = {
    "auth": (20, 15 * 60),
    "admin": (50, 60 * 60),
}


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def environment() -> str:
    return (os.getenv("STINT_ENV", "dev") or "dev").strip().lower()


def app_url() -> str:
    return (os.getenv("APP_URL") or DEFAULT_APP_URL).strip().rstrip("/")


def trust_proxy() -> bool:
    return (os.getenv("STINT_TRUST_PROXY", "false") or "").strip().lower() == "true"


def sessions_backend() -> str:
    """`db` or `memory`; follows STORE_BACKEND unless set explicitly."""
    raw = (os.getenv("SESSIONS_BACKEND") or os.getenv("STORE_BACKEND") or "db").strip().lower()
    return "memory" if raw == "memory" else "db"


def _parse_int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def rate_limit(scope: str) -> tuple[int, int]:
    """Return `(limit, window_seconds)` for a scope (`auth` or `admin`)."""
    limit, window = _RATE_DEFAULTS[scope]
    prefix = scope.upper()
    return (
        _parse_int_env(f"{prefix}_RATE_LIMIT", limit),
        _parse_int_env(f"{prefix}_RATE_WINDOW_SECONDS", window),
    )


def should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via STINT_ENABLE_DOTENV (default true outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("STINT_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def _is_placeholder(value: str) -> bool:
    return not value or value.upper().startswith(("CHANGE_ME", "DUMMY"))


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - STORE_BACKEND must not be `memory` (data would vanish on restart).
    - DATABASE_URL must not explicitly disable TLS.
    - APP_URL must use https (the session cookie is only `Secure` over https).
    - Google client id/secret must be set and not placeholders.
    """
    if not _is_prod_like(environment()):
        return  # dev/test remain permissive

    # 1) Durable store
    if (os.getenv("STORE_BACKEND") or "db").strip().lower() == "memory":
        raise SystemExit("Refusing to start: STORE_BACKEND=memory is not allowed in production.")

    # 2) Postgres TLS: basic guard to avoid explicit disable
    dsn = os.getenv("DATABASE_URL", "")
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    # 3) Browser-facing URL must be https
    if not app_url().lower().startswith("https://"):
        raise SystemExit("Refusing to start: APP_URL must use https in production.")

    # 4) OAuth client credentials
    for var in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"):
        if _is_placeholder((os.getenv(var) or "").strip()):
            raise SystemExit(f"Refusing to start: {var} is unset or a placeholder in production.")
