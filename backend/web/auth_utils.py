"""
Shared authentication utilities.

Why:
    Avoid duplicating cookie policy logic across modules (app wiring, auth
    router, logout). Keeping a single helper improves consistency.

Design:
    `cookie_opts` is pure: it accepts the browser-facing app URL and returns
    the cookie flags. Callers decide where the URL comes from.
"""

from __future__ import annotations

from fastapi import Response

SESSION_COOKIE_NAME = "stint_session"
SESSION_MAX_AGE_SECONDS = 7 * 24 * 3600


def cookie_opts(app_url: str) -> dict:
    """Return session cookie flags for the given app URL.

    Returns a mapping with keys:
      - secure: True when the app is served over https
      - samesite: "lax"  # Allow top-level OAuth redirects to set/send cookie
    """
    return {"secure": (app_url or "").lower().startswith("https://"), "samesite": "lax"}


def set_session_cookie(response: Response, value: str, *, app_url: str, max_age: int = SESSION_MAX_AGE_SECONDS) -> None:
    opts = cookie_opts(app_url)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def clear_session_cookie(response: Response, *, app_url: str) -> None:
    opts = cookie_opts(app_url)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        expires=0,
        max_age=0,
    )
