"""
Shared web security helpers (FastAPI-agnostic utilities for routes).

Contains the same-origin check used by the write guard in `main`. Keeping a
single implementation avoids security drift between routers.
"""
from __future__ import annotations

from urllib.parse import urlparse

from fastapi import Request

from web import config

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    port = p.port if p.port is not None else _default_port(scheme)
    return scheme, p.hostname.lower(), int(port)


def _server_origin(request: Request) -> tuple[str, str, int]:
    """Origin the server is reached at; X-Forwarded-* only when STINT_TRUST_PROXY=true."""
    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port) if request.url.port else _default_port(scheme)
    if not config.trust_proxy():
        return scheme, host, port

    xf_proto = (request.headers.get("x-forwarded-proto") or "").split(",")[0].strip().lower()
    xf_host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
    scheme = xf_proto or scheme
    if ":" in xf_host:
        host_only, port_str = xf_host.rsplit(":", 1)
        host = host_only.lower()
        port = int(port_str) if port_str.isdigit() else _default_port(scheme)
    elif xf_host:
        host = xf_host.lower()
        port = _default_port(scheme)
    xf_port = (request.headers.get("x-forwarded-port") or "").split(",")[0].strip()
    if xf_port.isdigit():
        port = int(xf_port)
    return scheme, host, port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    """
    claimed = request.headers.get("origin") or request.headers.get("referer")
    if not claimed:
        return True
    try:
        return _parse_origin(claimed) == _server_origin(request)
    except ValueError:
        return False


def requires_origin_check(request: Request) -> bool:
    return request.method.upper() not in SAFE_METHODS and request.url.path.startswith("/api/")
