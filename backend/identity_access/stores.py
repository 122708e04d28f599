"""
In-memory stores for the login flow: StateStore and SessionStore.

Why: Keep server-side state (CSRF `state`, `nonce`, PKCE code_verifier, the
post-login redirect) and sessions opaque to the client. Production sessions
live in Postgres (`stores_db.DBSessionStore`); login state is short-lived and
stays in-process.

Security: Cookies carry only an opaque session id. The session record holds
the user id; role and allow flag are re-read from the store on every request,
so admin changes take effect immediately.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import secrets
import time

STATE_TTL_SECONDS = 15 * 60
SESSION_TTL_SECONDS = 7 * 24 * 3600


def _now() -> int:
    return int(time.time())


def _drop_expired(data: dict, now: int) -> None:
    """Remove records whose `expires_at` lies in the past (creation-time sweep)."""
    expired = [key for key, rec in data.items() if rec.expires_at is not None and rec.expires_at < now]
    for key in expired:
        del data[key]


@dataclass
class StateRecord:
    state: str
    code_verifier: str
    nonce: str
    redirect: Optional[str]
    expires_at: int


class StateStore:
    def __init__(self):
        self._data: Dict[str, StateRecord] = {}

    def create(
        self, *, code_verifier: str, ttl_seconds: int = STATE_TTL_SECONDS, redirect: Optional[str] = None
    ) -> StateRecord:
        _drop_expired(self._data, _now())
        state = secrets.token_urlsafe(24)
        rec = StateRecord(
            state=state,
            code_verifier=code_verifier,
            nonce=secrets.token_urlsafe(24),
            redirect=redirect,
            expires_at=_now() + ttl_seconds,
        )
        self._data[state] = rec
        return rec

    def pop_valid(self, state: str) -> Optional[StateRecord]:
        rec = self._data.pop(state, None)
        if not rec:
            return None
        if rec.expires_at < _now():
            return None
        return rec


@dataclass
class SessionRecord:
    session_id: str
    user_id: int
    expires_at: Optional[int] = None
    ttl_seconds: int = SESSION_TTL_SECONDS


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(self, *, user_id: int, ttl_seconds: int = SESSION_TTL_SECONDS) -> SessionRecord:
        _drop_expired(self._data, _now())
        sid = secrets.token_urlsafe(32)
        rec = SessionRecord(session_id=sid, user_id=int(user_id), expires_at=_now() + ttl_seconds, ttl_seconds=ttl_seconds)
        self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)
