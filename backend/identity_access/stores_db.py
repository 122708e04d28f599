"""
Database-backed SessionStore for production use (Postgres).

Why: In-memory sessions do not survive a restart and are not shared between
worker processes. This store persists sessions in the `app_sessions` table
while keeping the cookie opaque and PII-minimal (only the user id is stored).

Security:
- Only the opaque `session_id` is set in the cookie; all user context stays server-side.
- Session ids are generated in Python with `secrets`, not by the database.

Note: This module uses psycopg3. It is used only when `SESSIONS_BACKEND=db`.
Tests use the in-memory store.
"""
from __future__ import annotations

from typing import Optional
import os
import re
import secrets
import time

try:
    import psycopg
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from persistence.repo_db import DEFAULT_DSN

from .stores import SESSION_TTL_SECONDS, SessionRecord


def _now() -> int:
    return int(time.time())


class DBSessionStore:
    """Postgres-backed session store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string. Falls back to `DATABASE_URL`, then to the
        same local default as the domain store.
    table:
        Table name, optionally schema-qualified. Defaults to `app_sessions`.
    """

    def __init__(self, dsn: str | None = None, table: str = "app_sessions") -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBSessionStore")
        self._dsn = dsn or os.getenv("DATABASE_URL") or DEFAULT_DSN
        # Validate table identifier early; it is interpolated into SQL.
        if not re.match(r'^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$', table or ''):
            raise ValueError("Invalid table name")
        self._table = table

    def create(self, *, user_id: int, ttl_seconds: int = SESSION_TTL_SECONDS) -> SessionRecord:
        sid = secrets.token_urlsafe(32)
        expires_at = _now() + ttl_seconds
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"insert into {self._table} (session_id, user_id, expires_at) values (%s, %s, to_timestamp(%s))",
                    (sid, int(user_id), expires_at),
                )
        return SessionRecord(session_id=sid, user_id=int(user_id), expires_at=expires_at, ttl_seconds=ttl_seconds)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select session_id, user_id, extract(epoch from expires_at)::bigint "
                    f"from {self._table} where session_id = %s and expires_at > now()",
                    (session_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return SessionRecord(
            session_id=row[0],
            user_id=int(row[1]),
            expires_at=int(row[2]) if row[2] is not None else None,
        )

    def delete(self, session_id: str) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(f"delete from {self._table} where session_id = %s", (session_id,))

    def purge_expired(self) -> int:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(f"delete from {self._table} where expires_at <= now()")
                return int(cur.rowcount or 0)
