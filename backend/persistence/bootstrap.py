"""
Store factory and schema bootstrap.

Intent:
    Pick the store implementation from `STORE_BACKEND` and make sure the
    schema exists before the application serves traffic.

Behavior:
    - `memory`: in-process store, no external calls (tests, offline dev).
    - `db` (default): Postgres via psycopg3; runs the idempotent DDL once.
    - Any connection or DDL failure aborts startup with `SystemExit`.
"""
from __future__ import annotations

import logging
import os

from .memory import MemoryStore
from .ports import StoreProtocol
from .repo_db import PostgresStore

_log = logging.getLogger("stint.persistence")


def store_backend() -> str:
    return (os.getenv("STORE_BACKEND") or "db").strip().lower()


def build_store_from_env() -> StoreProtocol:
    backend = store_backend()
    if backend == "memory":
        _log.info("using in-memory store")
        return MemoryStore()
    if backend != "db":
        raise SystemExit(f"Refusing to start: unknown STORE_BACKEND={backend!r} (expected 'db' or 'memory').")
    try:
        store = PostgresStore()
        store.ensure_schema()
    except Exception as exc:
        _log.error("store bootstrap failed: error=%s", type(exc).__name__)
        raise SystemExit("Refusing to start: database unreachable or schema bootstrap failed.") from exc
    return store


__all__ = ["build_store_from_env", "store_backend"]
