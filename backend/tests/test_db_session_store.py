"""
Unit-style tests for DBSessionStore using a fake psycopg driver.

Rationale: Keep CI/self-contained runs green without a real Postgres.
We simulate the subset of psycopg used by DBSessionStore to validate SQL flow
and mapping. No network or external DB required.
"""

from __future__ import annotations

import time

import pytest

from utils.fake_psycopg import install_fake_session_psycopg


def test_create_get_delete_roundtrip(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    table = install_fake_session_psycopg(monkeypatch, mod)
    store = mod.DBSessionStore(dsn="fake://dsn")

    rec = store.create(user_id=7, ttl_seconds=60)
    assert rec.session_id
    assert rec.ttl_seconds == 60
    assert rec.session_id in table

    got = store.get(rec.session_id)
    assert got is not None
    assert got.user_id == 7
    assert isinstance(got.expires_at, int)

    store.delete(rec.session_id)
    assert store.get(rec.session_id) is None


def test_get_filters_expired_sessions(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    install_fake_session_psycopg(monkeypatch, mod)
    store = mod.DBSessionStore(dsn="fake://dsn")

    rec = store.create(user_id=3, ttl_seconds=-10)
    assert rec.session_id
    assert store.get(rec.session_id) is None


def test_purge_expired_returns_removed_count(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    table = install_fake_session_psycopg(monkeypatch, mod, now_func=time.time)
    store = mod.DBSessionStore(dsn="fake://dsn")
    store.create(user_id=1, ttl_seconds=-5)
    store.create(user_id=2, ttl_seconds=-5)
    live = store.create(user_id=3, ttl_seconds=600)

    assert store.purge_expired() == 2
    assert list(table) == [live.session_id]


def test_session_ids_are_opaque_and_unique(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    install_fake_session_psycopg(monkeypatch, mod)
    store = mod.DBSessionStore(dsn="fake://dsn")
    ids = {store.create(user_id=1).session_id for _ in range(20)}
    assert len(ids) == 20
    assert all(len(sid) >= 40 for sid in ids)


def test_invalid_table_name_is_rejected(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod

    install_fake_session_psycopg(monkeypatch, mod)
    with pytest.raises(ValueError):
        mod.DBSessionStore(dsn="fake://dsn", table="bad;drop table")

    # Valid fully-qualified name should pass
    store = mod.DBSessionStore(dsn="fake://dsn", table="public.app_sessions")
    assert store is not None


def test_dsn_defaults_match_the_domain_store(monkeypatch: pytest.MonkeyPatch):
    """Without an explicit DSN or DATABASE_URL both stores use the same local default."""
    from identity_access import stores_db as mod
    from persistence.repo_db import DEFAULT_DSN

    install_fake_session_psycopg(monkeypatch, mod)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert mod.DBSessionStore()._dsn == DEFAULT_DSN

    monkeypatch.setenv("DATABASE_URL", "postgresql://app@db/stint")
    assert mod.DBSessionStore()._dsn == "postgresql://app@db/stint"


def test_default_config_builds_db_session_store(monkeypatch: pytest.MonkeyPatch):
    """STORE_BACKEND=db with nothing else set selects and builds the DB session store."""
    from identity_access import stores_db as mod
    from web import main

    install_fake_session_psycopg(monkeypatch, mod)
    monkeypatch.setenv("STORE_BACKEND", "db")
    monkeypatch.delenv("SESSIONS_BACKEND", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    store = main._build_session_store()
    assert isinstance(store, mod.DBSessionStore)


def test_missing_driver_aborts_startup(monkeypatch: pytest.MonkeyPatch):
    from identity_access import stores_db as mod
    from web import main

    monkeypatch.setattr(mod, "HAVE_PSYCOPG", False)
    monkeypatch.setenv("SESSIONS_BACKEND", "db")
    with pytest.raises(SystemExit):
        main._build_session_store()
