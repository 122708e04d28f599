"""
Store selection and fail-fast bootstrap.
"""
from __future__ import annotations

import pytest

from persistence import bootstrap
from persistence.memory import MemoryStore


def test_memory_backend_builds_memory_store(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    assert isinstance(bootstrap.build_store_from_env(), MemoryStore)


def test_unknown_backend_aborts(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STORE_BACKEND", "sqlite")
    with pytest.raises(SystemExit):
        bootstrap.build_store_from_env()


def test_db_backend_runs_schema_bootstrap(monkeypatch: pytest.MonkeyPatch):
    calls = []

    class FakePostgresStore:
        def ensure_schema(self):
            calls.append("ensure_schema")

    monkeypatch.setenv("STORE_BACKEND", "db")
    monkeypatch.setattr(bootstrap, "PostgresStore", FakePostgresStore)
    store = bootstrap.build_store_from_env()
    assert isinstance(store, FakePostgresStore)
    assert calls == ["ensure_schema"]


def test_unreachable_database_aborts_startup(monkeypatch: pytest.MonkeyPatch):
    class BrokenPostgresStore:
        def ensure_schema(self):
            raise ConnectionError("connection refused")

    monkeypatch.setenv("STORE_BACKEND", "db")
    monkeypatch.setattr(bootstrap, "PostgresStore", BrokenPostgresStore)
    with pytest.raises(SystemExit):
        bootstrap.build_store_from_env()
