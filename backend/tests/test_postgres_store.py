"""
PostgresStore SQL flow against a scripted psycopg stand-in.

Rationale: pin transaction boundaries (commit vs. rollback), parameters and
row mapping without a live database.
"""
from __future__ import annotations

import json

import pytest

from identity_access.domain import Role
from persistence import repo_db
from persistence.schema import DOMAIN_TABLES, SCHEMA_STATEMENTS
from utils.fake_psycopg import install_scripted_psycopg

USER_ROW = (
    7,
    "g-7",
    "ada@example.com",
    "Ada",
    None,
    "manager",
    1,
    "2024-01-01T00:00:00+00:00",
    "2024-02-01T00:00:00+00:00",
)


def _store(monkeypatch, results=None):
    db = install_scripted_psycopg(monkeypatch, repo_db, results)
    return repo_db.PostgresStore(dsn="postgresql://fake/db"), db


def test_default_dsn_when_env_missing(monkeypatch: pytest.MonkeyPatch):
    install_scripted_psycopg(monkeypatch, repo_db)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert repo_db.PostgresStore()._dsn == repo_db.DEFAULT_DSN


def test_ensure_schema_runs_every_statement_and_commits(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch)
    store.ensure_schema()
    assert len(db.statements) == len(SCHEMA_STATEMENTS)
    assert db.commits == 1
    ddl = " ".join(stmt for stmt, _ in db.statements)
    for table in DOMAIN_TABLES + ("app_sessions",):
        assert f"create table if not exists {table}" in ddl


def test_get_user_maps_row(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [USER_ROW, None])
    user = store.get_user(7)
    assert user.id == 7
    assert user.subject == "g-7"
    assert user.role is Role.MANAGER
    assert user.is_allowed is True
    assert user.last_login == "2024-02-01T00:00:00+00:00"
    assert db.params() == (7,)
    assert store.get_user(8) is None


def test_create_user_writes_role_value_and_int_flag(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [USER_ROW])
    store.create_user(
        subject="g-7", email="ada@example.com", name="Ada", avatar_url=None, role=Role.VIEWER, is_allowed=False
    )
    assert db.sql().startswith("insert into users")
    assert db.params() == ("g-7", "ada@example.com", "Ada", None, "viewer", 0)
    assert db.commits == 1


def test_first_user_create_is_serialized_and_promoted(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [(0,), USER_ROW])
    store.create_user(
        subject="g-7",
        email="ada@example.com",
        name="Ada",
        avatar_url=None,
        role=Role.VIEWER,
        is_allowed=False,
        first_user_admin=True,
    )
    assert db.sql(0) == "select pg_advisory_xact_lock(%s)"
    assert db.params(0) == (repo_db._FIRST_USER_LOCK,)
    assert db.sql(1) == "select count(*) from users"
    assert db.params(2)[4:] == ("admin", 1)
    assert db.commits == 1


def test_later_user_create_keeps_requested_role(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [(3,), USER_ROW])
    store.create_user(
        subject="g-7",
        email="ada@example.com",
        name="Ada",
        avatar_url=None,
        role=Role.VIEWER,
        is_allowed=False,
        first_user_admin=True,
    )
    assert db.params()[4:] == ("viewer", 0)


def test_set_user_role_reports_missing_row(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch)
    db.rowcount = 0
    assert store.set_user_role(99, Role.ADMIN) is False
    db.rowcount = 1
    assert store.set_user_allowed(5, True) is True
    assert db.params() == (1, 5)


def test_add_allowlist_entry_upserts_and_grants_in_one_transaction(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch)
    store.add_allowlist_entry("ada@example.com", added_by=1)
    assert "on conflict (email) do update set added_by = excluded.added_by, added_at = now()" in db.sql(0)
    assert db.sql(1) == "update users set is_allowed = 1 where email = %s"
    assert db.commits == 1


def test_approve_pending_request_grants_and_commits(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [("ada@example.com",)])
    assert store.approve_access_request(3, approved_by=1) == "ada@example.com"
    assert "status = 'pending'" in db.sql(0)
    assert db.sql(1).startswith("insert into email_allowlist")
    assert db.params(1) == ("ada@example.com", 1)
    assert db.sql(2).startswith("update users set is_allowed = 1")
    assert (db.commits, db.rollbacks) == (1, 0)


def test_approve_non_pending_request_rolls_back(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [None])
    assert store.approve_access_request(3, approved_by=1) is None
    assert len(db.statements) == 1
    assert (db.commits, db.rollbacks) == (0, 1)


def test_interview_batch_with_duplicates_writes_nothing(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [[("What is a shuffle?",)]])
    seen = {}

    def check(existing):
        seen["existing"] = existing
        return ["what is a shuffle?"]

    duplicates, inserted = store.insert_interview_batch(
        [("what is a shuffle?", "a")], role="DE", company="Acme", added_by=1, find_duplicates=check
    )
    assert (duplicates, inserted) == (["what is a shuffle?"], 0)
    assert seen["existing"] == ["What is a shuffle?"]
    assert db.sql(0) == "select pg_advisory_xact_lock(%s)"
    assert all("insert" not in db.sql(i) for i in range(len(db.statements)))
    assert (db.commits, db.rollbacks) == (0, 1)


def test_interview_batch_inserts_under_advisory_lock(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [[]])
    duplicates, inserted = store.insert_interview_batch(
        [("q1", "a1"), ("q2", "a2")], role="DE", company="Acme", added_by=4, find_duplicates=lambda existing: []
    )
    assert (duplicates, inserted) == ([], 2)
    assert db.sql().startswith("insert into uploaded_interview")
    assert db.params() == [("q1", "a1", "DE", "Acme", 4), ("q2", "a2", "DE", "Acme", 4)]
    assert db.commits == 1


def test_insert_terms_skips_empty_batch(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch)
    assert store.insert_terms([], added_by=1) == 0
    assert db.connects == []
    assert store.insert_terms([("Spark", "Engine", 2, "Apache Spark Core")], added_by=1) == 1
    assert db.params() == [("Spark", "Engine", 2, "Apache Spark Core", 1)]


def test_delete_returns_removed_text(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [("Spark",), None])
    assert store.delete_term(1) == "Spark"
    assert store.delete_term(2) is None
    assert "returning t" in db.sql()


def test_audit_detail_is_stored_as_json_and_decoded_on_read(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch)
    store.append_audit(actor_id=1, action="change_role", target="7", detail={"role": "admin"})
    assert json.loads(db.params()[3]) == {"role": "admin"}

    db.results.append([(1, "change_role", "7", '{"role": "admin"}', "2024-01-01T00:00:00+00:00", "a@x.io")])
    rows = store.recent_audit(100)
    assert rows[0]["detail"] == {"role": "admin"}
    assert rows[0]["actor_email"] == "a@x.io"
    assert db.params() == (100,)


def test_progress_rows_map_missing_snapshot_to_none(monkeypatch: pytest.MonkeyPatch):
    row = (3, "Ada", "ada@x.io", "viewer", 1, "2024-01-02T00:00:00+00:00", "2024-01-01T00:00:00+00:00") + (None,) * 8
    store, _ = _store(monkeypatch, [[row]])
    out = store.progress_rows()[0]
    assert out["email"] == "ada@x.io"
    assert out["module"] is None
    assert out["updated_at"] is None
    assert out["is_allowed"] == 1


def test_tts_roundtrip_params(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [(memoryview(b"mp3"),)])
    store.put_tts_audio("spark", b"mp3")
    assert "on conflict (term) do update" in db.sql()
    assert store.get_tts_audio("spark") == b"mp3"


def test_ping_uses_short_connect_timeout(monkeypatch: pytest.MonkeyPatch):
    store, db = _store(monkeypatch, [(1,)])
    store.ping()
    assert db.connects[-1]["connect_timeout"] == 3
    assert db.sql() == "select 1"
