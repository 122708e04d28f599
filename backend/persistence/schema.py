"""
Relational schema for the Postgres store.

Intent:
    Create every table the application needs, idempotently, at process start.
    Running the DDL twice is a no-op; columns are never altered here.
"""
from __future__ import annotations

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    create table if not exists tts_cache (
        term        text primary key,
        audio_data  bytea not null,
        created_at  timestamptz not null default now()
    )
    """,
    """
    create table if not exists users (
        id          serial primary key,
        google_id   text unique not null,
        email       text unique not null,
        name        text not null,
        avatar_url  text,
        role        text not null default 'viewer',
        is_allowed  integer not null default 0,
        created_at  timestamptz not null default now(),
        last_login  timestamptz not null default now()
    )
    """,
    """
    create table if not exists email_allowlist (
        email     text primary key,
        added_by  integer references users(id),
        added_at  timestamptz not null default now()
    )
    """,
    """
    create table if not exists uploaded_terms (
        id        serial primary key,
        t         text not null,
        d         text not null,
        l         integer not null,
        c         text not null,
        added_by  integer references users(id),
        added_at  timestamptz not null default now()
    )
    """,
    """
    create table if not exists uploaded_interview (
        id            serial primary key,
        question      text not null,
        ideal_answer  text not null,
        role          text not null,
        company       text not null,
        added_by      integer references users(id),
        added_at      timestamptz not null default now()
    )
    """,
    """
    create table if not exists access_requests (
        id            serial primary key,
        email         text not null,
        name          text not null,
        reason        text,
        status        text not null default 'pending',
        requested_at  timestamptz not null default now()
    )
    """,
    """
    create table if not exists audit_log (
        id            serial primary key,
        performed_by  integer references users(id),
        action        text not null,
        target        text,
        detail        text,
        created_at    timestamptz not null default now()
    )
    """,
    """
    create table if not exists user_progress (
        user_id             integer primary key references users(id) on delete cascade,
        module              text not null default 'home',
        total_terms         integer not null default 0,
        completed_terms     integer not null default 0,
        quiz_correct        integer not null default 0,
        quiz_incorrect      integer not null default 0,
        interview_total     integer not null default 0,
        interview_answered  integer not null default 0,
        updated_at          timestamptz not null default now()
    )
    """,
    """
    create table if not exists app_sessions (
        session_id  text primary key,
        user_id     integer not null references users(id) on delete cascade,
        expires_at  timestamptz not null
    )
    """,
    "create index if not exists app_sessions_expires_idx on app_sessions (expires_at)",
)

# Domain tables; `app_sessions` is plumbing and not listed.
DOMAIN_TABLES: tuple[str, ...] = (
    "users",
    "email_allowlist",
    "uploaded_terms",
    "uploaded_interview",
    "access_requests",
    "audit_log",
    "user_progress",
    "tts_cache",
)

__all__ = ["SCHEMA_STATEMENTS", "DOMAIN_TABLES"]
