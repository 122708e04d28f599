"""
Persistence port for every durable entity of the study app.

Keep this framework-agnostic so services can be exercised against the
in-memory store and production can run on Postgres without code changes.

Conventions:
    - Timestamps are returned as ISO-8601 strings (UTC).
    - Lists are returned as plain dicts (or `UserRecord` for users).
    - Methods returning `Optional[...]` use `None` for "no such row".
"""
from __future__ import annotations

from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from identity_access.domain import Role, UserRecord


# Receives the questions already stored; returns the candidates that collide.
DuplicateCheck = Callable[[List[str]], List[str]]


class StoreProtocol(Protocol):
    # --- users ---------------------------------------------------------
    def get_user(self, user_id: int) -> Optional[UserRecord]: ...

    def get_user_by_subject(self, subject: str) -> Optional[UserRecord]: ...

    def count_users(self) -> int: ...

    def create_user(
        self,
        *,
        subject: str,
        email: str,
        name: str,
        avatar_url: Optional[str],
        role: Role,
        is_allowed: bool,
        first_user_admin: bool = False,
    ) -> UserRecord:
        """Insert a user. With `first_user_admin`, an empty users table turns
        this user into an allowed admin; the emptiness check and the insert
        are serialized against concurrent creates."""
        ...

    def record_login(
        self, user_id: int, *, name: str, avatar_url: Optional[str], is_allowed: bool
    ) -> UserRecord: ...

    def list_users(self) -> List[UserRecord]: ...

    def set_user_role(self, user_id: int, role: Role) -> bool: ...

    def set_user_allowed(self, user_id: int, allowed: bool) -> bool: ...

    # --- allowlist -----------------------------------------------------
    def is_allowlisted(self, email: str) -> bool: ...

    def list_allowlist(self) -> List[dict]: ...

    def add_allowlist_entry(self, email: str, *, added_by: int) -> None:
        """Upsert the entry and grant access to any user with that email."""
        ...

    def remove_allowlist_entry(self, email: str) -> None:
        """Delete the entry and revoke access of any user with that email."""
        ...

    # --- access requests -----------------------------------------------
    def create_access_request(self, *, email: str, name: str, reason: Optional[str]) -> int: ...

    def list_pending_requests(self) -> List[dict]: ...

    def approve_access_request(self, request_id: int, *, approved_by: int) -> Optional[str]:
        """Approve a pending request; returns its email, or None when not pending.

        Allowlist upsert, user grant and status change happen atomically.
        """
        ...

    def reject_access_request(self, request_id: int) -> Optional[str]: ...

    # --- terms ---------------------------------------------------------
    def insert_term(self, *, t: str, d: str, l: int, c: str, added_by: int) -> int: ...

    def insert_terms(self, rows: Sequence[Tuple[str, str, int, str]], *, added_by: int) -> int: ...

    def list_terms(self) -> List[dict]: ...

    def list_term_content(self) -> List[dict]: ...

    def delete_term(self, term_id: int) -> Optional[str]: ...

    # --- interview -----------------------------------------------------
    def insert_interview(
        self, *, question: str, ideal_answer: str, role: str, company: str, added_by: int
    ) -> int: ...

    def insert_interview_batch(
        self,
        rows: Sequence[Tuple[str, str]],
        *,
        role: str,
        company: str,
        added_by: int,
        find_duplicates: DuplicateCheck,
    ) -> Tuple[List[str], int]:
        """Run `find_duplicates` against stored questions, then insert `rows`.

        Returns `(duplicates, inserted)`. When duplicates are reported nothing
        is written. Check and insert share one critical section.
        """
        ...

    def list_interview(self) -> List[dict]: ...

    def list_interview_content(self) -> List[dict]: ...

    def count_interview(self) -> int: ...

    def delete_interview(self, entry_id: int) -> Optional[str]: ...

    # --- audit ---------------------------------------------------------
    def append_audit(self, *, actor_id: Optional[int], action: str, target: Optional[str], detail: Optional[dict]) -> None: ...

    def recent_audit(self, limit: int) -> List[dict]: ...

    # --- progress ------------------------------------------------------
    def upsert_progress(self, user_id: int, snapshot: dict) -> None: ...

    def get_progress(self, user_id: int) -> Optional[dict]: ...

    def progress_rows(self) -> List[dict]:
        """Every user left-joined with their snapshot (snapshot fields may be None)."""
        ...

    # --- tts -----------------------------------------------------------
    def get_tts_audio(self, key: str) -> Optional[bytes]: ...

    def put_tts_audio(self, key: str, audio: bytes) -> None: ...

    # --- health --------------------------------------------------------
    def ping(self) -> None: ...


__all__ = ["StoreProtocol", "DuplicateCheck"]
