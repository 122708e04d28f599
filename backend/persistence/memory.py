"""
In-memory store used by tests and offline development.

Behavior mirrors the Postgres store: surrogate ids, newest-first admin
lists, upsert semantics for allowlist/progress/tts and terminal transitions
for access requests. A single lock serializes every mutation.
"""
from __future__ import annotations

import copy
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from identity_access.domain import Role, UserRecord

from .ports import DuplicateCheck


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemoryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq: Dict[str, int] = {}
        self.users: Dict[int, UserRecord] = {}
        self.allowlist: Dict[str, dict] = {}
        self.requests: Dict[int, dict] = {}
        self.terms: Dict[int, dict] = {}
        self.interview: Dict[int, dict] = {}
        self.audit: List[dict] = []
        self.progress: Dict[int, dict] = {}
        self.tts: Dict[str, Tuple[bytes, str]] = {}

    def _next_id(self, table: str) -> int:
        value = self._seq.get(table, 0) + 1
        self._seq[table] = value
        return value

    # --- users ---------------------------------------------------------
    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self._lock:
            user = self.users.get(int(user_id))
            return copy.copy(user) if user else None

    def get_user_by_subject(self, subject: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users.values():
                if user.subject == subject:
                    return copy.copy(user)
        return None

    def count_users(self) -> int:
        with self._lock:
            return len(self.users)

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
        with self._lock:
            for existing in self.users.values():
                if existing.subject == subject or existing.email == email:
                    raise ValueError("user_exists")
            if first_user_admin and not self.users:
                role, is_allowed = Role.ADMIN, True
            now = _now_iso()
            user = UserRecord(
                id=self._next_id("users"),
                subject=subject,
                email=email,
                name=name,
                avatar_url=avatar_url,
                role=role,
                is_allowed=bool(is_allowed),
                created_at=now,
                last_login=now,
            )
            self.users[user.id] = user
            return copy.copy(user)

    def record_login(self, user_id: int, *, name: str, avatar_url: Optional[str], is_allowed: bool) -> UserRecord:
        with self._lock:
            user = self.users[int(user_id)]
            user.name = name
            user.avatar_url = avatar_url
            user.is_allowed = bool(is_allowed)
            user.last_login = _now_iso()
            return copy.copy(user)

    def list_users(self) -> List[UserRecord]:
        with self._lock:
            users = sorted(self.users.values(), key=lambda u: (u.created_at or "", u.id))
            return [copy.copy(u) for u in users]

    def set_user_role(self, user_id: int, role: Role) -> bool:
        with self._lock:
            user = self.users.get(int(user_id))
            if user is None:
                return False
            user.role = role
            return True

    def set_user_allowed(self, user_id: int, allowed: bool) -> bool:
        with self._lock:
            user = self.users.get(int(user_id))
            if user is None:
                return False
            user.is_allowed = bool(allowed)
            return True

    def _set_allowed_by_email(self, email: str, allowed: bool) -> None:
        for user in self.users.values():
            if user.email == email:
                user.is_allowed = allowed

    # --- allowlist -----------------------------------------------------
    def is_allowlisted(self, email: str) -> bool:
        with self._lock:
            return email in self.allowlist

    def list_allowlist(self) -> List[dict]:
        with self._lock:
            rows = sorted(self.allowlist.values(), key=lambda r: (r["added_at"], r["email"]))
            return [dict(r) for r in rows]

    def add_allowlist_entry(self, email: str, *, added_by: int) -> None:
        with self._lock:
            self.allowlist[email] = {"email": email, "added_by": added_by, "added_at": _now_iso()}
            self._set_allowed_by_email(email, True)

    def remove_allowlist_entry(self, email: str) -> None:
        with self._lock:
            self.allowlist.pop(email, None)
            self._set_allowed_by_email(email, False)

    # --- access requests -----------------------------------------------
    def create_access_request(self, *, email: str, name: str, reason: Optional[str]) -> int:
        with self._lock:
            rid = self._next_id("access_requests")
            self.requests[rid] = {
                "id": rid,
                "email": email,
                "name": name,
                "reason": reason,
                "status": "pending",
                "requested_at": _now_iso(),
            }
            return rid

    def list_pending_requests(self) -> List[dict]:
        with self._lock:
            rows = [dict(r) for r in self.requests.values() if r["status"] == "pending"]
        rows.sort(key=lambda r: (r["requested_at"], r["id"]))
        return rows


    def approve_access_request(self, request_id: int, *, approved_by: int) -> Optional[str]:
        with self._lock:
            row = self.requests.get(int(request_id))
            if row is None or row["status"] != "pending":
                return None
            email = row["email"]
            self.allowlist[email] = {"email": email, "added_by": approved_by, "added_at": _now_iso()}
            self._set_allowed_by_email(email, True)
            row["status"] = "approved"
            return email

    def reject_access_request(self, request_id: int) -> Optional[str]:
        with self._lock:
            row = self.requests.get(int(request_id))
            if row is None or row["status"] != "pending":
                return None
            row["status"] = "rejected"
            return row["email"]

    # --- terms ---------------------------------------------------------
    def insert_term(self, *, t: str, d: str, l: int, c: str, added_by: int) -> int:
        return self._insert_terms([(t, d, l, c)], added_by=added_by)[0]

    def insert_terms(self, rows: Sequence[Tuple[str, str, int, str]], *, added_by: int) -> int:
        return len(self._insert_terms(rows, added_by=added_by))

    def _insert_terms(self, rows: Sequence[Tuple[str, str, int, str]], *, added_by: int) -> List[int]:
        ids: List[int] = []
        with self._lock:
            for t, d, l, c in rows:
                tid = self._next_id("uploaded_terms")
                self.terms[tid] = {
                    "id": tid,
                    "t": t,
                    "d": d,
                    "l": int(l),
                    "c": c,
                    "added_by": added_by,
                    "added_at": _now_iso(),
                }
                ids.append(tid)
        return ids

    def list_terms(self) -> List[dict]:
        with self._lock:
            rows = [dict(r) for r in self.terms.values()]
        rows.sort(key=lambda r: (r["added_at"], r["id"]), reverse=True)
        return rows

    def list_term_content(self) -> List[dict]:
        with self._lock:
            return [{"t": r["t"], "d": r["d"], "l": r["l"], "c": r["c"]} for r in self.terms.values()]

    def delete_term(self, term_id: int) -> Optional[str]:
        with self._lock:
            row = self.terms.pop(int(term_id), None)
            return row["t"] if row else None

    # --- interview -----------------------------------------------------
    def _insert_interview_locked(self, question: str, ideal_answer: str, role: str, company: str, added_by: int) -> int:
        eid = self._next_id("uploaded_interview")
        self.interview[eid] = {
            "id": eid,
            "question": question,
            "ideal_answer": ideal_answer,
            "role": role,
            "company": company,
            "added_by": added_by,
            "added_at": _now_iso(),
        }
        return eid

    def insert_interview(self, *, question: str, ideal_answer: str, role: str, company: str, added_by: int) -> int:
        with self._lock:
            return self._insert_interview_locked(question, ideal_answer, role, company, added_by)

    def insert_interview_batch(
        self,
        rows: Sequence[Tuple[str, str]],
        *,
        role: str,
        company: str,
        added_by: int,
        find_duplicates: DuplicateCheck,
    ) -> Tuple[List[str], int]:
        with self._lock:
            existing = [r["question"] for r in self.interview.values()]
            duplicates = find_duplicates(existing)
            if duplicates:
                return duplicates, 0
            for question, answer in rows:
                self._insert_interview_locked(question, answer, role, company, added_by)
            return [], len(rows)

    def list_interview(self) -> List[dict]:
        with self._lock:
            rows = [dict(r) for r in self.interview.values()]
        rows.sort(key=lambda r: (r["added_at"], r["id"]), reverse=True)
        return rows

    def list_interview_content(self) -> List[dict]:
        with self._lock:
            return [
                {"question": r["question"], "ideal_answer": r["ideal_answer"], "role": r["role"], "company": r["company"]}
                for r in self.interview.values()
            ]

    def count_interview(self) -> int:
        with self._lock:
            return len(self.interview)

    def delete_interview(self, entry_id: int) -> Optional[str]:
        with self._lock:
            row = self.interview.pop(int(entry_id), None)
            return row["question"] if row else None

    # --- audit ---------------------------------------------------------
    def append_audit(self, *, actor_id: Optional[int], action: str, target: Optional[str], detail: Optional[dict]) -> None:
        with self._lock:
            self.audit.append(
                {
                    "id": self._next_id("audit_log"),
                    "performed_by": actor_id,
                    "action": action,
                    "target": target,
                    "detail": copy.deepcopy(detail) if detail is not None else None,
                    "created_at": _now_iso(),
                }
            )

    def recent_audit(self, limit: int) -> List[dict]:
        with self._lock:
            rows = sorted(self.audit, key=lambda r: (r["created_at"], r["id"]), reverse=True)[: max(0, int(limit))]
            out = []
            for r in rows:
                actor = self.users.get(r["performed_by"]) if r["performed_by"] is not None else None
                out.append(
                    {
                        "id": r["id"],
                        "action": r["action"],
                        "target": r["target"],
                        "detail": copy.deepcopy(r["detail"]),
                        "created_at": r["created_at"],
                        "actor_email": actor.email if actor else None,
                    }
                )
            return out

    # --- progress ------------------------------------------------------
    def upsert_progress(self, user_id: int, snapshot: dict) -> None:
        with self._lock:
            row = dict(snapshot)
            row["user_id"] = int(user_id)
            row["updated_at"] = _now_iso()
            self.progress[int(user_id)] = row

    def get_progress(self, user_id: int) -> Optional[dict]:
        with self._lock:
            row = self.progress.get(int(user_id))
            return dict(row) if row else None

    def progress_rows(self) -> List[dict]:
        fields = (
            "module",
            "total_terms",
            "completed_terms",
            "quiz_correct",
            "quiz_incorrect",
            "interview_total",
            "interview_answered",
            "updated_at",
        )
        with self._lock:
            out = []
            for user in self.users.values():
                snap = self.progress.get(user.id) or {}
                row = {
                    "id": user.id,
                    "name": user.name,
                    "email": user.email,
                    "role": user.role.value,
                    "is_allowed": 1 if user.is_allowed else 0,
                    "last_login": user.last_login,
                    "created_at": user.created_at,
                }
                for field in fields:
                    row[field] = snap.get(field)
                out.append(row)
            return out

    # --- tts -----------------------------------------------------------
    def get_tts_audio(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self.tts.get(key)
            return entry[0] if entry else None

    def put_tts_audio(self, key: str, audio: bytes) -> None:
        with self._lock:
            self.tts[key] = (bytes(audio), _now_iso())

    # --- health --------------------------------------------------------
    def ping(self) -> None:
        return None


__all__ = ["MemoryStore"]
