"""Interview Q&A use cases.

Bulk import is all-or-nothing with respect to duplicates: if any submitted
question already exists (compared case-insensitively, whitespace-collapsed)
the whole batch is rejected with 409 and nothing is written. Single-entry
upload never dedupes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from audit_trail.recorder import AuditRecorder, excerpt
from core.errors import Conflict, NotFound, ValidationError
from identity_access.domain import Identity
from persistence.ports import StoreProtocol


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def question_key(question: str) -> str:
    return " ".join(question.split()).casefold()


def find_duplicates(candidates: List[str], existing: List[str]) -> List[str]:
    """Candidates whose normalized form is already stored, in submission order."""
    seen = {question_key(q) for q in existing if isinstance(q, str)}
    return [q for q in candidates if q.strip() and question_key(q) in seen]


@dataclass
class InterviewService:
    store: StoreProtocol
    audit: AuditRecorder

    def create(self, actor: Identity, payload: Mapping[str, Any]) -> int:
        question = _text(payload.get("question"))
        answer = _text(payload.get("ideal_answer"))
        role = _text(payload.get("role"))
        company = _text(payload.get("company"))
        if not (question and answer and role and company):
            raise ValidationError("question_answer_role_company_required")
        entry_id = self.store.insert_interview(
            question=question, ideal_answer=answer, role=role, company=company, added_by=actor.user_id
        )
        self.audit.record(actor.user_id, "upload_interview", excerpt(question))
        return entry_id

    def bulk_create(
        self, actor: Identity, entries: Optional[List[Any]], role: object, company: object
    ) -> int:
        role_s, company_s = _text(role), _text(company)
        if not isinstance(entries, list) or not entries or not role_s or not company_s:
            raise ValidationError("entries_role_company_required")

        candidates: List[str] = []
        rows: List[Tuple[str, str]] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            raw_q = entry.get("question")
            if isinstance(raw_q, str):
                candidates.append(raw_q)
            q, a = _text(raw_q), _text(entry.get("ideal_answer"))
            if q and a:
                rows.append((q, a))

        duplicates, inserted = self.store.insert_interview_batch(
            rows,
            role=role_s,
            company=company_s,
            added_by=actor.user_id,
            find_duplicates=lambda existing: find_duplicates(candidates, existing),
        )
        if duplicates:
            raise Conflict("duplicates_found", duplicates=duplicates)
        self.audit.record(
            actor.user_id,
            "upload_interview_bulk",
            len(entries),
            {"imported": inserted, "role": role_s, "company": company_s},
        )
        return inserted

    def list_all(self) -> List[dict]:
        return self.store.list_interview()

    def study_content(self) -> List[dict]:
        return self.store.list_interview_content()

    def delete(self, actor: Identity, entry_id: int) -> None:
        removed = self.store.delete_interview(entry_id)
        if removed is None:
            raise NotFound("interview_not_found")
        self.audit.record(actor.user_id, "delete_interview", excerpt(removed))


__all__ = ["InterviewService", "find_duplicates", "question_key"]
