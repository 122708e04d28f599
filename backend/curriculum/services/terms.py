"""Curated term use cases (create, bulk import, list, delete).

Why:
    Keep validation and audit sequencing out of the FastAPI routers so the
    rules can be unit-tested against the in-memory store.

Behavior:
    - Single create validates every field before the write (400 on failure).
    - Bulk import is best-effort: invalid rows are skipped, valid ones kept,
      the response reports how many were written.
    - Delete is a hard delete; the removed term text becomes the audit target.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from audit_trail.recorder import AuditRecorder
from core.errors import NotFound, ValidationError
from curriculum.catalog import is_valid_category, parse_level
from identity_access.domain import Identity
from persistence.ports import StoreProtocol

TermRow = Tuple[str, str, int, str]


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_term(payload: Mapping[str, Any]) -> TermRow:
    """Return `(t, d, l, c)` or raise ValidationError with a stable detail code."""
    t, d, c = _text(payload.get("t")), _text(payload.get("d")), _text(payload.get("c"))
    if not t or not d or not c:
        raise ValidationError("term_definition_category_required")
    level = parse_level(payload.get("l"))
    if level is None:
        raise ValidationError("invalid_level")
    if not is_valid_category(c):
        raise ValidationError("invalid_category")
    return t, d, level, c


@dataclass
class TermsService:
    store: StoreProtocol
    audit: AuditRecorder

    def create(self, actor: Identity, payload: Mapping[str, Any]) -> int:
        t, d, level, c = normalize_term(payload)
        term_id = self.store.insert_term(t=t, d=d, l=level, c=c, added_by=actor.user_id)
        self.audit.record(actor.user_id, "upload_term", t)
        return term_id

    def bulk_create(self, actor: Identity, entries: Optional[List[Any]]) -> int:
        if not isinstance(entries, list):
            raise ValidationError("entries_required")
        rows: List[TermRow] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            try:
                rows.append(normalize_term(entry))
            except ValidationError:
                continue
        imported = self.store.insert_terms(rows, added_by=actor.user_id)
        self.audit.record(actor.user_id, "upload_terms_bulk", len(entries), {"imported": imported})
        return imported

    def list_all(self) -> List[dict]:
        return self.store.list_terms()

    def study_content(self) -> List[dict]:
        return self.store.list_term_content()

    def delete(self, actor: Identity, term_id: int) -> None:
        removed = self.store.delete_term(term_id)
        if removed is None:
            raise NotFound("term_not_found")
        self.audit.record(actor.user_id, "delete_term", removed)


__all__ = ["TermsService", "normalize_term"]
