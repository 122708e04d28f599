"""
Progress Tracker: one snapshot per user, overwritten on every write.

Behavior:
    - Sanitization never rejects: numbers are coerced to non-negative ints
      (non-finite, negative or non-numeric inputs become 0), `completed_terms`
      is clamped to `total_terms`, `interview_answered` to `interview_total`,
      and `module` is cut to 32 chars, defaulting to "home".
    - The write is a single upsert keyed on the user id (last write wins).
    - The dashboard joins every user with their (possibly absent) snapshot and
      sorts by last activity, then last login, then account creation.
"""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Mapping

from persistence.ports import StoreProtocol

MODULE_MAX_LEN = 32
DEFAULT_MODULE = "home"
# Postgres `integer` upper bound; larger inputs would fail the insert.
_INT_MAX = 2**31 - 1

COUNTER_FIELDS = (
    "total_terms",
    "completed_terms",
    "quiz_correct",
    "quiz_incorrect",
    "interview_total",
    "interview_answered",
)


def as_non_negative_int(value: Any) -> int:
    if isinstance(value, bool):
        number = float(value)
    elif isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return 0
        try:
            number = float(raw)
        except ValueError:
            return 0
    else:
        return 0
    if not math.isfinite(number):
        return 0
    return min(max(0, math.floor(number)), _INT_MAX)


def sanitize_snapshot(payload: Mapping[str, Any]) -> dict:
    module = payload.get("module")
    snap = {
        "module": str(module)[:MODULE_MAX_LEN] if module else DEFAULT_MODULE,
    }
    for field in COUNTER_FIELDS:
        snap[field] = as_non_negative_int(payload.get(field))
    snap["completed_terms"] = min(snap["completed_terms"], snap["total_terms"])
    snap["interview_answered"] = min(snap["interview_answered"], snap["interview_total"])
    return snap


def completion_pct(done: Any, total: Any) -> float:
    if not total:
        return 0.0
    pct = (Decimal(int(done or 0)) * 100 / Decimal(int(total))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return float(pct)


class ProgressTracker:
    def __init__(self, store: StoreProtocol) -> None:
        self._store = store

    def record(self, user_id: int, payload: Mapping[str, Any]) -> dict:
        snap = sanitize_snapshot(payload or {})
        self._store.upsert_progress(user_id, snap)
        return snap

    def dashboard(self) -> List[dict]:
        rows = []
        for row in self._store.progress_rows():
            out = dict(row)
            out["flashcard_completion_pct"] = completion_pct(row.get("completed_terms"), row.get("total_terms"))
            out["interview_completion_pct"] = completion_pct(row.get("interview_answered"), row.get("interview_total"))
            out["_activity"] = row.get("updated_at") or row.get("last_login") or row.get("created_at") or ""
            rows.append(out)
        rows.sort(key=lambda r: r["_activity"], reverse=True)
        for r in rows:
            r.pop("_activity", None)
            r.pop("created_at", None)
        return rows


__all__ = ["ProgressTracker", "sanitize_snapshot", "as_non_negative_int", "completion_pct"]
