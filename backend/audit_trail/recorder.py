"""
Audit Recorder: append-only log of privileged mutations.

Behavior:
    - `record(...)` writes synchronously; the caller's response is only sent
      after the row is durable.
    - A failed write is logged and re-raised as `AuditWriteError` (HTTP 500).
      Handlers must never answer "ok" for a mutation whose audit row is missing.
    - `recent(limit)` is the only read: newest first, with the actor email.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core.errors import AuditWriteError
from persistence.ports import StoreProtocol

logger = logging.getLogger("stint.audit")

# Display reads never return more than this many rows.
MAX_RECENT = 100
TARGET_EXCERPT = 50


def excerpt(text: str, size: int = TARGET_EXCERPT) -> str:
    """Short identifying text for audit targets (long questions are cut)."""
    return (text or "")[:size]


class AuditRecorder:
    def __init__(self, store: StoreProtocol) -> None:
        self._store = store

    def record(
        self,
        actor_id: Optional[int],
        action: str,
        target: Optional[Any] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            self._store.append_audit(
                actor_id=actor_id,
                action=action,
                target=None if target is None else str(target),
                detail=detail,
            )
        except Exception as exc:
            logger.exception("audit write failed action=%s actor=%s", action, actor_id)
            raise AuditWriteError("audit_write_failed") from exc

    def recent(self, limit: int = MAX_RECENT) -> List[dict]:
        return self._store.recent_audit(max(0, min(int(limit), MAX_RECENT)))


__all__ = ["AuditRecorder", "excerpt", "MAX_RECENT"]
