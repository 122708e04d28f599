"""
Access-request workflow: pending -> approved | rejected (both terminal).

Why:
    Bridges identified-but-not-allowed users into the allowlist without an
    admin having to know their email up front.

Behavior:
    - `submit`: any session identity; the email always comes from the session,
      never from the request body. Name is required, reason optional.
    - `approve`: allowlist upsert + user grant + status change happen as one
      store operation, then an audit entry is written.
    - `reject`: status change + audit only.
    - Acting on a request that is not pending (unknown, approved, rejected)
      raises NotFound.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from audit_trail.recorder import AuditRecorder
from core.errors import NotFound, ValidationError
from persistence.ports import StoreProtocol

from .domain import Identity, normalize_email

logger = logging.getLogger("stint.identity_access")

REASON_MAX_LEN = 2000


@dataclass
class AccessRequestService:
    store: StoreProtocol
    audit: AuditRecorder

    def submit(self, requester: Identity, name: object, reason: object = None) -> int:
        clean_name = name.strip() if isinstance(name, str) else ""
        if not clean_name:
            raise ValidationError("name_required")
        clean_reason: Optional[str] = None
        if isinstance(reason, str) and reason.strip():
            clean_reason = reason.strip()[:REASON_MAX_LEN]
        request_id = self.store.create_access_request(
            email=normalize_email(requester.user.email), name=clean_name, reason=clean_reason
        )
        logger.info("access request submitted id=%s user_id=%s", request_id, requester.user_id)
        return request_id

    def list_pending(self) -> List[dict]:
        return self.store.list_pending_requests()

    def approve(self, actor: Identity, request_id: int) -> None:
        email = self.store.approve_access_request(request_id, approved_by=actor.user_id)
        if email is None:
            raise NotFound("request_not_pending")
        self.audit.record(actor.user_id, "approve_access_request", email)

    def reject(self, actor: Identity, request_id: int) -> None:
        email = self.store.reject_access_request(request_id)
        if email is None:
            raise NotFound("request_not_pending")
        self.audit.record(actor.user_id, "reject_access_request", email)


__all__ = ["AccessRequestService"]
