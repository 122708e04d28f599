"""
User and allowlist administration (admin-only use cases).

Behavior:
    - Every mutation is validated before the first write and audited after it.
    - Admins cannot change or remove their own account (400, checked before
      anything else).
    - "Removing" a user only clears `is_allowed`; rows are never deleted.
    - Allowlist add is an upsert that also grants existing users with that
      email; remove deletes the entry and revokes them. Both are idempotent.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping

from audit_trail.recorder import AuditRecorder
from core.errors import NotFound, ValidationError
from persistence.ports import StoreProtocol

from .domain import Identity, Role, normalize_email
from .guards import forbid_self_target


@dataclass
class UserAdminService:
    store: StoreProtocol
    audit: AuditRecorder

    def list_users(self) -> List[dict]:
        return [u.admin_view() for u in self.store.list_users()]

    def update_user(self, actor: Identity, target_id: int, changes: Mapping[str, Any]) -> None:
        """Apply `role` and/or `is_allowed` from `changes` (absent keys are untouched)."""
        forbid_self_target(actor, target_id, detail="cannot_modify_self")

        role = None
        if "role" in changes:
            role = Role.parse(changes["role"])
            if role is None:
                raise ValidationError("invalid_role")
        if self.store.get_user(target_id) is None:
            raise NotFound("user_not_found")

        if role is not None:
            self.store.set_user_role(target_id, role)
            self.audit.record(actor.user_id, "change_role", target_id, {"role": role.value})
        if "is_allowed" in changes:
            allowed = bool(changes["is_allowed"])
            self.store.set_user_allowed(target_id, allowed)
            self.audit.record(actor.user_id, "grant_access" if allowed else "revoke_access", target_id)

    def remove_user(self, actor: Identity, target_id: int) -> None:
        forbid_self_target(actor, target_id, detail="cannot_remove_self")
        if not self.store.set_user_allowed(target_id, False):
            raise NotFound("user_not_found")
        self.audit.record(actor.user_id, "revoke_access", target_id)


@dataclass
class AllowlistService:
    store: StoreProtocol
    audit: AuditRecorder

    def list_entries(self) -> List[dict]:
        return self.store.list_allowlist()

    def add(self, actor: Identity, email: object) -> str:
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("email_required")
        self.store.add_allowlist_entry(normalized, added_by=actor.user_id)
        self.audit.record(actor.user_id, "allowlist_add", normalized)
        return normalized

    def remove(self, actor: Identity, email: object) -> str:
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("email_required")
        self.store.remove_allowlist_entry(normalized)
        self.audit.record(actor.user_id, "allowlist_remove", normalized)
        return normalized


__all__ = ["UserAdminService", "AllowlistService"]
