"""
Guard predicates over an explicit, request-scoped identity.

Why: The web layer resolves the session to an `Identity` once and passes it
in; these functions only decide. They never read ambient state.

Permissions:
- `access_state`: anonymous, identified-unallowed or identified-allowed.
- `require_auth`: identity present and allowed.
- `require_admin`: identity present and role admin. Does not consult
  `is_allowed`; a revoked admin keeps admin rights.
- `require_uploader`: like `require_admin` but accepts admin or manager.
"""
from __future__ import annotations

from typing import Optional

from core.errors import Forbidden, SelfModificationForbidden, Unauthenticated

from .domain import AccessState, Identity


def access_state(identity: Optional[Identity]) -> AccessState:
    if identity is None:
        return AccessState.ANONYMOUS
    if identity.user.is_allowed:
        return AccessState.IDENTIFIED_ALLOWED
    return AccessState.IDENTIFIED_UNALLOWED


def require_identity(identity: Optional[Identity]) -> Identity:
    if access_state(identity) is AccessState.ANONYMOUS:
        raise Unauthenticated()
    return identity


def require_auth(identity: Optional[Identity]) -> Identity:
    ident = require_identity(identity)
    if access_state(ident) is not AccessState.IDENTIFIED_ALLOWED:
        raise Forbidden("access_not_granted")
    return ident


def require_admin(identity: Optional[Identity]) -> Identity:
    ident = require_identity(identity)
    if not ident.role.is_admin:
        raise Forbidden("admin_required")
    return ident


def require_uploader(identity: Optional[Identity]) -> Identity:
    ident = require_identity(identity)
    if not ident.role.is_uploader:
        raise Forbidden("uploader_required")
    return ident


def forbid_self_target(actor: Identity, target_user_id: int, *, detail: str = "cannot_modify_self") -> None:
    if int(target_user_id) == actor.user_id:
        raise SelfModificationForbidden(detail)


__all__ = ["access_state", "require_identity", "require_auth", "require_admin", "require_uploader", "forbid_self_target"]
