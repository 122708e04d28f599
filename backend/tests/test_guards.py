"""
Guard predicates: access states and role checks without the web layer.
"""
from __future__ import annotations

import pytest

from core.errors import Forbidden, SelfModificationForbidden, Unauthenticated
from identity_access import guards
from identity_access.domain import AccessState, Identity, Role, UserRecord


def _identity(role: Role = Role.VIEWER, allowed: bool = True, user_id: int = 1) -> Identity:
    user = UserRecord(
        id=user_id, subject=f"g-{user_id}", email="u@example.com", name="U", avatar_url=None, role=role, is_allowed=allowed
    )
    return Identity(user=user, session_id="sid")


def test_access_state_covers_the_three_gate_outcomes():
    assert guards.access_state(None) is AccessState.ANONYMOUS
    assert guards.access_state(_identity(allowed=False)) is AccessState.IDENTIFIED_UNALLOWED
    assert guards.access_state(_identity(allowed=True)) is AccessState.IDENTIFIED_ALLOWED


def test_require_auth_distinguishes_anonymous_from_unallowed():
    with pytest.raises(Unauthenticated):
        guards.require_auth(None)
    with pytest.raises(Forbidden) as exc:
        guards.require_auth(_identity(allowed=False))
    assert exc.value.detail == "access_not_granted"
    ident = _identity()
    assert guards.require_auth(ident) is ident


def test_require_identity_accepts_unallowed_sessions():
    ident = _identity(allowed=False)
    assert guards.require_identity(ident) is ident


def test_admin_guard_ignores_allow_flag():
    revoked_admin = _identity(role=Role.ADMIN, allowed=False)
    assert guards.require_admin(revoked_admin) is revoked_admin
    with pytest.raises(Forbidden):
        guards.require_admin(_identity(role=Role.MANAGER))


def test_uploader_guard_accepts_admin_and_manager_only():
    assert guards.require_uploader(_identity(role=Role.MANAGER)).role is Role.MANAGER
    assert guards.require_uploader(_identity(role=Role.ADMIN)).role is Role.ADMIN
    with pytest.raises(Forbidden) as exc:
        guards.require_uploader(_identity(role=Role.VIEWER))
    assert exc.value.detail == "uploader_required"


def test_forbid_self_target():
    actor = _identity(role=Role.ADMIN, user_id=5)
    guards.forbid_self_target(actor, 6)
    with pytest.raises(SelfModificationForbidden):
        guards.forbid_self_target(actor, "5")
