"""
Identity domain: roles, user records and the resolved request identity.

Why:
- Centralize the closed set of roles so the guards, the admin API and the
  store never compare free-form role strings.
- Give handlers and services one explicit value (`Identity`) describing who
  is calling; it is passed in, never read from ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """User roles. `manager` may curate content and read the progress dashboard."""

    ADMIN = "admin"
    MANAGER = "manager"
    VIEWER = "viewer"

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def is_admin(self) -> bool:
        return self is Role.ADMIN

    @property
    def is_uploader(self) -> bool:
        return self in (Role.ADMIN, Role.MANAGER)


class AccessState(str, Enum):
    """How far a request got through the gate."""

    ANONYMOUS = "anonymous"
    IDENTIFIED_UNALLOWED = "identified-unallowed"
    IDENTIFIED_ALLOWED = "identified-allowed"


@dataclass
class UserRecord:
    id: int
    subject: str
    email: str
    name: str
    avatar_url: Optional[str]
    role: Role
    is_allowed: bool
    created_at: Optional[str] = None
    last_login: Optional[str] = None

    def public_view(self) -> dict:
        """Shape used by `/api/auth/me`."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "role": self.role.value,
            "isAllowed": bool(self.is_allowed),
        }

    def admin_view(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "role": self.role.value,
            "is_allowed": 1 if self.is_allowed else 0,
            "created_at": self.created_at,
            "last_login": self.last_login,
        }


@dataclass(frozen=True)
class Identity:
    """The authenticated caller of one request."""

    user: UserRecord
    session_id: str

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> Role:
        return self.user.role


def normalize_email(value: object) -> str:
    """Trim and lower-case an email; non-strings become ""."""
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


__all__ = ["Role", "AccessState", "UserRecord", "Identity", "normalize_email"]
