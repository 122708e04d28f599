"""
Login resolution: map a verified provider identity to a local user.

Behavior:
    - Unknown subject and no users at all: create an allowed admin. The system
      is never left without an administrator. The store performs the
      "no users yet" check and the insert as one serialized step, so two
      simultaneous first logins yield exactly one admin.
    - Unknown subject otherwise: create a viewer, allowed iff the email is on
      the allowlist at this moment.
    - Known subject: refresh name/avatar/last-login and set
      `is_allowed = current OR allowlisted`, checking the email from the
      provider profile; a login never revokes access.

Permissions:
    Called only from the OAuth callback after ID-token verification.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from persistence.ports import StoreProtocol

from .domain import Role, UserRecord, normalize_email

logger = logging.getLogger("stint.identity_access")


@dataclass(frozen=True)
class ProviderProfile:
    subject: str
    email: str
    name: str
    avatar_url: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: dict) -> "ProviderProfile":
        email = normalize_email(claims.get("email"))
        if not email:
            raise ValueError("missing_email")
        name = claims.get("name")
        if not isinstance(name, str) or not name.strip():
            name = email.split("@", 1)[0]
        picture = claims.get("picture")
        return cls(
            subject=str(claims["sub"]),
            email=email,
            name=name.strip(),
            avatar_url=picture if isinstance(picture, str) and picture else None,
        )


class LoginService:
    def __init__(self, store: StoreProtocol) -> None:
        self._store = store

    def resolve(self, profile: ProviderProfile) -> UserRecord:
        email = normalize_email(profile.email)
        existing = self._store.get_user_by_subject(profile.subject)
        if existing is None:
            user = self._store.create_user(
                subject=profile.subject,
                email=email,
                name=profile.name,
                avatar_url=profile.avatar_url,
                role=Role.VIEWER,
                is_allowed=self._store.is_allowlisted(email),
                first_user_admin=True,
            )
            if user.role is Role.ADMIN:
                logger.info("bootstrap admin created user_id=%s", user.id)
            else:
                logger.info("user created user_id=%s allowed=%s", user.id, user.is_allowed)
            return user

        allowed = existing.is_allowed or self._store.is_allowlisted(email)
        return self._store.record_login(
            existing.id, name=profile.name, avatar_url=profile.avatar_url, is_allowed=allowed
        )


__all__ = ["LoginService", "ProviderProfile"]
