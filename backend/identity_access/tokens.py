"""
ID-token verification for the identity_access bounded context.

Why: Keep cryptographic validation of ID tokens outside the web adapter so we
can unit test it independently.

Security: Validates the ID token signature with the provider's JWKS and checks
issuer, audience, expiry and (when expected) the nonce bound to the login
attempt. Google historically issues tokens with either `https://accounts.google.com`
or the bare host as `iss`; both are accepted for that issuer.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import time

import requests
from jose import jwt
from jose.exceptions import JOSEError

from .oidc import GOOGLE_ISSUER, OIDCConfig


class IDTokenVerificationError(Exception):
    """Raised when the ID token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass
class _CacheEntry:
    jwks: Dict[str, object]
    expires_at: float


class JWKSCache:
    """Small in-memory cache for JWKS responses, keyed by JWKS URI."""

    def __init__(self, ttl_seconds: int = 3600):
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[str, _CacheEntry] = {}

    def get(self, cfg: OIDCConfig, *, force_refresh: bool = False) -> Dict[str, object]:
        now = time.time()
        entry = self._entries.get(cfg.jwks_uri)
        if entry and entry.expires_at > now and not force_refresh:
            return entry.jwks

        jwks = self._fetch(cfg)
        self._entries[cfg.jwks_uri] = _CacheEntry(jwks=jwks, expires_at=now + self.ttl_seconds)
        return jwks

    def _fetch(self, cfg: OIDCConfig) -> Dict[str, object]:
        try:
            resp = requests.get(cfg.jwks_uri, timeout=5)
        except requests.RequestException as exc:
            raise IDTokenVerificationError("jwks_fetch_failed") from exc
        if resp.status_code != 200:
            raise IDTokenVerificationError("jwks_fetch_failed")
        try:
            jwks = resp.json()
        except ValueError as exc:
            raise IDTokenVerificationError("jwks_invalid") from exc
        if not isinstance(jwks, dict) or "keys" not in jwks:
            raise IDTokenVerificationError("jwks_invalid")
        return jwks

    def clear(self) -> None:
        self._entries.clear()


JWKS_CACHE = JWKSCache()

MAX_CLOCK_SKEW_SECONDS = 5  # Allow minimal skew between servers


def _accepted_issuers(cfg: OIDCConfig) -> set[str]:
    issuers = {cfg.issuer}
    if cfg.issuer == GOOGLE_ISSUER:
        issuers.add("accounts.google.com")
    return issuers


def verify_id_token(
    *,
    id_token: str,
    cfg: OIDCConfig,
    nonce: Optional[str] = None,
    cache: JWKSCache | None = None,
) -> Dict[str, object]:
    """Validate an ID token using the provider JWKS and return claims.

    Parameters
    ----------
    id_token:
        The raw JWT string returned by the token endpoint.
    cfg:
        OIDC configuration (client id, issuer, JWKS URI).
    nonce:
        Expected `nonce` claim; checked when given.
    cache:
        Optional JWKS cache (defaults to module-level cache).

    Raises
    ------
    IDTokenVerificationError:
        When the token is invalid (signature, issuer, audience, expiry, kid, nonce).
    """
    cache = cache or JWKS_CACHE
    try:
        header = jwt.get_unverified_header(id_token)
    except JOSEError as exc:
        raise IDTokenVerificationError("invalid_id_token") from exc
    kid = header.get("kid")
    if not kid:
        raise IDTokenVerificationError("missing_kid")
    key_dict = _find_key(cache.get(cfg), kid)
    if not key_dict:
        # Provider keys rotate; refetch once before giving up.
        key_dict = _find_key(cache.get(cfg, force_refresh=True), kid)
    if not key_dict:
        raise IDTokenVerificationError("unknown_kid")

    try:
        claims = jwt.decode(
            id_token,
            key_dict,
            algorithms=["RS256"],  # RS256 only, regardless of the JWKS "alg"
            audience=cfg.client_id,
            options={
                "verify_signature": True,
                "verify_aud": True,
                "verify_iss": False,
                "verify_exp": False,
                "verify_iat": False,
                "verify_nbf": False,
                "verify_at_hash": False,
            },
        )
    except JOSEError as exc:
        raise IDTokenVerificationError("invalid_id_token") from exc

    if claims.get("iss") not in _accepted_issuers(cfg):
        raise IDTokenVerificationError("invalid_issuer")
    _validate_temporal_claims(claims)
    if nonce is not None and claims.get("nonce") != nonce:
        raise IDTokenVerificationError("invalid_nonce")
    if not claims.get("sub"):
        raise IDTokenVerificationError("missing_sub")

    return claims


def _find_key(jwks: Dict[str, object], kid: str) -> Dict[str, object] | None:
    keys = jwks.get("keys")
    if not isinstance(keys, list):
        return None
    for key in keys:
        if isinstance(key, dict) and key.get("kid") == kid:
            return key
    return None


def _validate_temporal_claims(claims: Dict[str, object]) -> None:
    now = time.time()
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise IDTokenVerificationError("invalid_id_token")
    if exp + MAX_CLOCK_SKEW_SECONDS < now:
        raise IDTokenVerificationError("expired_id_token")

    iat = claims.get("iat")
    if isinstance(iat, (int, float)):
        if iat - MAX_CLOCK_SKEW_SECONDS > now:
            raise IDTokenVerificationError("invalid_id_token")

    nbf = claims.get("nbf")
    if isinstance(nbf, (int, float)) and nbf - MAX_CLOCK_SKEW_SECONDS > now:
        raise IDTokenVerificationError("invalid_id_token")
