"""
Minimal OIDC client for the Google sign-in flow.

Why: Keep protocol details (PKCE, authorization URL, code exchange) out of the
FastAPI adapter so the callback logic can be tested with a fake HTTP layer.

Security: Uses PKCE (S256) in addition to the confidential client secret;
`state`, `nonce` and the `code_verifier` are stored server-side by the caller.
This client does not manage persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import hashlib
import base64
import os
from urllib.parse import urlencode

# Small indirection to ease monkeypatching in tests
import requests as http

GOOGLE_ISSUER = "https://accounts.google.com"
GOOGLE_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
GOOGLE_JWKS_URI = "https://www.googleapis.com/oauth2/v3/certs"

CALLBACK_PATH = "/auth/google/callback"


def http_post(url: str, data: Dict[str, str], headers: Dict[str, str]):
    return http.post(url, data=data, headers=headers, timeout=10)


@dataclass(frozen=True)
class OIDCConfig:
    client_id: str
    client_secret: str
    redirect_uri: str  # e.g., http://localhost:3000/auth/google/callback
    issuer: str = GOOGLE_ISSUER
    auth_endpoint: str = GOOGLE_AUTH_ENDPOINT
    token_endpoint: str = GOOGLE_TOKEN_ENDPOINT
    jwks_uri: str = GOOGLE_JWKS_URI
    scope: str = "openid email profile"


def _is_placeholder(value: str) -> bool:
    return not value or value.upper().startswith(("CHANGE_ME", "DUMMY"))


def load_oidc_config(app_url: str) -> Optional[OIDCConfig]:
    """Build the provider config from env; None when client credentials are missing."""
    client_id = (os.getenv("GOOGLE_CLIENT_ID") or "").strip()
    client_secret = (os.getenv("GOOGLE_CLIENT_SECRET") or "").strip()
    if _is_placeholder(client_id) or _is_placeholder(client_secret):
        return None
    return OIDCConfig(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=f"{app_url.rstrip('/')}{CALLBACK_PATH}",
        issuer=(os.getenv("OIDC_ISSUER") or GOOGLE_ISSUER).rstrip("/"),
        auth_endpoint=os.getenv("OIDC_AUTH_ENDPOINT") or GOOGLE_AUTH_ENDPOINT,
        token_endpoint=os.getenv("OIDC_TOKEN_ENDPOINT") or GOOGLE_TOKEN_ENDPOINT,
        jwks_uri=os.getenv("OIDC_JWKS_URI") or GOOGLE_JWKS_URI,
    )


class OIDCClient:
    def __init__(self, config: OIDCConfig):
        self.cfg = config

    @staticmethod
    def generate_code_verifier(length: int = 64) -> str:
        """Generate a high-entropy URL-safe code_verifier.

        Note: RFC suggests length between 43 and 128 characters.
        """
        return base64.urlsafe_b64encode(os.urandom(length)).decode("ascii").rstrip("=")

    @staticmethod
    def code_challenge_s256(code_verifier: str) -> str:
        """Derive S256 code challenge from verifier."""
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    def build_authorization_url(self, *, state: str, code_challenge: str, nonce: Optional[str] = None) -> str:
        """Return the provider's authorization URL for this client.

        Parameters
        - state: Opaque anti-CSRF token, also the key of the server-side state record
        - code_challenge: The S256 code challenge derived from the verifier
        - nonce: OIDC replay protection value, echoed back inside the ID token
        """
        params = {
            "response_type": "code",
            "client_id": self.cfg.client_id,
            "redirect_uri": self.cfg.redirect_uri,
            "scope": self.cfg.scope,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "prompt": "select_account",
        }
        if nonce:
            params["nonce"] = nonce
        return f"{self.cfg.auth_endpoint}?{urlencode(params)}"

    def exchange_code_for_tokens(self, *, code: str, code_verifier: str) -> Dict[str, str]:
        """Exchange authorization code for tokens at the token endpoint.

        Returns tokens dict on success; raises ValueError on failure.
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.cfg.client_id,
            "client_secret": self.cfg.client_secret,
            "redirect_uri": self.cfg.redirect_uri,
            "code_verifier": code_verifier,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        try:
            resp = http_post(self.cfg.token_endpoint, data=data, headers=headers)
        except http.RequestException as exc:
            raise ValueError("token_exchange_failed") from exc
        if resp.status_code != 200:
            raise ValueError("token_exchange_failed")
        try:
            tokens = resp.json()
        except ValueError as exc:
            raise ValueError("token_exchange_failed") from exc
        if not isinstance(tokens, dict) or not tokens.get("id_token"):
            raise ValueError("token_exchange_failed")
        return tokens
