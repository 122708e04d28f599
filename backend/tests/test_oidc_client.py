"""
OIDC client tests.

Focus:
- http_post enforces a timeout for provider calls
- Authorization URL carries PKCE, state, nonce and the account chooser prompt
- Code exchange maps every provider failure to one error
- Config loading treats missing/placeholder credentials as "not configured"
"""

from __future__ import annotations

import types
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from identity_access import oidc
from identity_access.oidc import OIDCClient, OIDCConfig, http_post, load_oidc_config


def _cfg() -> OIDCConfig:
    return OIDCConfig(
        client_id="client-123",
        client_secret="secret-xyz",
        redirect_uri="http://localhost:3000/auth/google/callback",
    )


def test_http_post_sets_timeout(monkeypatch):
    called = {}

    def fake_post(url, data=None, headers=None, timeout=None):
        called["url"] = url
        called["timeout"] = timeout
        return types.SimpleNamespace(status_code=200, json=lambda: {"ok": True})

    # Patch the requests alias used in oidc module
    monkeypatch.setattr("identity_access.oidc.http.post", fake_post, raising=False)

    resp = http_post("http://idp/token", {"a": "b"}, {"h": "v"})
    assert resp.status_code == 200
    assert called.get("timeout") == 10


def test_pkce_challenge_matches_rfc7636_example():
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert OIDCClient.code_challenge_s256(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_code_verifier_length_is_within_rfc_bounds():
    verifier = OIDCClient.generate_code_verifier()
    assert 43 <= len(verifier) <= 128
    assert OIDCClient.generate_code_verifier() != verifier


def test_authorization_url_contains_flow_parameters():
    url = OIDCClient(_cfg()).build_authorization_url(state="st-1", code_challenge="cc-1", nonce="n-1")
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == oidc.GOOGLE_AUTH_ENDPOINT
    qs = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    assert qs["response_type"] == "code"
    assert qs["client_id"] == "client-123"
    assert qs["redirect_uri"] == "http://localhost:3000/auth/google/callback"
    assert qs["scope"] == "openid email profile"
    assert qs["state"] == "st-1"
    assert qs["code_challenge"] == "cc-1"
    assert qs["code_challenge_method"] == "S256"
    assert qs["nonce"] == "n-1"
    assert qs["prompt"] == "select_account"


def test_exchange_posts_secret_and_verifier(monkeypatch):
    sent = {}

    def fake_post(url, data, headers):
        sent["url"] = url
        sent["data"] = data
        return types.SimpleNamespace(status_code=200, json=lambda: {"id_token": "tok", "access_token": "at"})

    monkeypatch.setattr(oidc, "http_post", fake_post)
    tokens = OIDCClient(_cfg()).exchange_code_for_tokens(code="abc", code_verifier="ver")
    assert tokens["id_token"] == "tok"
    assert sent["url"] == oidc.GOOGLE_TOKEN_ENDPOINT
    assert sent["data"]["client_secret"] == "secret-xyz"
    assert sent["data"]["code_verifier"] == "ver"
    assert sent["data"]["grant_type"] == "authorization_code"


def _bad_json():
    raise ValueError("not json")


@pytest.mark.parametrize(
    "response",
    [
        types.SimpleNamespace(status_code=400, json=lambda: {"error": "invalid_grant"}),
        types.SimpleNamespace(status_code=200, json=_bad_json),
        types.SimpleNamespace(status_code=200, json=lambda: {"access_token": "only"}),
    ],
)
def test_exchange_failures_raise_value_error(monkeypatch, response):
    monkeypatch.setattr(oidc, "http_post", lambda url, data, headers: response)
    with pytest.raises(ValueError):
        OIDCClient(_cfg()).exchange_code_for_tokens(code="abc", code_verifier="ver")


def test_exchange_network_error_raises_value_error(monkeypatch):
    def boom(url, data, headers):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(oidc, "http_post", boom)
    with pytest.raises(ValueError):
        OIDCClient(_cfg()).exchange_code_for_tokens(code="abc", code_verifier="ver")


def test_load_config_returns_none_without_credentials(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "s")
    assert load_oidc_config("http://localhost:3000") is None

    monkeypatch.setenv("GOOGLE_CLIENT_ID", "CHANGE_ME")
    assert load_oidc_config("http://localhost:3000") is None


def test_load_config_derives_redirect_uri_from_app_url(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "cid")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "csecret")
    monkeypatch.delenv("OIDC_ISSUER", raising=False)
    cfg = load_oidc_config("https://stint.example.com/")
    assert cfg is not None
    assert cfg.redirect_uri == "https://stint.example.com/auth/google/callback"
    assert cfg.issuer == oidc.GOOGLE_ISSUER
