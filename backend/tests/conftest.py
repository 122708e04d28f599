"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and run
the app against the in-memory store and session backends so no Postgres is
needed.
"""
import os
import sys
from pathlib import Path

import pytest

# Select in-memory backends before `web.main` is imported anywhere.
os.environ["STORE_BACKEND"] = "memory"
os.environ["SESSIONS_BACKEND"] = "memory"

# Ensure modules in backend/ and the test helpers are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(BACKEND_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles that may leak across tests.

    Behavior:
        - Default dev environment unless a test opts into prod explicitly.
        - No proxy trust, default rate limits, default APP_URL.
    """
    for var in (
        "STINT_ENV",
        "STINT_TRUST_PROXY",
        "APP_URL",
        "AUTH_RATE_LIMIT",
        "AUTH_RATE_WINDOW_SECONDS",
        "ADMIN_RATE_LIMIT",
        "ADMIN_RATE_WINDOW_SECONDS",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_app_state():
    """Give every test a fresh store, session/state stores and rate limiter.

    Why:
        Handlers reach everything through `app.state`; without a reset, users,
        sessions and token buckets leak across tests.
    """
    from identity_access.stores import SessionStore, StateStore
    from persistence.memory import MemoryStore
    from web import main

    state = main.app.state
    state.store = MemoryStore()
    state.session_store = SessionStore()
    state.state_store = StateStore()
    state.limiter.reset()
    state.oidc_config = None
    yield
