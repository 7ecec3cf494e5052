"""
tests/conftest.py -- Shared fixtures for the KeyGate test suite.

This module provides:
  - store: empty in-memory key-value store
  - hasher: Argon2id hasher with cheap parameters so tests stay fast
  - service: AuthService over the store, seeded with one admin and one user
  - app / client: Flask application and test client over the same store

Argon2 parameters are lowered here only; production defaults live in
SecurityConfig.
"""

from __future__ import annotations

import pytest

from keygate.core.auth.argon2_auth import Argon2Hasher
from keygate.core.auth.credentials import SeedUser
from keygate.core.auth.service import AuthService
from keygate.core.config import KeyGateConfig, SecurityConfig, StorageConfig
from keygate.db.kv_store import InMemoryKeyValueStore
from keygate.web.app import create_app

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "adminpass"
USER_USERNAME = "alice"
USER_PASSWORD = "alicepass"

SEED_USERS = [
    SeedUser(username=ADMIN_USERNAME, password=ADMIN_PASSWORD, role="admin"),
    SeedUser(username=USER_USERNAME, password=USER_PASSWORD, role="user"),
]

FAST_SECURITY = SecurityConfig(argon2_memory_cost=1024, argon2_time_cost=1, argon2_parallelism=1)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def hasher():
    return Argon2Hasher(memory_cost=1024, time_cost=1, parallelism=1)


@pytest.fixture
def service(store, hasher):
    """AuthService seeded with ADMIN_USERNAME (admin) and USER_USERNAME (user)."""
    svc = AuthService(store, FAST_SECURITY, hasher=hasher)
    svc.bootstrap(SEED_USERS)
    return svc


# ---------------------------------------------------------------------------
# Web fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app(store):
    config = KeyGateConfig(
        security=FAST_SECURITY,
        storage=StorageConfig(backend="memory"),
    )
    application = create_app(
        config=config,
        store=store,
        seed_users=SEED_USERS,
        configure_logging=False,
    )
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


def login_token(client, username: str, password: str) -> str:
    """Log in through the API and return the bearer token."""
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    return bearer(login_token(client, ADMIN_USERNAME, ADMIN_PASSWORD))


@pytest.fixture
def user_headers(client):
    return bearer(login_token(client, USER_USERNAME, USER_PASSWORD))
