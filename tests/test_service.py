"""Unit tests for keygate/core/auth/service.py -- user management facade."""

from __future__ import annotations

import pytest

from conftest import ADMIN_PASSWORD, ADMIN_USERNAME, USER_PASSWORD, USER_USERNAME
from keygate.core.errors import InvalidCredentialsError, LastAdminError, UserNotFoundError


def test_bootstrap_seeds_once(service):
    assert service.bootstrap() is False
    assert [u.username for u in service.list_users()] == [ADMIN_USERNAME, USER_USERNAME]


def test_create_then_login(service):
    service.create_user("bob", "bobpass", "user")
    assert service.login("bob", "bobpass").role == "user"


def test_password_change_invalidates_old_password(service):
    service.update_user_password(USER_USERNAME, "newpass1")

    with pytest.raises(InvalidCredentialsError):
        service.login(USER_USERNAME, USER_PASSWORD)
    assert service.login(USER_USERNAME, "newpass1").username == USER_USERNAME


def test_existing_session_survives_password_change(service):
    token = service.login(USER_USERNAME, USER_PASSWORD).token
    service.update_user_password(USER_USERNAME, "newpass1")
    assert service.validate_session(token).valid is True


def test_delete_user(service):
    service.delete_user(USER_USERNAME)
    with pytest.raises(UserNotFoundError):
        service.delete_user(USER_USERNAME)


def test_cannot_delete_only_admin(service):
    with pytest.raises(LastAdminError):
        service.delete_user(ADMIN_USERNAME)


def test_purge_expired_sessions_with_none_expired(service):
    service.login(USER_USERNAME, USER_PASSWORD)
    assert service.purge_expired_sessions() == 0


def test_session_keeps_role_after_demotion(service, store):
    token = service.login(ADMIN_USERNAME, ADMIN_PASSWORD).token

    record = store.get(f"user:{ADMIN_USERNAME}")
    record["role"] = "user"
    store.set(f"user:{ADMIN_USERNAME}", record)

    assert service.validate_session(token).role == "admin"
    assert service.require_admin(token).authorized is True


def test_session_survives_user_deletion(service):
    token = service.login(ADMIN_USERNAME, ADMIN_PASSWORD).token
    service.create_user("root2", "secret1", "admin")
    service.delete_user(ADMIN_USERNAME)

    session = service.validate_session(token)
    assert session.valid is True
    assert session.role == "admin"
    assert service.require_admin(token).username == ADMIN_USERNAME
