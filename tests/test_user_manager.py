"""Unit tests for keygate/core/auth/user_manager.py -- credential store.

Covers:
- create_user() validation, duplicate detection and digest-only storage
- update_password() keeps role and creation time
- delete_user() refuses to remove the last admin
- list_users() never exposes digests
- bootstrap() is idempotent and requires a valid admin seed
"""

from __future__ import annotations

import pytest

from keygate.core.auth.credentials import SeedUser
from keygate.core.auth.user_manager import UserManager, UserRole
from keygate.core.errors import (
    ConfigurationError,
    LastAdminError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
)


@pytest.fixture
def users(store, hasher):
    return UserManager(store, hasher)


def test_create_user_stores_digest_only(users, store, hasher):
    user = users.create_user("bob", "secret1", "user")

    record = store.get("user:bob")
    assert record["username"] == "bob"
    assert record["role"] == "user"
    assert "secret1" not in record["password_hash"]
    assert hasher.verify("secret1", record["password_hash"])
    assert user.role is UserRole.USER
    assert "password_hash" not in repr(user)


def test_create_user_defaults_to_user_role(users):
    assert users.create_user("bob", "secret1").role is UserRole.USER


@pytest.mark.parametrize(
    "username,password,role",
    [
        ("ab", "secret1", "user"),           # username too short
        ("a" * 21, "secret1", "user"),       # username too long
        ("bad name", "secret1", "user"),     # space
        ("bob!", "secret1", "user"),         # punctuation
        ("bob", "abc", "user"),              # password too short
        ("bob", "x" * 101, "user"),          # password too long
        ("bob", "secret1", "root"),          # unknown role
        (None, "secret1", "user"),
        ("bob", None, "user"),
    ],
)
def test_create_user_rejects_invalid_input(users, store, username, password, role):
    with pytest.raises(ValidationError):
        users.create_user(username, password, role)
    assert store.get_by_prefix("user:") == {}


def test_create_user_accepts_underscore_and_hyphen(users):
    assert users.create_user("bob_the-builder", "secret1").username == "bob_the-builder"


def test_create_duplicate_user_fails(users):
    users.create_user("bob", "secret1")
    with pytest.raises(UserExistsError):
        users.create_user("bob", "other12")


def test_update_password_keeps_role_and_created_at(users, hasher):
    original = users.create_user("bob", "secret1", "admin")

    users.update_password("bob", "secret2")

    updated = users.get_user("bob")
    assert updated.role is UserRole.ADMIN
    assert updated.created_at == original.created_at
    assert hasher.verify("secret2", updated.password_hash)
    assert not hasher.verify("secret1", updated.password_hash)


def test_update_password_unknown_user(users):
    with pytest.raises(UserNotFoundError):
        users.update_password("ghost", "secret2")


def test_update_password_validates_before_lookup(users):
    with pytest.raises(ValidationError):
        users.update_password("ghost", "abc")


def test_delete_user(users):
    users.create_user("root", "secret1", "admin")
    users.create_user("bob", "secret1")
    users.delete_user("bob")
    assert users.get_user("bob") is None


def test_delete_unknown_user(users):
    with pytest.raises(UserNotFoundError):
        users.delete_user("ghost")


def test_delete_last_admin_refused(users):
    users.create_user("root", "secret1", "admin")
    users.create_user("bob", "secret1")

    with pytest.raises(LastAdminError):
        users.delete_user("root")
    assert users.get_user("root") is not None
    assert users.count_admins() == 1


def test_delete_admin_when_another_exists(users):
    users.create_user("root", "secret1", "admin")
    users.create_user("root2", "secret1", "admin")
    users.delete_user("root")
    assert users.count_admins() == 1


def test_list_users_sorted_without_digests(users):
    users.create_user("zed", "secret1")
    users.create_user("amy", "secret1", "admin")

    listed = [u.to_dict() for u in users.list_users()]

    assert [u["username"] for u in listed] == ["amy", "zed"]
    assert all(set(u) == {"username", "role", "created_at"} for u in listed)


def test_bootstrap_seeds_empty_store(users):
    seeded = users.bootstrap([
        SeedUser("root", "secret1", "admin"),
        SeedUser("bob", "secret1", "user"),
    ])
    assert seeded is True
    assert [u.username for u in users.list_users()] == ["bob", "root"]
    assert users.count_admins() == 1


def test_bootstrap_is_idempotent(users):
    seeds = [SeedUser("root", "secret1", "admin")]
    assert users.bootstrap(seeds) is True
    users.update_password("root", "changed1")

    assert users.bootstrap(seeds) is False
    assert users.bootstrap([SeedUser("other", "secret1", "admin")]) is False
    assert users.get_user("other") is None


def test_bootstrap_skips_invalid_seed(users):
    users.bootstrap([
        SeedUser("root", "secret1", "admin"),
        SeedUser("x", "secret1", "user"),
    ])
    assert users.get_user("x") is None
    assert users.get_user("root") is not None


def test_bootstrap_without_valid_admin_fails(users):
    with pytest.raises(ConfigurationError):
        users.bootstrap([
            SeedUser("ad", "secret1", "admin"),   # username too short
            SeedUser("bob", "secret1", "user"),
        ])
    assert users.is_empty()


def test_rehash_password_replaces_digest(users, store):
    user = users.create_user("bob", "secret1")
    old_digest = user.password_hash

    assert users.rehash_password(user, "secret1") is True
    assert store.get("user:bob")["password_hash"] not in (old_digest, None)


def test_rehash_password_skips_changed_record(users, store, hasher):
    stale = users.create_user("bob", "secret1")
    users.update_password("bob", "secret2")

    assert users.rehash_password(stale, "secret1") is False
    assert hasher.verify("secret2", store.get("user:bob")["password_hash"])


def test_rehash_password_skips_deleted_user(users, store):
    users.create_user("root", "secret1", "admin")
    stale = users.create_user("bob", "secret1")
    users.delete_user("bob")

    assert users.rehash_password(stale, "secret1") is False
    assert store.get("user:bob") is None
