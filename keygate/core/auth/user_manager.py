"""
User Management
===============

Credential store with role-based access control.

Security Features:
- Argon2id password digests; plaintext is never persisted
- Last-admin invariant: the store never reaches zero admin users
- Idempotent first-boot bootstrap from seed credentials

Storage layout:
    user:<username> -> {"username", "password_hash", "role", "created_at"}

Concurrency Note:
    The key-value store offers no compare-and-set, so two concurrent
    creates of the same username, or two concurrent deletes of the last
    two admins, can race. Single-admin deployments are unaffected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Final, Iterable, List, Optional

from keygate.core.auth.argon2_auth import Argon2Hasher
from keygate.core.auth.credentials import SeedUser
from keygate.core.config import SecurityConfig
from keygate.core.errors import (
    ConfigurationError,
    LastAdminError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
)
from keygate.db.kv_store import KeyValueStore
from keygate.utils.validators import (
    validate_password,
    validate_role,
    validate_string_safe,
    validate_username,
)


USER_KEY_PREFIX: Final[str] = "user:"


class UserRole(str, Enum):
    """User roles for access control."""
    ADMIN = "admin"
    USER = "user"

    @classmethod
    def from_string(cls, value: str) -> UserRole:
        """Convert string to UserRole."""
        return cls(validate_role(value))


@dataclass
class User:
    """
    User account representation.

    Note: password_hash is never exposed in repr or in summaries.
    """
    username: str
    password_hash: str
    role: UserRole
    created_at: datetime

    def __repr__(self) -> str:
        """Safe representation without password hash."""
        return f"User(username={self.username!r}, role={self.role.value})"

    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role == UserRole.ADMIN

    def to_record(self) -> dict:
        return {
            "username": self.username,
            "password_hash": self.password_hash,
            "role": self.role.value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict) -> User:
        return cls(
            username=record["username"],
            password_hash=record["password_hash"],
            role=UserRole(record["role"]),
            created_at=datetime.fromisoformat(record["created_at"]),
        )

    def summary(self) -> UserSummary:
        return UserSummary(
            username=self.username,
            role=self.role.value,
            created_at=self.created_at.isoformat(),
        )


@dataclass(frozen=True)
class UserSummary:
    """Listing view of a user. Carries no credential material."""
    username: str
    role: str
    created_at: str

    def to_dict(self) -> dict[str, str]:
        return {"username": self.username, "role": self.role, "created_at": self.created_at}


def _user_key(username: str) -> str:
    return f"{USER_KEY_PREFIX}{username}"


class UserManager:
    """
    Credential store over a key-value backend.

    Usage:
        manager = UserManager(store, hasher)

        manager.create_user("alice", "pass1", "user")
        user = manager.get_user("alice")
        manager.update_password("alice", "pass2")
        manager.delete_user("alice")

    Security Notes:
        - Input is validated before any storage access
        - Deleting the only admin raises LastAdminError and changes nothing
    """

    __slots__ = ("_store", "_hasher", "_policy", "_log")

    def __init__(
        self,
        store: KeyValueStore,
        hasher: Argon2Hasher,
        policy: Optional[SecurityConfig] = None,
    ) -> None:
        """
        Initialize the user manager.

        Args:
            store: Key-value store holding user records
            hasher: Password hasher for new and updated passwords
            policy: Username and password length rules
        """
        self._store = store
        self._hasher = hasher
        self._policy = policy or SecurityConfig()
        self._log = logging.getLogger("keygate.auth.users")

    def _validate_new_credentials(self, username: str, password: str) -> None:
        validate_username(
            username,
            min_length=self._policy.min_username_length,
            max_length=self._policy.max_username_length,
        )
        validate_password(
            password,
            min_length=self._policy.min_password_length,
            max_length=self._policy.max_password_length,
        )

    def get_user(self, username: str) -> Optional[User]:
        """Get a user by username, or None if absent."""
        record = self._store.get(_user_key(username))
        if record is None:
            return None
        return User.from_record(record)

    def list_users(self) -> List[UserSummary]:
        """List all users, sorted by username."""
        records = self._store.get_by_prefix(USER_KEY_PREFIX)
        users = [User.from_record(record) for record in records.values()]
        return [user.summary() for user in sorted(users, key=lambda u: u.username)]

    def count_admins(self) -> int:
        """Count users holding the admin role."""
        records = self._store.get_by_prefix(USER_KEY_PREFIX)
        return sum(1 for record in records.values() if record.get("role") == UserRole.ADMIN.value)

    def create_user(
        self,
        username: str,
        password: str,
        role: UserRole | str = UserRole.USER,
    ) -> User:
        """
        Create a new user account.

        Returns:
            Created User object

        Raises:
            ValidationError: If username, password or role is invalid
            UserExistsError: If username already exists
        """
        self._validate_new_credentials(username, password)
        user_role = role if isinstance(role, UserRole) else UserRole.from_string(role)

        if self._store.get(_user_key(username)) is not None:
            raise UserExistsError(f"User '{username}' already exists")

        user = User(
            username=username,
            password_hash=self._hasher.hash(password),
            role=user_role,
            created_at=datetime.now(timezone.utc),
        )
        self._store.set(_user_key(username), user.to_record())
        self._log.info("Created user %s with role %s", username, user_role.value)
        return user

    def update_password(self, username: str, new_password: str) -> None:
        """
        Replace a user's password digest. Role and creation time are kept.

        Raises:
            ValidationError: If new_password is invalid
            UserNotFoundError: If user does not exist
        """
        validate_string_safe(username, field_name="Username")
        validate_password(
            new_password,
            min_length=self._policy.min_password_length,
            max_length=self._policy.max_password_length,
        )

        user = self.get_user(username)
        if user is None:
            raise UserNotFoundError(f"User '{username}' not found")

        user.password_hash = self._hasher.hash(new_password)
        self._store.set(_user_key(username), user.to_record())
        self._log.info("Password updated for user %s", username)

    def rehash_password(self, user: User, password: str) -> bool:
        """
        Store a fresh digest for an already verified password.

        The write only happens if the stored record still holds the digest
        that was verified, so a concurrent delete or password change wins.

        Returns:
            True if the new digest was stored
        """
        verified_hash = user.password_hash
        new_hash = self._hasher.hash(password)

        current = self.get_user(user.username)
        if current is None or current.password_hash != verified_hash:
            self._log.info("Skipped rehash for %r: record changed since login", user.username)
            return False

        current.password_hash = new_hash
        self._store.set(_user_key(current.username), current.to_record())
        user.password_hash = new_hash
        self._log.info("Rehashed password for user %r", user.username)
        return True

    def delete_user(self, username: str) -> None:
        """
        Permanently delete a user.

        Raises:
            UserNotFoundError: If user does not exist
            LastAdminError: If user is the only admin
        """
        validate_string_safe(username, field_name="Username")

        user = self.get_user(username)
        if user is None:
            raise UserNotFoundError(f"User '{username}' not found")

        if user.is_admin() and self.count_admins() <= 1:
            self._log.warning("Refused to delete last admin %s", username)
            raise LastAdminError(f"User '{username}' is the last admin")

        self._store.delete(_user_key(username))
        self._log.info("Deleted user %s", username)

    def is_empty(self) -> bool:
        return not self._store.get_by_prefix(USER_KEY_PREFIX)

    def bootstrap(self, seed_users: Iterable[SeedUser]) -> bool:
        """
        Seed the store on first boot.

        Does nothing when any user already exists, so it is safe to call on
        every startup. Invalid seed entries are skipped with a warning.

        Returns:
            True if users were seeded

        Raises:
            ConfigurationError: If no valid admin is among the seed users
        """
        if not self.is_empty():
            return False

        valid: list[SeedUser] = []
        for seed in seed_users:
            try:
                self._validate_new_credentials(seed.username, seed.password)
            except ValidationError as e:
                self._log.warning("Skipping seed user %r: %s", seed.username, e)
                continue
            valid.append(seed)

        if not any(seed.role == UserRole.ADMIN.value for seed in valid):
            raise ConfigurationError("Seed credentials must include at least one valid admin")

        # Admins first, so the store never holds users without an admin.
        for seed in sorted(valid, key=lambda s: s.role != UserRole.ADMIN.value):
            try:
                self.create_user(seed.username, seed.password, seed.role)
            except UserExistsError:
                self._log.info("Seed user %s already present", seed.username)

        self._log.info("Bootstrapped %d users", len(valid))
        return True
