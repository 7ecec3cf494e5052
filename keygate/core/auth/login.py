"""
Login Orchestration
===================

Runs one password login through its steps:

    CheckLock -> CheckUser -> VerifyPassword -> IssueSession -> RecordStats

Failure Semantics:
- Malformed input is rejected before any storage access (ValidationError)
- A locked username is refused before any digest comparison
  (TooManyAttemptsError)
- Unknown username and wrong password both count as a failure and raise
  the same InvalidCredentialsError with the same message
- Unknown usernames still spend one Argon2 verification, so both paths
  cost about the same time
- Once a session is issued the login has succeeded; statistics and
  rehashing failures after that point are logged and ignored
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from keygate.core.auth.argon2_auth import Argon2Hasher
from keygate.core.auth.rate_limit import LoginRateLimiter
from keygate.core.auth.session_control import SessionManager
from keygate.core.auth.user_manager import UserManager
from keygate.core.config import SecurityConfig
from keygate.core.errors import (
    InvalidCredentialsError,
    KeyGateError,
    TooManyAttemptsError,
)
from keygate.core.statistics import StatisticsRecorder
from keygate.utils.validators import validate_string_safe


@dataclass(frozen=True)
class LoginResult:
    """A successful login."""
    token: str
    username: str
    role: str
    expires_in: int

    def __repr__(self) -> str:
        """Safe representation without token."""
        return f"LoginResult(username={self.username!r}, role={self.role!r})"

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "username": self.username,
            "role": self.role,
            "expires_in": self.expires_in,
        }


class LoginOrchestrator:
    """
    Password login composed from the rate limiter, credential store,
    hasher and session manager.

    Usage:
        orchestrator = LoginOrchestrator(users, hasher, limiter, sessions, stats)
        result = orchestrator.login("alice", "pass1")
        result.token
    """

    __slots__ = ("_users", "_hasher", "_limiter", "_sessions", "_stats", "_policy", "_log")

    def __init__(
        self,
        users: UserManager,
        hasher: Argon2Hasher,
        limiter: LoginRateLimiter,
        sessions: SessionManager,
        stats: Optional[StatisticsRecorder] = None,
        policy: Optional[SecurityConfig] = None,
    ) -> None:
        self._users = users
        self._hasher = hasher
        self._limiter = limiter
        self._sessions = sessions
        self._stats = stats
        self._policy = policy or SecurityConfig()
        self._log = logging.getLogger("keygate.auth.login")

    def login(self, username: str, password: str) -> LoginResult:
        """
        Authenticate a username and password and issue a session.

        Raises:
            ValidationError: If either argument is missing, mistyped or too long
            TooManyAttemptsError: If the username is locked out
            InvalidCredentialsError: If the username or password is wrong
            StorageUnavailableError: If the store fails before the session is issued
            HasherUnavailableError: If Argon2 fails
        """
        validate_string_safe(
            username, max_length=self._policy.max_login_username_length, field_name="Username"
        )
        validate_string_safe(
            password, max_length=self._policy.max_password_length, field_name="Password"
        )

        # CheckLock
        if self._limiter.is_locked(username):
            self._log.warning("Login refused for locked username %r", username)
            raise TooManyAttemptsError()

        # CheckUser
        user = self._users.get_user(username)
        if user is None:
            self._hasher.verify_dummy(password)
            self._limiter.record_failure(username)
            self._log.info("Login failed for %r", username)
            raise InvalidCredentialsError()

        # VerifyPassword
        if not self._hasher.verify(password, user.password_hash):
            self._limiter.record_failure(username)
            self._log.info("Login failed for %r", username)
            raise InvalidCredentialsError()

        # IssueSession
        self._limiter.reset(username)
        token = self._sessions.issue(user.username, user.role.value)
        self._log.info("Login succeeded for %r", username)

        if self._hasher.needs_rehash(user.password_hash):
            try:
                self._users.rehash_password(user, password)
            except KeyGateError:
                self._log.warning("Rehash failed for %r", username, exc_info=True)

        # RecordStats
        if self._stats is not None:
            try:
                self._stats.record_login()
            except Exception:
                self._log.warning("Could not record login statistics", exc_info=True)

        return LoginResult(
            token=token,
            username=user.username,
            role=user.role.value,
            expires_in=self._sessions.ttl_seconds,
        )
