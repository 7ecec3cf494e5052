"""
Authentication Service
======================

The operations the web layer calls. Wires the hasher, credential store,
rate limiter, session manager, authorization gate and login orchestrator
onto one key-value store.

User-management operations here are not gated themselves; callers must
run require_admin() first.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from keygate.core.auth.argon2_auth import Argon2Hasher
from keygate.core.auth.authorization import AdminCheck, AuthorizationGate
from keygate.core.auth.credentials import SeedUser, load_seed_users
from keygate.core.auth.login import LoginOrchestrator, LoginResult
from keygate.core.auth.rate_limit import LoginRateLimiter
from keygate.core.auth.session_control import SessionManager, SessionValidation
from keygate.core.auth.user_manager import User, UserManager, UserRole, UserSummary
from keygate.core.config import SecurityConfig
from keygate.core.statistics import StatisticsRecorder
from keygate.db.kv_store import KeyValueStore


class AuthService:
    """
    Boundary facade for authentication and user management.

    Usage:
        service = AuthService(store)
        service.bootstrap()

        result = service.login("vossi", "password")
        check = service.require_admin(result.token)
        if check.authorized:
            service.create_user("alice", "pass1", "user")
    """

    def __init__(
        self,
        store: KeyValueStore,
        policy: Optional[SecurityConfig] = None,
        hasher: Optional[Argon2Hasher] = None,
        stats: Optional[StatisticsRecorder] = None,
    ) -> None:
        self.policy = policy or SecurityConfig()
        self.hasher = hasher or Argon2Hasher(
            memory_cost=self.policy.argon2_memory_cost,
            time_cost=self.policy.argon2_time_cost,
            parallelism=self.policy.argon2_parallelism,
        )
        self.users = UserManager(store, self.hasher, self.policy)
        self.limiter = LoginRateLimiter(store, self.policy.max_login_attempts)
        self.sessions = SessionManager(store, self.policy.session_ttl_seconds)
        self.gate = AuthorizationGate(self.sessions)
        self.stats = stats or StatisticsRecorder(store)
        self._login = LoginOrchestrator(
            self.users, self.hasher, self.limiter, self.sessions, self.stats, self.policy
        )
        self._log = logging.getLogger("keygate.auth.service")

    def bootstrap(self, seed_users: Optional[Iterable[SeedUser]] = None) -> bool:
        """Seed default accounts if the store has none. Call once at startup."""
        seeds = load_seed_users() if seed_users is None else seed_users
        return self.users.bootstrap(seeds)

    def login(self, username: str, password: str) -> LoginResult:
        return self._login.login(username, password)

    def logout(self, token: str) -> None:
        """Revoke a session. Safe to call repeatedly."""
        self.sessions.revoke(token)

    def validate_session(self, token: str) -> SessionValidation:
        return self.sessions.validate(token)

    def require_admin(self, token: str) -> AdminCheck:
        return self.gate.require_admin(token)

    def list_users(self) -> List[UserSummary]:
        return self.users.list_users()

    def create_user(self, username: str, password: str, role: UserRole | str = UserRole.USER) -> User:
        return self.users.create_user(username, password, role)

    def update_user_password(self, username: str, new_password: str) -> None:
        self.users.update_password(username, new_password)

    def delete_user(self, username: str) -> None:
        self.users.delete_user(username)

    def unlock_user(self, username: str) -> None:
        """Clear a username's failed-login counter."""
        self.limiter.reset(username)
        self._log.info("Cleared login lockout for %r", username)

    def clear_lockouts(self) -> int:
        return self.limiter.clear_all()

    def purge_expired_sessions(self) -> int:
        return self.sessions.purge_expired()
