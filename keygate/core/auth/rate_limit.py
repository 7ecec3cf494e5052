"""
Login Throttling
================

Per-username failed-login counter with a lockout threshold.

Storage layout:
    ratelimit:login:<username> -> integer count of consecutive failures

Behavior:
- Each failed login increments the counter (atomically, via the store)
- A successful login deletes it
- At max_attempts failures the username is locked

Known Trade-off:
    Limiting is per username, not per client address. The threat model is
    password guessing against a small, known set of accounts. Anyone who
    knows a valid username can therefore lock that account out by failing
    five logins. Counters do not decay on their own; an operator clears
    them with ``flask --app keygate.web.app unlock-user <name>`` or
    ``clear-lockouts``.
"""

from __future__ import annotations

import logging
from typing import Final

from keygate.db.kv_store import KeyValueStore


RATE_LIMIT_KEY_PREFIX: Final[str] = "ratelimit:login:"
MAX_LOGIN_ATTEMPTS: Final[int] = 5


def _counter_key(username: str) -> str:
    return f"{RATE_LIMIT_KEY_PREFIX}{username}"


class LoginRateLimiter:
    """
    Failed-login counter per username.

    Usage:
        limiter = LoginRateLimiter(store)

        if limiter.is_locked("alice"):
            refuse()
        limiter.record_failure("alice")
        limiter.reset("alice")
    """

    __slots__ = ("_store", "_max_attempts", "_log")

    def __init__(self, store: KeyValueStore, max_attempts: int = MAX_LOGIN_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._max_attempts = max_attempts
        self._log = logging.getLogger("keygate.auth.ratelimit")

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def failure_count(self, username: str) -> int:
        """Current consecutive failure count (0 when no counter exists)."""
        value = self._store.get(_counter_key(username))
        return int(value) if value is not None else 0

    def record_failure(self, username: str) -> int:
        """
        Record one failed login.

        Returns:
            The new failure count
        """
        count = self._store.increment(_counter_key(username))
        if count == self._max_attempts:
            self._log.warning("Username %r locked after %d failed logins", username, count)
        return count

    def reset(self, username: str) -> None:
        """Clear the failure counter."""
        self._store.delete(_counter_key(username))

    def is_locked(self, username: str) -> bool:
        """True when the failure count has reached the threshold."""
        return self.failure_count(username) >= self._max_attempts

    def clear_all(self) -> int:
        """
        Delete every failure counter.

        Returns:
            Number of counters removed
        """
        keys = list(self._store.get_by_prefix(RATE_LIMIT_KEY_PREFIX))
        for key in keys:
            self._store.delete(key)
        return len(keys)
