"""
Session Control
================

Bearer-token sessions with absolute expiry.

Security Features:
- Cryptographically random tokens (256 bits, 64 hex characters)
- Absolute expiry (no sliding extension)
- Lazy expiry: an expired session is deleted when it is first presented
- Idempotent revocation

Storage layout:
    session:<token> -> {"username", "role", "created_at", "expires_at"}

The role is captured when the session is issued. Changing a user's role
does not affect sessions that already exist; the new role applies from the
user's next login.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Final, Optional

from keygate.db.kv_store import KeyValueStore


SESSION_KEY_PREFIX: Final[str] = "session:"
SESSION_TOKEN_BYTES: Final[int] = 32  # 256 bits -> 64 hex chars
DEFAULT_SESSION_TTL: Final[int] = 7 * 24 * 3600  # 7 days


def _session_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token}"


@dataclass
class Session:
    """
    An issued session.

    The token is the storage key and is deliberately not a field, so a
    Session can be logged or returned without leaking the credential.
    """
    username: str
    role: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the session has expired."""
        return (now or datetime.now(timezone.utc)) > self.expires_at

    def to_record(self) -> dict[str, str]:
        return {
            "username": self.username,
            "role": self.role,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict) -> Session:
        return cls(
            username=record["username"],
            role=record["role"],
            created_at=datetime.fromisoformat(record["created_at"]),
            expires_at=datetime.fromisoformat(record["expires_at"]),
        )


@dataclass(frozen=True)
class SessionValidation:
    """Outcome of validating a token."""
    valid: bool
    username: Optional[str] = None
    role: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.valid:
            return {"valid": False}
        return {"valid": True, "username": self.username, "role": self.role}


INVALID_SESSION: Final[SessionValidation] = SessionValidation(valid=False)


class SessionManager:
    """
    Session issuance, validation and revocation over a key-value backend.

    Usage:
        manager = SessionManager(store)

        token = manager.issue("alice", "user")
        result = manager.validate(token)
        manager.revoke(token)
    """

    __slots__ = ("_store", "_ttl", "_log")

    def __init__(self, store: KeyValueStore, ttl_seconds: int = DEFAULT_SESSION_TTL) -> None:
        """
        Initialize the session manager.

        Args:
            store: Key-value store holding session records
            ttl_seconds: Session lifetime from issuance (default: 7 days)
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._log = logging.getLogger("keygate.auth.sessions")

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    @staticmethod
    def _generate_token() -> str:
        """Generate a cryptographically secure session token."""
        return secrets.token_hex(SESSION_TOKEN_BYTES)

    def issue(self, username: str, role: str) -> str:
        """
        Create a session for an authenticated user.

        Returns:
            Session token (caller must transmit it securely)
        """
        token = self._generate_token()
        now = datetime.now(timezone.utc)
        session = Session(
            username=username,
            role=role,
            created_at=now,
            expires_at=now + self._ttl,
        )
        self._store.set(_session_key(token), session.to_record())
        self._log.info("Session issued for %s until %s", username, session.expires_at.isoformat())
        return token

    def get(self, token: str) -> Optional[Session]:
        """Load a session without checking expiry."""
        if not token:
            return None
        record = self._store.get(_session_key(token))
        return None if record is None else Session.from_record(record)

    def validate(self, token: str) -> SessionValidation:
        """
        Validate a session token.

        Returns the username and role stored at issuance. An expired
        session is deleted and reported invalid.
        """
        session = self.get(token)
        if session is None:
            return INVALID_SESSION

        if session.is_expired():
            self._store.delete(_session_key(token))
            self._log.info("Expired session for %s removed", session.username)
            return INVALID_SESSION

        return SessionValidation(valid=True, username=session.username, role=session.role)

    def revoke(self, token: str) -> None:
        """End a session. Unknown or expired tokens are ignored."""
        if token:
            self._store.delete(_session_key(token))

    def purge_expired(self) -> int:
        """
        Delete every expired session.

        Optional sweep; validate() already removes expired sessions lazily.

        Returns:
            Number of sessions removed
        """
        now = datetime.now(timezone.utc)
        removed = 0
        for key, record in self._store.get_by_prefix(SESSION_KEY_PREFIX).items():
            if Session.from_record(record).is_expired(now):
                self._store.delete(key)
                removed += 1
        if removed:
            self._log.info("Purged %d expired sessions", removed)
        return removed
