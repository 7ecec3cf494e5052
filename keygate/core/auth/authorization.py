"""
Authorization Gate
==================

The single check every privileged operation runs before its effect.

require_admin() answers from the session record alone: the role captured
at login, not the user's current role. It has no side effects beyond the
session lookup (which may delete an expired session).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from keygate.core.auth.session_control import SessionManager
from keygate.core.auth.user_manager import UserRole
from keygate.core.errors import DenialReason, ForbiddenError, UnauthorizedError


@dataclass(frozen=True)
class AdminCheck:
    """Outcome of an admin authorization check."""
    authorized: bool
    username: Optional[str] = None
    reason: Optional[DenialReason] = None

    def raise_for_denial(self) -> str:
        """
        Return the admin's username, or raise the matching error.

        Raises:
            UnauthorizedError: If the session is missing or expired
            ForbiddenError: If the session holder is not an admin
        """
        if self.authorized:
            return self.username
        if self.reason == DenialReason.INSUFFICIENT_ROLE:
            raise ForbiddenError()
        raise UnauthorizedError()


class AuthorizationGate:
    """Admin gate over the session manager."""

    __slots__ = ("_sessions",)

    def __init__(self, sessions: SessionManager) -> None:
        self._sessions = sessions

    def require_admin(self, token: str) -> AdminCheck:
        """Check that token belongs to a live session with the admin role."""
        session = self._sessions.validate(token)
        if not session.valid:
            return AdminCheck(authorized=False, reason=DenialReason.INVALID_OR_EXPIRED_SESSION)
        if session.role != UserRole.ADMIN.value:
            return AdminCheck(authorized=False, reason=DenialReason.INSUFFICIENT_ROLE)
        return AdminCheck(authorized=True, username=session.username)
