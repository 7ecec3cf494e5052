"""
Error Taxonomy
==============

Every failure the authentication core can report to a caller.

Each error carries a stable ``code`` and a ``public_message`` that is safe to
return to a client. Internal detail (driver messages, stack traces) stays in
the exception chain and the local log only.

Security Properties:
- Unknown-user and wrong-password share one error and one message
- Storage and hasher failures collapse into one generic server error
"""

from __future__ import annotations

from enum import Enum
from typing import Final


_GENERIC_SERVER_MESSAGE: Final[str] = "Internal server error"


class DenialReason(Enum):
    """Why the authorization gate refused a token."""
    INVALID_OR_EXPIRED_SESSION = "InvalidOrExpiredSession"
    INSUFFICIENT_ROLE = "InsufficientRole"


class KeyGateError(Exception):
    """Base exception for all KeyGate errors."""

    code: str = "error"
    public_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class ValidationError(KeyGateError, ValueError):
    """Raised when input is malformed, oversized or of the wrong type."""

    code = "invalid_input"
    public_message = "Invalid input"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        # Validation messages describe the caller's own input, never server state.
        if message:
            self.public_message = message


class ConfigurationError(KeyGateError):
    """Raised when configuration or seed credentials are unusable."""

    code = "configuration_error"
    public_message = _GENERIC_SERVER_MESSAGE


class UserNotFoundError(KeyGateError):
    """Raised when the target user does not exist."""

    code = "not_found"
    public_message = "User not found"


class UserExistsError(KeyGateError):
    """Raised when trying to create a user that already exists."""

    code = "already_exists"
    public_message = "User already exists"


class TooManyAttemptsError(KeyGateError):
    """Raised when login is refused because the username is locked out."""

    code = "too_many_attempts"
    public_message = "Too many failed login attempts. Please try again later."


class InvalidCredentialsError(KeyGateError):
    """Raised for an unknown username or a wrong password, indistinguishably."""

    code = "invalid_credentials"
    public_message = "Invalid username or password"


class UnauthorizedError(KeyGateError):
    """Raised when a request carries no valid session."""

    code = "unauthorized"
    public_message = "Unauthorized"
    reason = DenialReason.INVALID_OR_EXPIRED_SESSION


class ForbiddenError(UnauthorizedError):
    """Raised when a valid session lacks the admin role."""

    code = "insufficient_role"
    public_message = "Admin access required"
    reason = DenialReason.INSUFFICIENT_ROLE


class LastAdminError(KeyGateError):
    """Raised when an operation would leave zero admin users."""

    code = "last_admin"
    public_message = "Cannot delete the last admin account"


class StorageUnavailableError(KeyGateError):
    """Raised when the key-value store fails."""

    code = "server_error"
    public_message = _GENERIC_SERVER_MESSAGE


class HasherUnavailableError(KeyGateError):
    """Raised when the password hashing primitive cannot produce a digest."""

    code = "server_error"
    public_message = _GENERIC_SERVER_MESSAGE
