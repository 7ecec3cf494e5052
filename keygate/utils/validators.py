"""
Validation Utilities
====================

Input validation functions with security focus.

All checks run before any storage access.
"""

from __future__ import annotations

import re
from typing import Any, Final

from keygate.core.errors import ValidationError


VALID_ROLES: Final[frozenset[str]] = frozenset({"admin", "user"})

_USERNAME_CHARS: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_string_safe(
    value: Any,
    min_length: int = 0,
    max_length: int = 1000,
    allow_empty: bool = False,
    field_name: str = "value",
) -> str:
    """
    Validate a string value for safety.

    Args:
        value: The value to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length
        allow_empty: If False, empty strings are rejected
        field_name: Name of the field for error messages

    Returns:
        Validated string

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    if not allow_empty and not value:
        raise ValidationError(f"{field_name} is required")

    if len(value) < min_length:
        raise ValidationError(
            f"{field_name} must be at least {min_length} characters"
        )

    if len(value) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters"
        )

    # Check for null bytes (security risk)
    if "\x00" in value:
        raise ValidationError(f"{field_name} contains invalid characters")

    return value


def validate_username(value: Any, min_length: int = 3, max_length: int = 20) -> str:
    """Validate a username for account creation."""
    username = validate_string_safe(
        value, min_length=min_length, max_length=max_length, field_name="Username"
    )
    if not _USERNAME_CHARS.match(username):
        raise ValidationError(
            "Username can only contain letters, numbers, underscores, and hyphens"
        )
    return username


def validate_password(value: Any, min_length: int = 4, max_length: int = 100) -> str:
    """
    Validate a new password.

    The minimum length of 4 is a known weak policy kept for compatibility
    with the seeded accounts; deployments should raise it via
    KEYGATE_SECURITY__MIN_PASSWORD_LENGTH.
    """
    return validate_string_safe(
        value, min_length=min_length, max_length=max_length, field_name="Password"
    )


def validate_role(value: Any) -> str:
    """Validate a role name."""
    if not isinstance(value, str) or value not in VALID_ROLES:
        raise ValidationError("Role must be 'admin' or 'user'")
    return value
