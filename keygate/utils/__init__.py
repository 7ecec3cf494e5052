"""
Utils module - Input validation helpers.
"""

from keygate.utils.validators import (
    validate_password,
    validate_role,
    validate_string_safe,
    validate_username,
)

__all__ = [
    "validate_string_safe",
    "validate_username",
    "validate_password",
    "validate_role",
]
