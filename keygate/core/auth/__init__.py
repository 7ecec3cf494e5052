"""
KeyGate Authentication Module
=============================

Provides authentication with:
- Argon2id password hashing
- Role-based access control with a last-admin guard
- Bearer sessions with absolute expiry
- Per-username login throttling

Security Properties:
- Memory-hard password hashing
- Constant-time verification
- 256-bit session tokens
- Lockout after repeated failures
"""

from keygate.core.auth.argon2_auth import Argon2Hasher
from keygate.core.auth.authorization import AdminCheck, AuthorizationGate
from keygate.core.auth.credentials import SeedUser, load_seed_users, parse_credentials
from keygate.core.auth.login import LoginOrchestrator, LoginResult
from keygate.core.auth.rate_limit import LoginRateLimiter
from keygate.core.auth.service import AuthService
from keygate.core.auth.session_control import Session, SessionManager, SessionValidation
from keygate.core.auth.user_manager import User, UserManager, UserRole, UserSummary

__all__ = [
    "Argon2Hasher",
    "AdminCheck",
    "AuthorizationGate",
    "SeedUser",
    "load_seed_users",
    "parse_credentials",
    "LoginOrchestrator",
    "LoginResult",
    "LoginRateLimiter",
    "AuthService",
    "Session",
    "SessionManager",
    "SessionValidation",
    "User",
    "UserManager",
    "UserRole",
    "UserSummary",
]
