"""
Seed Credentials
================

First-boot accounts, read from the ADMIN_CREDENTIALS environment variable.

Format:
    username1:password1:role1,username2:password2:role2

Roles are "admin" or "user"; a missing or unknown role means "user".
When the variable is unset, two default accounts are seeded. Change their
passwords after the first login.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final, List, Mapping, Optional


CREDENTIALS_ENV_VAR: Final[str] = "ADMIN_CREDENTIALS"

_log = logging.getLogger("keygate.auth.credentials")


@dataclass(frozen=True)
class SeedUser:
    """An account to create on first boot."""
    username: str
    password: str
    role: str

    def __repr__(self) -> str:
        """Safe representation without password."""
        return f"SeedUser(username={self.username!r}, role={self.role!r})"


DEFAULT_SEED_USERS: Final[tuple[SeedUser, ...]] = (
    SeedUser(username="vossi", password="password", role="admin"),
    SeedUser(username="hannes", password="1511", role="user"),
)


def parse_credentials(raw: str) -> List[SeedUser]:
    """
    Parse a credentials string into seed users.

    Entries without a username or password are skipped.
    """
    users: List[SeedUser] = []
    for entry in raw.split(","):
        parts = [part.strip() for part in entry.strip().split(":")]
        username = parts[0] if len(parts) > 0 else ""
        password = parts[1] if len(parts) > 1 else ""
        role = parts[2] if len(parts) > 2 else "user"

        if not username or not password:
            _log.warning("Skipping invalid credential entry for %r", username or "<empty>")
            continue

        users.append(SeedUser(
            username=username,
            password=password,
            role="admin" if role == "admin" else "user",
        ))
    return users


def load_seed_users(environ: Optional[Mapping[str, str]] = None) -> List[SeedUser]:
    """Read seed users from the environment, falling back to the defaults."""
    env = os.environ if environ is None else environ
    raw = env.get(CREDENTIALS_ENV_VAR, "").strip()

    if not raw:
        _log.info("No %s found, using default seed users", CREDENTIALS_ENV_VAR)
        return list(DEFAULT_SEED_USERS)

    users = parse_credentials(raw)
    if not users:
        _log.warning("%s contained no usable entries, using default seed users", CREDENTIALS_ENV_VAR)
        return list(DEFAULT_SEED_USERS)
    return users
