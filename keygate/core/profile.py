"""
Profile Content
===============

The public profile shown on the site, stored as one opaque JSON object.

Everyone can read it; only admins may change it (the web layer runs the
authorization gate before update_profile). Field contents are not
interpreted here beyond requiring a JSON object.

Storage layout:
    profile -> {...payload..., "updated_at"}
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timezone
from typing import Any, Final, Mapping

from keygate.core.errors import ValidationError
from keygate.db.kv_store import KeyValueStore


PROFILE_KEY: Final[str] = "profile"
MAX_PROFILE_BYTES: Final[int] = 256 * 1024

DEFAULT_PROFILE: Final[dict[str, Any]] = {
    "name": "",
    "alternateNames": [],
    "hobbies": [],
    "badges": [],
    "quote": {"text": "", "author": ""},
    "socialLinks": [],
    "profileImage": "",
}


class ProfileService:
    """Read and shallow-merge the profile payload."""

    __slots__ = ("_store",)

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def get_profile(self) -> dict[str, Any]:
        """Return the profile, storing the default on first access."""
        profile = self._store.get(PROFILE_KEY)
        if profile is None:
            profile = copy.deepcopy(DEFAULT_PROFILE)
            profile["updated_at"] = datetime.now(timezone.utc).isoformat()
            self._store.set(PROFILE_KEY, profile)
        return profile

    def update_profile(self, updates: Any) -> dict[str, Any]:
        """
        Merge top-level fields into the profile.

        Returns:
            The stored profile

        Raises:
            ValidationError: If updates is not a JSON object or is too large
        """
        if not isinstance(updates, Mapping):
            raise ValidationError("Profile update must be a JSON object")
        if len(json.dumps(updates)) > MAX_PROFILE_BYTES:
            raise ValidationError("Profile update is too large")

        profile = {
            **self.get_profile(),
            **updates,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        self._store.set(PROFILE_KEY, profile)
        return profile
