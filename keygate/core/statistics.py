"""
Site Statistics
===============

Aggregate counters shown on the admin dashboard.

Storage layout:
    statistics -> {"total_logins", "last_login", "profile_views"}

Updates are read-modify-write on a single key. Concurrent updates can lose
an increment; the counters are informational only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Final

from keygate.db.kv_store import KeyValueStore


STATISTICS_KEY: Final[str] = "statistics"


def _default_statistics() -> dict[str, Any]:
    return {"total_logins": 0, "last_login": None, "profile_views": 0}


class StatisticsRecorder:
    """Login and profile-view counters."""

    __slots__ = ("_store",)

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def get_statistics(self) -> dict[str, Any]:
        """Return the counters, creating them on first access."""
        stats = self._store.get(STATISTICS_KEY)
        if stats is None:
            stats = _default_statistics()
            self._store.set(STATISTICS_KEY, stats)
        return {**_default_statistics(), **stats}

    def record_login(self) -> None:
        stats = self.get_statistics()
        stats["total_logins"] += 1
        stats["last_login"] = datetime.now(timezone.utc).isoformat()
        self._store.set(STATISTICS_KEY, stats)

    def record_profile_view(self) -> None:
        stats = self.get_statistics()
        stats["profile_views"] += 1
        self._store.set(STATISTICS_KEY, stats)
