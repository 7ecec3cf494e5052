"""
Database module - Key-value persistence for KeyGate.

Security Considerations:
- Only Argon2 digests are stored, never plaintext passwords
- Driver errors surface as StorageUnavailableError
"""

from keygate.db.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    PostgresKeyValueStore,
    SQLiteKeyValueStore,
    create_store,
)

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "PostgresKeyValueStore",
    "create_store",
]
