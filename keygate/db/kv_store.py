"""
Key-Value Storage
=================

The only persistence KeyGate needs: a string-keyed store of JSON values.

Backends:
- InMemoryKeyValueStore: process-local, for development and tests
- SQLiteKeyValueStore: single-file deployments
- PostgresKeyValueStore: JSONB table, for hosted deployments

Consistency:
- Single-key operations are atomic in every backend
- increment() is an atomic read-modify-write in every backend
- No multi-key transactions are offered
"""

from __future__ import annotations

import json
import os
import re
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Final, Iterator, Mapping, Optional

import psycopg2
import psycopg2.extras
from psycopg2 import sql

from keygate.core.config import KeyGateConfig
from keygate.core.errors import (
    ConfigurationError,
    StorageUnavailableError,
)


DEFAULT_TABLE_NAME: Final[str] = "kv_store"

_TABLE_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def _check_table_name(name: str) -> str:
    if not _TABLE_NAME_PATTERN.match(name):
        raise ConfigurationError(f"Invalid table name: {name!r}")
    return name


class KeyValueStore(ABC):
    """
    Storage capability used by every KeyGate component.

    Values are JSON-compatible (dict, list, str, int, float, bool, None).
    get() returns None for absent keys; delete() of an absent key is a no-op.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under key, or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        """Return every key/value pair whose key starts with prefix."""

    @abstractmethod
    def increment(self, key: str, amount: int = 1) -> int:
        """
        Atomically add amount to the integer under key.

        An absent key counts as 0. Returns the new value.
        """


class InMemoryKeyValueStore(KeyValueStore):
    """Thread-safe dictionary store. Values are copied on the way in and out."""

    __slots__ = ("_data", "_lock")

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        raw = json.dumps(value)
        with self._lock:
            self._data[key] = raw

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        with self._lock:
            items = [(k, v) for k, v in self._data.items() if k.startswith(prefix)]
        return {k: json.loads(v) for k, v in items}

    def increment(self, key: str, amount: int = 1) -> int:
        with self._lock:
            raw = self._data.get(key)
            value = (int(json.loads(raw)) if raw is not None else 0) + amount
            self._data[key] = json.dumps(value)
        return value


class SQLiteKeyValueStore(KeyValueStore):
    """
    Key-value store backed by a single SQLite table.

    Usage:
        store = SQLiteKeyValueStore(db_path)
        store.set("user:alice", {...})
    """

    __slots__ = ("_db_path", "_table")

    def __init__(self, db_path: Path | str, table_name: str = DEFAULT_TABLE_NAME) -> None:
        """
        Initialize the store and create its table.

        Args:
            db_path: Path to SQLite database file
            table_name: Table holding the key/value rows
        """
        self._db_path = Path(db_path)
        self._table = _check_table_name(table_name)
        self.initialize_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction; commit on success."""
        try:
            conn = sqlite3.connect(self._db_path, timeout=10.0)
        except sqlite3.Error as e:
            raise StorageUnavailableError("SQLite connection failed") from e
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageUnavailableError("SQLite operation failed") from e
        finally:
            conn.close()

    def initialize_db(self) -> None:
        """Create the table if it does not exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {self._table} "
                "(key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )

    def get(self, key: str) -> Optional[Any]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT value FROM {self._table} WHERE key = ?", (key,)
            ).fetchone()
        return None if row is None else json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO {self._table} (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, json.dumps(value)),
            )

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute(f"DELETE FROM {self._table} WHERE key = ?", (key,))

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT key, value FROM {self._table} "
                "WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return {key: json.loads(value) for key, value in rows}

    def increment(self, key: str, amount: int = 1) -> int:
        # Upsert and read back in one transaction; SQLite holds the write
        # lock until commit.
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO {self._table} (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = CAST(value AS INTEGER) + excluded.value",
                (key, str(amount)),
            )
            row = conn.execute(
                f"SELECT value FROM {self._table} WHERE key = ?", (key,)
            ).fetchone()
        return int(row[0])


class PostgresKeyValueStore(KeyValueStore):
    """
    Key-value store backed by a PostgreSQL JSONB table.

    Opens one connection per operation, so instances are safe to share
    between request threads.
    """

    __slots__ = ("_dsn", "_table")

    def __init__(self, dsn: str, table_name: str = DEFAULT_TABLE_NAME) -> None:
        if not dsn:
            raise ConfigurationError("DATABASE_URL is not set")
        self._dsn = dsn
        self._table = sql.Identifier(_check_table_name(table_name))
        self.initialize_db()

    @contextmanager
    def _cursor(self) -> Iterator[psycopg2.extras.RealDictCursor]:
        """Yield a dict cursor inside a transaction; commit on success."""
        try:
            conn = psycopg2.connect(
                self._dsn, cursor_factory=psycopg2.extras.RealDictCursor
            )
        except psycopg2.Error as e:
            raise StorageUnavailableError("PostgreSQL connection failed") from e
        try:
            with conn:
                with conn.cursor() as cur:
                    yield cur
        except psycopg2.Error as e:
            raise StorageUnavailableError("PostgreSQL operation failed") from e
        finally:
            conn.close()

    def initialize_db(self) -> None:
        with self._cursor() as cur:
            cur.execute(sql.SQL(
                "CREATE TABLE IF NOT EXISTS {} (key TEXT PRIMARY KEY, value JSONB NOT NULL)"
            ).format(self._table))

    def get(self, key: str) -> Optional[Any]:
        with self._cursor() as cur:
            cur.execute(
                sql.SQL("SELECT value FROM {} WHERE key = %s").format(self._table),
                (key,),
            )
            row = cur.fetchone()
        return None if row is None else row["value"]

    def set(self, key: str, value: Any) -> None:
        with self._cursor() as cur:
            cur.execute(
                sql.SQL(
                    "INSERT INTO {} (key, value) VALUES (%s, %s) "
                    "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value"
                ).format(self._table),
                (key, psycopg2.extras.Json(value)),
            )

    def delete(self, key: str) -> None:
        with self._cursor() as cur:
            cur.execute(
                sql.SQL("DELETE FROM {} WHERE key = %s").format(self._table),
                (key,),
            )

    def get_by_prefix(self, prefix: str) -> dict[str, Any]:
        pattern = (
            prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        )
        with self._cursor() as cur:
            cur.execute(
                sql.SQL("SELECT key, value FROM {} WHERE key LIKE %s ORDER BY key").format(
                    self._table
                ),
                (pattern,),
            )
            rows = cur.fetchall()
        return {row["key"]: row["value"] for row in rows}

    def increment(self, key: str, amount: int = 1) -> int:
        with self._cursor() as cur:
            cur.execute(
                sql.SQL(
                    "INSERT INTO {table} (key, value) VALUES (%s, to_jsonb(%s::bigint)) "
                    "ON CONFLICT (key) DO UPDATE "
                    "SET value = to_jsonb(({table}.value #>> '{{}}')::bigint + %s) "
                    "RETURNING value"
                ).format(table=self._table),
                (key, amount, amount),
            )
            row = cur.fetchone()
        return int(row["value"])


def create_store(config: KeyGateConfig, environ: Optional[Mapping[str, str]] = None) -> KeyValueStore:
    """
    Build the backend named by config.storage.backend.

    The PostgreSQL DSN is read from DATABASE_URL, never from KEYGATE_*
    overrides, so it stays out of the generic configuration path.
    """
    backend = config.storage.backend
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "sqlite":
        return SQLiteKeyValueStore(config.sqlite_path, config.storage.table_name)
    env = os.environ if environ is None else environ
    return PostgresKeyValueStore(env.get("DATABASE_URL", ""), config.storage.table_name)
