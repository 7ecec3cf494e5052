"""Unit tests for keygate/db/kv_store.py -- key-value backends.

Covers:
- get/set/delete semantics shared by the in-memory and SQLite backends
- get_by_prefix() returns only matching keys
- increment() counts from zero and returns the new value
- SQLite data survives a new store instance on the same file
- create_store() backend selection
"""

from __future__ import annotations

import pytest

from keygate.core.config import KeyGateConfig, StorageConfig
from keygate.core.errors import ConfigurationError
from keygate.db.kv_store import (
    InMemoryKeyValueStore,
    PostgresKeyValueStore,
    SQLiteKeyValueStore,
    create_store,
)


@pytest.fixture(params=["memory", "sqlite"])
def kv(request, tmp_path):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return SQLiteKeyValueStore(tmp_path / "kv.db")


def test_get_missing_returns_none(kv):
    assert kv.get("nope") is None


def test_set_and_get_json_value(kv):
    kv.set("user:alice", {"username": "alice", "tags": [1, 2], "active": True})
    assert kv.get("user:alice") == {"username": "alice", "tags": [1, 2], "active": True}


def test_set_replaces_value(kv):
    kv.set("k", 1)
    kv.set("k", "two")
    assert kv.get("k") == "two"


def test_delete_is_idempotent(kv):
    kv.set("k", 1)
    kv.delete("k")
    kv.delete("k")
    assert kv.get("k") is None


def test_get_by_prefix(kv):
    kv.set("session:a", {"n": 1})
    kv.set("session:b", {"n": 2})
    kv.set("user:a", {"n": 3})
    kv.set("sessions", {"n": 4})

    assert kv.get_by_prefix("session:") == {"session:a": {"n": 1}, "session:b": {"n": 2}}
    assert kv.get_by_prefix("missing:") == {}


def test_increment_from_absent(kv):
    assert kv.increment("counter") == 1
    assert kv.increment("counter") == 2
    assert kv.increment("counter", 3) == 5
    assert kv.get("counter") == 5


def test_increment_existing_integer(kv):
    kv.set("counter", 7)
    assert kv.increment("counter") == 8


def test_memory_store_copies_values():
    kv = InMemoryKeyValueStore()
    value = {"a": 1}
    kv.set("k", value)
    value["a"] = 2
    assert kv.get("k") == {"a": 1}


def test_sqlite_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "kv.db"
    SQLiteKeyValueStore(path).set("user:alice", {"role": "user"})
    assert SQLiteKeyValueStore(path).get("user:alice") == {"role": "user"}


def test_sqlite_rejects_bad_table_name(tmp_path):
    with pytest.raises(ConfigurationError):
        SQLiteKeyValueStore(tmp_path / "kv.db", table_name="kv; DROP TABLE x")


def test_postgres_requires_dsn():
    with pytest.raises(ConfigurationError):
        PostgresKeyValueStore("")


def test_create_store_memory():
    config = KeyGateConfig(storage=StorageConfig(backend="memory"))
    assert isinstance(create_store(config), InMemoryKeyValueStore)


def test_create_store_sqlite(tmp_path):
    config = KeyGateConfig(storage=StorageConfig(backend="sqlite", sqlite_path=tmp_path / "k.db"))
    store = create_store(config)
    assert isinstance(store, SQLiteKeyValueStore)
    assert (tmp_path / "k.db").exists()


def test_create_store_postgres_without_url():
    config = KeyGateConfig(storage=StorageConfig(backend="postgres"))
    with pytest.raises(ConfigurationError):
        create_store(config, environ={})
