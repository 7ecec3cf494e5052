"""Unit tests for keygate/core/config.py -- environment-aware configuration."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from keygate.core.config import KeyGateConfig, PathConfig, SecurityConfig, StorageConfig
from keygate.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("KEYGATE_"):
            monkeypatch.delenv(key)


def test_defaults():
    config = KeyGateConfig.load()
    assert config.security.session_ttl_seconds == 7 * 24 * 3600
    assert config.security.max_login_attempts == 5
    assert config.storage.backend == "sqlite"
    assert config.app.debug_mode is False


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("KEYGATE_SECURITY__SESSION_TTL_SECONDS", "3600")
    monkeypatch.setenv("KEYGATE_SECURITY__MAX_LOGIN_ATTEMPTS", "3")
    monkeypatch.setenv("KEYGATE_STORAGE__BACKEND", "memory")
    monkeypatch.setenv("KEYGATE_LOGGING__ENABLE_FILE", "true")
    monkeypatch.setenv("KEYGATE_PATHS__DATA_DIR", str(tmp_path))

    config = KeyGateConfig.load()

    assert config.security.session_ttl_seconds == 3600
    assert config.security.max_login_attempts == 3
    assert config.storage.backend == "memory"
    assert config.logging.enable_file is True
    assert config.paths.data_dir == tmp_path
    assert config.sqlite_path == tmp_path / "keygate.db"


def test_debug_mode_cannot_be_enabled_from_env(monkeypatch):
    monkeypatch.setenv("KEYGATE_APP__DEBUG_MODE", "true")
    assert KeyGateConfig.load().app.debug_mode is False


def test_sensitive_keys_are_ignored(monkeypatch):
    monkeypatch.setenv("KEYGATE_STORAGE__DSN", "postgres://u:p@h/db")
    monkeypatch.setenv("KEYGATE_APP__SECRET", "hunter22")
    monkeypatch.setenv("KEYGATE_SECURITY__MIN_PASSWORD_LENGTH", "8")

    overrides = KeyGateConfig._parse_env_overrides("KEYGATE")

    assert "storage.dsn" not in overrides
    assert "app.secret" not in overrides
    assert overrides["security.min_password_length"] == "8"
    assert KeyGateConfig.load().security.min_password_length == 8


@pytest.mark.parametrize(
    "key,value",
    [
        ("KEYGATE_SECURITY__SESSION_TTL_SECONDS", "soon"),
        ("KEYGATE_SECURITY__SESSION_TTL_SECONDS", "10"),
        ("KEYGATE_STORAGE__BACKEND", "redis"),
        ("KEYGATE_LOGGING__LEVEL", "LOUD"),
    ],
)
def test_invalid_overrides_raise(monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ConfigurationError):
        KeyGateConfig.load()


def test_config_is_immutable():
    config = KeyGateConfig()
    with pytest.raises(AttributeError):
        config.security = SecurityConfig()


def test_relative_paths_rejected():
    with pytest.raises(ConfigurationError):
        PathConfig(data_dir=Path("relative"))


def test_explicit_sqlite_path(tmp_path):
    config = KeyGateConfig(storage=StorageConfig(sqlite_path=tmp_path / "custom.db"))
    assert config.sqlite_path == tmp_path / "custom.db"


def test_ensure_directories(tmp_path):
    config = KeyGateConfig(paths=PathConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs"))
    config.ensure_directories()
    assert (tmp_path / "data").is_dir()
    assert (tmp_path / "logs").is_dir()
