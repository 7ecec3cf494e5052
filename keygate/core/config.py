"""
Configuration Module
====================

Immutable, environment-aware configuration with security-first defaults.

Security Features:
- Immutable configuration after initialization
- Environment variable override support (KEYGATE_ prefix)
- Secrets are never read through the override mechanism
- OS-aware path handling
"""

from __future__ import annotations

import dataclasses
import os
import platform
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from keygate.core.errors import ConfigurationError


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "auth", "salt", "dsn", "url",
})

# Numeric policy knobs whose names mention a sensitive word but hold no secret.
_POLICY_SUFFIXES: Final[tuple[str, ...]] = ("_length", "_attempts", "_seconds", "_cost")

VALID_BACKENDS: Final[frozenset[str]] = frozenset({"memory", "sqlite", "postgres"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    if key_lower.endswith(_POLICY_SUFFIXES):
        return False
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_data_dir() -> Path:
    """Get OS-appropriate default data directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / "KeyGate"


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / "KeyGate" / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / "KeyGate"
    else:
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "KeyGate" / "logs"


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration with OS-aware defaults."""

    data_dir: Path = field(default_factory=_get_default_data_dir)
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        for field_name in ["data_dir", "log_dir"]:
            path = getattr(self, field_name)
            if not path.is_absolute():
                raise ConfigurationError(f"{field_name} must be an absolute path: {path}")


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """Immutable authentication policy."""

    # Sessions
    session_ttl_seconds: int = 7 * 24 * 3600

    # Login throttling
    max_login_attempts: int = 5

    # Account input policy
    min_username_length: int = 3
    max_username_length: int = 20
    min_password_length: int = 4  # weak; kept for the seeded accounts
    max_password_length: int = 100
    max_login_username_length: int = 50

    # Argon2id
    argon2_memory_cost: int = 19456
    argon2_time_cost: int = 2
    argon2_parallelism: int = 1

    def __post_init__(self) -> None:
        """Validate security settings."""
        if self.session_ttl_seconds < 60:
            raise ConfigurationError("Session TTL must be at least 60 seconds")
        if self.max_login_attempts < 1:
            raise ConfigurationError("max_login_attempts must be at least 1")
        if not 1 <= self.min_username_length <= self.max_username_length:
            raise ConfigurationError("Username length bounds are inconsistent")
        if not 1 <= self.min_password_length <= self.max_password_length:
            raise ConfigurationError("Password length bounds are inconsistent")
        if self.max_login_username_length < self.max_username_length:
            raise ConfigurationError("Login username limit must cover account usernames")


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Immutable storage backend selection."""

    backend: str = "sqlite"
    sqlite_path: Optional[Path] = None  # defaults to <data_dir>/keygate.db
    table_name: str = "kv_store"

    def __post_init__(self) -> None:
        if self.backend not in VALID_BACKENDS:
            raise ConfigurationError(f"Invalid storage backend: {self.backend}")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    enable_console: bool = True
    enable_file: bool = False
    json_format: bool = False

    def __post_init__(self) -> None:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log level: {self.level}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable application configuration."""

    app_name: str = "KeyGate"
    cors_origin: str = "*"
    debug_mode: bool = False


def _coerce(raw: str, current: Any) -> Any:
    """Convert an environment string to the type of the field default."""
    if isinstance(current, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigurationError(f"Expected an integer, got {raw!r}") from e
    if isinstance(current, Path) or current is None:
        return Path(raw)
    return raw


def _build_section(section_cls: type, overrides: dict[str, str], section: str) -> Any:
    """Instantiate a config section, applying any overrides that target it."""
    defaults = section_cls()
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(section_cls):
        env_key = f"{section}.{f.name}"
        if env_key in overrides:
            kwargs[f.name] = _coerce(overrides[env_key], getattr(defaults, f.name))
    return section_cls(**kwargs) if kwargs else defaults


class KeyGateConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = KeyGateConfig.load()
        ttl = config.security.session_ttl_seconds
        backend = config.storage.backend

    Environment variables use the KEYGATE_ prefix and double underscores
    for nesting:
        KEYGATE_LOGGING__LEVEL=DEBUG
        KEYGATE_SECURITY__SESSION_TTL_SECONDS=3600
        KEYGATE_STORAGE__BACKEND=postgres
    """

    __slots__ = ("_paths", "_security", "_storage", "_logging", "_app", "_frozen")

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        security: Optional[SecurityConfig] = None,
        storage: Optional[StorageConfig] = None,
        logging: Optional[LoggingConfig] = None,
        app: Optional[AppConfig] = None,
    ) -> None:
        """Initialize configuration. Use KeyGateConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_security", security or SecurityConfig())
        object.__setattr__(self, "_storage", storage or StorageConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_app", app or AppConfig())
        object.__setattr__(self, "_frozen", True)

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def security(self) -> SecurityConfig:
        return self._security

    @property
    def storage(self) -> StorageConfig:
        return self._storage

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def app(self) -> AppConfig:
        return self._app

    @property
    def sqlite_path(self) -> Path:
        """Resolved SQLite database path."""
        return self._storage.sqlite_path or self._paths.data_dir / "keygate.db"

    @classmethod
    def load(cls, env_prefix: str = "KEYGATE") -> KeyGateConfig:
        """
        Load configuration with environment variable overrides.

        debug_mode cannot be switched on from the environment.

        Raises:
            ConfigurationError: If an override has the wrong type or breaks
                a section's validation rules
        """
        overrides = cls._parse_env_overrides(env_prefix)
        overrides.pop("app.debug_mode", None)

        return cls(
            paths=_build_section(PathConfig, overrides, "paths"),
            security=_build_section(SecurityConfig, overrides, "security"),
            storage=_build_section(StorageConfig, overrides, "storage"),
            logging=_build_section(LoggingConfig, overrides, "logging"),
            app=_build_section(AppConfig, overrides, "app"),
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # KEYGATE_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    def ensure_directories(self) -> None:
        """Create the data and log directories with owner-only permissions."""
        for directory in (self._paths.data_dir, self._paths.log_dir):
            directory.mkdir(parents=True, exist_ok=True)

            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)  # 700

    def __repr__(self) -> str:
        return (
            f"KeyGateConfig(app={self._app.app_name}, "
            f"storage={self._storage.backend})"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("KeyGateConfig is immutable after initialization")
        super().__setattr__(name, value)
