"""
Secure Configuration Module
===========================

Immutable settings for the storage engine, its blob directory and logging.

Sources, lowest to highest precedence:
    1. Dataclass defaults (OS-aware directories)
    2. VAULTSTORE_<SECTION>__<FIELD> environment variables

Key material is never configurable. Environment names that look like
secrets are ignored outright rather than parsed.
"""

from __future__ import annotations

import hashlib
import os
import platform
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Final, Optional

from vaultstore.core.constants import SecurityLevel

ENV_PREFIX: Final[str] = "VAULTSTORE"
APP_DIR_NAME: Final[str] = "VaultStore"

_SECRET_MARKERS: Final[tuple[str, ...]] = (
    "password", "secret", "key", "token", "credential", "salt", "private",
)


def _looks_secret(name: str) -> bool:
    name = name.lower()
    return any(marker in name for marker in _SECRET_MARKERS)


def _platform_base(kind: str) -> Path:
    """Per-user base directory for ``kind`` ("data" or "state")."""
    system = platform.system()
    home = Path.home()

    if system == "Windows":
        return Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local")) / APP_DIR_NAME
    if system == "Darwin":
        if kind == "state":
            return home / "Library" / "Logs" / APP_DIR_NAME
        return home / "Library" / "Application Support" / APP_DIR_NAME

    xdg_var, fallback = {
        "data": ("XDG_DATA_HOME", home / ".local" / "share"),
        "state": ("XDG_STATE_HOME", home / ".local" / "state"),
    }[kind]
    return Path(os.environ.get(xdg_var, fallback)) / APP_DIR_NAME


def _default_storage_dir() -> Path:
    return _platform_base("data") / "blobs"


def _default_log_dir() -> Path:
    return _platform_base("state") / "logs"


def _parse_bool(value: str) -> bool:
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off", ""}:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Where blobs and log files live. Both paths must be absolute."""

    storage_dir: Path = field(default_factory=_default_storage_dir)
    log_dir: Path = field(default_factory=_default_log_dir)

    def __post_init__(self) -> None:
        for name in ("storage_dir", "log_dir"):
            value = Path(getattr(self, name))
            if not value.is_absolute():
                raise ValueError(f"{name} must be an absolute path: {value}")
            object.__setattr__(self, name, value)


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Limits and durability settings for StorageEngine."""

    max_file_size: int = 10 * 1024 * 1024 * 1024  # 10 GiB
    default_security_level: SecurityLevel = SecurityLevel.STANDARD
    fsync: bool = True
    id_retry_limit: int = 3

    def __post_init__(self) -> None:
        if self.max_file_size <= 0:
            raise ValueError("max_file_size must be positive")
        if self.id_retry_limit < 1:
            raise ValueError("id_retry_limit must be at least 1")
        object.__setattr__(
            self, "default_security_level", SecurityLevel.coerce(self.default_security_level)
        )


@dataclass(frozen=True, slots=True)
class CryptoConfig:
    """CryptoEngine lifecycle settings."""

    # Wipe key material at interpreter exit if the host forgot shutdown()
    wipe_on_exit: bool = True


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Handler settings used by vaultstore.core.logging."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False
    enable_json: bool = False

    def __post_init__(self) -> None:
        if self.level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.max_file_size_bytes <= 0 or self.backup_count < 0:
            raise ValueError("Log rotation limits must be positive")


# "section.field" -> converter for every field settable from the environment
_ENV_FIELDS: Final[dict[str, Callable[[str], Any]]] = {
    "paths.storage_dir": Path,
    "paths.log_dir": Path,
    "storage.max_file_size": int,
    "storage.default_security_level": int,
    "storage.fsync": _parse_bool,
    "storage.id_retry_limit": int,
    "crypto.wipe_on_exit": _parse_bool,
    "logging.level": str,
    "logging.max_file_size_bytes": int,
    "logging.backup_count": int,
    "logging.enable_console": _parse_bool,
    "logging.enable_file": _parse_bool,
    "logging.enable_json": _parse_bool,
}

_SECTIONS: Final[dict[str, type]] = {
    "paths": PathConfig,
    "storage": StorageConfig,
    "crypto": CryptoConfig,
    "logging": LoggingConfig,
}


class VaultStoreConfig:
    """
    Frozen bundle of all section configs.

    Usage:
        config = VaultStoreConfig.load()
        config.paths.storage_dir
        config.storage.max_file_size

    Environment overrides use the section and field name joined by a
    double underscore:
        VAULTSTORE_PATHS__STORAGE_DIR=/srv/vault
        VAULTSTORE_STORAGE__MAX_FILE_SIZE=1048576
        VAULTSTORE_STORAGE__DEFAULT_SECURITY_LEVEL=3
        VAULTSTORE_LOGGING__LEVEL=DEBUG
    """

    __slots__ = ("_paths", "_storage", "_crypto", "_logging", "_config_hash", "_sealed")

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        storage: Optional[StorageConfig] = None,
        crypto: Optional[CryptoConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        values = {
            "_paths": paths or PathConfig(),
            "_storage": storage or StorageConfig(),
            "_crypto": crypto or CryptoConfig(),
            "_logging": logging or LoggingConfig(),
        }
        for name, value in values.items():
            object.__setattr__(self, name, value)

        fingerprint = "|".join(repr(value) for value in values.values())
        object.__setattr__(
            self, "_config_hash", hashlib.sha256(fingerprint.encode()).hexdigest()[:16]
        )
        object.__setattr__(self, "_sealed", True)

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def storage(self) -> StorageConfig:
        return self._storage

    @property
    def crypto(self) -> CryptoConfig:
        return self._crypto

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        """Short fingerprint of the effective settings, safe to log."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = ENV_PREFIX) -> "VaultStoreConfig":
        """
        Build a config from defaults plus environment overrides.

        Unknown variables under the prefix are ignored.

        Raises:
            ValueError: If an override cannot be converted or fails validation
        """
        sections: dict[str, dict[str, Any]] = {name: {} for name in _SECTIONS}

        for dotted, raw in cls._parse_env_overrides(env_prefix).items():
            convert = _ENV_FIELDS.get(dotted)
            if convert is None:
                continue
            section, field_name = dotted.split(".", 1)
            try:
                sections[section][field_name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {dotted}: {raw!r}") from e

        built = {
            name: _SECTIONS[name](**kwargs) if kwargs else None
            for name, kwargs in sections.items()
        }
        return cls(**built)

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Map ``PREFIX_SECTION__FIELD`` variables to ``section.field`` keys."""
        marker = f"{prefix.upper()}_"
        overrides: dict[str, str] = {}

        for name, value in os.environ.items():
            if not name.startswith(marker):
                continue
            dotted = name[len(marker):].lower().replace("__", ".")
            if _looks_secret(dotted):
                continue
            overrides[dotted] = value

        return overrides

    def ensure_directories(self) -> None:
        """Create the blob and log directories, owner-only on POSIX."""
        for directory in (self._paths.storage_dir, self._paths.log_dir):
            directory.mkdir(parents=True, exist_ok=True)
            if os.name == "posix":
                directory.chmod(stat.S_IRWXU)

    def __repr__(self) -> str:
        return f"VaultStoreConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False):
            raise AttributeError("VaultStoreConfig is immutable after initialization")
        super().__setattr__(name, value)
