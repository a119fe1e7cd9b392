from __future__ import annotations

from pathlib import Path

import pytest

from vaultstore.core.config import (
    LoggingConfig,
    PathConfig,
    StorageConfig,
    VaultStoreConfig,
)
from vaultstore.core.constants import SecurityLevel


def test_defaults() -> None:
    config = VaultStoreConfig()

    assert config.storage.max_file_size == 10 * 1024 ** 3
    assert config.storage.default_security_level is SecurityLevel.STANDARD
    assert config.storage.id_retry_limit == 3
    assert config.crypto.wipe_on_exit is True
    assert config.paths.storage_dir.is_absolute()


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("VAULTSTORE_PATHS__STORAGE_DIR", str(tmp_path / "vault"))
    monkeypatch.setenv("VAULTSTORE_STORAGE__MAX_FILE_SIZE", "1024")
    monkeypatch.setenv("VAULTSTORE_STORAGE__DEFAULT_SECURITY_LEVEL", "3")
    monkeypatch.setenv("VAULTSTORE_STORAGE__FSYNC", "false")
    monkeypatch.setenv("VAULTSTORE_LOGGING__LEVEL", "DEBUG")

    config = VaultStoreConfig.load()

    assert config.paths.storage_dir == tmp_path / "vault"
    assert config.storage.max_file_size == 1024
    assert config.storage.default_security_level is SecurityLevel.MAXIMUM
    assert config.storage.fsync is False
    assert config.logging.level == "DEBUG"


def test_sensitive_environment_keys_ignored(monkeypatch) -> None:
    monkeypatch.setenv("VAULTSTORE_CRYPTO__MASTER_KEY", "00" * 32)

    assert "crypto.master_key" not in VaultStoreConfig._parse_env_overrides("VAULTSTORE")


def test_invalid_override_rejected(monkeypatch) -> None:
    monkeypatch.setenv("VAULTSTORE_STORAGE__DEFAULT_SECURITY_LEVEL", "9")

    with pytest.raises(ValueError):
        VaultStoreConfig.load()


def test_config_is_immutable() -> None:
    config = VaultStoreConfig()

    with pytest.raises(AttributeError):
        config._storage = StorageConfig(max_file_size=1)
    with pytest.raises(AttributeError):
        config.storage.max_file_size = 1  # type: ignore[misc]


def test_validation() -> None:
    with pytest.raises(ValueError):
        PathConfig(storage_dir=Path("relative"))
    with pytest.raises(ValueError):
        StorageConfig(max_file_size=0)
    with pytest.raises(ValueError):
        StorageConfig(id_retry_limit=0)
    with pytest.raises(ValueError):
        LoggingConfig(level="LOUD")


def test_config_hash_tracks_settings() -> None:
    a = VaultStoreConfig(storage=StorageConfig(max_file_size=1))
    b = VaultStoreConfig(storage=StorageConfig(max_file_size=2))

    assert a.config_hash != b.config_hash
    assert a.config_hash in repr(a)


def test_ensure_directories(tmp_path: Path) -> None:
    config = VaultStoreConfig(
        paths=PathConfig(storage_dir=tmp_path / "blobs", log_dir=tmp_path / "logs")
    )
    config.ensure_directories()

    assert (tmp_path / "blobs").is_dir()
    assert (tmp_path / "logs").is_dir()
