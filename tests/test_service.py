from __future__ import annotations

from pathlib import Path

import pytest

from vaultstore import SecureStorageService, SecurityLevel, determine_security_level
from vaultstore.core.config import CryptoConfig, StorageConfig, VaultStoreConfig
from vaultstore import service as service_module
from vaultstore.core.errors import InvalidArgument, NotFound, NotInitialized
from vaultstore.storage.blob_store import MemoryBlobStore


def _config(**storage) -> VaultStoreConfig:
    return VaultStoreConfig(
        storage=StorageConfig(**storage) if storage else None,
        crypto=CryptoConfig(wipe_on_exit=False),
    )


@pytest.mark.parametrize(
    ("content_type", "expected"),
    [
        ("image/png", SecurityLevel.ENHANCED),
        ("application/pdf", SecurityLevel.MAXIMUM),
        ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", SecurityLevel.MAXIMUM),
        ("application/zip", SecurityLevel.CLASSIFIED),
        ("text/plain", SecurityLevel.STANDARD),
        ("", SecurityLevel.STANDARD),
        (None, SecurityLevel.STANDARD),
    ],
)
def test_determine_security_level(content_type, expected) -> None:
    assert determine_security_level(content_type) is expected


def test_operations_before_initialize() -> None:
    service = SecureStorageService(_config(), blob_store=MemoryBlobStore())

    assert not service.is_initialized
    with pytest.raises(NotInitialized):
        service.store(b"data", "a.txt")
    with pytest.raises(NotInitialized):
        service.compute_hash(b"data")


def test_filesystem_round_trip(tmp_path: Path) -> None:
    service = SecureStorageService(_config())
    service.initialize(tmp_path / "vault")
    try:
        file_id = service.store(b"%PDF-1.7 ...", "scan.pdf", content_type="application/pdf")

        data, name = service.retrieve(file_id)
        assert (data, name) == (b"%PDF-1.7 ...", "scan.pdf")
        assert service.verify(file_id)
        assert service.get_metadata(file_id).security_level is SecurityLevel.MAXIMUM
        assert sorted(p.name for p in (tmp_path / "vault").iterdir()) == sorted(
            [file_id, f"{file_id}.meta"]
        )

        service.delete(file_id)
        with pytest.raises(NotFound):
            service.retrieve(file_id)
    finally:
        service.shutdown()


def test_level_precedence() -> None:
    with SecureStorageService(
        _config(default_security_level=4), blob_store=MemoryBlobStore()
    ) as service:
        explicit = service.store(b"a", "a.png", security_level=5, content_type="image/png")
        by_type = service.store(b"b", "b.png", content_type="image/png")
        default = service.store(b"c", "c.bin")

        assert service.get_metadata(explicit).security_level is SecurityLevel.TOP_SECRET
        assert service.get_metadata(by_type).security_level is SecurityLevel.ENHANCED
        assert service.get_metadata(default).security_level is SecurityLevel.CLASSIFIED


def test_compute_hash_is_hex() -> None:
    with SecureStorageService(_config(), blob_store=MemoryBlobStore()) as service:
        assert service.compute_hash(b"abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )


def test_initialize_is_idempotent_and_shutdown_locks_out() -> None:
    blobs = MemoryBlobStore()
    service = SecureStorageService(_config(), blob_store=blobs)

    assert service.initialize()
    file_id = service.store(b"data", "a.txt")
    assert service.initialize()
    assert service.retrieve(file_id).data == b"data"

    service.shutdown()
    assert not service.is_initialized
    with pytest.raises(NotInitialized):
        service.retrieve(file_id)
    service.shutdown()


def test_max_file_size_from_config() -> None:
    with SecureStorageService(_config(max_file_size=4), blob_store=MemoryBlobStore()) as service:
        with pytest.raises(ValueError):
            service.store(b"12345", "big.bin")


def test_storage_path_conflicts_with_blob_store_override(tmp_path: Path) -> None:
    service = SecureStorageService(_config(), blob_store=MemoryBlobStore())

    with pytest.raises(InvalidArgument):
        service.initialize(tmp_path / "vault")
    assert not service.is_initialized
    assert not (tmp_path / "vault").exists()


def test_shutdown_releases_exit_hook(monkeypatch) -> None:
    registered: list = []
    monkeypatch.setattr(service_module.atexit, "register", registered.append)
    monkeypatch.setattr(service_module.atexit, "unregister", registered.remove)

    service = SecureStorageService(
        VaultStoreConfig(crypto=CryptoConfig(wipe_on_exit=True)), blob_store=MemoryBlobStore()
    )
    service.initialize()
    service.initialize()
    assert registered == [service.shutdown]

    service.shutdown()
    assert registered == []

    service.initialize()
    assert registered == [service.shutdown]
    service.shutdown()
    assert registered == []
