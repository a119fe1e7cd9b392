"""
Secure Storage Service
======================

Host-facing facade bundling CryptoEngine, FileSystemBlobStore and
StorageEngine behind the handful of calls an application layer needs:

    initialize(storage_path) -> store / retrieve / delete / verify
                             -> compute_hash -> shutdown()

Usage:
    service = SecureStorageService()
    service.initialize("/srv/vault")

    file_id = service.store(data, "scan.png", content_type="image/png")
    data, name = service.retrieve(file_id)

    service.shutdown()
"""

from __future__ import annotations

import atexit
import logging
import threading
from pathlib import Path
from typing import Optional

from vaultstore.core.config import VaultStoreConfig
from vaultstore.core.constants import SecurityLevel
from vaultstore.core.crypto.engine import CryptoEngine
from vaultstore.core.crypto.random_source import RandomSource
from vaultstore.core.errors import InvalidArgument, NotInitialized
from vaultstore.storage.blob_store import BlobStore, FileSystemBlobStore
from vaultstore.storage.engine import RetrievedFile, StorageEngine
from vaultstore.storage.metadata import MetadataRecord


def determine_security_level(content_type: Optional[str]) -> SecurityLevel:
    """
    Pick a security level from a MIME type.

    image/*                 -> ENHANCED
    pdf or document types   -> MAXIMUM
    other application/*     -> CLASSIFIED
    anything else / unknown -> STANDARD
    """
    if not content_type:
        return SecurityLevel.STANDARD

    content_type = content_type.lower()
    if "image" in content_type:
        return SecurityLevel.ENHANCED
    if "pdf" in content_type or "document" in content_type:
        return SecurityLevel.MAXIMUM
    if "application" in content_type:
        return SecurityLevel.CLASSIFIED
    return SecurityLevel.STANDARD


class SecureStorageService:
    """Lifecycle-managed entry point for the storage engine."""

    def __init__(
        self,
        config: Optional[VaultStoreConfig] = None,
        blob_store: Optional[BlobStore] = None,
        random_source: Optional[RandomSource] = None,
    ) -> None:
        """
        Args:
            config: Settings (loaded from the environment if omitted)
            blob_store: Backend override; a FileSystemBlobStore is
                created at initialize() when omitted
            random_source: Override for keys, IVs and ids (tests)
        """
        self._config = config or VaultStoreConfig.load()
        self._blob_override = blob_store
        self._random = random_source
        self._crypto: Optional[CryptoEngine] = None
        self._engine: Optional[StorageEngine] = None
        self._lock = threading.Lock()
        self._atexit_registered = False
        self._log = logging.getLogger("vaultstore.service")

    @property
    def config(self) -> VaultStoreConfig:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def initialize(self, storage_path: Optional[Path | str] = None) -> bool:
        """
        Bring up crypto and storage. Idempotent.

        Args:
            storage_path: Blob directory (configured default if omitted)

        Raises:
            InvalidArgument: If storage_path is given together with a
                blob_store override
        """
        if storage_path is not None and self._blob_override is not None:
            raise InvalidArgument("storage_path cannot be combined with a blob_store override")

        with self._lock:
            if self._engine is not None:
                return True

            if self._blob_override is not None:
                blob_store = self._blob_override
            else:
                root = Path(storage_path) if storage_path else self._config.paths.storage_dir
                blob_store = FileSystemBlobStore(root, fsync=self._config.storage.fsync)

            crypto = CryptoEngine(self._random)
            crypto.initialize()

            storage = self._config.storage
            self._crypto = crypto
            self._engine = StorageEngine(
                crypto,
                blob_store,
                max_file_size=storage.max_file_size,
                id_retry_limit=storage.id_retry_limit,
            )

            if self._config.crypto.wipe_on_exit and not self._atexit_registered:
                atexit.register(self.shutdown)
                self._atexit_registered = True

        self._log.info("Secure storage initialized at %r", blob_store)
        return True

    def shutdown(self) -> None:
        """Wipe key material and drop the engine."""
        with self._lock:
            crypto, self._crypto, self._engine = self._crypto, None, None
            if self._atexit_registered:
                atexit.unregister(self.shutdown)
                self._atexit_registered = False
        if crypto is not None:
            crypto.shutdown()
            self._log.info("Secure storage shut down")

    def __enter__(self) -> "SecureStorageService":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def store(
        self,
        data: bytes,
        original_name: str,
        security_level: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Encrypt and store a file, returning its id.

        The level is, in order of precedence: ``security_level``, derived
        from ``content_type``, or the configured default.
        """
        if security_level is None:
            if content_type is not None:
                security_level = determine_security_level(content_type)
            else:
                security_level = self._config.storage.default_security_level
        return self._require_engine().store(data, original_name, security_level)

    def retrieve(self, file_id: str) -> RetrievedFile:
        return self._require_engine().retrieve(file_id)

    def delete(self, file_id: str) -> None:
        self._require_engine().delete(file_id)

    def verify(self, file_id: str) -> bool:
        return self._require_engine().verify(file_id)

    def get_metadata(self, file_id: str) -> MetadataRecord:
        return self._require_engine().get_metadata(file_id)

    def compute_hash(self, data: bytes) -> str:
        """Hex SHA-256 of ``data`` without storing anything."""
        if data is None:
            raise InvalidArgument("data cannot be None")
        crypto = self._crypto
        if crypto is None:
            raise NotInitialized("Secure storage is not initialized")
        return crypto.hash_hex(data)

    def _require_engine(self) -> StorageEngine:
        engine = self._engine
        if engine is None:
            raise NotInitialized("Secure storage is not initialized")
        return engine

    def __repr__(self) -> str:
        state = "ready" if self._engine is not None else "uninitialized"
        return f"SecureStorageService({state})"
