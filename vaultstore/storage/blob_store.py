"""
Blob Store Backends
===================

Key -> bytes persistence consumed by the StorageEngine.

Contract:
    put(key, value)   store value under key, replacing any previous value
    get(key)          value, or None if the key is absent
    delete(key)       remove key; deleting an absent key is a no-op

Backends raise ``OSError`` (or a subclass) on I/O failure; the engine
maps those to StorageWriteFailed / StorageReadFailed. Retry policy, if
any, belongs to the backend.

Atomicity:
    Each single-key write is all-or-nothing in the shipped backends.
    Atomicity of the metadata + envelope PAIR against crashes is not a
    backend guarantee; the engine rolls back on failure and serialises
    same-id operations in-process.
"""

from __future__ import annotations

import logging
import os
import platform
import stat
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterator, Optional, Protocol, runtime_checkable

from vaultstore.utils.validators import validate_blob_key

_TEMP_PREFIX = ".tmp-"


@runtime_checkable
class BlobStore(Protocol):
    """Interface for blob storage backends."""

    def put(self, key: str, value: bytes) -> None:
        """Store value under key."""
        ...

    def get(self, key: str) -> Optional[bytes]:
        """Return the value for key, or None if absent."""
        ...

    def delete(self, key: str) -> None:
        """Remove key if present."""
        ...


class MemoryBlobStore:
    """In-process blob store backed by a dict."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: bytes) -> None:
        validate_blob_key(key)
        with self._lock:
            self._blobs[key] = bytes(value)

    def get(self, key: str) -> Optional[bytes]:
        validate_blob_key(key)
        with self._lock:
            return self._blobs.get(key)

    def delete(self, key: str) -> None:
        validate_blob_key(key)
        with self._lock:
            self._blobs.pop(key, None)

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._blobs))

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._blobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)


class FileSystemBlobStore:
    """
    Local filesystem blob store: one file per key under ``root``.

    Features:
    - Creates the root directory with owner-only permissions
    - Writes via temp file + fsync + os.replace, so a blob is either
      fully present or absent
    - Keys are validated and can never escape ``root``
    """

    def __init__(self, root: Path | str, fsync: bool = True) -> None:
        """
        Initialize the store.

        Args:
            root: Directory holding the blobs
            fsync: Flush file contents to disk before publishing them
        """
        self._root = Path(root).resolve()
        self._fsync = fsync
        self._log = logging.getLogger("vaultstore.blobstore")

        self._root.mkdir(parents=True, exist_ok=True)
        # Set restrictive permissions on Unix-like systems
        if platform.system().lower() != "windows":
            self._root.chmod(stat.S_IRWXU)  # 700 - owner only

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        return self._root / validate_blob_key(key)

    def put(self, key: str, value: bytes) -> None:
        target = self._path_for(key)
        fd, tmp_name = tempfile.mkstemp(prefix=_TEMP_PREFIX, dir=self._root)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                if self._fsync:
                    os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        self._log.debug("Wrote blob %s (%d bytes)", key, len(value))

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        self._log.debug("Deleted blob %s", key)

    def keys(self) -> Iterator[str]:
        """Iterate stored keys (temp files excluded)."""
        for entry in sorted(self._root.iterdir()):
            if entry.is_file() and not entry.name.startswith(_TEMP_PREFIX):
                yield entry.name

    def __repr__(self) -> str:
        return f"FileSystemBlobStore(root={str(self._root)!r})"
