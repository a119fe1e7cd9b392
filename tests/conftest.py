from __future__ import annotations

import hashlib
import threading
from typing import Iterator

import pytest

from vaultstore.core.crypto.engine import CryptoEngine
from vaultstore.core.crypto.random_source import RandomSource
from vaultstore.storage.blob_store import MemoryBlobStore
from vaultstore.storage.engine import StorageEngine


class CountingRandomSource(RandomSource):
    """Deterministic byte stream: SHAKE-256 over a seed and a counter."""

    __slots__ = ("_seed", "_counter", "_lock")

    def __init__(self, seed: bytes = b"vaultstore-tests") -> None:
        self._seed = seed
        self._counter = 0
        self._lock = threading.Lock()

    def token_bytes(self, n: int) -> bytes:
        with self._lock:
            block = self._seed + self._counter.to_bytes(8, "big")
            self._counter += 1
        return hashlib.shake_256(block).digest(n)


@pytest.fixture
def crypto() -> Iterator[CryptoEngine]:
    engine = CryptoEngine()
    engine.initialize()
    yield engine
    engine.shutdown()


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def storage(crypto: CryptoEngine, blob_store: MemoryBlobStore) -> StorageEngine:
    return StorageEngine(crypto, blob_store)
