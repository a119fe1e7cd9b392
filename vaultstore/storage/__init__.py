"""
VaultStore Storage Module
=========================

Encrypted file records over a pluggable blob store.

Security Features:
- Content hash computed over plaintext before encryption
- Metadata and envelope written, read and deleted as a pair
- Per-id locking: no torn reads under concurrent delete
- Eager integrity verification on retrieve (fail-closed)

Components:
- identifiers.py: Random file id generation
- metadata.py: MetadataRecord and its binary layout
- blob_store.py: BlobStore protocol and backends
- engine.py: StorageEngine state machine
"""

from vaultstore.storage.blob_store import (
    BlobStore,
    FileSystemBlobStore,
    MemoryBlobStore,
)
from vaultstore.storage.engine import RetrievedFile, StorageEngine
from vaultstore.storage.identifiers import IdentifierGenerator, is_valid_id
from vaultstore.storage.metadata import MetadataRecord

__all__ = [
    "BlobStore",
    "FileSystemBlobStore",
    "MemoryBlobStore",
    "RetrievedFile",
    "StorageEngine",
    "IdentifierGenerator",
    "is_valid_id",
    "MetadataRecord",
]
