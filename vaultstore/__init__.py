"""
VaultStore - Encrypted File Storage Engine
==========================================

Stores arbitrary files in encrypted form, addressed by an opaque id,
with per-file integrity verification and a configurable security level.

Security Notice:
- No secrets are logged
- Fail-closed design pattern
- Key material lives only in memory and is wiped on shutdown
"""

from vaultstore.core.config import VaultStoreConfig
from vaultstore.core.constants import SecurityLevel
from vaultstore.core.crypto.engine import CipherEnvelope, CryptoEngine
from vaultstore.core.crypto.random_source import RandomSource
from vaultstore.core.errors import (
    CorruptRecord,
    IntegrityFailure,
    InvalidArgument,
    InvalidEnvelope,
    InvalidSecurityLevel,
    NotFound,
    NotInitialized,
    StorageReadFailed,
    StorageWriteFailed,
    VaultStoreError,
)
from vaultstore.core.logging import get_secure_logger
from vaultstore.service import SecureStorageService, determine_security_level
from vaultstore.storage import (
    BlobStore,
    FileSystemBlobStore,
    IdentifierGenerator,
    MemoryBlobStore,
    MetadataRecord,
    RetrievedFile,
    StorageEngine,
)

__version__ = "0.1.0"

__all__ = [
    "VaultStoreConfig",
    "SecurityLevel",
    "CipherEnvelope",
    "CryptoEngine",
    "RandomSource",
    "CorruptRecord",
    "IntegrityFailure",
    "InvalidArgument",
    "InvalidEnvelope",
    "InvalidSecurityLevel",
    "NotFound",
    "NotInitialized",
    "StorageReadFailed",
    "StorageWriteFailed",
    "VaultStoreError",
    "get_secure_logger",
    "SecureStorageService",
    "determine_security_level",
    "BlobStore",
    "FileSystemBlobStore",
    "IdentifierGenerator",
    "MemoryBlobStore",
    "MetadataRecord",
    "RetrievedFile",
    "StorageEngine",
    "__version__",
]
