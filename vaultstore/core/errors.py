"""
VaultStore Error Taxonomy
=========================

Every failure the engine reports is one of these typed errors.

Propagation Policy:
    - Cryptographic and storage failures are raised, never swallowed
    - Backend exceptions are chained (``raise ... from exc``)
    - IntegrityFailure is kept distinct from NotFound / read errors so
      callers can audit tampering separately from missing data
"""

from __future__ import annotations

from typing import Optional


class VaultStoreError(Exception):
    """Base exception for all VaultStore failures."""

    def __init__(self, message: str = "", file_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.file_id = file_id


class NotInitialized(VaultStoreError):
    """An operation was invoked before initialize() or after shutdown()."""


class InvalidArgument(VaultStoreError, ValueError):
    """Null, empty, oversized or otherwise malformed input."""


class InvalidSecurityLevel(InvalidArgument):
    """Security level outside the STANDARD..TOP_SECRET enumeration."""


class InvalidEnvelope(VaultStoreError):
    """Ciphertext envelope is malformed (e.g. shorter than IV + tag)."""


class NotFound(VaultStoreError):
    """No metadata record exists for the requested file id."""


class CorruptRecord(VaultStoreError):
    """Metadata/envelope pair is inconsistent or undecodable."""


class IntegrityFailure(VaultStoreError):
    """
    Content failed authentication or hash verification.

    This is a security-relevant signal: it indicates tampering,
    corruption, or decryption under the wrong security level.
    """


class StorageWriteFailed(VaultStoreError):
    """The blob store rejected a put or delete."""


class StorageReadFailed(VaultStoreError):
    """The blob store failed while reading."""
