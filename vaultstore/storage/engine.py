"""
Storage Engine
==============

Store / retrieve / delete / verify state machine over a BlobStore.

Record Layout:
    <file_id>        CipherEnvelope bytes
    <file_id>.meta   MetadataRecord bytes

Lifecycle of one file id:
    Absent -> Stored -> Deleted (terminal)

Files are immutable once stored; replacing content means delete + store
under a new id.

Consistency:
    Every operation holds a per-id lock across both blobs, so a reader
    racing a delete of the same id sees either the whole record or
    NotFound, never a torn pair. A failed store rolls back whatever it
    wrote (best-effort; crash atomicity depends on the BlobStore).

Verification Policy:
    retrieve() is EAGER: it authenticates, checks size and recomputes
    the content hash before returning, failing closed with
    IntegrityFailure.
"""

from __future__ import annotations

import hmac
import logging
import time
from typing import Callable, Final, NamedTuple, Optional, Tuple

from vaultstore.core.constants import METADATA_KEY_SUFFIX, SecurityLevel
from vaultstore.core.crypto.engine import CipherEnvelope, CryptoEngine
from vaultstore.core.errors import (
    CorruptRecord,
    IntegrityFailure,
    InvalidArgument,
    InvalidEnvelope,
    NotFound,
    StorageReadFailed,
    StorageWriteFailed,
    VaultStoreError,
)
from vaultstore.storage.blob_store import BlobStore
from vaultstore.storage.identifiers import IdentifierGenerator, is_valid_id
from vaultstore.storage.metadata import MetadataRecord
from vaultstore.utils.locks import KeyedLock
from vaultstore.utils.validators import validate_original_name, validate_plaintext

DEFAULT_ID_RETRY_LIMIT: Final[int] = 3


class RetrievedFile(NamedTuple):
    """Decrypted, verified content. Unpacks as ``(data, original_name)``."""

    data: bytes
    original_name: str

    def __repr__(self) -> str:
        """Safe representation."""
        return f"RetrievedFile(name={self.original_name!r}, size={len(self.data)})"


def metadata_key(file_id: str) -> str:
    return file_id + METADATA_KEY_SUFFIX


class StorageEngine:
    """
    Encrypted file storage over an abstract BlobStore.

    Usage:
        crypto = CryptoEngine()
        crypto.initialize()
        engine = StorageEngine(crypto, FileSystemBlobStore("/srv/vault"))

        file_id = engine.store(data, "report.pdf", SecurityLevel.MAXIMUM)
        data, name = engine.retrieve(file_id)
        assert engine.verify(file_id)
        engine.delete(file_id)

    Security Notes:
        - The content hash is computed over the plaintext before encryption
        - The engine never sees raw key material
        - Integrity failures are reported on the ``vaultstore.audit`` logger
    """

    __slots__ = (
        "_crypto", "_blobs", "_ids", "_locks", "_max_file_size",
        "_clock", "_id_retry_limit", "_log", "_audit",
    )

    def __init__(
        self,
        crypto: CryptoEngine,
        blob_store: BlobStore,
        id_generator: Optional[IdentifierGenerator] = None,
        max_file_size: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        id_retry_limit: int = DEFAULT_ID_RETRY_LIMIT,
    ) -> None:
        """
        Initialize the storage engine.

        Args:
            crypto: Crypto engine holding the master key
            blob_store: Persistence backend
            id_generator: File id source (random by default)
            max_file_size: Reject plaintext larger than this many bytes
            clock: Returns epoch seconds (time.time by default)
            id_retry_limit: Attempts to find an unused id before giving up
        """
        if id_retry_limit < 1:
            raise ValueError("id_retry_limit must be at least 1")

        self._crypto = crypto
        self._blobs = blob_store
        self._ids = id_generator or IdentifierGenerator()
        self._locks = KeyedLock()
        self._max_file_size = max_file_size
        self._clock = clock or time.time
        self._id_retry_limit = id_retry_limit
        self._log = logging.getLogger("vaultstore.storage")
        self._audit = logging.getLogger("vaultstore.audit")

    @property
    def crypto(self) -> CryptoEngine:
        return self._crypto

    @property
    def blob_store(self) -> BlobStore:
        return self._blobs

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def store(
        self,
        plaintext: bytes,
        original_name: str,
        security_level: int,
    ) -> str:
        """
        Encrypt and persist a file.

        Args:
            plaintext: File content
            original_name: Display name, 1..255 UTF-8 bytes
            security_level: One of SecurityLevel (1..5)

        Returns:
            The new file id

        Raises:
            NotInitialized: If the crypto engine has no key
            InvalidSecurityLevel: If the level is outside 1..5
            InvalidArgument: If the name or content is invalid
            StorageWriteFailed: If either blob write fails
            StorageReadFailed: If the id uniqueness check cannot read
        """
        level = SecurityLevel.coerce(security_level)
        validate_original_name(original_name)
        content = validate_plaintext(plaintext, self._max_file_size)

        content_hash = self._crypto.hash(content)
        envelope = self._crypto.encrypt(content, level)

        for _attempt in range(self._id_retry_limit):
            file_id = self._ids.next_id()
            with self._locks.locked(file_id):
                if self._read(metadata_key(file_id), file_id) is not None:
                    self._log.warning("File id collision, drawing a new id")
                    continue

                record = MetadataRecord(
                    file_id=file_id,
                    original_name=original_name,
                    original_size=len(content),
                    content_hash=content_hash,
                    security_level=level,
                    created_at=int(self._clock()),
                )
                self._write_pair(record, envelope)

            self._log.info(
                "Stored file %s (%d bytes, level %s)", file_id, len(content), level.name
            )
            return file_id

        raise StorageWriteFailed(
            f"Could not allocate an unused file id after {self._id_retry_limit} attempts"
        )

    def retrieve(self, file_id: str) -> RetrievedFile:
        """
        Read, decrypt and verify a file.

        Returns:
            RetrievedFile(data, original_name)

        Raises:
            NotFound: If no metadata exists for file_id
            CorruptRecord: If the pair is inconsistent or undecodable
            IntegrityFailure: If authentication or the content hash fails
            StorageReadFailed: If the backend fails
        """
        self._check_id(file_id)
        with self._locks.locked(file_id):
            record, plaintext = self._open(file_id)

        if not self._content_matches(record, plaintext):
            self._report_integrity_failure(file_id, "content hash mismatch")
            raise IntegrityFailure("Content hash mismatch", file_id=file_id)

        self._log.info("Retrieved file %s", file_id)
        return RetrievedFile(data=plaintext, original_name=record.original_name)

    def verify(self, file_id: str) -> bool:
        """
        Check that a stored file decrypts and matches its content hash.

        Returns:
            True if intact, False on any authentication or hash mismatch

        Raises:
            NotFound: If no metadata exists for file_id
            CorruptRecord: If the pair is inconsistent or undecodable
            StorageReadFailed: If the backend fails
        """
        self._check_id(file_id)
        with self._locks.locked(file_id):
            try:
                record, plaintext = self._open(file_id)
            except IntegrityFailure:
                return False

        if not self._content_matches(record, plaintext):
            self._report_integrity_failure(file_id, "content hash mismatch")
            return False

        self._log.debug("Integrity check passed for %s", file_id)
        return True

    def delete(self, file_id: str) -> None:
        """
        Remove a file's metadata and envelope.

        Metadata is removed first, so once this starts readers see
        NotFound even if the envelope delete later fails.

        Raises:
            NotFound: If no metadata exists for file_id
            StorageWriteFailed: If the backend fails to delete
        """
        self._check_id(file_id)
        with self._locks.locked(file_id):
            if self._read(metadata_key(file_id), file_id) is None:
                raise NotFound(f"File not found: {file_id}", file_id=file_id)

            try:
                self._blobs.delete(metadata_key(file_id))
                self._blobs.delete(file_id)
            except (OSError, VaultStoreError) as e:
                raise StorageWriteFailed(
                    f"Failed to delete file {file_id}: {e}", file_id=file_id
                ) from e

        self._log.info("Deleted file %s", file_id)

    def get_metadata(self, file_id: str) -> MetadataRecord:
        """
        Read a file's descriptor without decrypting its content.

        Raises:
            NotFound: If no metadata exists for file_id
            CorruptRecord: If the record cannot be decoded
        """
        self._check_id(file_id)
        with self._locks.locked(file_id):
            return self._load_record(file_id)

    def exists(self, file_id: str) -> bool:
        """True if a metadata record exists for file_id."""
        if not is_valid_id(file_id):
            return False
        with self._locks.locked(file_id):
            return self._read(metadata_key(file_id), file_id) is not None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _check_id(file_id: str) -> None:
        if not is_valid_id(file_id):
            raise InvalidArgument(f"Invalid file id: {file_id!r}")

    def _read(self, key: str, file_id: str) -> Optional[bytes]:
        try:
            return self._blobs.get(key)
        except (OSError, VaultStoreError) as e:
            raise StorageReadFailed(
                f"Failed to read {key}: {e}", file_id=file_id
            ) from e

    def _load_record(self, file_id: str) -> MetadataRecord:
        raw = self._read(metadata_key(file_id), file_id)
        if raw is None:
            raise NotFound(f"File not found: {file_id}", file_id=file_id)

        try:
            record = MetadataRecord.from_bytes(raw)
        except CorruptRecord as e:
            e.file_id = file_id
            raise

        if record.file_id != file_id:
            raise CorruptRecord(
                f"Metadata under {file_id} belongs to {record.file_id}", file_id=file_id
            )
        return record

    def _open(self, file_id: str) -> Tuple[MetadataRecord, bytes]:
        """Load and decrypt a record pair. Caller holds the id lock."""
        record = self._load_record(file_id)

        raw_envelope = self._read(file_id, file_id)
        if raw_envelope is None:
            raise CorruptRecord(
                f"Envelope missing for {file_id}", file_id=file_id
            )

        try:
            envelope = CipherEnvelope.from_bytes(raw_envelope)
        except InvalidEnvelope as e:
            raise CorruptRecord(f"Malformed envelope for {file_id}: {e}", file_id=file_id) from e

        try:
            plaintext = self._crypto.decrypt(envelope, record.security_level)
        except IntegrityFailure as e:
            self._report_integrity_failure(file_id, "envelope authentication failed")
            e.file_id = file_id
            raise

        return record, plaintext

    def _content_matches(self, record: MetadataRecord, plaintext: bytes) -> bool:
        size_ok = len(plaintext) == record.original_size
        hash_ok = self._crypto.verify_integrity(plaintext, record.content_hash)
        return size_ok and hash_ok

    def _write_pair(self, record: MetadataRecord, envelope: CipherEnvelope) -> None:
        """Write envelope then metadata, rolling back on failure."""
        file_id = record.file_id
        try:
            self._blobs.put(file_id, envelope.to_bytes())
            self._blobs.put(metadata_key(file_id), record.to_bytes())
        except (OSError, VaultStoreError) as e:
            self._rollback(file_id)
            raise StorageWriteFailed(
                f"Failed to write file {file_id}: {e}", file_id=file_id
            ) from e

    def _rollback(self, file_id: str) -> None:
        for key in (metadata_key(file_id), file_id):
            try:
                self._blobs.delete(key)
            except (OSError, VaultStoreError) as cleanup_error:
                self._log.error(
                    "Rollback of %s failed, orphaned blob may remain: %s", key, cleanup_error
                )

    def _report_integrity_failure(self, file_id: str, reason: str) -> None:
        self._audit.warning(
            "Integrity failure for %s: %s", file_id, reason,
            extra={"file_id": file_id, "reason": reason},
        )

    def __repr__(self) -> str:
        return f"StorageEngine(blob_store={self._blobs!r})"
