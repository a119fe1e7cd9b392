"""
File Metadata Records
=====================

Descriptor persisted next to every ciphertext envelope.

Binary Format (big-endian, version 1):
    MAGIC (4)           b"VSMR"
    VERSION (1)         format version
    FILE_ID (36)        ASCII file id
    NAME_LEN (1)        N, 0..255
    NAME (N)            UTF-8 original name
    ORIGINAL_SIZE (8)   u64 plaintext length
    CONTENT_HASH (32)   SHA-256 of the plaintext
    SECURITY_LEVEL (1)  u8, 1..5
    CREATED_AT (8)      u64 epoch seconds

Total size is 91 + N bytes. Records are cross-version readable: any
change to this layout requires a new VERSION value.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Final

from vaultstore.core.constants import (
    DIGEST_SIZE,
    FILE_ID_LENGTH,
    SecurityLevel,
)
from vaultstore.core.errors import CorruptRecord, InvalidArgument, InvalidSecurityLevel
from vaultstore.storage.identifiers import is_valid_id
from vaultstore.utils.validators import validate_original_name

MAGIC_BYTES: Final[bytes] = b"VSMR"  # VaultStore Metadata Record
METADATA_FORMAT_VERSION: Final[int] = 1

_HEAD: Final[struct.Struct] = struct.Struct(f">4sB{FILE_ID_LENGTH}sB")
_TAIL: Final[struct.Struct] = struct.Struct(f">Q{DIGEST_SIZE}sBQ")

MIN_RECORD_SIZE: Final[int] = _HEAD.size + _TAIL.size
_U64_MAX: Final[int] = 2**64 - 1


@dataclass(frozen=True, slots=True)
class MetadataRecord:
    """
    Immutable descriptor of one stored file.

    Attributes:
        file_id: Opaque 36-character identifier
        original_name: Caller-supplied display name (<= 255 UTF-8 bytes)
        original_size: Plaintext length in bytes
        content_hash: SHA-256 of the plaintext (never the ciphertext)
        security_level: Level the envelope was encrypted under
        created_at: Epoch seconds, set once at store time
    """

    file_id: str
    original_name: str
    original_size: int
    content_hash: bytes
    security_level: SecurityLevel
    created_at: int

    def __post_init__(self) -> None:
        if not is_valid_id(self.file_id):
            raise InvalidArgument(f"Invalid file id: {self.file_id!r}")
        validate_original_name(self.original_name)
        if not 0 <= self.original_size <= _U64_MAX:
            raise InvalidArgument("original_size out of range")
        if len(self.content_hash) != DIGEST_SIZE:
            raise InvalidArgument(f"content_hash must be {DIGEST_SIZE} bytes")
        if not 0 <= self.created_at <= _U64_MAX:
            raise InvalidArgument("created_at out of range")
        object.__setattr__(self, "security_level", SecurityLevel.coerce(self.security_level))

    @property
    def content_hash_hex(self) -> str:
        return self.content_hash.hex()

    @property
    def created_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc)

    def to_bytes(self) -> bytes:
        """Serialize to the version-1 binary layout."""
        name_bytes = self.original_name.encode("utf-8")
        return b"".join([
            _HEAD.pack(
                MAGIC_BYTES,
                METADATA_FORMAT_VERSION,
                self.file_id.encode("ascii"),
                len(name_bytes),
            ),
            name_bytes,
            _TAIL.pack(
                self.original_size,
                self.content_hash,
                int(self.security_level),
                self.created_at,
            ),
        ])

    @classmethod
    def from_bytes(cls, data: bytes) -> "MetadataRecord":
        """
        Deserialize a record.

        Raises:
            CorruptRecord: If data is truncated, padded, or malformed
        """
        if len(data) < MIN_RECORD_SIZE:
            raise CorruptRecord("Metadata record truncated")

        magic, version, raw_id, name_len = _HEAD.unpack_from(data, 0)
        if magic != MAGIC_BYTES:
            raise CorruptRecord("Invalid metadata record (bad magic bytes)")
        if version != METADATA_FORMAT_VERSION:
            raise CorruptRecord(f"Unsupported metadata format version: {version}")

        expected_len = MIN_RECORD_SIZE + name_len
        if len(data) != expected_len:
            raise CorruptRecord(
                f"Metadata record length mismatch ({len(data)} != {expected_len})"
            )

        offset = _HEAD.size
        raw_name = bytes(data[offset:offset + name_len])
        offset += name_len
        original_size, content_hash, level, created_at = _TAIL.unpack_from(data, offset)

        try:
            return cls(
                file_id=raw_id.decode("ascii"),
                original_name=raw_name.decode("utf-8"),
                original_size=original_size,
                content_hash=content_hash,
                security_level=level,
                created_at=created_at,
            )
        except UnicodeDecodeError as e:
            raise CorruptRecord("Metadata record contains invalid text") from e
        except InvalidSecurityLevel as e:
            raise CorruptRecord(f"Metadata record has invalid security level: {level}") from e
        except InvalidArgument as e:
            raise CorruptRecord(f"Metadata record is invalid: {e}") from e

    def __repr__(self) -> str:
        """Safe representation."""
        return (
            f"MetadataRecord(file_id={self.file_id!r}, name={self.original_name!r}, "
            f"size={self.original_size}, level={self.security_level.name})"
        )
