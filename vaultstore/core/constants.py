"""
Security Constants
==================

Wire-visible constants shared by the crypto and storage layers.
These values are persisted in metadata records and must not change
without a format version bump.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final

from vaultstore.core.errors import InvalidSecurityLevel

# Key material
MASTER_KEY_SIZE: Final[int] = 32  # 256 bits

# Integrity
DIGEST_SIZE: Final[int] = 32  # SHA-256

# Identifiers
FILE_ID_RANDOM_BYTES: Final[int] = 16
FILE_ID_LENGTH: Final[int] = 36

# Metadata
MAX_NAME_BYTES: Final[int] = 255
METADATA_KEY_SUFFIX: Final[str] = ".meta"


class SecurityLevel(IntEnum):
    """Security level enumeration, persisted as one unsigned byte."""

    STANDARD = 1
    ENHANCED = 2
    MAXIMUM = 3
    CLASSIFIED = 4
    TOP_SECRET = 5

    @classmethod
    def coerce(cls, value: object) -> "SecurityLevel":
        """
        Convert an int-like value to a SecurityLevel.

        Values outside the enumeration are rejected, never clamped.

        Raises:
            InvalidSecurityLevel: If value is not one of 1..5
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidSecurityLevel(f"Security level must be an int in 1..5, got {value!r}")
        try:
            return cls(value)
        except ValueError as e:
            raise InvalidSecurityLevel(f"Invalid security level: {value}") from e
