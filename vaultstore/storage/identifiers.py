"""
File Identifier Generation
==========================

Opaque, collision-resistant file ids: 128 random bits rendered in the
familiar 8-4-4-4-12 hex form. Ids are never derived from content, so
identical files stored twice get different ids.
"""

from __future__ import annotations

import re
import uuid
from typing import Final, Optional

from vaultstore.core.constants import FILE_ID_RANDOM_BYTES
from vaultstore.core.crypto.random_source import RandomSource, default_random_source

_FILE_ID_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
)


def is_valid_id(value: object) -> bool:
    """Check that value is a lowercase 36-character file id."""
    return isinstance(value, str) and _FILE_ID_PATTERN.fullmatch(value) is not None


class IdentifierGenerator:
    """Produces file ids from a RandomSource."""

    __slots__ = ("_random",)

    def __init__(self, random_source: Optional[RandomSource] = None) -> None:
        self._random = random_source or default_random_source()

    def next_id(self) -> str:
        # Raw bytes, no RFC 4122 version bits: all 128 bits are entropy
        return str(uuid.UUID(bytes=self._random.token_bytes(FILE_ID_RANDOM_BYTES)))
