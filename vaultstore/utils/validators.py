"""
Validation Utilities
====================

Input validation functions with security focus.
"""

from __future__ import annotations

import re
from typing import Final, Optional

from vaultstore.core.constants import MAX_NAME_BYTES
from vaultstore.core.errors import InvalidArgument

# Blob keys become file names in FileSystemBlobStore
_BLOB_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]{0,127}")


def validate_original_name(
    value: str,
    max_bytes: int = MAX_NAME_BYTES,
    field_name: str = "original_name",
) -> str:
    """
    Validate a stored file's display name.

    Names are measured in UTF-8 bytes, not characters, since that is
    what the metadata record persists.

    Args:
        value: The name to validate
        max_bytes: Maximum encoded length
        field_name: Name of the field for error messages

    Returns:
        The unchanged name

    Raises:
        InvalidArgument: If the name is empty, too long, or contains NUL
    """
    if not isinstance(value, str):
        raise InvalidArgument(f"{field_name} must be a string")

    if not value:
        raise InvalidArgument(f"{field_name} cannot be empty")

    # Check for null bytes (security risk)
    if "\x00" in value:
        raise InvalidArgument(f"{field_name} contains invalid characters")

    try:
        encoded_len = len(value.encode("utf-8"))
    except UnicodeEncodeError as e:
        raise InvalidArgument(f"{field_name} is not valid UTF-8 text") from e

    if encoded_len > max_bytes:
        raise InvalidArgument(
            f"{field_name} must be at most {max_bytes} bytes (got {encoded_len})"
        )

    return value


def validate_plaintext(data: object, max_size: Optional[int] = None) -> bytes:
    """
    Validate file content and normalise it to immutable bytes.

    Raises:
        InvalidArgument: If data is not bytes-like or exceeds max_size
    """
    if data is None:
        raise InvalidArgument("data cannot be None")

    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InvalidArgument("data must be bytes-like")

    content = bytes(data)

    if max_size is not None and len(content) > max_size:
        raise InvalidArgument(f"File too large (max {max_size} bytes)")

    return content


def validate_blob_key(key: str) -> str:
    """
    Validate a blob store key.

    Keys must be short, start alphanumeric, and only contain
    ``[A-Za-z0-9._-]`` so they can never escape a storage directory.

    Raises:
        InvalidArgument: If the key is unsafe
    """
    if not isinstance(key, str) or not _BLOB_KEY_PATTERN.fullmatch(key):
        raise InvalidArgument(f"Invalid blob key: {key!r}")

    # Check for path traversal attempts
    if ".." in key:
        raise InvalidArgument("Path traversal detected")

    return key
