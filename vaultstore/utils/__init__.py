"""
Utils module - Utility functions and helpers.

This module contains utility functions used throughout VaultStore.
"""

from vaultstore.utils.locks import KeyedLock, ReadWriteLock
from vaultstore.utils.validators import (
    validate_blob_key,
    validate_original_name,
    validate_plaintext,
)

__all__ = [
    "KeyedLock",
    "ReadWriteLock",
    "validate_blob_key",
    "validate_original_name",
    "validate_plaintext",
]
