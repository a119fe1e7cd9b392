"""
VaultStore Memory Security Module
=================================

Provides secure memory handling primitives for key material.

Components:
- secure_memory.py: Secure buffer implementation
- zeroization.py: Memory wiping utilities

WARNING:
- Python's memory model doesn't guarantee secure erasure
- These are best-effort mitigations
"""

from vaultstore.core.memory.secure_memory import SecureBuffer, mlock_available
from vaultstore.core.memory.zeroization import (
    secure_zero,
    is_zeroed,
    ZeroizeContext,
)

__all__ = [
    "SecureBuffer",
    "mlock_available",
    "secure_zero",
    "is_zeroed",
    "ZeroizeContext",
]
