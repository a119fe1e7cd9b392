"""
Memory Zeroization Utilities
============================

Explicit wiping of mutable buffers holding key material.

Security Properties:
- Explicit zeroization (no GC reliance)
- Exception-safe cleanup

Limitations:
- Immutable ``bytes`` objects cannot be wiped; keep secrets in bytearray
- Python may hold internal copies; this is best-effort
"""

from __future__ import annotations

import ctypes
from contextlib import contextmanager
from typing import Final, Iterator

# memset patterns applied in order; the last pass must be zero
WIPE_PATTERNS: Final[tuple[int, ...]] = (0x00, 0xFF, 0x00)


def secure_zero(data: bytearray | memoryview) -> None:
    """
    Securely zero a byte buffer.

    Uses ctypes for direct memory access where possible,
    with fallback to Python-level zeroing.

    Args:
        data: Mutable byte buffer to zero

    Security Notes:
        - Call immediately after use, before GC
        - Buffer must be mutable (bytearray, not bytes)
    """
    if len(data) == 0:
        return

    if isinstance(data, bytearray):
        try:
            addr = ctypes.addressof(
                (ctypes.c_char * len(data)).from_buffer(data)
            )
            for pattern in WIPE_PATTERNS:
                ctypes.memset(addr, pattern, len(data))
            return
        except (TypeError, ValueError, BufferError):
            pass

    # memoryview, or a bytearray ctypes could not map
    for i in range(len(data)):
        data[i] = 0


def is_zeroed(data: bytearray | memoryview) -> bool:
    """Return True if every byte of ``data`` is zero."""
    return not any(data)


@contextmanager
def ZeroizeContext(*buffers: bytearray) -> Iterator[None]:
    """
    Context manager that zeroizes buffers on exit.

    Always zeroizes, whether exit is normal or exceptional.

    Usage:
        subkey = bytearray(32)

        with ZeroizeContext(subkey):
            derive_into(subkey)
            encrypt(data, subkey)
        # subkey is now zeroed
    """
    try:
        yield
    finally:
        for buf in buffers:
            secure_zero(buf)
