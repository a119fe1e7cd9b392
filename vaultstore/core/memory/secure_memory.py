"""
Secure Memory Buffers
=====================

Fixed-size byte buffers for key material with explicit zeroization.

Security Properties:
- Explicit zeroization (don't rely on Python GC)
- Memory locking where supported (prevent swapping)
- Automatic cleanup on context exit

Limitations:
- Python's memory model copies data internally
- Best-effort security, not guaranteed
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import platform
from typing import Final, Optional

from vaultstore.core.memory.zeroization import secure_zero

# Platform detection
IS_WINDOWS: Final[bool] = platform.system() == "Windows"

MAX_BUFFER_SIZE: Final[int] = 1024 * 1024  # 1 MB

_log = logging.getLogger("vaultstore.memory")

_libc: Optional[ctypes.CDLL] = None
if not IS_WINDOWS:
    try:
        _libc_name = ctypes.util.find_library("c")
        if _libc_name:
            _libc = ctypes.CDLL(_libc_name, use_errno=True)
    except OSError:
        _libc = None


def mlock_available() -> bool:
    """Return True if page locking can be attempted on this platform."""
    return IS_WINDOWS or _libc is not None


def _mlock(address: int, size: int) -> bool:
    """
    Lock memory pages to prevent swapping.

    Returns True if successful, False otherwise.
    """
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
            return bool(kernel32.VirtualLock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        if _libc is not None:
            return _libc.mlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


def _munlock(address: int, size: int) -> bool:
    """Unlock memory pages."""
    try:
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
            return bool(kernel32.VirtualUnlock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
        if _libc is not None:
            return _libc.munlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
    except (OSError, AttributeError):
        pass
    return False


class SecureBuffer:
    """
    Secure byte buffer with explicit zeroization.

    Holds exactly ``size`` bytes of secret material. The buffer is
    wiped by ``wipe()``, on context exit, or (best-effort) on
    garbage collection.

    Usage:
        with SecureBuffer.from_bytes(key) as buf:
            cipher = AESGCM(buf.data)
        # Buffer is now zeroed

    Security Notes:
        - ``data`` returns a copy; prefer ``view()`` for short-lived use
        - Python may still create internal copies
    """

    __slots__ = ("_buffer", "_size", "_wiped", "_locked", "__weakref__")

    def __init__(self, size: int, lock_memory: bool = True) -> None:
        """
        Initialize a zero-filled secure buffer.

        Args:
            size: Buffer size in bytes
            lock_memory: Try to lock memory (prevent swapping)
        """
        if size <= 0:
            raise ValueError("Buffer size must be positive")
        if size > MAX_BUFFER_SIZE:
            raise ValueError(f"Buffer too large (max {MAX_BUFFER_SIZE})")

        self._size = size
        self._buffer = bytearray(size)
        self._wiped = False
        self._locked = False

        if lock_memory and mlock_available():
            try:
                addr = ctypes.addressof(
                    (ctypes.c_char * size).from_buffer(self._buffer)
                )
                self._locked = _mlock(addr, size)
            except (TypeError, ValueError, BufferError):
                self._locked = False
            if not self._locked:
                _log.debug("mlock unavailable, proceeding without lock")

    @classmethod
    def from_bytes(
        cls,
        data: bytes | bytearray,
        lock_memory: bool = True,
    ) -> "SecureBuffer":
        """
        Create a SecureBuffer holding a copy of ``data``.

        The original data is NOT wiped - caller is responsible.
        """
        buf = cls(size=len(data), lock_memory=lock_memory)
        buf._buffer[:] = data
        return buf

    @property
    def size(self) -> int:
        """Get buffer size."""
        return self._size

    @property
    def is_locked(self) -> bool:
        """Check if memory is locked."""
        return self._locked

    @property
    def is_wiped(self) -> bool:
        """Check if buffer has been wiped."""
        return self._wiped

    @property
    def data(self) -> bytes:
        """
        Get buffer content as immutable bytes.

        Warning: This creates a copy.
        """
        if self._wiped:
            raise ValueError("Buffer has been wiped")
        return bytes(self._buffer)

    def view(self) -> memoryview:
        """Zero-copy read-only view of the buffer."""
        if self._wiped:
            raise ValueError("Buffer has been wiped")
        return memoryview(self._buffer).toreadonly()

    def wipe(self) -> None:
        """Securely wipe the buffer and release the page lock."""
        if self._wiped:
            return

        secure_zero(self._buffer)

        if self._locked:
            try:
                addr = ctypes.addressof(
                    (ctypes.c_char * self._size).from_buffer(self._buffer)
                )
                _munlock(addr, self._size)
            except (TypeError, ValueError, BufferError):
                pass
            self._locked = False

        self._wiped = True

    def __enter__(self) -> "SecureBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        try:
            self.wipe()
        except Exception:  # noqa: BLE001
            pass

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        """Safe representation."""
        if self._wiped:
            return "SecureBuffer(WIPED)"
        return f"SecureBuffer(size={self._size}, locked={self._locked})"
