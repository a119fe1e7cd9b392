"""
Cryptographic Random Source
===========================

Single entry point for random bytes used as keys, IVs and identifiers.

Security:
    Uses the OS CSPRNG via the secrets module. Subclasses exist only
    so tests can inject deterministic bytes.
"""

from __future__ import annotations

import secrets

from vaultstore.core.errors import InvalidArgument


class RandomSource:
    """Supplies cryptographically strong random bytes."""

    __slots__ = ()

    def token_bytes(self, n: int) -> bytes:
        """
        Return ``n`` random bytes.

        Raises:
            InvalidArgument: If n is not a non-negative integer
        """
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise InvalidArgument(f"Random byte count must be a non-negative int: {n!r}")
        return secrets.token_bytes(n)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


_default_source = RandomSource()


def default_random_source() -> RandomSource:
    """Get the shared OS-backed random source."""
    return _default_source
