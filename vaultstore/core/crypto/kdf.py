"""
Key Derivation Functions
========================

Derives one encryption subkey per security level from the master key.

Implements:
    - HKDF-SHA256 for key expansion
    - Level-scoped info strings, so a key derived for one level is
      useless for any other level
"""

from __future__ import annotations

from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

SUBKEY_SIZE: Final[int] = 32
_LEVEL_INFO_PREFIX: Final[bytes] = b"vaultstore/level/"


def expand_key_hkdf(
    key_material: bytes,
    length: int,
    info: bytes = b"",
    salt: bytes | None = None,
) -> bytes:
    """
    Expand key material using HKDF.

    Args:
        key_material: Input key material
        length: Output length
        info: Context/application info
        salt: Optional salt

    Returns:
        Expanded key bytes
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        info=info,
    )
    return hkdf.derive(key_material)


def level_info(security_level: int) -> bytes:
    """HKDF info string for a security level."""
    return _LEVEL_INFO_PREFIX + str(int(security_level)).encode("ascii")


def derive_level_key(master_key: bytes, security_level: int) -> bytes:
    """
    Derive the encryption subkey for one security level.

    Deterministic: same master key and level always give the same subkey.
    """
    return expand_key_hkdf(
        master_key,
        length=SUBKEY_SIZE,
        info=level_info(security_level),
    )
