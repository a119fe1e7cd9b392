"""
AES-256-GCM Authenticated Encryption
====================================

Thin wrapper over ``cryptography``'s AESGCM with the envelope
parameters used by VaultStore.

Security Properties:
    - 256-bit key
    - 128-bit IV (drawn fresh per operation by the caller)
    - 128-bit authentication tag
    - Authenticated Additional Data (AAD) support

WARNING:
    - Never reuse (key, IV) pairs
    - Always verify tag before using plaintext
"""

from __future__ import annotations

from typing import Final, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

AES_KEY_SIZE: Final[int] = 32  # 256 bits
AES_IV_SIZE: Final[int] = 16  # 128 bits
AES_TAG_SIZE: Final[int] = 16  # 128 bits

__all__ = [
    "AES_KEY_SIZE",
    "AES_IV_SIZE",
    "AES_TAG_SIZE",
    "AesGcmCipher",
    "InvalidTag",
]


class AesGcmCipher:
    """
    AES-256-GCM Authenticated Encryption with Associated Data (AEAD).

    Usage:
        cipher = AesGcmCipher()

        sealed = cipher.encrypt(plaintext, key=key, iv=iv, aad=b"context")
        plaintext = cipher.decrypt(sealed, key=key, iv=iv, aad=b"context")

    ``sealed`` is the ciphertext body (same length as plaintext) followed
    by the 16-byte tag.
    """

    __slots__ = ()

    def encrypt(
        self,
        plaintext: bytes,
        key: bytes,
        iv: bytes,
        aad: Optional[bytes] = None,
    ) -> bytes:
        """
        Encrypt plaintext using AES-256-GCM.

        Raises:
            ValueError: If key or IV is the wrong size
        """
        self._check_params(key, iv)
        return AESGCM(key).encrypt(iv, plaintext, aad)

    def decrypt(
        self,
        sealed: bytes,
        key: bytes,
        iv: bytes,
        aad: Optional[bytes] = None,
    ) -> bytes:
        """
        Decrypt and authenticate ``ciphertext || tag``.

        Raises:
            ValueError: If parameters are invalid
            cryptography.exceptions.InvalidTag: If authentication fails

        Security Notes:
            - Integrity is verified BEFORE any plaintext is returned
            - InvalidTag means data was tampered or wrong key/IV/AAD
        """
        self._check_params(key, iv)
        if len(sealed) < AES_TAG_SIZE:
            raise ValueError("Ciphertext too short (missing authentication tag)")
        return AESGCM(key).decrypt(iv, sealed, aad)

    @staticmethod
    def _check_params(key: bytes, iv: bytes) -> None:
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")
        if len(iv) != AES_IV_SIZE:
            raise ValueError(f"IV must be exactly {AES_IV_SIZE} bytes")
