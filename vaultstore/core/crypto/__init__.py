"""
VaultStore Cryptographic Core
=============================

Provides authenticated encryption and integrity primitives.

Architecture:
    1. RandomSource: OS CSPRNG for keys, IVs and identifiers
    2. HKDF-SHA256: one subkey per security level
    3. AES-256-GCM: authenticated encryption of file content
    4. SHA-256: plaintext content digests

Security Properties:
    - All encryption is authenticated (AEAD)
    - Keys never touch disk (memory-only)
    - Constant-time comparisons for integrity checks
    - Fresh random IV for every encryption

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from vaultstore.core.crypto.aes_gcm import AesGcmCipher
from vaultstore.core.crypto.engine import CipherEnvelope, CryptoEngine
from vaultstore.core.crypto.random_source import RandomSource, default_random_source

__all__ = [
    "AesGcmCipher",
    "CipherEnvelope",
    "CryptoEngine",
    "RandomSource",
    "default_random_source",
]
