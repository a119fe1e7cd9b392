"""
Crypto Engine
=============

Owns the master key and provides every confidentiality and integrity
primitive the storage layer needs, so no other component ever touches
raw key material.

Envelope Format:
    IV (16) | CIPHERTEXT (len(plaintext)) | GCM TAG (16)

Security-Level Binding:
    Each level encrypts under its own HKDF-derived subkey and carries
    the level byte as AAD. Decrypting under another level fails
    authentication.

Lifecycle:
    initialize() -> [encrypt / decrypt / hash / verify_integrity]* -> shutdown()

    initialize() and shutdown() take the write side of a read/write lock;
    every other operation takes the read side, so an in-flight call never
    observes a half-wiped key.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Dict, Final, Optional, Union

from vaultstore.core.constants import DIGEST_SIZE, MASTER_KEY_SIZE, SecurityLevel
from vaultstore.core.crypto.aes_gcm import (
    AES_IV_SIZE,
    AES_TAG_SIZE,
    AesGcmCipher,
    InvalidTag,
)
from vaultstore.core.crypto.kdf import derive_level_key
from vaultstore.core.crypto.random_source import RandomSource, default_random_source
from vaultstore.core.errors import (
    IntegrityFailure,
    InvalidArgument,
    InvalidEnvelope,
    NotInitialized,
)
from vaultstore.core.memory.secure_memory import SecureBuffer
from vaultstore.core.memory.zeroization import ZeroizeContext
from vaultstore.utils.locks import ReadWriteLock

IV_SIZE: Final[int] = AES_IV_SIZE
TAG_SIZE: Final[int] = AES_TAG_SIZE
MIN_ENVELOPE_SIZE: Final[int] = IV_SIZE + TAG_SIZE


@dataclass(frozen=True, slots=True)
class CipherEnvelope:
    """
    Immutable encrypted blob for one file.

    Attributes:
        iv: Fresh random IV used for this encryption
        sealed: Ciphertext body followed by the authentication tag
    """

    iv: bytes
    sealed: bytes

    @property
    def ciphertext(self) -> bytes:
        """Ciphertext body, same length as the plaintext."""
        return self.sealed[:-TAG_SIZE]

    @property
    def tag(self) -> bytes:
        return self.sealed[-TAG_SIZE:]

    def to_bytes(self) -> bytes:
        return self.iv + self.sealed

    @classmethod
    def from_bytes(cls, data: bytes) -> "CipherEnvelope":
        """
        Parse a stored envelope.

        Raises:
            InvalidEnvelope: If data is shorter than IV + tag
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InvalidEnvelope("Envelope must be bytes-like")
        data = bytes(data)
        if len(data) < MIN_ENVELOPE_SIZE:
            raise InvalidEnvelope(
                f"Envelope too short ({len(data)} < {MIN_ENVELOPE_SIZE} bytes)"
            )
        return cls(iv=data[:IV_SIZE], sealed=data[IV_SIZE:])

    def __len__(self) -> int:
        return len(self.iv) + len(self.sealed)

    def __repr__(self) -> str:
        """Safe representation."""
        return f"CipherEnvelope(ciphertext_len={len(self.sealed) - TAG_SIZE})"


class CryptoEngine:
    """
    Process-wide key holder and crypto primitive provider.

    Usage:
        engine = CryptoEngine()
        engine.initialize()

        envelope = engine.encrypt(data, SecurityLevel.ENHANCED)
        data = engine.decrypt(envelope, SecurityLevel.ENHANCED)
        digest = engine.hash(data)

        engine.shutdown()  # key material zeroed

        # Or scoped:
        with CryptoEngine() as engine:
            ...

    Security Notes:
        - A fresh IV is drawn for every encrypt() call
        - The master key never leaves this object
        - hash() is plain SHA-256 (content integrity, not a MAC)
    """

    __slots__ = ("_random", "_master", "_subkeys", "_lock", "_cipher", "_log")

    def __init__(self, random_source: Optional[RandomSource] = None) -> None:
        """
        Create an engine. No key exists until initialize() is called.

        Args:
            random_source: Source for keys and IVs (OS CSPRNG by default)
        """
        self._random = random_source or default_random_source()
        self._master: Optional[SecureBuffer] = None
        self._subkeys: Dict[SecurityLevel, SecureBuffer] = {}
        self._lock = ReadWriteLock()
        self._cipher = AesGcmCipher()
        self._log = logging.getLogger("vaultstore.crypto")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """
        Generate the master key and per-level subkeys.

        Idempotent: calling again while initialized is a no-op.

        Returns:
            True on success
        """
        with self._lock.write_locked():
            if self._master is not None:
                return True

            raw_master = bytearray(self._random.token_bytes(MASTER_KEY_SIZE))
            with ZeroizeContext(raw_master):
                master = SecureBuffer.from_bytes(raw_master)
            try:
                subkeys = {
                    level: SecureBuffer.from_bytes(derive_level_key(master.data, level))
                    for level in SecurityLevel
                }
            except Exception:
                master.wipe()
                raise

            self._master = master
            self._subkeys = subkeys

        self._log.info(
            "Crypto engine initialized (memory locked: %s)", master.is_locked
        )
        return True

    def shutdown(self) -> None:
        """Zero all key material. Later operations raise NotInitialized."""
        with self._lock.write_locked():
            if self._master is None:
                return
            for buf in self._subkeys.values():
                buf.wipe()
            self._subkeys = {}
            self._master.wipe()
            self._master = None

        self._log.info("Crypto engine shut down, key material wiped")

    @property
    def is_initialized(self) -> bool:
        with self._lock.read_locked():
            return self._master is not None

    def __enter__(self) -> "CryptoEngine":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: bytes, security_level: int) -> CipherEnvelope:
        """
        Encrypt plaintext under the subkey for ``security_level``.

        Deterministic given (key, IV, security_level, plaintext).

        Raises:
            NotInitialized: If the engine has no key
            InvalidSecurityLevel: If the level is not 1..5
            InvalidArgument: If plaintext is not bytes-like
        """
        level = SecurityLevel.coerce(security_level)
        data = _as_bytes(plaintext, "plaintext")

        with self._lock.read_locked():
            self._require_initialized()
            iv = self._random.token_bytes(IV_SIZE)
            sealed = self._cipher.encrypt(
                data,
                key=self._subkeys[level].data,
                iv=iv,
                aad=_level_aad(level),
            )

        return CipherEnvelope(iv=iv, sealed=sealed)

    def decrypt(
        self,
        envelope: Union[CipherEnvelope, bytes, bytearray, memoryview],
        security_level: int,
    ) -> bytes:
        """
        Decrypt and authenticate an envelope.

        Raises:
            NotInitialized: If the engine has no key
            InvalidSecurityLevel: If the level is not 1..5
            InvalidEnvelope: If the envelope is shorter than IV + tag
            IntegrityFailure: If authentication fails (tampering or wrong level)
        """
        level = SecurityLevel.coerce(security_level)
        if not isinstance(envelope, CipherEnvelope):
            envelope = CipherEnvelope.from_bytes(envelope)

        with self._lock.read_locked():
            self._require_initialized()
            try:
                return self._cipher.decrypt(
                    envelope.sealed,
                    key=self._subkeys[level].data,
                    iv=envelope.iv,
                    aad=_level_aad(level),
                )
            except InvalidTag as e:
                raise IntegrityFailure("Envelope authentication failed") from e
            except ValueError as e:
                raise InvalidEnvelope(str(e)) from e

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def hash(self, data: bytes) -> bytes:
        """SHA-256 digest of ``data`` (32 bytes)."""
        content = _as_bytes(data, "data")
        with self._lock.read_locked():
            self._require_initialized()
        return hashlib.sha256(content).digest()

    def hash_hex(self, data: bytes) -> str:
        """Lowercase hex SHA-256 of ``data``."""
        return self.to_hex(self.hash(data))

    def verify_integrity(self, data: bytes, digest: bytes) -> bool:
        """
        Recompute the digest of ``data`` and compare in constant time.

        Returns:
            True if the digests match
        """
        if not isinstance(digest, (bytes, bytearray, memoryview)):
            raise InvalidArgument("digest must be bytes-like")
        expected = bytes(digest)
        if len(expected) != DIGEST_SIZE:
            return False
        return hmac.compare_digest(self.hash(data), expected)

    @staticmethod
    def to_hex(digest: bytes) -> str:
        """Lowercase hex, two characters per digest byte."""
        return _as_bytes(digest, "digest").hex()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if self._master is None:
            raise NotInitialized("Crypto engine is not initialized")

    def __repr__(self) -> str:
        """Safe representation without key material."""
        state = "ready" if self._master is not None else "uninitialized"
        return f"CryptoEngine({state})"


def _level_aad(level: SecurityLevel) -> bytes:
    return b"vaultstore:level:" + bytes([int(level)])


def _as_bytes(value: object, name: str) -> bytes:
    if value is None:
        raise InvalidArgument(f"{name} cannot be None")
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidArgument(f"{name} must be bytes-like")
    return bytes(value)
