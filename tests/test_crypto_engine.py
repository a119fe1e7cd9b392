from __future__ import annotations

import pytest

from vaultstore.core.constants import SecurityLevel
from vaultstore.core.crypto.engine import MIN_ENVELOPE_SIZE, CipherEnvelope, CryptoEngine
from vaultstore.core.errors import (
    IntegrityFailure,
    InvalidEnvelope,
    InvalidSecurityLevel,
    NotInitialized,
)
from vaultstore.core.memory.zeroization import is_zeroed

from conftest import CountingRandomSource


def test_operations_require_initialize() -> None:
    engine = CryptoEngine()

    assert not engine.is_initialized
    with pytest.raises(NotInitialized):
        engine.encrypt(b"data", SecurityLevel.STANDARD)
    with pytest.raises(NotInitialized):
        engine.decrypt(b"\x00" * MIN_ENVELOPE_SIZE, SecurityLevel.STANDARD)
    with pytest.raises(NotInitialized):
        engine.hash(b"data")


def test_initialize_is_idempotent(crypto: CryptoEngine) -> None:
    master = crypto._master
    envelope = crypto.encrypt(b"payload", SecurityLevel.ENHANCED)

    assert crypto.initialize() is True
    assert crypto._master is master
    assert crypto.decrypt(envelope, SecurityLevel.ENHANCED) == b"payload"


def test_shutdown_zeroes_key_material() -> None:
    engine = CryptoEngine()
    engine.initialize()
    master = engine._master
    subkeys = list(engine._subkeys.values())

    engine.shutdown()

    assert not engine.is_initialized
    assert master.is_wiped
    assert is_zeroed(master._buffer)
    assert all(buf.is_wiped and is_zeroed(buf._buffer) for buf in subkeys)
    with pytest.raises(NotInitialized):
        engine.encrypt(b"after", SecurityLevel.STANDARD)


def test_reinitialize_after_shutdown_uses_new_key() -> None:
    engine = CryptoEngine()
    engine.initialize()
    envelope = engine.encrypt(b"old key", SecurityLevel.STANDARD)
    engine.shutdown()

    engine.initialize()
    try:
        with pytest.raises(IntegrityFailure):
            engine.decrypt(envelope, SecurityLevel.STANDARD)
    finally:
        engine.shutdown()


def test_context_manager_wipes_on_exit() -> None:
    with CryptoEngine() as engine:
        assert engine.is_initialized
        master = engine._master
    assert master.is_wiped
    assert not engine.is_initialized


def test_round_trip_every_level(crypto: CryptoEngine) -> None:
    payload = b"The quick brown fox jumps over the lazy dog"
    for level in SecurityLevel:
        envelope = crypto.encrypt(payload, level)
        assert len(envelope.ciphertext) == len(payload)
        assert len(envelope.iv) == 16
        assert crypto.decrypt(envelope.to_bytes(), level) == payload


def test_empty_plaintext(crypto: CryptoEngine) -> None:
    envelope = crypto.encrypt(b"", SecurityLevel.STANDARD)

    assert len(envelope) == MIN_ENVELOPE_SIZE
    assert crypto.decrypt(envelope, SecurityLevel.STANDARD) == b""


def test_fresh_iv_per_encryption(crypto: CryptoEngine) -> None:
    first = crypto.encrypt(b"same input", SecurityLevel.MAXIMUM)
    second = crypto.encrypt(b"same input", SecurityLevel.MAXIMUM)

    assert first.iv != second.iv
    assert first.ciphertext != second.ciphertext


def test_encryption_is_deterministic_given_key_and_iv() -> None:
    with CryptoEngine(CountingRandomSource()) as a, CryptoEngine(CountingRandomSource()) as b:
        env_a = a.encrypt(b"repeatable", SecurityLevel.CLASSIFIED)
        env_b = b.encrypt(b"repeatable", SecurityLevel.CLASSIFIED)

    assert env_a == env_b


def test_level_is_bound_to_ciphertext(crypto: CryptoEngine) -> None:
    envelope = crypto.encrypt(b"level bound", SecurityLevel.STANDARD)

    for level in (2, 3, 4, 5):
        with pytest.raises(IntegrityFailure):
            crypto.decrypt(envelope, level)


def test_any_flipped_byte_fails_authentication(crypto: CryptoEngine) -> None:
    sealed = crypto.encrypt(b"do not touch", SecurityLevel.TOP_SECRET).to_bytes()

    # IV, ciphertext body and tag alike
    for index in range(len(sealed)):
        raw = bytearray(sealed)
        raw[index] ^= 0x01
        with pytest.raises(IntegrityFailure):
            crypto.decrypt(bytes(raw), SecurityLevel.TOP_SECRET)


def test_short_envelope_rejected(crypto: CryptoEngine) -> None:
    with pytest.raises(InvalidEnvelope):
        crypto.decrypt(b"\x00" * (MIN_ENVELOPE_SIZE - 1), SecurityLevel.STANDARD)
    with pytest.raises(InvalidEnvelope):
        CipherEnvelope.from_bytes(b"")


@pytest.mark.parametrize("level", [0, 6, -1, True, "1", 2.0])
def test_invalid_levels_rejected(crypto: CryptoEngine, level: object) -> None:
    with pytest.raises(InvalidSecurityLevel):
        crypto.encrypt(b"x", level)


def test_hash_known_vector(crypto: CryptoEngine) -> None:
    assert crypto.hash_hex(b"abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )
    assert len(crypto.hash(b"")) == 32


def test_hash_avalanche(crypto: CryptoEngine) -> None:
    a = crypto.hash(b"message-0")
    b = crypto.hash(b"message-1")

    differing_bits = sum(bin(x ^ y).count("1") for x, y in zip(a, b))
    assert a != b
    assert differing_bits > 64


def test_to_hex_is_lowercase_and_double_length() -> None:
    digest = bytes(range(32))
    text = CryptoEngine.to_hex(digest)

    assert len(text) == 64
    assert text == text.lower()
    assert bytes.fromhex(text) == digest


def test_verify_integrity(crypto: CryptoEngine) -> None:
    digest = crypto.hash(b"content")

    assert crypto.verify_integrity(b"content", digest)
    assert not crypto.verify_integrity(b"Content", digest)
    assert not crypto.verify_integrity(b"content", digest[:-1])


def test_repr_hides_key_material(crypto: CryptoEngine) -> None:
    key_hex = crypto._master.data.hex()

    assert key_hex not in repr(crypto)
    assert "ready" in repr(crypto)
