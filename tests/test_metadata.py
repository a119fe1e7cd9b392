from __future__ import annotations

import hashlib

import pytest

from vaultstore.core.constants import SecurityLevel
from vaultstore.core.errors import CorruptRecord, InvalidArgument, InvalidSecurityLevel
from vaultstore.storage.metadata import MIN_RECORD_SIZE, MetadataRecord

FILE_ID = "0f8e8b9a-1c2d-3e4f-5a6b-7c8d9e0f1a2b"


def _record(name: str = "report.pdf", level: int = SecurityLevel.MAXIMUM) -> MetadataRecord:
    return MetadataRecord(
        file_id=FILE_ID,
        original_name=name,
        original_size=1234,
        content_hash=hashlib.sha256(b"content").digest(),
        security_level=level,
        created_at=1_700_000_000,
    )


def test_layout_size() -> None:
    assert MIN_RECORD_SIZE == 91
    assert len(_record("a").to_bytes()) == 92
    assert len(_record("ä").to_bytes()) == 93


def test_layout_fields() -> None:
    raw = _record("x.bin", SecurityLevel.CLASSIFIED).to_bytes()

    assert raw[:4] == b"VSMR"
    assert raw[4] == 1
    assert raw[5:41] == FILE_ID.encode("ascii")
    assert raw[41] == 5
    assert raw[42:47] == b"x.bin"
    assert int.from_bytes(raw[47:55], "big") == 1234
    assert raw[87] == 4
    assert int.from_bytes(raw[88:96], "big") == 1_700_000_000


def test_decode_restores_record() -> None:
    record = _record("Grüße 📄.txt")

    decoded = MetadataRecord.from_bytes(record.to_bytes())

    assert decoded == record
    assert decoded.security_level is SecurityLevel.MAXIMUM
    assert decoded.content_hash_hex == hashlib.sha256(b"content").hexdigest()
    assert decoded.created_at_datetime.year == 2023


def test_level_is_coerced_to_enum() -> None:
    assert _record(level=2).security_level is SecurityLevel.ENHANCED


@pytest.mark.parametrize("level", [0, 6])
def test_invalid_level_rejected(level: int) -> None:
    with pytest.raises(InvalidSecurityLevel):
        _record(level=level)


def test_name_limits_are_in_utf8_bytes() -> None:
    _record("a" * 255)
    _record("é" * 127)

    with pytest.raises(InvalidArgument):
        _record("a" * 256)
    with pytest.raises(InvalidArgument):
        _record("é" * 128)


@pytest.mark.parametrize("name", ["", "bad\x00name"])
def test_unusable_names_rejected(name: str) -> None:
    with pytest.raises(InvalidArgument):
        _record(name)


def test_bad_digest_length_rejected() -> None:
    with pytest.raises(InvalidArgument):
        MetadataRecord(
            file_id=FILE_ID,
            original_name="a",
            original_size=0,
            content_hash=b"\x00" * 31,
            security_level=1,
            created_at=0,
        )


def test_truncated_record() -> None:
    raw = _record().to_bytes()

    with pytest.raises(CorruptRecord):
        MetadataRecord.from_bytes(raw[:-1])
    with pytest.raises(CorruptRecord):
        MetadataRecord.from_bytes(raw[:10])


def test_trailing_bytes() -> None:
    with pytest.raises(CorruptRecord):
        MetadataRecord.from_bytes(_record().to_bytes() + b"\x00")


def test_bad_magic_and_version() -> None:
    raw = bytearray(_record().to_bytes())
    raw[0:4] = b"XXXX"
    with pytest.raises(CorruptRecord, match="magic"):
        MetadataRecord.from_bytes(bytes(raw))

    raw = bytearray(_record().to_bytes())
    raw[4] = 2
    with pytest.raises(CorruptRecord, match="version"):
        MetadataRecord.from_bytes(bytes(raw))


def test_out_of_range_level_byte() -> None:
    raw = bytearray(_record().to_bytes())
    raw[-9] = 9

    with pytest.raises(CorruptRecord):
        MetadataRecord.from_bytes(bytes(raw))


def test_invalid_utf8_name() -> None:
    raw = bytearray(_record("ab").to_bytes())
    raw[42] = 0xFF

    with pytest.raises(CorruptRecord):
        MetadataRecord.from_bytes(bytes(raw))


def test_malformed_id() -> None:
    raw = bytearray(_record().to_bytes())
    raw[5:9] = b"ZZZZ"

    with pytest.raises(CorruptRecord):
        MetadataRecord.from_bytes(bytes(raw))
