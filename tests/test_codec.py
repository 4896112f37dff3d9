"""Tests for migration.codec."""

import pytest

from core.errors import DecodeError
from migration.codec import (
    WIRE_FIXED32,
    WIRE_FIXED64,
    WIRE_LENGTH_DELIMITED,
    WIRE_VARINT,
    RawOtpRecord,
    RawPayload,
    decode_payload,
    decode_record,
    encode_field,
    encode_payload,
    encode_record,
    encode_varint,
    iter_fields,
    read_varint,
)


# ── Varints ───────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("value,encoded", [
    (0, b"\x00"),
    (1, b"\x01"),
    (127, b"\x7f"),
    (128, b"\x80\x01"),
    (300, b"\xac\x02"),
    (2**64 - 1, b"\xff" * 9 + b"\x01"),
])
def test_varint_known_encodings(value: int, encoded: bytes) -> None:
    assert encode_varint(value) == encoded
    assert read_varint(encoded, 0) == (value, len(encoded))


def test_negative_varint_uses_ten_bytes() -> None:
    assert len(encode_varint(-1)) == 10


def test_read_varint_unterminated() -> None:
    with pytest.raises(DecodeError, match="unterminated"):
        read_varint(b"\x80\x80", 0)


def test_read_varint_too_long() -> None:
    with pytest.raises(DecodeError, match="longer than 10"):
        read_varint(b"\xff" * 11, 0)


# ── Fields ────────────────────────────────────────────────────────────────────

def test_iter_fields_all_wire_types() -> None:
    data = (
        encode_field(1, WIRE_VARINT, 150)
        + encode_field(2, WIRE_LENGTH_DELIMITED, b"abc")
        + encode_field(3, WIRE_FIXED64, 7)
        + encode_field(4, WIRE_FIXED32, 9)
    )
    assert list(iter_fields(data)) == [
        (1, WIRE_VARINT, 150),
        (2, WIRE_LENGTH_DELIMITED, b"abc"),
        (3, WIRE_FIXED64, 7),
        (4, WIRE_FIXED32, 9),
    ]


def test_iter_fields_truncated_length_delimited() -> None:
    # field 1, length 5, only 2 bytes follow
    with pytest.raises(DecodeError, match="declares 5 bytes"):
        list(iter_fields(b"\x0a\x05ab"))


@pytest.mark.parametrize("wire_type", [3, 4, 6, 7])
def test_iter_fields_unknown_wire_type(wire_type: int) -> None:
    with pytest.raises(DecodeError, match="unknown wire type"):
        list(iter_fields(bytes([(1 << 3) | wire_type, 0])))


def test_iter_fields_truncated_fixed() -> None:
    with pytest.raises(DecodeError, match="fixed64"):
        list(iter_fields(bytes([(1 << 3) | WIRE_FIXED64]) + b"\x00\x00"))


def test_iter_fields_field_zero() -> None:
    with pytest.raises(DecodeError):
        list(iter_fields(b"\x00\x00"))


# ── Records ───────────────────────────────────────────────────────────────────

def test_record_roundtrip() -> None:
    record = RawOtpRecord(
        secret=b"\x00\xff secret", name="ålice", issuer="Example",
        algorithm=3, digits=2, otp_type=1, counter=2**40,
    )
    assert decode_record(encode_record(record)) == record


def test_record_default_fields_are_omitted() -> None:
    assert encode_record(RawOtpRecord()) == b""
    assert encode_record(RawOtpRecord(secret=b"k")) == b"\x0a\x01k"


def test_record_skips_unknown_fields() -> None:
    data = encode_record(RawOtpRecord(secret=b"k", name="n"))
    data += encode_field(8, WIRE_LENGTH_DELIMITED, b"unique-id")
    assert decode_record(data) == RawOtpRecord(secret=b"k", name="n")


def test_record_wrong_wire_type() -> None:
    with pytest.raises(DecodeError, match="field 2"):
        decode_record(encode_field(2, WIRE_VARINT, 1))


def test_record_invalid_utf8_name() -> None:
    with pytest.raises(DecodeError, match="UTF-8"):
        decode_record(encode_field(2, WIRE_LENGTH_DELIMITED, b"\xff\xfe"))


# ── Payloads ──────────────────────────────────────────────────────────────────

def test_payload_roundtrip_with_metadata() -> None:
    payload = RawPayload(
        records=[RawOtpRecord(secret=b"a", name="x"), RawOtpRecord(secret=b"b", name="y")],
        version=1, batch_size=3, batch_index=2, batch_id=-123456,
    )
    assert decode_payload(encode_payload(payload)) == payload


def test_payload_broken_record_fails_whole_decode() -> None:
    good = encode_field(1, WIRE_LENGTH_DELIMITED, encode_record(RawOtpRecord(secret=b"a")))
    bad = encode_field(1, WIRE_LENGTH_DELIMITED, b"\x80")
    with pytest.raises(DecodeError):
        decode_payload(good + bad)
