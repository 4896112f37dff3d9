"""
Minimal protobuf wire-format reader and writer for migration payloads.

Only what the ``otpauth-migration`` export needs is implemented:

    MigrationPayload
      1  otp_parameters  repeated OtpParameters (length-delimited)
      2  version         int32
      3  batch_size      int32
      4  batch_index     int32
      5  batch_id        int32

    OtpParameters
      1  secret     bytes
      2  name       string
      3  issuer     string
      4  algorithm  enum
      5  digits     enum
      6  type       enum
      7  counter    uint64

Enum fields are kept as raw integers here; interpreting them is the job of
:mod:`migration.parser`.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Tuple, Union

from core.errors import DecodeError

# ── Wire types ────────────────────────────────────────────────────────────────

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_FIXED32 = 5

_MAX_VARINT_BYTES = 10
_UINT64_MASK = (1 << 64) - 1

FieldValue = Union[int, bytes]


# ── Records ───────────────────────────────────────────────────────────────────

@dataclass
class RawOtpRecord:
    """One ``OtpParameters`` message with enum fields left undecoded."""

    secret: bytes = b""
    name: str = ""
    issuer: str = ""
    algorithm: int = 0
    digits: int = 0
    otp_type: int = 0
    counter: int = 0


@dataclass
class RawPayload:
    """Top-level ``MigrationPayload`` message."""

    records: List[RawOtpRecord] = field(default_factory=list)
    version: int = 0
    batch_size: int = 0
    batch_index: int = 0
    batch_id: int = 0


# ── Low-level reading ─────────────────────────────────────────────────────────

def read_varint(data: bytes, pos: int) -> Tuple[int, int]:
    """
    Read a base-128 varint starting at ``pos``.

    Returns:
        ``(value, position after the varint)``.

    Raises:
        DecodeError: If the varint is unterminated or longer than 10 bytes.
    """
    value = 0
    shift = 0
    for _ in range(_MAX_VARINT_BYTES):
        if pos >= len(data):
            raise DecodeError("wire: unterminated varint")
        b = data[pos]
        pos += 1
        value |= (b & 0x7F) << shift
        if not b & 0x80:
            return value & _UINT64_MASK, pos
        shift += 7
    raise DecodeError("wire: varint longer than 10 bytes")


def _read_fixed(data: bytes, pos: int, size: int) -> Tuple[int, int]:
    end = pos + size
    if end > len(data):
        raise DecodeError(f"wire: truncated fixed{size * 8} field")
    return int.from_bytes(data[pos:end], "little"), end


def iter_fields(data: bytes) -> Iterator[Tuple[int, int, FieldValue]]:
    """
    Yield ``(field_number, wire_type, value)`` for every field in ``data``.

    ``value`` is an ``int`` for varint and fixed wire types and ``bytes`` for
    length-delimited ones. The first malformed field raises and stops the
    iteration; nothing after it is yielded.

    Raises:
        DecodeError: On malformed varints, truncated fields or wire types
            other than 0, 1, 2 and 5.
    """
    pos = 0
    while pos < len(data):
        key, pos = read_varint(data, pos)
        field_number = key >> 3
        wire_type = key & 0x07
        if field_number == 0:
            raise DecodeError("wire: field number 0 is reserved")

        value: FieldValue
        if wire_type == WIRE_VARINT:
            value, pos = read_varint(data, pos)
        elif wire_type == WIRE_FIXED64:
            value, pos = _read_fixed(data, pos, 8)
        elif wire_type == WIRE_FIXED32:
            value, pos = _read_fixed(data, pos, 4)
        elif wire_type == WIRE_LENGTH_DELIMITED:
            length, pos = read_varint(data, pos)
            end = pos + length
            if end > len(data):
                raise DecodeError(
                    f"wire: field {field_number} declares {length} bytes, "
                    f"only {len(data) - pos} remain"
                )
            value, pos = data[pos:end], end
        else:
            raise DecodeError(
                f"wire: unknown wire type {wire_type} for field {field_number}"
            )
        yield field_number, wire_type, value


# ── Low-level writing ─────────────────────────────────────────────────────────

def encode_varint(value: int) -> bytes:
    """Encode an integer as a varint; negatives use 64-bit two's complement."""
    value &= _UINT64_MASK
    out = bytearray()
    while True:
        b = value & 0x7F
        value >>= 7
        if value:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def encode_field(field_number: int, wire_type: int, value: FieldValue) -> bytes:
    """Encode a single field (tag plus payload)."""
    tag = encode_varint((field_number << 3) | wire_type)
    if wire_type == WIRE_VARINT:
        return tag + encode_varint(int(value))
    if wire_type == WIRE_LENGTH_DELIMITED:
        payload = bytes(value)  # type: ignore[arg-type]
        return tag + encode_varint(len(payload)) + payload
    if wire_type == WIRE_FIXED64:
        return tag + int(value).to_bytes(8, "little")
    if wire_type == WIRE_FIXED32:
        return tag + int(value).to_bytes(4, "little")
    raise ValueError(f"Cannot encode wire type {wire_type}")


# ── Field helpers ─────────────────────────────────────────────────────────────

def _expect(field_number: int, wire_type: int, expected: int) -> None:
    if wire_type != expected:
        raise DecodeError(
            f"wire: field {field_number} has wire type {wire_type}, "
            f"expected {expected}"
        )


def _as_text(field_number: int, raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"wire: field {field_number} is not valid UTF-8") from exc


def _as_int32(value: int) -> int:
    # int32 values are sign-extended to 64 bits on the wire
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


# ── Messages ──────────────────────────────────────────────────────────────────

def decode_record(data: bytes) -> RawOtpRecord:
    """
    Decode one ``OtpParameters`` message.

    Unknown field numbers are skipped; known ones must carry the expected
    wire type.

    Raises:
        DecodeError: On any wire-format problem.
    """
    record = RawOtpRecord()
    for number, wire_type, value in iter_fields(data):
        if number == 1:
            _expect(number, wire_type, WIRE_LENGTH_DELIMITED)
            record.secret = bytes(value)  # type: ignore[arg-type]
        elif number == 2:
            _expect(number, wire_type, WIRE_LENGTH_DELIMITED)
            record.name = _as_text(number, value)  # type: ignore[arg-type]
        elif number == 3:
            _expect(number, wire_type, WIRE_LENGTH_DELIMITED)
            record.issuer = _as_text(number, value)  # type: ignore[arg-type]
        elif number == 4:
            _expect(number, wire_type, WIRE_VARINT)
            record.algorithm = _as_int32(value)  # type: ignore[arg-type]
        elif number == 5:
            _expect(number, wire_type, WIRE_VARINT)
            record.digits = _as_int32(value)  # type: ignore[arg-type]
        elif number == 6:
            _expect(number, wire_type, WIRE_VARINT)
            record.otp_type = _as_int32(value)  # type: ignore[arg-type]
        elif number == 7:
            _expect(number, wire_type, WIRE_VARINT)
            record.counter = int(value)  # type: ignore[arg-type]
    return record


def encode_record(record: RawOtpRecord) -> bytes:
    """Encode a record in field order, omitting default values (proto3)."""
    out = bytearray()
    if record.secret:
        out += encode_field(1, WIRE_LENGTH_DELIMITED, record.secret)
    if record.name:
        out += encode_field(2, WIRE_LENGTH_DELIMITED, record.name.encode("utf-8"))
    if record.issuer:
        out += encode_field(3, WIRE_LENGTH_DELIMITED, record.issuer.encode("utf-8"))
    for number, value in (
        (4, record.algorithm),
        (5, record.digits),
        (6, record.otp_type),
        (7, record.counter),
    ):
        if value:
            out += encode_field(number, WIRE_VARINT, value)
    return bytes(out)


def decode_payload(data: bytes) -> RawPayload:
    """
    Decode a ``MigrationPayload`` message.

    Raises:
        DecodeError: On any wire-format problem in the payload or in one of
            its embedded records.
    """
    payload = RawPayload()
    for number, wire_type, value in iter_fields(data):
        if number == 1:
            _expect(number, wire_type, WIRE_LENGTH_DELIMITED)
            payload.records.append(decode_record(value))  # type: ignore[arg-type]
        elif number in (2, 3, 4, 5):
            _expect(number, wire_type, WIRE_VARINT)
            attr = ("version", "batch_size", "batch_index", "batch_id")[number - 2]
            setattr(payload, attr, _as_int32(value))  # type: ignore[arg-type]
    return payload


def encode_payload(payload: RawPayload) -> bytes:
    """Encode a payload; the inverse of :func:`decode_payload`."""
    out = bytearray()
    for record in payload.records:
        out += encode_field(1, WIRE_LENGTH_DELIMITED, encode_record(record))
    for number, value in (
        (2, payload.version),
        (3, payload.batch_size),
        (4, payload.batch_index),
        (5, payload.batch_id),
    ):
        if value:
            out += encode_field(number, WIRE_VARINT, value)
    return bytes(out)
