"""Tests for migration.parser."""

import base64

import pytest

from core.errors import (
    DecodeError,
    InvalidLinkError,
    UnknownAlgorithmError,
    UnknownDigitCountError,
    UnsupportedTypeError,
)
from core.models import OtpParameter, OtpType
from core.totp import Algorithm
from migration.codec import RawOtpRecord, RawPayload, decode_record, encode_payload, encode_record
from migration.parser import (
    encode_parameter,
    from_encoded_bytes,
    normalize_record,
    parse_migration_link,
)

RFC_SECRET = b"12345678901234567890"


# ── Valid links ───────────────────────────────────────────────────────────────

def test_parse_basic_link(make_link, sample_records) -> None:
    payload = parse_migration_link(make_link(*sample_records, version=1, batch_size=1))

    assert len(payload.entries) == 2
    alice, bob = payload.parameters
    assert alice.name == "alice@example.com"
    assert alice.issuer == "GitHub"
    assert alice.secret == RFC_SECRET
    assert alice.algorithm == Algorithm.SHA1
    assert alice.digits == 6
    assert alice.otp_type is OtpType.TOTP

    assert bob.algorithm == Algorithm.SHA256
    assert bob.digits == 8
    assert bob.otp_type is OtpType.HOTP
    assert bob.counter == 7

    assert payload.version == 1
    assert payload.describe_batch() == "single batch"


def test_parse_keeps_export_order(make_link) -> None:
    names = ["c", "a", "b"]
    records = [RawOtpRecord(secret=b"k", name=n) for n in names]
    assert [p.name for p in parse_migration_link(make_link(*records)).parameters] == names


def test_parse_batch_metadata(make_link) -> None:
    payload = parse_migration_link(
        make_link(RawOtpRecord(secret=b"k", name="x"),
                  version=1, batch_size=3, batch_index=1, batch_id=-42)
    )
    assert (payload.batch_size, payload.batch_index, payload.batch_id) == (3, 1, -42)
    assert payload.describe_batch() == "batch 2 of 3"


def test_parse_empty_data_value(raw_link) -> None:
    # an empty payload encodes to an empty data value, which counts as missing
    with pytest.raises(InvalidLinkError, match="data"):
        parse_migration_link(raw_link(b""))


def test_parse_link_with_surrounding_whitespace(make_link, sample_records) -> None:
    link = "  " + make_link(*sample_records) + "\n"
    assert len(parse_migration_link(link).entries) == 2


def test_literal_space_is_treated_as_plus() -> None:
    # pick bytes whose base64 form contains '+'
    data = encode_payload(RawPayload(records=[RawOtpRecord(secret=b"\xfb\xfe\xbe", name="x")]))
    b64 = base64.b64encode(data).decode("ascii")
    assert "+" in b64

    with_plus = parse_migration_link(f"otpauth-migration://offline?data={b64.replace('+', '%2B')}")
    with_space = parse_migration_link(f"otpauth-migration://offline?data={b64.replace('+', ' ')}")
    raw_plus = parse_migration_link(f"otpauth-migration://offline?data={b64}")

    assert with_plus.parameters == with_space.parameters == raw_plus.parameters
    assert with_space.parameters[0].secret == b"\xfb\xfe\xbe"


# ── Link errors ───────────────────────────────────────────────────────────────

def test_parse_wrong_scheme(make_link, sample_records) -> None:
    link = make_link(*sample_records).replace("otpauth-migration", "http", 1)
    with pytest.raises(InvalidLinkError, match="scheme"):
        parse_migration_link(link)


def test_parse_wrong_host(make_link, sample_records) -> None:
    link = make_link(*sample_records).replace("offline", "online", 1)
    with pytest.raises(InvalidLinkError, match="host"):
        parse_migration_link(link)


def test_parse_plain_otpauth_link_rejected() -> None:
    with pytest.raises(InvalidLinkError):
        parse_migration_link("otpauth://totp/x?secret=JBSWY3DPEHPK3PXP")


def test_parse_missing_data() -> None:
    with pytest.raises(InvalidLinkError, match="data"):
        parse_migration_link("otpauth-migration://offline?other=1")


def test_parse_bad_base64() -> None:
    with pytest.raises(DecodeError, match="base64"):
        parse_migration_link("otpauth-migration://offline?data=not*base64")


def test_parse_bad_wire_data(raw_link) -> None:
    with pytest.raises(DecodeError, match="wire"):
        parse_migration_link(raw_link(b"\x0a\x05ab"))


# ── Normalisation ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("code,expected", [
    (0, Algorithm.SHA1),
    (1, Algorithm.SHA1),
    (2, Algorithm.SHA256),
    (3, Algorithm.SHA512),
    (4, Algorithm.MD5),
])
def test_algorithm_codes(code: int, expected: Algorithm) -> None:
    assert normalize_record(RawOtpRecord(secret=b"k", algorithm=code)).algorithm == expected


@pytest.mark.parametrize("code", [5, 6, 99, -1])
def test_unknown_algorithm_fails_whole_link(make_link, code: int) -> None:
    link = make_link(
        RawOtpRecord(secret=b"k", name="good"),
        RawOtpRecord(secret=b"k", name="bad", algorithm=code),
    )
    with pytest.raises(UnknownAlgorithmError):
        parse_migration_link(link)


@pytest.mark.parametrize("code,expected", [(0, 6), (1, 6), (2, 8)])
def test_digit_codes(code: int, expected: int) -> None:
    assert normalize_record(RawOtpRecord(secret=b"k", digits=code)).digits == expected


@pytest.mark.parametrize("code", [3, 7])
def test_unknown_digit_count(code: int) -> None:
    with pytest.raises(UnknownDigitCountError):
        normalize_record(RawOtpRecord(secret=b"k", digits=code))


@pytest.mark.parametrize("code,expected", [
    (0, OtpType.TOTP),
    (1, OtpType.HOTP),
    (2, OtpType.TOTP),
])
def test_type_codes(code: int, expected: OtpType) -> None:
    assert normalize_record(RawOtpRecord(secret=b"k", otp_type=code)).otp_type is expected


def test_unknown_type() -> None:
    with pytest.raises(UnsupportedTypeError):
        normalize_record(RawOtpRecord(secret=b"k", otp_type=3))


def test_empty_secret_is_decode_error(make_link) -> None:
    with pytest.raises(DecodeError, match="empty secret"):
        parse_migration_link(make_link(RawOtpRecord(name="no-secret")))


# ── Canonical bytes ───────────────────────────────────────────────────────────

def test_entries_carry_canonical_bytes(make_link) -> None:
    raw = RawOtpRecord(secret=b"k", name="x", issuer="I", algorithm=0, digits=0, otp_type=0)
    entry = parse_migration_link(make_link(raw)).entries[0]

    # sentinels become concrete codes, everything else is unchanged
    assert decode_record(entry.encoded) == RawOtpRecord(
        secret=b"k", name="x", issuer="I", algorithm=1, digits=1, otp_type=2
    )
    assert from_encoded_bytes(entry.encoded) == entry.parameter


def test_canonical_form_matches_concrete_input() -> None:
    raw = RawOtpRecord(secret=b"k", name="x", algorithm=3, digits=2, otp_type=1, counter=5)
    assert encode_parameter(normalize_record(raw)) == encode_record(raw)


def test_normalisation_is_idempotent() -> None:
    raw = RawOtpRecord(secret=b"k", name="x")
    once = encode_parameter(normalize_record(raw))
    twice = encode_parameter(from_encoded_bytes(once))
    assert once == twice


def test_from_encoded_bytes_preserves_counter() -> None:
    param = OtpParameter(secret=b"k", name="h", otp_type=OtpType.HOTP, counter=41)
    assert from_encoded_bytes(encode_parameter(param)) == param


def test_from_encoded_bytes_rejects_garbage() -> None:
    with pytest.raises(DecodeError):
        from_encoded_bytes(b"\xff")
