"""
Parse ``otpauth-migration://`` links exported by Google Authenticator.

Format::

    otpauth-migration://offline?data=<base64 MigrationPayload>

The payload itself is decoded by :mod:`migration.codec`; this module checks
the link, normalises the enum fields into :class:`~core.models.OtpParameter`
values and produces the canonical bytes that get stored.
"""

import base64
import binascii
import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import List

from core.errors import (
    DecodeError,
    InvalidLinkError,
    UnknownAlgorithmError,
    UnknownDigitCountError,
    UnsupportedTypeError,
)
from core.models import OtpParameter, OtpType
from core.totp import Algorithm
from migration.codec import RawOtpRecord, decode_payload, decode_record, encode_record

logger = logging.getLogger(__name__)

SCHEME = "otpauth-migration"
HOST = "offline"

# Enum codes as used by the export format. Code 0 is "unspecified".
_ALGORITHMS: dict[int, Algorithm] = {
    0: Algorithm.SHA1,
    1: Algorithm.SHA1,
    2: Algorithm.SHA256,
    3: Algorithm.SHA512,
    4: Algorithm.MD5,
}
_DIGITS: dict[int, int] = {0: 6, 1: 6, 2: 8}
_TYPES: dict[int, OtpType] = {0: OtpType.TOTP, 1: OtpType.HOTP, 2: OtpType.TOTP}

# Reverse tables used for canonical encoding.
_ALGORITHM_CODES = {Algorithm.SHA1: 1, Algorithm.SHA256: 2, Algorithm.SHA512: 3, Algorithm.MD5: 4}
_DIGIT_CODES = {6: 1, 8: 2}
_TYPE_CODES = {OtpType.HOTP: 1, OtpType.TOTP: 2}


@dataclass(frozen=True)
class MigrationEntry:
    """A normalised parameter together with its canonical stored form."""

    parameter: OtpParameter
    encoded: bytes = field(repr=False)


@dataclass
class Payload:
    """Decoded migration link."""

    entries: List[MigrationEntry] = field(default_factory=list)
    version: int = 0
    batch_size: int = 0
    batch_index: int = 0
    batch_id: int = 0

    @property
    def parameters(self) -> List[OtpParameter]:
        return [e.parameter for e in self.entries]

    def describe_batch(self) -> str:
        """Human-readable batch position, e.g. ``"batch 2 of 3"``."""
        if self.batch_size <= 1:
            return "single batch"
        return f"batch {self.batch_index + 1} of {self.batch_size}"


# ── Normalisation ─────────────────────────────────────────────────────────────

def normalize_record(record: RawOtpRecord) -> OtpParameter:
    """
    Turn a raw record into an :class:`OtpParameter`.

    Raises:
        DecodeError:            If the secret is empty.
        UnknownAlgorithmError:  On an algorithm code outside 0-4.
        UnknownDigitCountError: On a digit-count code outside 0-2.
        UnsupportedTypeError:   On a type code outside 0-2.
    """
    if not record.secret:
        raise DecodeError(f"field: empty secret for {record.name!r}")

    try:
        algorithm = _ALGORITHMS[record.algorithm]
    except KeyError:
        raise UnknownAlgorithmError(
            f"field: unknown algorithm code {record.algorithm} for {record.name!r}"
        ) from None

    try:
        digits = _DIGITS[record.digits]
    except KeyError:
        raise UnknownDigitCountError(
            f"field: unknown digit count code {record.digits} for {record.name!r}"
        ) from None

    try:
        otp_type = _TYPES[record.otp_type]
    except KeyError:
        raise UnsupportedTypeError(
            f"field: unknown OTP type code {record.otp_type} for {record.name!r}"
        ) from None

    return OtpParameter(
        secret=record.secret,
        name=record.name,
        issuer=record.issuer,
        algorithm=algorithm,
        digits=digits,
        otp_type=otp_type,
        counter=record.counter,
    )


def encode_parameter(param: OtpParameter) -> bytes:
    """Encode ``param`` in canonical form, enum fields as concrete codes."""
    return encode_record(
        RawOtpRecord(
            secret=param.secret,
            name=param.name,
            issuer=param.issuer,
            algorithm=_ALGORITHM_CODES[param.algorithm],
            digits=_DIGIT_CODES[param.digits],
            otp_type=_TYPE_CODES[param.otp_type],
            counter=param.counter,
        )
    )


def from_encoded_bytes(data: bytes) -> OtpParameter:
    """
    Decode a single stored record.

    Raises:
        DecodeError: On malformed wire data or an empty secret, plus the
            normalisation errors of :func:`normalize_record`.
    """
    return normalize_record(decode_record(data))


# ── Links ─────────────────────────────────────────────────────────────────────

def _extract_data(link: str) -> bytes:
    """
    Return the Base64-decoded ``data`` query value of ``link``.

    An empty ``data=`` counts as missing and raises :class:`InvalidLinkError`
    rather than yielding a payload with no parameters.
    """
    parsed = urllib.parse.urlsplit(link.strip())

    if parsed.scheme != SCHEME:
        raise InvalidLinkError(
            f"link: unknown scheme {parsed.scheme!r}, should be {SCHEME!r}"
        )
    if parsed.netloc != HOST:
        raise InvalidLinkError(
            f"link: unknown host {parsed.netloc!r}, should be {HOST!r}"
        )

    params = urllib.parse.parse_qs(parsed.query)
    values = params.get("data")
    if not values or not values[0]:
        raise InvalidLinkError("link: missing 'data' query parameter")

    # '+' in unescaped links arrives here as a space
    data = values[0].replace(" ", "+")
    try:
        return base64.b64decode(data, validate=True)
    except binascii.Error as exc:
        raise DecodeError(f"base64: invalid 'data' parameter: {exc}") from exc


def parse_migration_link(link: str) -> Payload:
    """
    Parse and decode an ``otpauth-migration://offline?data=...`` link.

    Args:
        link: Full migration link as scanned from the export QR code.

    Returns:
        :class:`Payload` with one entry per exported account, in export order.

    Raises:
        InvalidLinkError: Wrong scheme or host, or no ``data`` parameter.
        DecodeError:      Bad Base64, bad wire data or an empty secret.
        UnknownAlgorithmError, UnknownDigitCountError, UnsupportedTypeError:
            From field normalisation. No partial payload is ever returned.
    """
    raw = decode_payload(_extract_data(link))

    entries = []
    for record in raw.records:
        param = normalize_record(record)
        entries.append(MigrationEntry(parameter=param, encoded=encode_parameter(param)))

    payload = Payload(
        entries=entries,
        version=raw.version,
        batch_size=raw.batch_size,
        batch_index=raw.batch_index,
        batch_id=raw.batch_id,
    )
    logger.debug(
        "Decoded %d parameter(s), %s (version %d)",
        len(entries), payload.describe_batch(), payload.version,
    )
    return payload
