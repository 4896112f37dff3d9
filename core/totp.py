"""
TOTP (Time-based One-Time Password) implementation following RFC 6238.

The time step is fixed at 30 seconds and the clock is shifted 5 seconds
forward before dividing, so a code rolls over slightly early and is still
valid by the time it has been typed in.
"""

import hashlib
import hmac
import struct
import time
from enum import Enum
from typing import Callable, Optional

from core.errors import OtpError

OFFSET = 5   # seconds added to the clock before dividing
PERIOD = 30  # time step in seconds


class Algorithm(str, Enum):
    """Supported HMAC algorithms."""

    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"
    MD5 = "MD5"


_ALG_MAP: dict[Algorithm, Callable] = {
    Algorithm.SHA1: hashlib.sha1,
    Algorithm.SHA256: hashlib.sha256,
    Algorithm.SHA512: hashlib.sha512,
    Algorithm.MD5: hashlib.md5,
}


def truncate(digest: bytes, digits: int) -> str:
    """
    Dynamic truncation (RFC 4226 §5.3) of an HMAC digest.

    The offset comes from the low nibble of the last byte. Digests shorter
    than 20 bytes (MD5 has 16) clamp it to ``len(digest) - 4`` so the four
    bytes read always lie inside the digest.

    Args:
        digest: Full HMAC output.
        digits: Number of OTP digits.

    Returns:
        Zero-padded OTP string of exactly ``digits`` characters.

    Raises:
        OtpError: If the digest is shorter than four bytes.
    """
    if len(digest) < 4:
        raise OtpError(f"generation: digest of {len(digest)} bytes is too short")
    offset = min(digest[-1] & 0x0F, len(digest) - 4)
    (value,) = struct.unpack(">I", digest[offset : offset + 4])
    otp = (value & 0x7FFFFFFF) % (10**digits)
    return str(otp).zfill(digits)


def hotp_value(
    secret_bytes: bytes,
    counter: int,
    digits: int = 6,
    algorithm: Algorithm = Algorithm.SHA1,
) -> str:
    """
    Core HOTP computation (RFC 4226 §5) for an explicit counter value.

    Args:
        secret_bytes: Raw secret.
        counter:      Counter used as the HMAC message (8 bytes, big-endian).
        digits:       Number of OTP digits (6 or 8).
        algorithm:    HMAC algorithm.

    Returns:
        Zero-padded OTP string.
    """
    msg = struct.pack(">Q", counter)
    digest = hmac.new(secret_bytes, msg, _ALG_MAP[algorithm]).digest()
    return truncate(digest, digits)


def totp_counter(timestamp: Optional[float] = None) -> int:
    """Return the time-step counter for ``timestamp`` (``time.time()`` if None)."""
    t = timestamp if timestamp is not None else time.time()
    return (int(t) + OFFSET) // PERIOD


def generate_totp(
    secret_bytes: bytes,
    digits: int = 6,
    algorithm: Algorithm = Algorithm.SHA1,
    timestamp: Optional[float] = None,
) -> str:
    """
    Generate a TOTP code.

    Args:
        secret_bytes: Raw secret bytes.
        digits:       Number of digits in the OTP (default 6).
        algorithm:    HMAC algorithm (default SHA1).
        timestamp:    Override Unix timestamp (uses time.time() if None).

    Returns:
        OTP string, zero-padded to ``digits`` characters.
    """
    return hotp_value(secret_bytes, totp_counter(timestamp), digits, algorithm)


def remaining_seconds(timestamp: Optional[float] = None) -> int:
    """Return seconds until the current (shifted) TOTP window expires."""
    t = timestamp if timestamp is not None else time.time()
    return PERIOD - ((int(t) + OFFSET) % PERIOD)
