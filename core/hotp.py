"""
HOTP (HMAC-based One-Time Password) implementation following RFC 4226.
"""

from typing import Tuple

from core.totp import Algorithm, hotp_value

_COUNTER_MASK = (1 << 64) - 1


def generate_hotp(
    secret_bytes: bytes,
    counter: int,
    digits: int = 6,
    algorithm: Algorithm = Algorithm.SHA1,
) -> Tuple[str, int]:
    """
    Generate the next HOTP code from a stored counter.

    The counter is incremented *before* use (RFC 4226 §7.2), so a freshly
    enrolled secret with ``counter=0`` yields the code for counter 1.

    Args:
        secret_bytes: Raw secret bytes.
        counter:      Stored counter value.
        digits:       Number of OTP digits (6 or 8).
        algorithm:    HMAC algorithm.

    Returns:
        ``(code, next_counter)``; the caller must persist ``next_counter``
        or the same code will be produced again.
    """
    next_counter = (counter + 1) & _COUNTER_MASK
    return hotp_value(secret_bytes, next_counter, digits, algorithm), next_counter
