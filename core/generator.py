"""
Code generation for a single :class:`~core.models.OtpParameter`.

:func:`generate` is the strict entry point and raises on failure.
:func:`generate_safe` wraps it for listings, where one broken entry must not
hide the codes of the others.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from core.errors import UnsupportedTypeError
from core.hotp import generate_hotp
from core.models import OtpParameter, OtpType
from core.totp import generate_totp

logger = logging.getLogger(__name__)

FAILED_CODE = "failed"


@dataclass(frozen=True)
class GeneratedCode:
    """Outcome of one generation attempt."""

    code: str
    state: OtpParameter
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def generate(
    param: OtpParameter, now: Optional[float] = None
) -> Tuple[str, OtpParameter]:
    """
    Generate the current code for ``param``.

    Args:
        param: Normalised OTP parameter.
        now:   Unix timestamp for TOTP (``time.time()`` if None). Ignored for
               HOTP.

    Returns:
        ``(code, next_state)``. For TOTP ``next_state`` is ``param`` itself;
        for HOTP it carries the incremented counter and must be persisted
        before the next call for the same account.

    Raises:
        UnsupportedTypeError: If ``param.otp_type`` is neither TOTP nor HOTP.
    """
    if param.otp_type is OtpType.TOTP:
        code = generate_totp(
            param.secret,
            digits=param.digits,
            algorithm=param.algorithm,
            timestamp=now,
        )
        return code, param

    if param.otp_type is OtpType.HOTP:
        code, counter = generate_hotp(
            param.secret, param.counter, param.digits, param.algorithm
        )
        return code, param.with_counter(counter)

    raise UnsupportedTypeError(
        f"generation: unsupported OTP type {param.otp_type!r} for {param.name!r}"
    )


def generate_safe(
    param: OtpParameter,
    now: Optional[float] = None,
    log_level: int = logging.ERROR,
) -> GeneratedCode:
    """
    Like :func:`generate` but reports failures as a ``"failed"`` code.

    The traceback is logged at ``log_level``; periodic callers such as the
    tray refresh pass ``logging.DEBUG``.
    """
    try:
        code, state = generate(param, now)
    except Exception as exc:
        logger.log(log_level, "Failed to generate OTP for %s", param.name, exc_info=True)
        return GeneratedCode(code=FAILED_CODE, state=param, error=exc)
    return GeneratedCode(code=code, state=state)
