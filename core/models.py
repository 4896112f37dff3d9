"""
Value types shared by the migration decoder, the code generator and the vault.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from core.totp import Algorithm


class OtpType(str, Enum):
    """Kind of one-time password."""

    TOTP = "totp"
    HOTP = "hotp"


@dataclass(frozen=True)
class OtpParameter:
    """
    One enrolled OTP secret.

    Instances are immutable. HOTP generation hands back a copy with the
    advanced counter (see :meth:`with_counter`); persisting it is the
    caller's job.
    """

    secret: bytes = field(repr=False)   # raw HMAC key, never empty
    name: str                           # account name, the store key
    issuer: str = ""
    algorithm: Algorithm = Algorithm.SHA1
    digits: int = 6
    otp_type: OtpType = OtpType.TOTP
    counter: int = 0                    # HOTP only, next value pre-increment

    @property
    def is_hotp(self) -> bool:
        return self.otp_type is OtpType.HOTP

    @property
    def label(self) -> str:
        """``issuer:name`` when an issuer is known, otherwise just the name."""
        return f"{self.issuer}:{self.name}" if self.issuer else self.name

    def with_counter(self, counter: int) -> "OtpParameter":
        return replace(self, counter=counter)
