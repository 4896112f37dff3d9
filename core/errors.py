"""
Exception hierarchy for otpbridge.

Every error raised on purpose by the decoder, generator or store derives from
:class:`OtpError`, which is itself a ``ValueError`` so callers that only care
about "bad input" can keep catching that.
"""


class OtpError(ValueError):
    """Base class for all otpbridge errors."""


class InvalidLinkError(OtpError):
    """The migration link has the wrong scheme, host or query."""


class DecodeError(OtpError):
    """Base64 or protobuf wire data is malformed."""


class UnknownAlgorithmError(OtpError):
    """An algorithm enum code outside the documented table."""


class UnknownDigitCountError(OtpError):
    """A digit-count enum code outside the documented table."""


class UnsupportedTypeError(OtpError):
    """An OTP type that is neither TOTP nor HOTP."""


class NotFoundError(OtpError):
    """No stored parameter under the requested name."""


class InvalidPasswordError(OtpError):
    """The master password does not unlock the parameter store."""


class ConfigError(OtpError):
    """An environment setting has an invalid value."""
