#!/usr/bin/env python3
"""
errors.py — Exception types raised by the OTP engine.

Every error carries a short machine-readable ``code`` so that the CLI and the
HTTP API can report failures without string matching.

None of these are retried internally: they describe malformed input or a host
that cannot run the requested HMAC. A wrong OTP code is not an error,
``verify_totp`` simply returns False.
"""

INVALID_SECRET = "INVALID_SECRET"
INVALID_TOKEN = "INVALID_TOKEN"
INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
CRYPTO_NOT_SUPPORTED = "CRYPTO_NOT_SUPPORTED"


class TOTPError(Exception):
    """Base class for all engine errors."""

    code = "TOTP_ERROR"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class InvalidSecretFormat(TOTPError, ValueError):
    """Secret is missing, empty, or not valid Base32."""

    code = INVALID_SECRET


class InvalidToken(TOTPError, ValueError):
    """Candidate code has the wrong length or symbols outside the alphabet."""

    code = INVALID_TOKEN


class InvalidConfiguration(TOTPError, ValueError):
    """Algorithm, digits, period, window or alphabet outside the supported domain."""

    code = INVALID_CONFIGURATION


class CryptoUnavailable(TOTPError, RuntimeError):
    """The host cannot compute the requested HMAC."""

    code = CRYPTO_NOT_SUPPORTED
