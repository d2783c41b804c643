"""
totp_core package
=================

HOTP/TOTP generation and verification (RFC 4226 & RFC 6238), a Base32
secret codec, and a per-identity rate limiter for verification attempts.

Core algorithm
──────────────────────────────────────────────
- HOTP: code = Truncate(HMAC(key=secret, msg=counter)) mod 10^digits
- TOTP: HOTP with counter = floor(unix_time / period)
- Dynamic truncation: 4 bytes at offset (last byte & 0x0F), top bit cleared.

Defaults are SHA-1, 6 digits, 30 s period, window of 1 period, which is what
Google Authenticator / Authy expect. SHA-256 and SHA-512 are supported too.

Usage
──────────────────────────────────────────────
>>> from totp_core import TOTPConfig, generate_totp, verify_totp
>>> result = generate_totp()                       # random secret
>>> verify_totp(result.token, TOTPConfig(secret=result.secret))
True

A custom alphabet (``TOTPConfig(alphabet="ABCDEF...")``) switches to a
non-RFC rendering that authenticator apps cannot reproduce. Use it only when
both sides run this library.
"""

from .base32 import decode_base32, encode_base32
from .errors import (
    CryptoUnavailable,
    InvalidConfiguration,
    InvalidSecretFormat,
    InvalidToken,
    TOTPError,
)
from .otp_core import (
    DEFAULT_DIGITS,
    DEFAULT_TIME_STEP,
    CustomAlphabet,
    DecimalAlphabet,
    GeneratedCode,
    TOTPConfig,
    TOTPEngine,
    check_configuration,
    format_otpauth_uri,
    format_time_remaining,
    generate_backup_codes,
    generate_base32_secret,
    generate_totp,
    hotp,
    int_to_bytes,
    make_alphabet,
    validate_configuration,
    verify_hotp,
    verify_totp,
)
from .rate_limiter import RateLimiter

__version__ = "1.3.0"

__all__ = [
    "CryptoUnavailable",
    "CustomAlphabet",
    "DEFAULT_DIGITS",
    "DEFAULT_TIME_STEP",
    "DecimalAlphabet",
    "GeneratedCode",
    "InvalidConfiguration",
    "InvalidSecretFormat",
    "InvalidToken",
    "RateLimiter",
    "TOTPConfig",
    "TOTPEngine",
    "TOTPError",
    "check_configuration",
    "decode_base32",
    "encode_base32",
    "format_otpauth_uri",
    "format_time_remaining",
    "generate_backup_codes",
    "generate_base32_secret",
    "generate_totp",
    "hotp",
    "int_to_bytes",
    "make_alphabet",
    "validate_configuration",
    "verify_hotp",
    "verify_totp",
]
