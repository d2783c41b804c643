#!/usr/bin/env python3
"""
otp_core.py — Core library for HOTP (RFC 4226) / TOTP (RFC 6238).

Goals:
- Pure functions / small classes that the CLI and the HTTP API call directly.
- No argparse, no file or database I/O: secrets come in as arguments and
  generated secrets are handed back to the caller to store.

Pipeline:
    TOTPEngine.generate -> counter = floor(now / period) + offset
                        -> int_to_bytes(counter)       (8-byte big-endian)
                        -> HMAC(algorithm, secret, counter_bytes)
                        -> alphabet strategy           (truncation + formatting)

Two output strategies share the HMAC step:
- DecimalAlphabet: RFC 4226 dynamic truncation, compatible with Google
  Authenticator / Authy. Used whenever the alphabet is exactly "0123456789".
- CustomAlphabet: one symbol per position, each from a 4-byte slice of the
  digest at a rotating offset. This is an opt-in extension and is NOT
  interoperable with authenticator apps.
"""

import hashlib
import hmac
import logging
import os
import secrets
import struct
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple, Union
from urllib.parse import quote, urlencode

from .base32 import BASE32_ALPHABET, decode_base32, encode_base32
from .errors import CryptoUnavailable, InvalidConfiguration, InvalidSecretFormat, InvalidToken

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_ALGORITHM = "SHA-1"
DEFAULT_DIGITS = 6          # standard: 6 digits
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
DEFAULT_WINDOW = 1          # +/- periods accepted on verify
DECIMAL_SYMBOLS = "0123456789"
SECRET_BYTES = 20           # 160-bit secret (common practice)
MAX_DIGITS = 10
BACKUP_CODE_SYMBOLS = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"  # no 0/O, 1/I/L

# canonical name -> hashlib name
_ALGORITHMS = {
    "SHA-1": "sha1",
    "SHA-256": "sha256",
    "SHA-512": "sha512",
}


def normalize_algorithm(name: str) -> str:
    """
    Map "sha1", "SHA1", "SHA-1" (and the 256/512 variants) to the canonical
    "SHA-1" / "SHA-256" / "SHA-512".

    Raises:
        InvalidConfiguration: unknown algorithm
    """
    if isinstance(name, str):
        key = name.strip().upper().replace("_", "-")
        if "-" not in key and key.startswith("SHA"):
            key = "SHA-" + key[3:]
        if key in _ALGORITHMS:
            return key
    raise InvalidConfiguration(
        f"Unsupported algorithm {name!r}; expected one of {', '.join(_ALGORITHMS)}"
    )


# --- Alphabet strategies ---------------------------------------------------
class DecimalAlphabet:
    """RFC 4226 output: dynamic truncation, then ``% 10**digits``."""

    symbols = DECIMAL_SYMBOLS
    rfc_compatible = True

    def render(self, digest: bytes, digits: int) -> str:
        dbc = dynamic_truncate(digest)
        return str(dbc % (10 ** digits)).zfill(digits)

    def __eq__(self, other):
        return isinstance(other, DecimalAlphabet)

    def __hash__(self):
        return hash(self.symbols)

    def __repr__(self):
        return "DecimalAlphabet()"


class CustomAlphabet:
    """
    Non-RFC output over an arbitrary symbol set.

    Position ``i`` reads the 4 digest bytes at ``(i*4 + j) % len(digest)``
    (j = 0..3), interprets them as an unsigned 32-bit big-endian integer and
    picks ``symbols[value % len(symbols)]``. Indices wrap around the digest,
    so any digit count works with any hash length.

    Codes produced here cannot be checked by standard authenticator apps.
    """

    rfc_compatible = False

    def __init__(self, symbols: str):
        if not isinstance(symbols, str) or len(set(symbols)) < 2:
            raise InvalidConfiguration("Alphabet must contain at least 2 distinct symbols")
        self.symbols = symbols

    def render(self, digest: bytes, digits: int) -> str:
        size = len(digest)
        out = []
        for i in range(digits):
            base = i * 4
            value = (
                (digest[base % size] << 24)
                | (digest[(base + 1) % size] << 16)
                | (digest[(base + 2) % size] << 8)
                | digest[(base + 3) % size]
            )
            out.append(self.symbols[value % len(self.symbols)])
        return "".join(out)

    def __eq__(self, other):
        return isinstance(other, CustomAlphabet) and other.symbols == self.symbols

    def __hash__(self):
        return hash(self.symbols)

    def __repr__(self):
        return f"CustomAlphabet({self.symbols!r})"


Alphabet = Union[DecimalAlphabet, CustomAlphabet]


def make_alphabet(symbols: Union[str, Alphabet, None] = None) -> Alphabet:
    """Pick the output strategy: exactly "0123456789" (or None) is the RFC path."""
    if isinstance(symbols, (DecimalAlphabet, CustomAlphabet)):
        return symbols
    if symbols is None or symbols == DECIMAL_SYMBOLS:
        return DecimalAlphabet()
    return CustomAlphabet(symbols)


# --- Configuration ---------------------------------------------------------
@dataclass(frozen=True)
class TOTPConfig:
    """
    Immutable TOTP settings.

    Defaults follow RFC 6238 / Google Authenticator: SHA-1, 6 digits, 30s,
    one period of skew on each side. ``alphabet`` may be given as a string;
    it is converted to its strategy object on construction.
    """

    secret: Optional[str] = None
    algorithm: str = DEFAULT_ALGORITHM
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_TIME_STEP
    window: int = DEFAULT_WINDOW
    alphabet: Union[str, Alphabet] = DECIMAL_SYMBOLS

    def __post_init__(self):
        object.__setattr__(self, "algorithm", normalize_algorithm(self.algorithm))
        object.__setattr__(self, "alphabet", make_alphabet(self.alphabet))
        if not _is_int(self.digits) or not 1 <= self.digits <= MAX_DIGITS:
            raise InvalidConfiguration(f"digits must be an integer between 1 and {MAX_DIGITS}")
        if not _is_int(self.period) or self.period < 1:
            raise InvalidConfiguration("period must be a positive number of seconds")
        if not _is_int(self.window) or self.window < 0:
            raise InvalidConfiguration("window must be a non-negative integer")
        if self.secret is not None and not isinstance(self.secret, str):
            raise InvalidSecretFormat("Secret must be a Base32 string")

    @property
    def symbols(self) -> str:
        return self.alphabet.symbols


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class GeneratedCode:
    """Result of one generation call."""

    token: str
    secret: str
    remaining_seconds: int


# --- Utility ---------------------------------------------------------------
def generate_base32_secret(num_bytes: int = SECRET_BYTES) -> str:
    """
    Generate a random secret and return it as unpadded Base32.

    - ``num_bytes`` bytes come from os.urandom (CSPRNG); 20 bytes = 160 bits.
    - Base32 so it can be typed into / scanned by authenticator apps.
    """
    if num_bytes < 1:
        raise InvalidConfiguration("Secret length must be at least 1 byte")
    return encode_base32(os.urandom(num_bytes))


def generate_backup_codes(count: int = 8, length: int = 8) -> List[str]:
    """One-time recovery codes, drawn from an alphabet without look-alike characters."""
    if count < 0 or length < 1:
        raise InvalidConfiguration("count must be >= 0 and length >= 1")
    return [
        "".join(secrets.choice(BACKUP_CODE_SYMBOLS) for _ in range(length))
        for _ in range(count)
    ]


def format_time_remaining(remaining_seconds: int) -> str:
    """29 -> "29s", 65 -> "1m 5s"."""
    if remaining_seconds < 60:
        return f"{remaining_seconds}s"
    minutes, seconds = divmod(remaining_seconds, 60)
    return f"{minutes}m {seconds}s"


def validate_configuration(config: TOTPConfig) -> List[str]:
    """
    Advisory checks on top of the hard invariants enforced by TOTPConfig.

    Returns a list of human-readable warnings; an empty list means the
    configuration is within the commonly recommended ranges.
    """
    warnings = []
    if not 4 <= config.digits <= 8:
        warnings.append("Digits should be between 4 and 8")
    if not 15 <= config.period <= 60:
        warnings.append("Period should be between 15 and 60 seconds")
    if len(set(config.symbols)) < 10:
        warnings.append("Alphabet should have at least 10 distinct symbols")
    if not config.alphabet.rfc_compatible:
        warnings.append("Custom alphabet codes are not compatible with authenticator apps")
    return warnings


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Encode a counter as the 8-byte big-endian message required by RFC 4226.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    RFC 4226 dynamic truncation.

    - offset = last_byte & 0x0F
    - take 4 bytes from offset, clear the MSB of the first one (0x7F)
    - return the resulting 31-bit unsigned integer
    """
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def hmac_digest(key: bytes, msg: bytes, algorithm: str = DEFAULT_ALGORITHM) -> bytes:
    """
    HMAC(algorithm, key, msg).

    Raises:
        CryptoUnavailable: the host hashlib cannot provide the digest
    """
    name = _ALGORITHMS[normalize_algorithm(algorithm)]
    try:
        return hmac.new(key, msg, getattr(hashlib, name)).digest()
    except (AttributeError, ValueError, TypeError) as e:
        raise CryptoUnavailable(f"HMAC-{algorithm} is not available on this host") from e


def _secret_bytes(secret: Union[str, bytes]) -> bytes:
    if isinstance(secret, (bytes, bytearray)):
        if not secret:
            raise InvalidSecretFormat("Secret must not be empty")
        return bytes(secret)
    return decode_base32(secret)


def hotp(
    secret: Union[str, bytes],
    counter: int,
    algorithm: str = DEFAULT_ALGORITHM,
    digits: int = DEFAULT_DIGITS,
    alphabet: Union[str, Alphabet, None] = None,
) -> str:
    """
    Generate one HOTP code (RFC 4226 for the decimal alphabet).

    Steps:
    1. Base32-decode secret -> raw key bytes (raw bytes are used as-is)
    2. Message = 8-byte counter (big-endian)
    3. HMAC(algorithm, key, message)
    4. Render through the alphabet strategy

    Arguments:
        secret: Base32 secret or raw key bytes
        counter: unsigned 64-bit counter
        algorithm: "SHA-1", "SHA-256" or "SHA-512"
        digits: code length
        alphabet: None / "0123456789" for RFC codes, any other string for
            the custom-alphabet extension

    Returns:
        str: the code, exactly ``digits`` symbols long

    Raises:
        InvalidSecretFormat: bad Base32 secret
        CryptoUnavailable: HMAC cannot be computed
        ValueError: counter outside the unsigned 64-bit range
    """
    if not _is_int(counter) or not 0 <= counter < 2 ** 64:
        raise ValueError(f"Counter out of unsigned 64-bit range: {counter!r}")
    strategy = make_alphabet(alphabet)
    key = _secret_bytes(secret)

    digest = hmac_digest(key, int_to_bytes(counter), algorithm)
    code = strategy.render(digest, digits)
    logger.debug("HOTP: HMAC-%s(counter=%d) -> %d-symbol code", algorithm, counter, digits)
    return code


def verify_hotp(
    secret: Union[str, bytes],
    code: str,
    counter: int,
    look_ahead: int = 1,
    algorithm: str = DEFAULT_ALGORITHM,
    digits: int = DEFAULT_DIGITS,
    alphabet: Union[str, Alphabet, None] = None,
) -> Tuple[bool, int]:
    """
    Verify an event-based HOTP code against ``counter .. counter+look_ahead``.

    Returns:
        (valid, next_counter): on success next_counter is the matched
        counter + 1, which the caller must persist; otherwise the counter
        is returned unchanged.
    """
    strategy = make_alphabet(alphabet)
    _check_token(code, digits, strategy)
    if look_ahead < 0:
        raise InvalidConfiguration("look_ahead must be non-negative")

    matched = None
    for i in range(look_ahead + 1):
        candidate = counter + i
        if candidate >= 2 ** 64:
            break
        expected = hotp(secret, candidate, algorithm, digits, strategy)
        if hmac.compare_digest(expected.encode("utf-8"), code.encode("utf-8")) and matched is None:
            matched = candidate
    if matched is None:
        return False, counter
    return True, matched + 1


def _check_token(code, digits: int, alphabet: Alphabet) -> None:
    if not isinstance(code, str):
        raise InvalidToken("Token must be a string")
    if len(code) != digits:
        raise InvalidToken(f"Invalid token length: expected {digits}, got {len(code)}")
    allowed = set(alphabet.symbols)
    if any(ch not in allowed for ch in code):
        raise InvalidToken("Token contains characters outside the configured alphabet")


# --- TOTP engine -----------------------------------------------------------
class TOTPEngine:
    """
    Time-based codes on top of ``hotp``.

    The engine holds no state besides its clock, a callable returning Unix
    time in seconds. Tests inject a fixed clock; production uses time.time.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    def now(self) -> int:
        return int(self.clock())

    def current_counter(self, period: int = DEFAULT_TIME_STEP) -> int:
        return self.now() // period

    def generate(
        self,
        config: Optional[TOTPConfig] = None,
        secret: Optional[str] = None,
        window_offset: int = 0,
    ) -> GeneratedCode:
        """
        Generate the code for the current period (shifted by ``window_offset``).

        Secret resolution: ``secret`` argument, then ``config.secret``, then a
        freshly generated random secret. The secret actually used is returned
        so that a caller who passed none can store it.

        Returns:
            GeneratedCode(token, secret, remaining_seconds)

        Raises:
            InvalidConfiguration: the shifted counter leaves the unsigned 64-bit range
        """
        config = config or TOTPConfig()
        secret = secret or config.secret or generate_base32_secret()

        now = self.now()
        if not _is_int(window_offset):
            raise InvalidConfiguration("window_offset must be an integer")
        counter = now // config.period + window_offset
        if not 0 <= counter < 2 ** 64:
            raise InvalidConfiguration(f"window_offset {window_offset} moves the counter out of range")
        token = hotp(secret, counter, config.algorithm, config.digits, config.alphabet)
        remaining = config.period - (now % config.period)
        logger.debug("TOTP: time=%d, counter=%d, remaining=%ds", now, counter, remaining)
        return GeneratedCode(token=token, secret=secret, remaining_seconds=remaining)

    def verify(self, code: str, config: TOTPConfig) -> bool:
        """
        Check ``code`` against every period in ``now +/- config.window``.

        The format check runs first and raises InvalidToken for a wrong
        length or foreign symbol. Every candidate is computed and compared
        in constant time; a code that matches none returns False.

        Raises:
            InvalidSecretFormat: config has no secret, or it is not Base32
            InvalidToken: malformed code
            CryptoUnavailable: HMAC cannot be computed
        """
        if not config.secret:
            raise InvalidSecretFormat("Secret is required for verification")
        _check_token(code, config.digits, config.alphabet)
        key = decode_base32(config.secret)

        base = self.current_counter(config.period)
        matched = False
        for offset in range(-config.window, config.window + 1):
            candidate = base + offset
            if candidate < 0:
                continue
            expected = hotp(key, candidate, config.algorithm, config.digits, config.alphabet)
            if hmac.compare_digest(expected.encode("utf-8"), code.encode("utf-8")):
                matched = True
        logger.debug("TOTP verify: base counter=%d, window=%d, valid=%s", base, config.window, matched)
        return matched


_default_engine = TOTPEngine()


def generate_totp(
    config: Optional[TOTPConfig] = None,
    secret: Optional[str] = None,
    window_offset: int = 0,
) -> GeneratedCode:
    """Module-level shortcut for ``TOTPEngine().generate`` on the wall clock."""
    return _default_engine.generate(config, secret, window_offset)


def verify_totp(code: str, config: TOTPConfig) -> bool:
    """Module-level shortcut for ``TOTPEngine().verify`` on the wall clock."""
    return _default_engine.verify(code, config)


def check_configuration(config: TOTPConfig, engine: Optional[TOTPEngine] = None) -> bool:
    """
    Self-test: generate a code with ``config`` and verify it straight back.

    Returns False instead of raising, so it can drive a settings form.
    """
    engine = engine or _default_engine
    try:
        result = engine.generate(config)
        return engine.verify(result.token, replace(config, secret=result.secret))
    except Exception:
        logger.exception("Configuration self-test failed for %r", config)
        return False


# --- Provisioning ----------------------------------------------------------
def format_otpauth_uri(
    secret_b32: str,
    account_name: str,
    issuer: Optional[str] = None,
    algorithm: str = DEFAULT_ALGORITHM,
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_TIME_STEP,
) -> str:
    """
    Build the otpauth:// URI that authenticator apps import (usually via QR).

        otpauth://totp/<issuer:account>?secret=...&issuer=...&algorithm=SHA1&digits=6&period=30

    The label is percent-encoded; ``issuer`` is left out entirely when not
    given. Algorithm names are written the way the apps expect ("SHA1").
    """
    if not account_name:
        raise InvalidConfiguration("account_name is required")
    # validate the secret before publishing it
    decode_base32(secret_b32)

    label = f"{issuer}:{account_name}" if issuer else account_name
    params = {"secret": "".join(ch for ch in secret_b32.upper() if ch in BASE32_ALPHABET)}
    if issuer:
        params["issuer"] = issuer
    params["algorithm"] = normalize_algorithm(algorithm).replace("-", "")
    params["digits"] = digits
    params["period"] = period
    return f"otpauth://totp/{quote(label, safe='')}?{urlencode(params, quote_via=quote)}"
