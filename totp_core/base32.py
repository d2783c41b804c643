#!/usr/bin/env python3
"""
base32.py — Base32 (RFC 4648) codec for OTP secrets.

Authenticator apps show and accept secrets as unpadded, upper-case Base32,
often grouped with spaces ("JBSW Y3DP EHPK 3PXP"). ``decode_base32`` is
therefore lenient: it is case-insensitive, ignores '=' padding and drops any
character outside the 32-symbol alphabet before decoding.

Decoding accumulates bits 5 at a time and a byte is emitted for every 8 bits;
bits left over after the last full byte are discarded. Secrets are
byte-aligned in practice, so nothing meaningful is lost. Encoding goes
through ``base64.b32encode`` with the padding stripped.
"""

import base64
from typing import Union

from .errors import InvalidSecretFormat

BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_SYMBOL_VALUES = {ch: i for i, ch in enumerate(BASE32_ALPHABET)}
# separators tolerated in strict mode
_SEPARATORS = set(" \t\r\n-=")


def decode_base32(text: str, strict: bool = False) -> bytes:
    """
    Decode Base32 text into raw secret bytes.

    Arguments:
        text: Base32 string (any case, spaces/padding allowed)
        strict: when True, characters that are neither Base32 symbols nor
            separators (whitespace, '-', '=') raise instead of being dropped

    Returns:
        bytes: decoded secret (never empty)

    Raises:
        InvalidSecretFormat: input is not a string, has no Base32 symbols,
            or decodes to zero bytes
    """
    if not isinstance(text, str):
        raise InvalidSecretFormat("Secret must be a Base32 string")

    cleaned = []
    for ch in text.upper():
        if ch in _SYMBOL_VALUES:
            cleaned.append(ch)
        elif strict and ch not in _SEPARATORS:
            raise InvalidSecretFormat(f"Invalid Base32 character: {ch!r}")
    if not cleaned:
        raise InvalidSecretFormat("Secret contains no Base32 characters")

    out = bytearray()
    buffer = 0
    bits = 0
    for ch in cleaned:
        buffer = ((buffer << 5) | _SYMBOL_VALUES[ch]) & 0xFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)

    if not out:
        raise InvalidSecretFormat("Secret is too short to hold a single byte")
    return bytes(out)


def encode_base32(data: Union[bytes, bytearray]) -> str:
    """
    Encode raw bytes as unpadded upper-case Base32.

    The last group is zero-filled to 5 bits, so
    ``decode_base32(encode_base32(b)) == b`` holds for every non-empty ``b``.
    """
    return base64.b32encode(bytes(data)).decode("ascii").rstrip("=")
