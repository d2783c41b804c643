import hashlib
import hmac
from unittest.mock import patch

import pyotp
import pytest

from totp_core import (
    CryptoUnavailable,
    CustomAlphabet,
    DecimalAlphabet,
    InvalidConfiguration,
    InvalidToken,
    encode_base32,
    hotp,
    int_to_bytes,
    make_alphabet,
    verify_hotp,
)
from totp_core.otp_core import dynamic_truncate

from .conftest import RFC_SEEDS, VALID_SECRET

# RFC 4226 Appendix D
RFC4226_CODES = [
    "755224", "287082", "359152", "969429", "338314",
    "254676", "287922", "162583", "399871", "520489",
]


def test_int_to_bytes_big_endian():
    assert int_to_bytes(0) == b"\x00" * 8
    assert int_to_bytes(1) == b"\x00\x00\x00\x00\x00\x00\x00\x01"
    assert int_to_bytes(0x0102030405060708) == bytes(range(1, 9))
    assert int_to_bytes(2 ** 64 - 1) == b"\xff" * 8


def test_dynamic_truncate_rfc_example():
    # RFC 4226 section 5.4
    digest = bytes.fromhex("1f8698690e02ca16618550ef7f19da8e945b555a")
    assert dynamic_truncate(digest) == 0x50EF7F19


@pytest.mark.parametrize("counter,expected", enumerate(RFC4226_CODES))
def test_rfc4226_vectors(counter, expected):
    secret = encode_base32(RFC_SEEDS["SHA-1"])
    assert hotp(secret, counter) == expected


def test_raw_bytes_secret_matches_base32_secret():
    raw = RFC_SEEDS["SHA-1"]
    assert hotp(raw, 3) == hotp(encode_base32(raw), 3)


@pytest.mark.parametrize("algorithm,digest", [
    ("SHA-1", hashlib.sha1),
    ("SHA-256", hashlib.sha256),
    ("SHA-512", hashlib.sha512),
])
@pytest.mark.parametrize("digits", [6, 8])
def test_matches_pyotp(algorithm, digest, digits):
    reference = pyotp.HOTP(VALID_SECRET, digits=digits, digest=digest)
    for counter in (0, 1, 42, 123456789):
        assert hotp(VALID_SECRET, counter, algorithm, digits) == reference.at(counter)


def test_algorithm_spellings_are_equivalent():
    expected = hotp(VALID_SECRET, 7, "SHA-256")
    assert hotp(VALID_SECRET, 7, "sha256") == expected
    assert hotp(VALID_SECRET, 7, "SHA256") == expected


def test_unknown_algorithm():
    with pytest.raises(InvalidConfiguration):
        hotp(VALID_SECRET, 1, "MD5")


def test_is_deterministic():
    assert hotp(VALID_SECRET, 99, "SHA-512", 8) == hotp(VALID_SECRET, 99, "SHA-512", 8)


def test_short_codes_are_zero_padded():
    for counter in range(50):
        code = hotp(VALID_SECRET, counter, digits=4)
        assert len(code) == 4 and code.isdigit()


@pytest.mark.parametrize("counter", [-1, 2 ** 64])
def test_counter_out_of_range(counter):
    with pytest.raises(ValueError):
        hotp(VALID_SECRET, counter)


def test_crypto_unavailable_when_hmac_fails():
    with patch("totp_core.otp_core.hmac.new", side_effect=ValueError("unsupported hash type")):
        with pytest.raises(CryptoUnavailable) as excinfo:
            hotp(VALID_SECRET, 1)
    assert excinfo.value.code == "CRYPTO_NOT_SUPPORTED"


# --- alphabet strategies ---

def test_make_alphabet_selects_strategy():
    assert isinstance(make_alphabet(None), DecimalAlphabet)
    assert isinstance(make_alphabet("0123456789"), DecimalAlphabet)
    assert isinstance(make_alphabet("9876543210"), CustomAlphabet)
    assert make_alphabet("AB") == CustomAlphabet("AB")


@pytest.mark.parametrize("symbols", ["", "A", "AAAA"])
def test_custom_alphabet_needs_two_distinct_symbols(symbols):
    with pytest.raises(InvalidConfiguration):
        CustomAlphabet(symbols)


def _rotating_slice_code(key, counter, symbols, digits, digestmod):
    digest = hmac.new(key, int_to_bytes(counter), digestmod).digest()
    size = len(digest)
    out = ""
    for i in range(digits):
        window = bytes(digest[(i * 4 + j) % size] for j in range(4))
        out += symbols[int.from_bytes(window, "big") % len(symbols)]
    return out


def test_custom_alphabet_rotating_slices():
    symbols = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    key = RFC_SEEDS["SHA-1"]
    expected = _rotating_slice_code(key, 5, symbols, 8, hashlib.sha1)
    assert hotp(key, 5, "SHA-1", 8, symbols) == expected


def test_custom_alphabet_wraps_around_short_digest():
    # 10 symbols x 4 bytes = 40 bytes > 20-byte SHA-1 digest
    symbols = "XY"
    key = RFC_SEEDS["SHA-1"]
    code = hotp(key, 0, "SHA-1", 10, symbols)
    assert len(code) == 10
    assert set(code) <= set(symbols)
    assert code == _rotating_slice_code(key, 0, symbols, 10, hashlib.sha1)
    # positions 5..9 reuse the bytes of positions 0..4
    assert code[5:] == code[:5]


def test_reordered_decimal_set_uses_custom_strategy():
    code = hotp(VALID_SECRET, 1, alphabet="9876543210")
    assert code == _rotating_slice_code(b"Hello!\xde\xad\xbe\xef", 1, "9876543210", 6, hashlib.sha1)


# --- verify_hotp ---

def test_verify_hotp_look_ahead():
    code = hotp(VALID_SECRET, 11)
    assert verify_hotp(VALID_SECRET, code, 10, look_ahead=1) == (True, 12)
    assert verify_hotp(VALID_SECRET, code, 11, look_ahead=0) == (True, 12)


def test_verify_hotp_rejects_old_counter():
    code = hotp(VALID_SECRET, 9)
    assert verify_hotp(VALID_SECRET, code, 10, look_ahead=3) == (False, 10)


def test_verify_hotp_format_guard():
    with pytest.raises(InvalidToken):
        verify_hotp(VALID_SECRET, "12345", 0)
    with pytest.raises(InvalidToken):
        verify_hotp(VALID_SECRET, "12a456", 0)


def test_verify_hotp_non_ascii_alphabet():
    code = hotp(VALID_SECRET, 3, alphabet="αβγδεζηθικ")
    assert verify_hotp(VALID_SECRET, code, 3, alphabet="αβγδεζηθικ") == (True, 4)
    assert verify_hotp(VALID_SECRET, code, 4, alphabet="αβγδεζηθικ") == (False, 4)
