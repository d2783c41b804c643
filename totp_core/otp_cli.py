#!/usr/bin/env python3
"""
otp_cli.py — CLI wrapper for otp_core.py

Subcommands:
- generate     : print the current TOTP (creates a secret if none is given)
- verify CODE  : check a code against a secret
- uri          : print the otpauth:// URI to import into authenticator apps
- backup-codes : print one-time recovery codes

Exit status is 0 on success and 1 on any error. A code that simply does not
match is not an error: verify prints "Invalid" and exits 0.

eg..:
    totp-web generate
    totp-web generate --algorithm SHA-256 --digits 8
    totp-web verify 123456 --secret JBSWY3DPEHPK3PXP --window 2
    totp-web uri --secret JBSWY3DPEHPK3PXP --accountName user@example.com --issuer Example
"""

import argparse
import logging
import sys

from . import otp_core
from .errors import TOTPError

logger = logging.getLogger(__name__)


def _config_from_args(args, secret=None) -> otp_core.TOTPConfig:
    return otp_core.TOTPConfig(
        secret=secret,
        algorithm=args.algorithm,
        digits=args.digits,
        period=args.period,
        window=args.window,
        alphabet=args.char_set or otp_core.DECIMAL_SYMBOLS,
    )


# --- CLI command handlers ---
def cmd_generate(args):
    config = _config_from_args(args, args.secret)
    for warning in otp_core.validate_configuration(config):
        logger.warning(warning)
    result = otp_core.generate_totp(config)
    print("Generated TOTP:")
    print("Token:", result.token)
    print("Secret:", result.secret)
    print("Remaining:", otp_core.format_time_remaining(result.remaining_seconds))


def cmd_verify(args):
    if not args.secret:
        raise TOTPError("--secret is required for verify")
    config = _config_from_args(args, args.secret)
    ok = otp_core.verify_totp(args.code, config)
    print("Verification result:", "Valid" if ok else "Invalid")


def cmd_uri(args):
    if not args.secret or not args.account_name:
        raise TOTPError("--secret and --accountName are required")
    uri = otp_core.format_otpauth_uri(
        args.secret,
        args.account_name,
        issuer=args.issuer,
        algorithm=args.algorithm,
        digits=args.digits,
        period=args.period,
    )
    print("TOTP Auth URI:", uri)


def cmd_backup_codes(args):
    for code in otp_core.generate_backup_codes(args.count, args.length):
        print(code)


def cmd_help(args):
    print("'totp-web -h' for help.")


# --- Argparse builder ---
def _add_otp_options(p: argparse.ArgumentParser):
    p.add_argument("--secret", help="Base32 secret")
    p.add_argument("--algorithm", default=otp_core.DEFAULT_ALGORITHM,
                   help="SHA-1, SHA-256 or SHA-512 (default: SHA-1)")
    p.add_argument("--digits", type=int, default=otp_core.DEFAULT_DIGITS,
                   help="Number of code symbols (default: 6)")
    p.add_argument("--period", type=int, default=otp_core.DEFAULT_TIME_STEP,
                   help="Period in seconds (default: 30)")
    p.add_argument("--charSet", dest="char_set",
                   help="Custom character set (not authenticator-app compatible)")
    p.add_argument("--window", type=int, default=otp_core.DEFAULT_WINDOW,
                   help="Accepted periods on each side of now (default: 1)")
    p.add_argument("--accountName", dest="account_name", help="Account label, e.g. user@example.com")
    p.add_argument("--issuer", help="Issuer label, e.g. MyService")
    p.add_argument("--verbose", action="store_true", help="Verbose output")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="totp-web", description="TOTP generator / verifier")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help, verbose=False)

    # generate
    pg = sub.add_parser("generate", help="Generate a TOTP code")
    _add_otp_options(pg)
    pg.set_defaults(func=cmd_generate)

    # verify
    pv = sub.add_parser("verify", help="Verify a TOTP code")
    pv.add_argument("code", help="Code to verify")
    _add_otp_options(pv)
    pv.set_defaults(func=cmd_verify)

    # uri
    pu = sub.add_parser("uri", help="Print the otpauth:// URI")
    _add_otp_options(pu)
    pu.set_defaults(func=cmd_uri)

    # backup-codes
    pb = sub.add_parser("backup-codes", help="Generate one-time recovery codes")
    pb.add_argument("--count", type=int, default=8)
    pb.add_argument("--length", type=int, default=8)
    pb.add_argument("--verbose", action="store_true")
    pb.set_defaults(func=cmd_backup_codes)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except (TOTPError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
