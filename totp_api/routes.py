"""
TOTP API ROUTES - FLASK BLUEPRINT

JSON endpoints around totp_core. The server stores nothing: every request
carries the secret it works on, and generated secrets are returned to the
client to keep.

Common body fields (all optional unless stated):
    secret     Base32 secret
    algorithm  "SHA-1" | "SHA-256" | "SHA-512"
    digits     code length (default 6)
    period     seconds per code (default 30)
    window     periods accepted on each side of now (default 1, at most
               TOTP_MAX_WINDOW)
    charSet    custom alphabet (not authenticator-app compatible)

EXAMPLES:
curl -X POST http://localhost:5000/api/generate -H "Content-Type: application/json" -d "{}"
curl -X POST http://localhost:5000/api/verify -H "Content-Type: application/json" \
     -d '{"code": "123456", "secret": "JBSWY3DPEHPK3PXP", "identity": "alice"}'
"""

import base64
import io
import logging

import qrcode
from flask import Blueprint, current_app, jsonify, request

from totp_core import otp_core
from totp_core.errors import InvalidConfiguration, InvalidToken

logger = logging.getLogger(__name__)

otp_bp = Blueprint("otp", __name__, url_prefix="/api")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfiguration("JSON body must be an object")
    return data


def _config_from_body(data: dict) -> otp_core.TOTPConfig:
    config = otp_core.TOTPConfig(
        secret=data.get("secret"),
        algorithm=data.get("algorithm", otp_core.DEFAULT_ALGORITHM),
        digits=data.get("digits", otp_core.DEFAULT_DIGITS),
        period=data.get("period", otp_core.DEFAULT_TIME_STEP),
        window=data.get("window", otp_core.DEFAULT_WINDOW),
        alphabet=data.get("charSet") or otp_core.DECIMAL_SYMBOLS,
    )
    max_window = current_app.config["TOTP_MAX_WINDOW"]
    if config.window > max_window:
        raise InvalidConfiguration(f"window must not exceed {max_window}")
    return config


def _limiter():
    return current_app.extensions["rate_limiter"]


@otp_bp.route("/generate", methods=["POST"])
def generate():
    """
    CURRENT CODE (creates a secret when none is sent)

    Output:
      {"token": "123456", "secret": "JBSW...", "remaining_seconds": 17}
    """
    data = _json_body()
    config = _config_from_body(data)
    result = otp_core.generate_totp(config, window_offset=data.get("window_offset", 0))
    return jsonify({
        "token": result.token,
        "secret": result.secret,
        "remaining_seconds": result.remaining_seconds,
    })


@otp_bp.route("/verify", methods=["POST"])
def verify():
    """
    VERIFY A CODE

    Input:
      {"code": "123456", "secret": "JBSW...", "identity": "alice", "window": 1}

    ``identity`` keys the rate limiter (defaults to the client address).
    Output:
      {"valid": true, "remaining_attempts": 5}
      429 {"error": ..., "retry_after_ms": 42000} once the limit is hit
    """
    data = _json_body()
    identity = str(data.get("identity") or request.remote_addr or "anonymous")

    # every request counts against the budget, malformed ones included
    limiter = _limiter()
    if limiter.is_rate_limited(identity):
        return jsonify({
            "error": "Too many attempts",
            "retry_after_ms": int(limiter.time_until_reset(identity)),
        }), 429

    if "code" not in data:
        raise InvalidToken("code is required")
    config = _config_from_body(data)

    valid = otp_core.verify_totp(data["code"], config)
    if valid:
        limiter.reset(identity)
    else:
        logger.info("Invalid code for %r", identity)
    return jsonify({
        "valid": valid,
        "remaining_attempts": limiter.remaining_attempts(identity),
    })


def _otpauth_uri(data: dict) -> str:
    config = _config_from_body(data)
    if not config.secret:
        raise InvalidConfiguration("secret is required")
    return otp_core.format_otpauth_uri(
        config.secret,
        data.get("accountName", ""),
        issuer=data.get("issuer", current_app.config["TOTP_ISSUER"]),
        algorithm=config.algorithm,
        digits=config.digits,
        period=config.period,
    )


@otp_bp.route("/otpauth_uri", methods=["POST"])
def otpauth_uri():
    """
    PROVISIONING URI

    Input:
      {"secret": "JBSW...", "accountName": "alice@example.com", "issuer": "MyApp"}
    """
    return jsonify({"uri": _otpauth_uri(_json_body())})


@otp_bp.route("/qr_code", methods=["POST"])
def qr_code():
    """
    QR CODE (PNG data URI) for the provisioning URI, same input as /otpauth_uri
    """
    uri = _otpauth_uri(_json_body())

    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    img_str = base64.b64encode(buffer.getvalue()).decode()
    return jsonify({"qr_code": f"data:image/png;base64,{img_str}", "uri": uri})
