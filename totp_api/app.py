"""
FLASK APP ENTRY POINT - TOTP API SERVER
=======================================

Sets up the Flask app, enables CORS for browser clients, attaches a shared
RateLimiter and registers the OTP blueprint.

Configuration (environment, overridable through ``create_app(config)``):
- TOTP_RATE_LIMIT_ATTEMPTS   verification attempts per identity (default 5)
- TOTP_RATE_LIMIT_WINDOW_MS  rate limit window in ms (default 60000)
- TOTP_MAX_WINDOW            largest verification window a client may ask for (default 10)
- TOTP_ISSUER                default issuer for provisioning URIs
- CORS_ORIGINS               allowed origins, comma separated (default *)

Run locally:
    python -m totp_api.app
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS

from totp_core.errors import CryptoUnavailable, TOTPError
from totp_core.rate_limiter import DEFAULT_MAX_ATTEMPTS, DEFAULT_WINDOW_MS, RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_MAX_WINDOW = 10


def _load_config() -> dict:
    return {
        "TOTP_RATE_LIMIT_ATTEMPTS": int(os.getenv("TOTP_RATE_LIMIT_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
        "TOTP_RATE_LIMIT_WINDOW_MS": int(os.getenv("TOTP_RATE_LIMIT_WINDOW_MS", DEFAULT_WINDOW_MS)),
        "TOTP_MAX_WINDOW": int(os.getenv("TOTP_MAX_WINDOW", DEFAULT_MAX_WINDOW)),
        "TOTP_ISSUER": os.getenv("TOTP_ISSUER", "TOTP Web"),
        "CORS_ORIGINS": os.getenv("CORS_ORIGINS", "*"),
    }


def create_app(config: dict = None) -> Flask:
    app = Flask(__name__)
    app.config.update(_load_config())
    if config:
        app.config.update(config)

    # Browser frontends run on another origin
    origins = app.config["CORS_ORIGINS"]
    CORS(app, origins=origins.split(",") if isinstance(origins, str) and origins != "*" else origins)

    app.extensions["rate_limiter"] = app.config.get("RATE_LIMITER") or RateLimiter(
        max_attempts=app.config["TOTP_RATE_LIMIT_ATTEMPTS"],
        window_ms=app.config["TOTP_RATE_LIMIT_WINDOW_MS"],
    )

    from .routes import otp_bp
    app.register_blueprint(otp_bp)

    @app.errorhandler(CryptoUnavailable)
    def _crypto_unavailable(e):
        logger.error("HMAC unavailable: %s", e)
        return jsonify({"error": str(e), "code": e.code}), 500

    @app.errorhandler(TOTPError)
    def _totp_error(e):
        logger.info("Rejected request: %s (%s)", e, e.code)
        return jsonify({"error": str(e), "code": e.code}), 400

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "totp-web",
            "endpoints": [
                "POST /api/generate",
                "POST /api/verify",
                "POST /api/otpauth_uri",
                "POST /api/qr_code",
            ],
        })

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(debug=True, host="0.0.0.0", port=5000)
