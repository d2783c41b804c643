"""
totp_api package - Flask JSON API around totp_core.
"""

from .app import create_app

__all__ = ["create_app"]
