import pytest

from totp_api import create_app
from totp_core import RateLimiter, TOTPEngine

# "Hello!\xde\xad\xbe\xef" in Base32
VALID_SECRET = "JBSWY3DPEHPK3PXP"

# RFC 6238 Appendix B seeds, one per hash algorithm
RFC_SEEDS = {
    "SHA-1": b"12345678901234567890",
    "SHA-256": b"12345678901234567890123456789012",
    "SHA-512": b"1234567890123456789012345678901234567890123456789012345678901234",
}


class FakeClock:
    """Manually advanced clock; returns whatever unit the test chooses."""

    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now += delta


@pytest.fixture
def clock():
    return FakeClock(1_000_000_000)


@pytest.fixture
def engine(clock):
    return TOTPEngine(clock=clock)


@pytest.fixture
def ms_clock():
    return FakeClock(0)


@pytest.fixture
def limiter(ms_clock):
    return RateLimiter(max_attempts=3, window_ms=100, clock=ms_clock)


@pytest.fixture
def app(ms_clock):
    app = create_app({
        "TESTING": True,
        "RATE_LIMITER": RateLimiter(max_attempts=3, window_ms=60_000, clock=ms_clock),
        "TOTP_ISSUER": "Example",
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()
