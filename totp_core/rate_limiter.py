#!/usr/bin/env python3
"""
rate_limiter.py — Per-identity attempt limiting for OTP verification.

A verification window of W periods multiplies an attacker's chance per guess
by 2W+1, so verification endpoints should bound guesses per identity. The
limiter is independent of the OTP engine: the caller checks it before
verifying and resets the identity after a successful verification.

    limiter = RateLimiter(max_attempts=5, window_ms=60_000)
    if limiter.is_rate_limited(username):
        reject(retry_after=limiter.time_until_reset(username))
    elif verify_totp(code, config):
        limiter.reset(username)

State lives in memory only and is lost on restart.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_MS = 60_000


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class RateLimitEntry:
    key: str
    attempt_count: int
    window_start: float


class RateLimiter:
    """
    Fixed-size attempt budget per key, restarted when the window elapses.

    Arguments:
        max_attempts: attempts allowed per window (positive)
        window_ms: window length in milliseconds (positive)
        clock: callable returning the current time in milliseconds;
            defaults to the monotonic clock
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Optional[Callable[[], float]] = None,
    ):
        if not isinstance(max_attempts, int) or max_attempts < 1:
            raise InvalidConfiguration("max_attempts must be a positive integer")
        if not isinstance(window_ms, (int, float)) or window_ms <= 0:
            raise InvalidConfiguration("window_ms must be positive")
        self.max_attempts = max_attempts
        self.window_ms = window_ms
        self._clock = clock or _monotonic_ms
        self._entries: Dict[str, RateLimitEntry] = {}
        # one lock for the whole map: check-then-increment must be atomic per key
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: RateLimitEntry, now: float) -> bool:
        return now - entry.window_start > self.window_ms

    def is_rate_limited(self, key: str) -> bool:
        """
        Record an attempt for ``key`` and report whether it must be refused.

        - first attempt, or window elapsed: start a new window with count 1
        - count already at max_attempts: limited, count is not increased
        - otherwise: count += 1, not limited
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = RateLimitEntry(key, 1, now)
                return False
            if self._expired(entry, now):
                entry.attempt_count = 1
                entry.window_start = now
                return False
            if entry.attempt_count >= self.max_attempts:
                logger.warning("Rate limit reached for %r (%d attempts)", key, entry.attempt_count)
                return True
            entry.attempt_count += 1
            return False

    check_and_record_attempt = is_rate_limited

    def reset(self, key: str) -> None:
        """Forget previous attempts after a successful verification; restarts the window."""
        with self._lock:
            self._entries[key] = RateLimitEntry(key, 0, self._clock())

    def remaining_attempts(self, key: str) -> int:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._expired(entry, self._clock()):
                return self.max_attempts
            return max(0, self.max_attempts - entry.attempt_count)

    def time_until_reset(self, key: str) -> float:
        """Milliseconds until the current window for ``key`` ends (0 if none is running)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return 0
            elapsed = self._clock() - entry.window_start
            if elapsed > self.window_ms:
                return 0
            return self.window_ms - elapsed

    def sweep(self) -> int:
        """Drop entries whose window has elapsed; returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, e in self._entries.items() if self._expired(e, now)]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug("Swept %d expired rate limit entries", len(stale))
        return len(stale)
