# Overview: Failed-login counters per (origin, username) with temporary lockout.

"""
Login Throttling

WHY: Prevent brute-force password attacks by limiting failed login attempts
from one origin against one username. After max_failures consecutive
failures the key is locked for lockout_seconds.

- Keyed by (origin host, username): failures against one username don't
  lock out other usernames or other origins.
- Lazy expiry: nothing sweeps the table. A lock that has run out is
  dropped the next time the key is looked at.
- A successful login clears the key.
- In-memory only. A restart forgets every counter.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .striped import StripedMap


@dataclass(frozen=True)
class LoginAttempt:
    failures: int = 0
    locked_until: Optional[float] = None


class RateLimiter:
    def __init__(
        self,
        max_failures: int = 5,
        lockout_seconds: float = 300,
        *,
        clock: Callable[[], float] = time.monotonic,
        stripes: int = 16,
    ):
        if max_failures < 1:
            raise ValueError("max_failures must be at least 1")
        self.max_failures = max_failures
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._attempts: StripedMap[tuple[str, str], LoginAttempt] = StripedMap(stripes)

    @staticmethod
    def key(origin: str, identity: str) -> tuple[str, str]:
        return (origin, identity)

    def _expire(self, attempt: Optional[LoginAttempt], now: float) -> Optional[LoginAttempt]:
        if attempt is not None and attempt.locked_until is not None and now >= attempt.locked_until:
            return None
        return attempt

    def record_failure(self, key: tuple[str, str]) -> bool:
        """
        Count one failed attempt. Returns True if the key is locked afterwards.
        """
        now = self._clock()

        def _bump(current: Optional[LoginAttempt]) -> LoginAttempt:
            current = self._expire(current, now) or LoginAttempt()
            if current.locked_until is not None:
                return current
            failures = current.failures + 1
            if failures >= self.max_failures:
                return LoginAttempt(failures=failures, locked_until=now + self.lockout_seconds)
            return LoginAttempt(failures=failures)

        attempt = self._attempts.compute(key, _bump)
        return attempt is not None and attempt.locked_until is not None

    def is_locked(self, key: tuple[str, str]) -> bool:
        now = self._clock()
        attempt = self._attempts.compute(key, lambda current: self._expire(current, now))
        return attempt is not None and attempt.locked_until is not None

    def remaining_lockout_seconds(self, key: tuple[str, str]) -> int:
        now = self._clock()
        attempt = self._attempts.compute(key, lambda current: self._expire(current, now))
        if attempt is None or attempt.locked_until is None:
            return 0
        return max(0, int(round(attempt.locked_until - now)))

    def failure_count(self, key: tuple[str, str]) -> int:
        now = self._clock()
        attempt = self._attempts.compute(key, lambda current: self._expire(current, now))
        return attempt.failures if attempt else 0

    def clear(self, key: tuple[str, str]) -> None:
        self._attempts.pop(key)
