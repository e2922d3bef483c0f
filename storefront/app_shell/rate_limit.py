"""
In-process sliding-window limiter for the unauthenticated auth endpoints.

Attempts are remembered per (bucket, client ip) for the window configured in
rules.yaml `rate_limits`. History lives in memory, so limits are per worker.
"""

from collections import deque
from datetime import datetime, timedelta
from threading import Lock
from typing import Protocol

from storefront.adapters.clock import SystemClock
from storefront.rules.models import RateLimitRules

DEFAULT_LOGIN_ATTEMPTS = 5
DEFAULT_REGISTER_REQUESTS = 20
SWEEP_INTERVAL_SECONDS = 60


class ClockPort(Protocol):
    def now_utc(self) -> datetime: ...


class RateLimiter:
    def __init__(self, rules: RateLimitRules, clock: ClockPort | None = None) -> None:
        self.rules = rules
        self._clock = clock if clock is not None else SystemClock()
        self._attempts: dict[str, deque[datetime]] = {}
        self._windows: dict[str, int] = {}
        self._next_sweep: datetime | None = None
        self._lock = Lock()

    def hit(self, key: str, window_seconds: int, limit: int) -> bool:
        """Record an attempt under `key` and report whether it is within `limit`."""
        if limit <= 0:
            return False

        now = self._clock.now_utc()
        with self._lock:
            self._sweep(now)
            attempts = self._attempts.setdefault(key, deque())
            self._windows[key] = window_seconds
            self._trim(attempts, now, window_seconds)
            if len(attempts) >= limit:
                return False
            attempts.append(now)
            return True

    def _trim(self, attempts: deque[datetime], now: datetime, window_seconds: int) -> None:
        cutoff = now - timedelta(seconds=window_seconds)
        while attempts and attempts[0] <= cutoff:
            attempts.popleft()

    def _sweep(self, now: datetime) -> None:
        """Forget clients whose whole history has left its window."""
        if self._next_sweep is not None and now < self._next_sweep:
            return
        self._next_sweep = now + timedelta(seconds=SWEEP_INTERVAL_SECONDS)
        for key in list(self._attempts):
            attempts = self._attempts[key]
            self._trim(attempts, now, self._windows[key])
            if not attempts:
                del self._attempts[key]
                del self._windows[key]

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._attempts)

    def check_login(self, ip: str) -> bool:
        window = self.rules.login
        return self.hit(f"login:{ip}", window.window_seconds, self._login_limit())

    def check_register(self, ip: str) -> bool:
        window = self.rules.register
        return self.hit(f"register:{ip}", window.window_seconds, self._register_limit())

    def _login_limit(self) -> int:
        limit = self.rules.login.max_attempts
        return limit if limit is not None else DEFAULT_LOGIN_ATTEMPTS

    def _register_limit(self) -> int:
        limit = self.rules.register.max_requests
        return limit if limit is not None else DEFAULT_REGISTER_REQUESTS

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()
            self._windows.clear()
            self._next_sweep = None
