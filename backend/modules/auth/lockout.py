"""
Sliding-window lockout for repeated failed sign-ins.

Failures are tracked per login identifier. Once ``max_attempts`` failures
fall inside the window the login is locked until the oldest of them ages
out; the lockout is reported to the caller, never silently retried.

Sign-in reserves its attempt up front with ``reserve()``, so parallel
requests for one login cannot all pass the check before any of them has
been counted. A successful sign-in calls ``reset()``; an attempt that ends
without a verdict hands its slot back with ``release()``.
"""

import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Optional

from .exceptions import AccountLockedError


class LockoutTracker:
    """In-process failure counter keyed by normalized login."""

    def __init__(self, max_attempts: int = 5, window_seconds: int = 900):
        self._max_attempts = max_attempts
        self._window = timedelta(seconds=window_seconds)
        self._failures: dict[str, deque[datetime]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._failures)

    @staticmethod
    def _key(login: str) -> str:
        return login.strip().lower()

    def _live_failures(self, key: str, now: datetime) -> Optional[deque[datetime]]:
        """Prune a login's failures; logins left with none are forgotten. Caller holds the lock."""
        failures = self._failures.get(key)
        if failures is None:
            return None
        cutoff = now - self._window
        while failures and failures[0] <= cutoff:
            failures.popleft()
        if not failures:
            del self._failures[key]
            return None
        return failures

    def _locked_error(self, failures: deque[datetime], now: datetime) -> AccountLockedError:
        unlock_at = failures[-self._max_attempts] + self._window
        retry_after = max(1, int((unlock_at - now).total_seconds() + 0.999))
        return AccountLockedError(retry_after_seconds=retry_after)

    def check(self, login: str, now: datetime) -> None:
        """
        Fail fast if the login is currently locked.

        Raises:
            AccountLockedError: With the number of seconds until the lock lifts
        """
        with self._lock:
            failures = self._live_failures(self._key(login), now)
            if failures is None or len(failures) < self._max_attempts:
                return
            error = self._locked_error(failures, now)
        raise error

    def reserve(self, login: str, now: datetime) -> int:
        """
        Check the lock and count this attempt as a failure in one step.

        Returns:
            The failure count inside the window, this attempt included

        Raises:
            AccountLockedError: If the login is already locked; nothing is recorded
        """
        key = self._key(login)
        with self._lock:
            failures = self._live_failures(key, now)
            if failures is not None and len(failures) >= self._max_attempts:
                error = self._locked_error(failures, now)
            else:
                failures = self._failures.setdefault(key, deque())
                failures.append(now)
                return len(failures)
        raise error

    def release(self, login: str, reserved_at: datetime) -> None:
        """Give back a reservation for an attempt that neither failed nor succeeded."""
        key = self._key(login)
        with self._lock:
            failures = self._failures.get(key)
            if failures is None:
                return
            try:
                failures.remove(reserved_at)
            except ValueError:
                return
            if not failures:
                del self._failures[key]

    def purge(self, now: datetime) -> int:
        """Forget every login whose failures have all aged out; returns how many."""
        with self._lock:
            before = len(self._failures)
            for key in list(self._failures):
                self._live_failures(key, now)
            return before - len(self._failures)

    def is_locked(self, login: str, now: datetime) -> bool:
        try:
            self.check(login, now)
        except AccountLockedError:
            return True
        return False

    def reset(self, login: str) -> None:
        """Forget failures for a login (after a successful sign-in)."""
        with self._lock:
            self._failures.pop(self._key(login), None)

    def clear(self) -> None:
        with self._lock:
            self._failures.clear()
