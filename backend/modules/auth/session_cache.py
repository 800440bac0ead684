"""
Process-wide session cache.

Holds recently verified sessions keyed by token so ``verify`` does not hit
the store on every request. The cache has an explicit lifecycle: the API
calls ``initialize()`` at startup and ``teardown()`` at shutdown.

Revoked tokens are tombstoned until their session would have expired. A
``put`` for a tombstoned token is ignored, so a verify that loaded a session
from the store just before a revoke cannot make it valid again.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

from .models import Session

logger = logging.getLogger(__name__)


class SessionCache:
    """Lock-guarded map of token -> (session, cache expiry)."""

    def __init__(self, ttl_seconds: int = 60, max_entries: int = 10_000):
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_entries = max_entries
        self._entries: dict[str, tuple[Session, datetime]] = {}
        self._tombstones: dict[str, datetime] = {}
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def enabled(self) -> bool:
        return self._ttl.total_seconds() > 0

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tombstones.clear()
            self._initialized = True
        logger.info(
            f"Session cache initialized (ttl={int(self._ttl.total_seconds())}s, "
            f"max_entries={self._max_entries})"
        )

    def teardown(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tombstones.clear()
            self._initialized = False
        logger.info("Session cache torn down")

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._tombstones

    def get(self, token: str, now: datetime) -> Optional[Session]:
        """Return a cached session, or None on a miss or stale entry."""
        if not self._initialized or not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            session, cached_until = entry
            if cached_until <= now:
                del self._entries[token]
                return None
            return session

    def put(self, session: Session, now: datetime) -> None:
        if not self._initialized or not self.enabled:
            return
        with self._lock:
            if session.token in self._tombstones:
                return
            if len(self._entries) >= self._max_entries:
                self._evict_locked(now)
            cached_until = min(now + self._ttl, session.expires_at)
            self._entries[session.token] = (session, cached_until)

    def mark_revoked(self, token: str, until: datetime) -> None:
        """Drop the entry and tombstone the token until ``until``."""
        with self._lock:
            self._entries.pop(token, None)
            self._tombstones[token] = until

    def invalidate(self, token: str) -> None:
        with self._lock:
            self._entries.pop(token, None)

    def purge_expired(self, now: datetime) -> int:
        """Drop stale entries and tombstones. Returns the number removed."""
        with self._lock:
            return self._purge_locked(now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_locked(self, now: datetime) -> int:
        stale = [t for t, (_, until) in self._entries.items() if until <= now]
        for token in stale:
            del self._entries[token]
        dead = [t for t, until in self._tombstones.items() if until <= now]
        for token in dead:
            del self._tombstones[token]
        return len(stale) + len(dead)

    def _evict_locked(self, now: datetime) -> None:
        self._purge_locked(now)
        if len(self._entries) >= self._max_entries:
            # Still full: drop the entry closest to its cache expiry
            oldest = min(self._entries, key=lambda t: self._entries[t][1])
            del self._entries[oldest]


# Process-wide instance, created by initialize_session_cache()
_cache: Optional[SessionCache] = None


def initialize_session_cache(ttl_seconds: int, max_entries: int) -> SessionCache:
    """Create and initialize the process-wide cache (application startup)."""
    global _cache
    _cache = SessionCache(ttl_seconds=ttl_seconds, max_entries=max_entries)
    _cache.initialize()
    return _cache


def get_session_cache() -> SessionCache:
    """
    Get the process-wide cache.

    Before initialize_session_cache() runs this returns an uninitialized
    cache, which behaves as a permanent miss.
    """
    global _cache
    if _cache is None:
        _cache = SessionCache()
    return _cache


def teardown_session_cache() -> None:
    """Tear down the process-wide cache (application shutdown)."""
    global _cache
    if _cache is not None:
        _cache.teardown()
    _cache = None
