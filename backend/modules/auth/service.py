"""
Authentication service implementation.

Verifies credentials against bcrypt hashes, issues opaque random session
tokens, verifies and revokes them. Sessions are persisted through the
store and cached in the process-wide SessionCache.
"""

import asyncio
import logging
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from shared.clock import Clock, utc_now
from shared.config import Settings, get_settings
from shared.exceptions import TransientStoreFailureError
from shared.log import SECURITY_LOGGER, token_hint
from shared.models import Identity
from shared.resilience import RetryPolicy, retry_async

from modules.audit.models import AuditEvent, AuditEventType, AuditOutcome

from .interfaces import IAuthService
from .lockout import LockoutTracker
from .models import Credential, Session
from .passwords import DUMMY_HASH, verify_password
from .session_cache import SessionCache, get_session_cache
from .exceptions import (
    AccountLockedError,
    InvalidCredentialError,
    MissingTokenError,
    SessionInvalidError,
)

if TYPE_CHECKING:
    from modules.audit.interfaces import IAuditSink
    from modules.store.interfaces import IStore

logger = logging.getLogger(__name__)
security_logger = logging.getLogger(SECURITY_LOGGER)


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Collaborators are injected so tests can pin the clock and swap the
    store; production wiring happens in api.dependencies.
    """

    def __init__(
        self,
        store: "IStore",
        audit: "IAuditSink",
        cache: Optional[SessionCache] = None,
        lockout: Optional[LockoutTracker] = None,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._settings = settings or get_settings()
        self._store = store
        self._audit = audit
        self._cache = cache if cache is not None else get_session_cache()
        self._lockout = lockout if lockout is not None else LockoutTracker(
            max_attempts=self._settings.lockout_max_attempts,
            window_seconds=self._settings.lockout_window_seconds,
        )
        self._clock = clock
        self._retry_policy = retry_policy

    async def authenticate(self, credential: Credential) -> Session:
        """
        Verify a credential and open a new session.

        The whole attempt is bounded by ``auth_timeout_seconds``; a timeout
        surfaces as a retryable TransientStoreFailureError.
        """
        try:
            return await asyncio.wait_for(
                self._authenticate(credential),
                timeout=self._settings.auth_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise TransientStoreFailureError("authenticate", "timed out") from None

    async def _authenticate(self, credential: Credential) -> Session:
        login = credential.login
        now = self._clock()

        try:
            attempts = self._lockout.reserve(login, now)
        except AccountLockedError as e:
            security_logger.warning(
                f"Rejected sign-in for locked login {login!r} "
                f"(retry after {e.retry_after_seconds}s)"
            )
            self._emit(AuditEventType.LOGIN_LOCKED, AuditOutcome.DENIED, login=login,
                       details={"retry_after_seconds": e.retry_after_seconds})
            raise

        # The attempt already counts as a failure; it is handed back only when
        # the lookup or comparison ends without a verdict
        try:
            user = await self._call("get_user_by_login", lambda: self._store.get_user_by_login(login))

            # Unknown and inactive users are checked against a dummy hash so every
            # failure path costs one bcrypt comparison
            usable = user is not None and user.is_active
            password_hash = user.password_hash if usable else DUMMY_HASH
            matches = await asyncio.to_thread(
                verify_password, credential.secret.get_secret_value(), password_hash
            )
        except BaseException:
            self._lockout.release(login, now)
            raise

        if not (usable and matches):
            self._emit(AuditEventType.LOGIN_FAILED, AuditOutcome.FAILURE, login=login,
                       user_id=user.id if user else None, details={"attempts": attempts})
            if attempts >= self._settings.lockout_max_attempts:
                security_logger.warning(
                    f"Login {login!r} locked after {attempts} failed attempts"
                )
            raise InvalidCredentialError()

        self._lockout.reset(login)

        session = Session(
            token=secrets.token_urlsafe(self._settings.session_token_bytes),
            user_id=user.id,
            login=user.login,
            created_at=now,
            expires_at=now + timedelta(seconds=self._settings.session_ttl_seconds),
        )
        await self._call("save_session", lambda: self._store.save_session(session))
        self._cache.put(session, now)

        self._emit(AuditEventType.LOGIN_SUCCEEDED, AuditOutcome.SUCCESS,
                   login=user.login, user_id=user.id,
                   details={"expires_at": session.expires_at.isoformat()})
        logger.info(f"Opened session {token_hint(session.token)} for user {user.id}")
        return session

    async def verify(self, token: str) -> Identity:
        """Verify a session token and return the owning identity."""
        if not token:
            raise MissingTokenError()

        now = self._clock()
        if self._cache.is_revoked(token):
            raise SessionInvalidError("revoked")

        session = self._cache.get(token, now)
        if session is None:
            session = await self._call("get_session", lambda: self._store.get_session(token))
            if session is None:
                raise SessionInvalidError("unknown")
            if session.is_valid(now):
                self._cache.put(session, now)

        if session.revoked:
            raise SessionInvalidError("revoked")
        if session.expires_at <= now:
            self._cache.invalidate(token)
            raise SessionInvalidError("expired")

        return Identity(
            user_id=session.user_id,
            login=session.login,
            session_token=session.token,
            session_expires_at=session.expires_at,
        )

    async def revoke(self, token: str) -> None:
        """
        Revoke a session.

        The store write happens first; the cache tombstone is set before
        this method returns, so no verify that starts after the revoke is
        acknowledged can observe the session as valid.
        """
        if not token:
            return

        now = self._clock()
        session = await self._call(
            "revoke_session", lambda: self._store.revoke_session(token, now)
        )
        if session is not None:
            self._cache.mark_revoked(token, until=session.expires_at)

        self._emit(
            AuditEventType.SESSION_REVOKED,
            AuditOutcome.SUCCESS,
            user_id=session.user_id if session else None,
            login=session.login if session else None,
            details={"found": session is not None},
        )
        if session is not None:
            logger.info(f"Revoked session {token_hint(token)} for user {session.user_id}")

    async def purge_expired_sessions(self) -> int:
        """Garbage-collect expired sessions from the store and cache."""
        now = self._clock()
        removed = await self._call(
            "delete_expired_sessions", lambda: self._store.delete_expired_sessions(now)
        )
        self._cache.purge_expired(now)
        self._lockout.purge(now)
        if removed:
            logger.info(f"Purged {removed} expired sessions")
        return removed

    async def _call(self, operation: str, func):
        return await retry_async(func, operation=operation, policy=self._retry_policy)

    def _emit(
        self,
        event_type: AuditEventType,
        outcome: AuditOutcome,
        user_id: Optional[str] = None,
        login: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        self._audit.emit(
            AuditEvent(
                event_type=event_type,
                outcome=outcome,
                occurred_at=self._clock(),
                user_id=user_id,
                login=login,
                details=details or {},
            )
        )
