"""
In-memory store.

Implements IStore with dictionaries guarded by an asyncio lock. Used for
tests and local development; the seeding helpers (``add_user`` and
friends) stand in for the sign-up flows that own these records in production.
"""

import asyncio
from datetime import datetime
from typing import Optional

from modules.auth.models import Session, UserRecord
from modules.auth.passwords import hash_password
from modules.billing.exceptions import ConcurrentUpdateError, SubscriptionNotFoundError
from modules.billing.models import Subscription, SubscriptionStatus, SubscriptionTransition
from modules.tenants.models import Tenant, TenantMembership

from .interfaces import IStore


class InMemoryStore(IStore):
    """Dictionary-backed implementation of the persistence collaborator."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._users: dict[str, UserRecord] = {}
        self._logins: dict[str, str] = {}
        self._tenants: dict[str, Tenant] = {}
        self._memberships: dict[str, list[TenantMembership]] = {}
        self._sessions: dict[str, Session] = {}
        self._subscriptions: dict[str, Subscription] = {}
        self._history: dict[str, list[SubscriptionTransition]] = {}
        self._processed_events: set[str] = set()

    # Seeding ----------------------------------------------------------------

    def add_user(self, user_id: str, login: str, password: str, is_active: bool = True) -> UserRecord:
        user = UserRecord(
            id=user_id,
            login=login,
            password_hash=hash_password(password),
            is_active=is_active,
        )
        self._users[user_id] = user
        self._logins[login.strip().lower()] = user_id
        return user

    def add_tenant(self, tenant: Tenant) -> Tenant:
        self._tenants[tenant.id] = tenant
        return tenant

    def add_membership(self, user_id: str, tenant_id: str, role: str = "member") -> TenantMembership:
        membership = TenantMembership(user_id=user_id, tenant_id=tenant_id, role=role)
        self._memberships.setdefault(user_id, []).append(membership)
        return membership

    def put_subscription(self, subscription: Subscription) -> Subscription:
        self._subscriptions[subscription.tenant_id] = subscription
        return subscription

    # Users and tenants ---------------------------------------------------------

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    async def get_user_by_login(self, login: str) -> Optional[UserRecord]:
        user_id = self._logins.get(login.strip().lower())
        return self._users.get(user_id) if user_id else None

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self._tenants.get(tenant_id)

    async def get_tenant_memberships(self, user_id: str) -> list[TenantMembership]:
        return list(self._memberships.get(user_id, []))

    # Sessions -------------------------------------------------------------------

    async def save_session(self, session: Session) -> None:
        async with self._lock:
            self._sessions[session.token] = session

    async def get_session(self, token: str) -> Optional[Session]:
        async with self._lock:
            return self._sessions.get(token)

    async def revoke_session(self, token: str, revoked_at: datetime) -> Optional[Session]:
        async with self._lock:
            session = self._sessions.get(token)
            if session is None or session.revoked:
                return session
            revoked = session.model_copy(update={"revoked": True, "revoked_at": revoked_at})
            self._sessions[token] = revoked
            return revoked

    async def delete_expired_sessions(self, now: datetime) -> int:
        async with self._lock:
            expired = [t for t, s in self._sessions.items() if s.expires_at <= now]
            for token in expired:
                del self._sessions[token]
            return len(expired)

    # Subscriptions -------------------------------------------------------------------

    async def get_subscription(self, tenant_id: str) -> Optional[Subscription]:
        return self._subscriptions.get(tenant_id)

    async def create_subscription(
        self,
        subscription: Subscription,
        transition: SubscriptionTransition,
    ) -> Optional[Subscription]:
        async with self._lock:
            if subscription.tenant_id in self._subscriptions:
                return None
            self._subscriptions[subscription.tenant_id] = subscription
            self._history.setdefault(subscription.tenant_id, []).append(transition)
            return subscription

    async def list_subscriptions(self, status: SubscriptionStatus) -> list[Subscription]:
        return [s for s in self._subscriptions.values() if s.status == status]

    async def get_subscription_history(self, tenant_id: str) -> list[SubscriptionTransition]:
        return list(self._history.get(tenant_id, []))

    async def update_subscription_status(
        self,
        subscription: Subscription,
        expected_version: int,
        transition: SubscriptionTransition,
    ) -> Optional[Subscription]:
        async with self._lock:
            current = self._subscriptions.get(subscription.tenant_id)
            if current is None:
                raise SubscriptionNotFoundError(subscription.tenant_id, transition.event_id)
            if transition.event_id and transition.event_id in self._processed_events:
                return None
            if current.version != expected_version:
                raise ConcurrentUpdateError(subscription.tenant_id, expected_version)
            # All three writes happen under the lock, so readers never see a partial update
            self._subscriptions[subscription.tenant_id] = subscription
            self._history.setdefault(subscription.tenant_id, []).append(transition)
            if transition.event_id:
                self._processed_events.add(transition.event_id)
            return subscription

    # Webhook idempotency -------------------------------------------------------------

    async def is_event_processed(self, event_id: str) -> bool:
        return event_id in self._processed_events

    async def record_event_id(self, event_id: str) -> bool:
        async with self._lock:
            if event_id in self._processed_events:
                return False
            self._processed_events.add(event_id)
            return True
