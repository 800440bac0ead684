"""
Persistence collaborator interface.

The gateway never talks to a database directly; it goes through IStore.
Every method either returns a value, returns None/empty for not-found, or
raises TransientStoreFailureError for failures that may succeed on retry.
"""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from modules.auth.models import Session, UserRecord
from modules.billing.models import Subscription, SubscriptionStatus, SubscriptionTransition
from modules.tenants.models import Tenant, TenantMembership


@runtime_checkable
class IStore(Protocol):
    """
    Interface for the persistence collaborator.

    Session writes must be read-after-write consistent: once
    ``revoke_session`` returns, ``get_session`` observes the revocation.
    """

    # Users and tenants -----------------------------------------------------

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def get_user_by_login(self, login: str) -> Optional[UserRecord]:
        """Look up a user by login (case-insensitive)."""
        ...

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        ...

    async def get_tenant_memberships(self, user_id: str) -> list[TenantMembership]:
        ...

    # Sessions ---------------------------------------------------------------

    async def save_session(self, session: Session) -> None:
        ...

    async def get_session(self, token: str) -> Optional[Session]:
        ...

    async def revoke_session(self, token: str, revoked_at: datetime) -> Optional[Session]:
        """
        Set the revocation flag.

        Returns:
            The revoked session, or None if the token is unknown. Revoking an
            already revoked session returns it unchanged.
        """
        ...

    async def delete_expired_sessions(self, now: datetime) -> int:
        """Delete sessions whose expiry is at or before ``now``. Returns the count."""
        ...

    # Subscriptions -----------------------------------------------------------

    async def get_subscription(self, tenant_id: str) -> Optional[Subscription]:
        ...

    async def create_subscription(
        self,
        subscription: Subscription,
        transition: SubscriptionTransition,
    ) -> Optional[Subscription]:
        """
        Insert the first subscription record of a tenant with its history entry.

        Returns:
            The stored record, or None if the tenant already has one
        """
        ...

    async def list_subscriptions(self, status: SubscriptionStatus) -> list[Subscription]:
        ...

    async def get_subscription_history(self, tenant_id: str) -> list[SubscriptionTransition]:
        """Applied transitions for a tenant, oldest first."""
        ...

    async def update_subscription_status(
        self,
        subscription: Subscription,
        expected_version: int,
        transition: SubscriptionTransition,
    ) -> Optional[Subscription]:
        """
        Atomically replace the current subscription and append history.

        The write succeeds only if the stored record still has
        ``expected_version``; the transition's ``event_id`` (if any) is
        recorded as processed in the same unit of work.

        Returns:
            The stored record, or None if the transition's event was already
            processed (nothing is written)

        Raises:
            ConcurrentUpdateError: If the stored version differs
            SubscriptionNotFoundError: If the tenant has no subscription
        """
        ...

    # Webhook idempotency -------------------------------------------------------

    async def is_event_processed(self, event_id: str) -> bool:
        ...

    async def record_event_id(self, event_id: str) -> bool:
        """
        Mark an event as processed without a subscription change.

        Returns:
            True if newly recorded, False if it was already known
        """
        ...
