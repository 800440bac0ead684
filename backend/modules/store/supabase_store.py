"""
Supabase-backed store.

Encapsulates all Supabase queries and data mapping for the gateway tables:
- users, tenants, tenant_memberships
- sessions (keyed by a SHA-256 hash of the token, never the token itself)
- subscriptions, subscription_transitions, processed_billing_events

Subscription transitions go through the ``apply_subscription_transition``
Postgres function (see migrations/) so the compare-and-set, the history
append and the event bookkeeping commit in one transaction.
"""

import hashlib
from datetime import datetime
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client

from modules.auth.models import Session, UserRecord
from modules.billing.exceptions import ConcurrentUpdateError, SubscriptionNotFoundError
from modules.billing.models import Subscription, SubscriptionStatus, SubscriptionTransition
from modules.tenants.models import Tenant, TenantMembership
from shared.repository import BaseRepository

from .interfaces import IStore

# SQLSTATE codes raised by apply_subscription_transition()
_VERSION_CONFLICT = "TG409"
_NOT_FOUND = "P0002"


def hash_token(token: str) -> str:
    """Deterministic, non-reversible key for a session token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SupabaseStore(BaseRepository[Any], IStore):
    """
    Repository for all gateway data.

    Note: This repository does NOT perform tenant isolation checks.
    Callers resolve a TenantContext and authorize access first.
    """

    def __init__(self, db: Client) -> None:
        super().__init__(db)

    # -------------------------------------------------------------------------
    # Users and tenants
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        result = await self._run(
            "get_user",
            lambda: self._db.table("users").select("*").eq("id", user_id).execute(),
        )
        return UserRecord(**result.data[0]) if result.data else None

    async def get_user_by_login(self, login: str) -> Optional[UserRecord]:
        normalized = login.strip().lower()
        result = await self._run(
            "get_user_by_login",
            lambda: self._db.table("users").select("*").eq("login", normalized).execute(),
        )
        return UserRecord(**result.data[0]) if result.data else None

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        result = await self._run(
            "get_tenant",
            lambda: self._db.table("tenants").select("*").eq("id", tenant_id).execute(),
        )
        return Tenant(**result.data[0]) if result.data else None

    async def get_tenant_memberships(self, user_id: str) -> list[TenantMembership]:
        result = await self._run(
            "get_tenant_memberships",
            lambda: self._db.table("tenant_memberships").select("*").eq("user_id", user_id).execute(),
        )
        return [TenantMembership(**row) for row in result.data]

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def save_session(self, session: Session) -> None:
        row = {
            "token_hash": hash_token(session.token),
            "user_id": session.user_id,
            "login": session.login,
            "created_at": session.created_at.isoformat(),
            "expires_at": session.expires_at.isoformat(),
            "revoked": session.revoked,
            "revoked_at": session.revoked_at.isoformat() if session.revoked_at else None,
        }
        await self._run(
            "save_session",
            lambda: self._db.table("sessions").insert(row).execute(),
        )

    async def get_session(self, token: str) -> Optional[Session]:
        token_hash = hash_token(token)
        result = await self._run(
            "get_session",
            lambda: self._db.table("sessions").select("*").eq("token_hash", token_hash).execute(),
        )
        if not result.data:
            return None
        return self._map_to_session(token, result.data[0])

    async def revoke_session(self, token: str, revoked_at: datetime) -> Optional[Session]:
        token_hash = hash_token(token)
        # Only flips sessions that are not yet revoked, so revoked_at keeps its first value
        result = await self._run(
            "revoke_session",
            lambda: self._db.table("sessions")
            .update({"revoked": True, "revoked_at": revoked_at.isoformat()})
            .eq("token_hash", token_hash)
            .eq("revoked", False)
            .execute(),
        )
        if result.data:
            return self._map_to_session(token, result.data[0])
        return await self.get_session(token)

    async def delete_expired_sessions(self, now: datetime) -> int:
        result = await self._run(
            "delete_expired_sessions",
            lambda: self._db.table("sessions").delete().lte("expires_at", now.isoformat()).execute(),
        )
        return len(result.data or [])

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def get_subscription(self, tenant_id: str) -> Optional[Subscription]:
        result = await self._run(
            "get_subscription",
            lambda: self._db.table("subscriptions").select("*").eq("tenant_id", tenant_id).execute(),
        )
        return Subscription(**result.data[0]) if result.data else None

    async def create_subscription(
        self,
        subscription: Subscription,
        transition: SubscriptionTransition,
    ) -> Optional[Subscription]:
        params = {
            "p_subscription": subscription.model_dump(mode="json"),
            "p_transition": transition.model_dump(mode="json"),
        }
        result = await self._run(
            "create_subscription",
            lambda: self._db.rpc("create_subscription", params).execute(),
        )
        row = result.data[0] if isinstance(result.data, list) and result.data else result.data
        return Subscription(**row) if row else None

    async def list_subscriptions(self, status: SubscriptionStatus) -> list[Subscription]:
        result = await self._run(
            "list_subscriptions",
            lambda: self._db.table("subscriptions").select("*").eq("status", status.value).execute(),
        )
        return [Subscription(**row) for row in result.data]

    async def get_subscription_history(self, tenant_id: str) -> list[SubscriptionTransition]:
        result = await self._run(
            "get_subscription_history",
            lambda: self._db.table("subscription_transitions")
            .select("*")
            .eq("tenant_id", tenant_id)
            .order("version")
            .execute(),
        )
        return [SubscriptionTransition(**row) for row in result.data]

    async def update_subscription_status(
        self,
        subscription: Subscription,
        expected_version: int,
        transition: SubscriptionTransition,
    ) -> Optional[Subscription]:
        params = {
            "p_tenant_id": subscription.tenant_id,
            "p_expected_version": expected_version,
            "p_subscription": subscription.model_dump(mode="json"),
            "p_transition": transition.model_dump(mode="json"),
        }
        try:
            result = await self._run(
                "update_subscription_status",
                lambda: self._db.rpc("apply_subscription_transition", params).execute(),
            )
        except APIError as e:
            if e.code == _VERSION_CONFLICT:
                raise ConcurrentUpdateError(subscription.tenant_id, expected_version) from e
            if e.code == _NOT_FOUND:
                raise SubscriptionNotFoundError(subscription.tenant_id, transition.event_id) from e
            raise
        # The function returns no row when the event was already processed
        row = result.data[0] if isinstance(result.data, list) and result.data else result.data
        if not row:
            return None
        return Subscription(**row)

    # -------------------------------------------------------------------------
    # Webhook idempotency
    # -------------------------------------------------------------------------

    async def is_event_processed(self, event_id: str) -> bool:
        result = await self._run(
            "is_event_processed",
            lambda: self._db.table("processed_billing_events")
            .select("event_id")
            .eq("event_id", event_id)
            .execute(),
        )
        return bool(result.data)

    async def record_event_id(self, event_id: str) -> bool:
        result = await self._run(
            "record_event_id",
            lambda: self._db.table("processed_billing_events")
            .upsert({"event_id": event_id}, on_conflict="event_id", ignore_duplicates=True)
            .execute(),
        )
        return bool(result.data)

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    def _map_to_session(self, token: str, data: dict[str, Any]) -> Session:
        return Session(
            token=token,
            user_id=data["user_id"],
            login=data.get("login", ""),
            created_at=data["created_at"],
            expires_at=data["expires_at"],
            revoked=data.get("revoked", False),
            revoked_at=data.get("revoked_at"),
        )
