"""
Tenant resolver implementation.

Resolves the tenant a request runs in and enforces the isolation
invariant: no tenant-scoped record is read or written unless its tenant
matches the request's resolved TenantContext.
"""

import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional, TypeVar

from shared.clock import Clock, utc_now
from shared.log import SECURITY_LOGGER
from shared.models import Identity
from shared.resilience import RetryPolicy, retry_async

from modules.audit.models import AuditEvent, AuditEventType, AuditOutcome

from .interfaces import ITenantResolver
from .models import TenantContext, TenantStatus
from .exceptions import (
    AmbiguousTenantError,
    CrossTenantAccessError,
    NoTenantMembershipError,
    TenantUnavailableError,
)

if TYPE_CHECKING:
    from modules.audit.interfaces import IAuditSink
    from modules.store.interfaces import IStore

logger = logging.getLogger(__name__)
security_logger = logging.getLogger(SECURITY_LOGGER)

T = TypeVar("T")


class TenantResolver(ITenantResolver):
    """Resolves tenant contexts from memberships and guards tenant data."""

    def __init__(
        self,
        store: "IStore",
        audit: "IAuditSink",
        clock: Clock = utc_now,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._store = store
        self._audit = audit
        self._clock = clock
        self._retry_policy = retry_policy

    async def resolve(self, identity: Identity, tenant_id: Optional[str] = None) -> TenantContext:
        memberships = await retry_async(
            lambda: self._store.get_tenant_memberships(identity.user_id),
            operation="get_tenant_memberships",
            policy=self._retry_policy,
        )
        if not memberships:
            raise NoTenantMembershipError(identity.user_id)

        if tenant_id:
            membership = next((m for m in memberships if m.tenant_id == tenant_id), None)
            if membership is None:
                raise NoTenantMembershipError(identity.user_id, tenant_id)
        elif len(memberships) == 1:
            membership = memberships[0]
        else:
            raise AmbiguousTenantError([m.tenant_id for m in memberships])

        tenant = await retry_async(
            lambda: self._store.get_tenant(membership.tenant_id),
            operation="get_tenant",
            policy=self._retry_policy,
        )
        # A membership pointing at a missing tenant is treated as a deleted tenant
        status = tenant.status if tenant is not None else TenantStatus.DELETED
        if status != TenantStatus.ACTIVE:
            logger.info(
                f"Refused tenant {membership.tenant_id} for user {identity.user_id}: {status.value}"
            )
            raise TenantUnavailableError(membership.tenant_id, status.value)

        return TenantContext(
            tenant_id=tenant.id,
            user_id=identity.user_id,
            role=membership.role,
            tenant_name=tenant.name or None,
        )

    def authorize_access(self, context: TenantContext, resource_tenant_id: str) -> None:
        if resource_tenant_id == context.tenant_id:
            return

        security_logger.warning(
            f"Cross-tenant access blocked: user {context.user_id} in tenant "
            f"{context.tenant_id} attempted to access tenant {resource_tenant_id!r}"
        )
        self._audit.emit(
            AuditEvent(
                event_type=AuditEventType.CROSS_TENANT_ACCESS,
                outcome=AuditOutcome.DENIED,
                occurred_at=self._clock(),
                user_id=context.user_id,
                tenant_id=context.tenant_id,
                details={"resource_tenant_id": resource_tenant_id},
            )
        )
        raise CrossTenantAccessError(context.tenant_id, str(resource_tenant_id))

    def scope(self, context: TenantContext) -> "TenantScope":
        """Build the per-request accessor for tenant-scoped records."""
        return TenantScope(self, context)


class TenantScope:
    """
    Per-request gate for tenant-scoped records.

    Application code hands every record it loads (or is about to write)
    to ``guard``; records are read through ``tenant_id`` (attribute or key).

    Example:
        scope = resolver.scope(context)
        invoice = scope.guard(await invoices.get(invoice_id))
    """

    def __init__(self, resolver: ITenantResolver, context: TenantContext):
        self._resolver = resolver
        self.context = context

    @property
    def tenant_id(self) -> str:
        return self.context.tenant_id

    def require(self, resource_tenant_id: str) -> None:
        self._resolver.authorize_access(self.context, resource_tenant_id)

    def guard(self, record: T) -> T:
        """Return ``record`` only if it belongs to the scoped tenant."""
        self.require(_tenant_of(record))
        return record

    def guard_many(self, records: Iterable[T]) -> list[T]:
        """Guard every record; one foreign record fails the whole batch."""
        return [self.guard(record) for record in records]


def _tenant_of(record: Any) -> str:
    if isinstance(record, dict):
        tenant_id = record.get("tenant_id")
    else:
        tenant_id = getattr(record, "tenant_id", None)
    if tenant_id is None:
        raise ValueError(f"Record of type {type(record).__name__} carries no tenant_id")
    return tenant_id
