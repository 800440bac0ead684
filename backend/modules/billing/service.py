"""
Subscription updater.

Provider webhooks arrive on many requests at once; they are funnelled into
one asyncio.Queue and applied by a single worker, so subscription status
has exactly one writer per process. Across processes the store's
compare-and-set on ``version`` keeps each transition atomic, and the store
refuses an event id it has already applied.
"""

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from shared.clock import Clock, utc_now
from shared.config import Settings, get_settings
from shared.exceptions import TenantgateError, TransientStoreFailureError
from shared.resilience import RetryPolicy, retry_async

from modules.audit.models import AuditEvent, AuditEventType, AuditOutcome

from .interfaces import ISubscriptionUpdater
from .lifecycle import apply_event, grace_period_expired, trial_subscription
from .models import (
    BillingEvent,
    BillingEventType,
    PlanTier,
    Subscription,
    SubscriptionStatus,
    SubscriptionTransition,
)
from .exceptions import ConcurrentUpdateError, InvalidTransitionError, SubscriptionNotFoundError

if TYPE_CHECKING:
    from modules.audit.interfaces import IAuditSink
    from modules.store.interfaces import IStore

logger = logging.getLogger(__name__)

# Compare-and-set conflicts only happen with several writer processes
MAX_CAS_ATTEMPTS = 3
# Deliveries of one event after transient store failures; later events wait
MAX_DELIVERY_ATTEMPTS = 4
DEFAULT_REDELIVERY_POLICY = RetryPolicy(
    max_attempts=MAX_DELIVERY_ATTEMPTS, backoff_ms=500, timeout_seconds=60.0
)


class SubscriptionUpdater(ISubscriptionUpdater):
    """
    Queue-fed single writer for subscription transitions.

    Call ``start()`` once the event loop runs and ``stop()`` at shutdown;
    ``stop()`` drains everything already queued first. An event that hits
    a transient store failure is retried in place, so events for a tenant
    always apply in arrival order.
    """

    def __init__(
        self,
        store: "IStore",
        audit: "IAuditSink",
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        retry_policy: Optional[RetryPolicy] = None,
        redelivery_policy: Optional[RetryPolicy] = None,
    ):
        self._settings = settings or get_settings()
        self._store = store
        self._audit = audit
        self._clock = clock
        self._retry_policy = retry_policy
        self._redelivery_policy = redelivery_policy or DEFAULT_REDELIVERY_POLICY
        self._grace_period = timedelta(days=self._settings.grace_period_days)
        self._queue: asyncio.Queue[BillingEvent] = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if not self.running:
            self._worker = asyncio.create_task(self._run(), name="subscription-updater")
            logger.info("Subscription updater started")

    async def stop(self) -> None:
        if self._worker is None:
            return
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Subscription updater stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def submit(self, event: BillingEvent) -> None:
        await self._queue.put(event)
        logger.debug(f"Queued billing event {event.event_id} ({event.type.value})")

    async def apply(self, event: BillingEvent) -> Optional[Subscription]:
        if event.type == BillingEventType.TRIAL_STARTED:
            return await self._start_trial(event)

        for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
            try:
                return await self._apply_once(event)
            except ConcurrentUpdateError:
                if attempt == MAX_CAS_ATTEMPTS:
                    raise
                logger.warning(
                    f"Subscription for tenant {event.tenant_id} changed concurrently; "
                    f"re-reading (attempt {attempt})"
                )
        return None

    async def _apply_once(self, event: BillingEvent) -> Optional[Subscription]:
        # Checked on every attempt: the conflicting writer may have applied this very event
        if await self._is_processed(event):
            return None

        current = await self._call(
            "get_subscription", lambda: self._store.get_subscription(event.tenant_id)
        )
        if current is None:
            raise SubscriptionNotFoundError(event.tenant_id, event.event_id)

        now = self._clock()
        updated = apply_event(current, event, now, self._grace_period)
        if updated is None:
            await self._call("record_event_id", lambda: self._store.record_event_id(event.event_id))
            logger.debug(f"Billing event {event.event_id} left tenant {event.tenant_id} unchanged")
            return None

        transition = SubscriptionTransition(
            tenant_id=event.tenant_id,
            from_status=current.status,
            to_status=updated.status,
            from_tier=current.plan_tier,
            to_tier=updated.plan_tier,
            event_id=event.event_id,
            occurred_at=now,
            version=updated.version,
        )
        result = await self._call(
            "update_subscription_status",
            lambda: self._store.update_subscription_status(updated, current.version, transition),
        )
        if result is None:
            logger.info(f"Billing event {event.event_id} was applied by another writer")
            return None

        logger.info(
            f"Tenant {event.tenant_id} subscription {current.status.value}/{current.plan_tier.value}"
            f" -> {result.status.value}/{result.plan_tier.value} ({event.type.value})"
        )
        self._audit.emit(
            AuditEvent(
                event_type=AuditEventType.SUBSCRIPTION_CHANGED,
                outcome=AuditOutcome.SUCCESS,
                occurred_at=now,
                tenant_id=event.tenant_id,
                details={
                    "event_id": event.event_id,
                    "event_type": event.type.value,
                    "from_status": current.status.value,
                    "to_status": result.status.value,
                    "from_tier": current.plan_tier.value,
                    "to_tier": result.plan_tier.value,
                },
            )
        )
        return result

    async def open_trial(
        self,
        tenant_id: str,
        plan_tier: PlanTier = PlanTier.PRO,
        event_id: Optional[str] = None,
    ) -> Subscription:
        """
        Create a tenant's first subscription as a trial of ``plan_tier``.

        Idempotent: a tenant that already has a subscription keeps it and
        the existing record is returned.
        """
        now = self._clock()
        subscription = trial_subscription(
            tenant_id, plan_tier, now, timedelta(days=self._settings.trial_period_days)
        )
        transition = SubscriptionTransition(
            tenant_id=tenant_id,
            to_status=subscription.status,
            to_tier=subscription.plan_tier,
            event_id=event_id,
            occurred_at=now,
            version=subscription.version,
        )
        created = await self._call(
            "create_subscription",
            lambda: self._store.create_subscription(subscription, transition),
        )
        if created is None:
            existing = await self._call(
                "get_subscription", lambda: self._store.get_subscription(tenant_id)
            )
            if existing is None:
                raise SubscriptionNotFoundError(tenant_id)
            return existing

        logger.info(f"Tenant {tenant_id} started a {plan_tier.value} trial until {created.trial_ends_at}")
        self._audit.emit(
            AuditEvent(
                event_type=AuditEventType.SUBSCRIPTION_CHANGED,
                outcome=AuditOutcome.SUCCESS,
                occurred_at=now,
                tenant_id=tenant_id,
                details={
                    "event_id": event_id,
                    "event_type": BillingEventType.TRIAL_STARTED.value,
                    "to_status": created.status.value,
                    "to_tier": created.plan_tier.value,
                },
            )
        )
        return created

    async def sweep_grace_periods(self) -> int:
        now = self._clock()
        past_due = await self._call(
            "list_subscriptions",
            lambda: self._store.list_subscriptions(SubscriptionStatus.PAST_DUE),
        )
        queued = 0
        for subscription in past_due:
            if not grace_period_expired(subscription, now, self._grace_period):
                continue
            await self.submit(
                BillingEvent(
                    # Keyed by version so a repeated sweep cannot cancel twice
                    event_id=f"grace:{subscription.tenant_id}:{subscription.version}",
                    type=BillingEventType.GRACE_PERIOD_EXPIRED,
                    tenant_id=subscription.tenant_id,
                    occurred_at=now,
                )
            )
            queued += 1
        if queued:
            logger.info(f"Queued {queued} grace-period cancellations")
        return queued

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._handle(event)
            finally:
                self._queue.task_done()

    async def _handle(self, event: BillingEvent) -> None:
        try:
            await retry_async(
                lambda: self.apply(event),
                operation=f"apply billing event {event.event_id}",
                policy=self._redelivery_policy,
            )
        except InvalidTransitionError as e:
            # Recorded so provider redeliveries of the same event stay no-ops
            logger.warning(f"Rejected billing event {event.event_id}: {e.message}")
            await self._record_quietly(event.event_id)
        except TransientStoreFailureError as e:
            logger.error(
                f"Giving up on billing event {event.event_id} after "
                f"{self._redelivery_policy.max_attempts} deliveries: {e.message}"
            )
        except TenantgateError as e:
            logger.warning(f"Dropped billing event {event.event_id}: {e.message}")
        except Exception:
            logger.exception(f"Unexpected error applying billing event {event.event_id}")

    async def _start_trial(self, event: BillingEvent) -> Optional[Subscription]:
        if await self._is_processed(event):
            return None
        trial = await self.open_trial(
            event.tenant_id, event.plan_tier or PlanTier.PRO, event_id=event.event_id
        )
        await self._call("record_event_id", lambda: self._store.record_event_id(event.event_id))
        return trial

    async def _is_processed(self, event: BillingEvent) -> bool:
        processed = await self._call(
            "is_event_processed", lambda: self._store.is_event_processed(event.event_id)
        )
        if processed:
            logger.info(f"Skipping duplicate billing event {event.event_id}")
        return processed

    async def _record_quietly(self, event_id: str) -> None:
        try:
            await self._call("record_event_id", lambda: self._store.record_event_id(event_id))
        except TransientStoreFailureError as e:
            logger.warning(f"Could not record rejected event {event_id}: {e.message}")

    async def _call(self, operation: str, func):
        return await retry_async(func, operation=operation, policy=self._retry_policy)
