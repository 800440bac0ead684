"""
Subscription status state machine.

    trialing --payment_succeeded--> active
    active   --payment_failed-----> past_due
    past_due --payment_succeeded--> active
    past_due --grace expired------> canceled
    active | trialing | past_due --subscription_canceled--> canceled

``canceled`` is terminal. ``apply_event`` is pure: it returns the next
Subscription, or None when the event leaves the record unchanged.
"""

from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from shared.exceptions import ValidationError

from .exceptions import InvalidTransitionError
from .models import BillingEvent, BillingEventType, PlanTier, Subscription, SubscriptionStatus

BILLING_PERIOD = relativedelta(months=1)

TERMINAL_STATUSES = frozenset({SubscriptionStatus.CANCELED})

# Status changes each event may cause, keyed by (current status, event type)
TRANSITIONS: dict[tuple[SubscriptionStatus, BillingEventType], SubscriptionStatus] = {
    (SubscriptionStatus.TRIALING, BillingEventType.PAYMENT_SUCCEEDED): SubscriptionStatus.ACTIVE,
    (SubscriptionStatus.ACTIVE, BillingEventType.PAYMENT_SUCCEEDED): SubscriptionStatus.ACTIVE,
    (SubscriptionStatus.PAST_DUE, BillingEventType.PAYMENT_SUCCEEDED): SubscriptionStatus.ACTIVE,
    (SubscriptionStatus.ACTIVE, BillingEventType.PAYMENT_FAILED): SubscriptionStatus.PAST_DUE,
    (SubscriptionStatus.PAST_DUE, BillingEventType.PAYMENT_FAILED): SubscriptionStatus.PAST_DUE,
    (SubscriptionStatus.PAST_DUE, BillingEventType.GRACE_PERIOD_EXPIRED): SubscriptionStatus.CANCELED,
    (SubscriptionStatus.TRIALING, BillingEventType.SUBSCRIPTION_CANCELED): SubscriptionStatus.CANCELED,
    (SubscriptionStatus.ACTIVE, BillingEventType.SUBSCRIPTION_CANCELED): SubscriptionStatus.CANCELED,
    (SubscriptionStatus.PAST_DUE, BillingEventType.SUBSCRIPTION_CANCELED): SubscriptionStatus.CANCELED,
}


def grace_period_expired(
    subscription: Subscription,
    now: datetime,
    grace_period: timedelta,
) -> bool:
    """Whether a past_due subscription has outlived its grace period."""
    if subscription.status != SubscriptionStatus.PAST_DUE or subscription.past_due_since is None:
        return False
    return subscription.past_due_since + grace_period <= now


def apply_event(
    subscription: Subscription,
    event: BillingEvent,
    now: datetime,
    grace_period: timedelta,
) -> Optional[Subscription]:
    """
    Compute the subscription that results from applying ``event``.

    Args:
        subscription: Current record
        event: Provider (or sweep) event
        now: Time the change is applied
        grace_period: How long past_due lasts before cancellation

    Returns:
        The new record with ``version`` incremented, or None for a no-op

    Raises:
        InvalidTransitionError: If the event is not allowed in the current status
        ValidationError: If a plan change carries no tier
    """
    current = subscription.status

    if event.type == BillingEventType.PLAN_CHANGED:
        if current in TERMINAL_STATUSES:
            raise InvalidTransitionError(event.tenant_id, current.value, event.type.value)
        if event.plan_tier is None:
            raise ValidationError(
                "plan_changed event requires plan_tier",
                code="MISSING_PLAN_TIER",
                details={"event_id": event.event_id},
            )
        if event.plan_tier == subscription.plan_tier:
            return None
        return _next(subscription, now, plan_tier=event.plan_tier)

    if current in TERMINAL_STATUSES:
        if event.type in (
            BillingEventType.SUBSCRIPTION_CANCELED,
            BillingEventType.GRACE_PERIOD_EXPIRED,
        ):
            return None
        raise InvalidTransitionError(event.tenant_id, current.value, event.type.value)

    if event.type == BillingEventType.GRACE_PERIOD_EXPIRED:
        # Sweep events go stale when a retry charge landed in the meantime
        if not grace_period_expired(subscription, now, grace_period):
            return None

    target = TRANSITIONS.get((current, event.type))
    if target is None:
        if event.type == BillingEventType.GRACE_PERIOD_EXPIRED:
            return None
        raise InvalidTransitionError(event.tenant_id, current.value, event.type.value)

    if current == SubscriptionStatus.PAST_DUE and target == SubscriptionStatus.PAST_DUE:
        # Repeated failed retry: grace period keeps its original start
        return None

    if target == SubscriptionStatus.ACTIVE:
        base = subscription.renewal_at if current == SubscriptionStatus.ACTIVE else None
        renewal_at = max(base or now, now) + BILLING_PERIOD
        return _next(
            subscription,
            now,
            status=target,
            renewal_at=renewal_at,
            trial_ends_at=None,
            past_due_since=None,
        )

    if target == SubscriptionStatus.PAST_DUE:
        return _next(subscription, now, status=target, past_due_since=now)

    return _next(subscription, now, status=target)


def _next(subscription: Subscription, now: datetime, **changes) -> Subscription:
    return subscription.model_copy(
        update={**changes, "updated_at": now, "version": subscription.version + 1}
    )


def trial_subscription(
    tenant_id: str,
    plan_tier: PlanTier,
    now: datetime,
    trial_period: timedelta,
) -> Subscription:
    """First subscription record of a tenant: trialing until ``now + trial_period``."""
    return Subscription(
        tenant_id=tenant_id,
        plan_tier=plan_tier,
        status=SubscriptionStatus.TRIALING,
        trial_ends_at=now + trial_period,
        updated_at=now,
    )
