"""
Billing module interface.

The webhook route and the maintenance loop depend on ISubscriptionUpdater,
not the concrete implementation. Nothing else writes subscription status.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import BillingEvent, PlanTier, Subscription


@runtime_checkable
class ISubscriptionUpdater(Protocol):
    """
    Single writer for subscription status.
    """

    async def submit(self, event: BillingEvent) -> None:
        """
        Queue a provider event for application.

        Returns as soon as the event is queued; events are applied in
        submission order by one worker.
        """
        ...

    async def apply(self, event: BillingEvent) -> Optional[Subscription]:
        """
        Apply one event now (the worker's unit of work).

        Returns:
            The updated subscription, or None for duplicates and no-ops

        Raises:
            InvalidTransitionError: If the event is not allowed in the current status
            SubscriptionNotFoundError: If the tenant has no subscription
        """
        ...

    async def sweep_grace_periods(self) -> int:
        """
        Queue cancellation for past_due subscriptions whose grace period ended.

        Returns:
            Number of events queued
        """
        ...

    async def open_trial(
        self,
        tenant_id: str,
        plan_tier: PlanTier = PlanTier.PRO,
        event_id: Optional[str] = None,
    ) -> Subscription:
        """
        Create the tenant's first subscription in ``trialing``.

        Reached through the ``trial_started`` billing event; ``event_id`` is
        kept on the history entry.

        Returns:
            The new record, or the existing one if the tenant already has a subscription
        """
        ...
