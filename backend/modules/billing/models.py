"""
Billing module data models.

Subscriptions are per tenant. There is exactly one current Subscription per
tenant; every status change also appends a SubscriptionTransition so the
history is kept for audit and billing reconciliation.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class PlanTier(str, Enum):
    """Subscription plan tiers, ordered free < pro < enterprise."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)

    def at_least(self, other: "PlanTier") -> bool:
        """Whether this tier is the same as or above ``other``."""
        return self.rank >= other.rank


TIER_ORDER: tuple[PlanTier, ...] = (PlanTier.FREE, PlanTier.PRO, PlanTier.ENTERPRISE)


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status. CANCELED is terminal."""

    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class Subscription(BaseModel):
    """The current subscription record of a tenant."""

    tenant_id: str = Field(..., description="Owning tenant ID")
    plan_tier: PlanTier = Field(default=PlanTier.FREE, description="Plan tier")
    status: SubscriptionStatus = Field(default=SubscriptionStatus.ACTIVE)
    renewal_at: Optional[datetime] = Field(None, description="Next renewal charge")
    trial_ends_at: Optional[datetime] = Field(None, description="End of the trial period")
    past_due_since: Optional[datetime] = Field(
        None,
        description="When the subscription entered past_due (grace period start)",
    )
    updated_at: Optional[datetime] = Field(None, description="Last transition time")
    version: int = Field(default=1, ge=1, description="Optimistic concurrency version")

    model_config = {"frozen": True}


class SubscriptionTransition(BaseModel):
    """An append-only history entry for one applied subscription change."""

    tenant_id: str
    from_status: Optional[SubscriptionStatus] = None
    to_status: SubscriptionStatus
    from_tier: Optional[PlanTier] = None
    to_tier: PlanTier
    event_id: Optional[str] = Field(None, description="Provider event that caused it")
    occurred_at: datetime
    version: int = Field(..., description="Version of the record after the change")


class BillingEventType(str, Enum):
    """Subscription-relevant notifications from the payment provider."""

    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    SUBSCRIPTION_CANCELED = "subscription_canceled"
    PLAN_CHANGED = "plan_changed"
    # Opens a tenant's first subscription as a trial of plan_tier (pro when unset)
    TRIAL_STARTED = "trial_started"
    # Raised internally by the grace-period sweep, never by the provider
    GRACE_PERIOD_EXPIRED = "grace_period_expired"


class BillingEvent(BaseModel):
    """
    A webhook notification from the payment provider.

    ``event_id`` is the provider-supplied idempotency key; a redelivered
    event with the same id is applied at most once.
    """

    event_id: str = Field(..., min_length=1, description="Provider event ID")
    type: BillingEventType = Field(..., description="Event type")
    tenant_id: str = Field(..., min_length=1, description="Tenant the event concerns")
    plan_tier: Optional[PlanTier] = Field(None, description="New tier for plan changes")
    occurred_at: datetime = Field(..., description="When the provider produced the event")
    data: dict[str, Any] = Field(default_factory=dict, description="Raw provider payload")


class WebhookAck(BaseModel):
    """API response for an accepted webhook."""

    received: bool = True
    event_id: str
