"""
Billing module.

Tracks each tenant's subscription and applies payment-provider webhook
events through a single-writer updater.

Public API:
- ISubscriptionUpdater: Interface for subscription changes
- Subscription, PlanTier, SubscriptionStatus: Subscription state
- BillingEvent, BillingEventType: Provider notifications
- Billing exceptions: WebhookVerificationError, InvalidTransitionError, etc.
"""

from .interfaces import ISubscriptionUpdater
from .models import (
    PlanTier,
    TIER_ORDER,
    SubscriptionStatus,
    Subscription,
    SubscriptionTransition,
    BillingEvent,
    BillingEventType,
    WebhookAck,
)
from .exceptions import (
    BillingError,
    WebhookVerificationError,
    InvalidTransitionError,
    ConcurrentUpdateError,
    SubscriptionNotFoundError,
)

__all__ = [
    # Interface
    "ISubscriptionUpdater",
    # Models
    "PlanTier",
    "TIER_ORDER",
    "SubscriptionStatus",
    "Subscription",
    "SubscriptionTransition",
    "BillingEvent",
    "BillingEventType",
    "WebhookAck",
    # Exceptions
    "BillingError",
    "WebhookVerificationError",
    "InvalidTransitionError",
    "ConcurrentUpdateError",
    "SubscriptionNotFoundError",
]
