"""
Billing module exceptions.

These exceptions are raised by the billing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import NotFoundError, TenantgateError


class BillingError(TenantgateError):
    """Base exception for billing-related errors."""

    pass


class WebhookVerificationError(BillingError):
    """Raised when a billing webhook signature verification fails."""

    def __init__(self):
        super().__init__(
            "Webhook signature verification failed",
            code="WEBHOOK_VERIFICATION_FAILED",
        )


class InvalidTransitionError(BillingError):
    """Raised when an event cannot be applied in the subscription's current status."""

    def __init__(self, tenant_id: str, current_status: str, event_type: str):
        super().__init__(
            f"Cannot apply {event_type} to a {current_status} subscription",
            code="INVALID_TRANSITION",
            details={
                "tenant_id": tenant_id,
                "current_status": current_status,
                "event_type": event_type,
            },
        )


class ConcurrentUpdateError(BillingError):
    """Raised when a subscription changed between read and compare-and-set write."""

    def __init__(self, tenant_id: str, expected_version: int):
        super().__init__(
            f"Subscription for tenant {tenant_id} was modified concurrently",
            code="CONCURRENT_UPDATE",
            details={"tenant_id": tenant_id, "expected_version": expected_version},
        )


class SubscriptionNotFoundError(NotFoundError):
    """Raised when a tenant has no subscription record to transition."""

    def __init__(self, tenant_id: str, event_id: Optional[str] = None):
        details = {"tenant_id": tenant_id}
        if event_id:
            details["event_id"] = event_id
        super().__init__(
            f"No subscription found for tenant {tenant_id}",
            code="SUBSCRIPTION_NOT_FOUND",
            details=details,
        )
