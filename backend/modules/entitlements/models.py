"""
Entitlements module data models.

Entitlements are derived, never stored: a decision is computed from the
tenant's plan tier and subscription status against the feature-gate table.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from modules.billing.models import PlanTier, SubscriptionStatus


class DenialReason(str, Enum):
    """Why a feature was denied."""

    PLAN_TOO_LOW = "plan_too_low"
    SUBSCRIPTION_LAPSED = "subscription_lapsed"
    TRIAL_EXPIRED = "trial_expired"


class EntitlementDecision(BaseModel):
    """Granted, or Denied with a reason."""

    feature_key: str = Field(..., description="Feature that was checked")
    granted: bool = Field(..., description="Whether the feature is available")
    reason: Optional[DenialReason] = Field(None, description="Set when denied")
    plan_tier: PlanTier = Field(..., description="Tier the decision was based on")
    status: SubscriptionStatus = Field(..., description="Status the decision was based on")

    model_config = {"frozen": True}

    @classmethod
    def grant(cls, feature_key: str, plan_tier: PlanTier, status: SubscriptionStatus) -> "EntitlementDecision":
        return cls(feature_key=feature_key, granted=True, plan_tier=plan_tier, status=status)

    @classmethod
    def deny(
        cls,
        feature_key: str,
        reason: DenialReason,
        plan_tier: PlanTier,
        status: SubscriptionStatus,
    ) -> "EntitlementDecision":
        return cls(
            feature_key=feature_key,
            granted=False,
            reason=reason,
            plan_tier=plan_tier,
            status=status,
        )
