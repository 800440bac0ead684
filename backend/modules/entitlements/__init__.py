"""
Entitlements module.

Decides whether a tenant's subscription permits a feature, using the
static feature-gate table.

Public API:
- IEntitlementEvaluator: Interface for entitlement checks
- EntitlementDecision, DenialReason: Decision model
- FeatureGateTable, DEFAULT_FEATURE_GATES: Gate table
- Entitlement exceptions: UnknownFeatureError, EntitlementDeniedError
"""

from .interfaces import IEntitlementEvaluator
from .models import EntitlementDecision, DenialReason
from .gates import FeatureGateTable, DEFAULT_FEATURE_GATES, load_feature_gates
from .exceptions import UnknownFeatureError, EntitlementDeniedError, InvalidFeatureGateError

__all__ = [
    # Interface
    "IEntitlementEvaluator",
    # Models
    "EntitlementDecision",
    "DenialReason",
    "FeatureGateTable",
    "DEFAULT_FEATURE_GATES",
    "load_feature_gates",
    # Exceptions
    "UnknownFeatureError",
    "EntitlementDeniedError",
    "InvalidFeatureGateError",
]
