"""
Entitlements module exceptions.

These exceptions are raised by the entitlements module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import AuthorizationError, NotFoundError

from .models import DenialReason


class UnknownFeatureError(NotFoundError):
    """Raised when a feature key is not in the feature-gate table."""

    def __init__(self, feature_key: str):
        super().__init__(
            f"Unknown feature: {feature_key}",
            code="UNKNOWN_FEATURE",
            details={"feature_key": feature_key},
        )


class EntitlementDeniedError(AuthorizationError):
    """Raised by ``require`` when the tenant is not entitled to a feature."""

    def __init__(self, feature_key: str, reason: DenialReason):
        super().__init__(
            f"Feature {feature_key} is not available: {reason.value}",
            code="ENTITLEMENT_DENIED",
            details={"feature_key": feature_key, "reason": reason.value},
        )
        self.feature_key = feature_key
        self.reason = reason


class InvalidFeatureGateError(ValueError):
    """Raised at startup when the feature-gate configuration is malformed."""

    pass
