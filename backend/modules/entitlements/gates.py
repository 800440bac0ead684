"""
Feature-gate table.

An explicit, enumerated mapping of feature key x plan tier -> bool,
loaded once at startup from YAML (or the built-in defaults). A feature
entry is either the minimum tier that unlocks it:

    features:
      advanced-export: pro

or an explicit per-tier mapping:

    features:
      advanced-export: {free: false, pro: true, enterprise: true}

Tables must be monotonic: a feature granted at one tier is granted at
every higher tier. Loading fails otherwise.
"""

from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

from modules.billing.models import PlanTier, TIER_ORDER

from .exceptions import InvalidFeatureGateError, UnknownFeatureError


class FeatureGateTable:
    """Immutable feature x tier lookup plus the read-only feature set."""

    def __init__(
        self,
        gates: Mapping[str, Mapping[PlanTier, bool]],
        read_only_features: Iterable[str] = (),
    ):
        table: dict[str, dict[PlanTier, bool]] = {}
        for feature_key, row in gates.items():
            full_row = {tier: bool(row.get(tier, False)) for tier in TIER_ORDER}
            _check_monotonic(feature_key, full_row)
            table[feature_key] = full_row
        self._gates = table
        self._read_only = frozenset(read_only_features)

        unknown = self._read_only - set(table)
        if unknown:
            raise InvalidFeatureGateError(
                f"Read-only features missing from gate table: {sorted(unknown)}"
            )

    @property
    def features(self) -> list[str]:
        return sorted(self._gates)

    @property
    def read_only_features(self) -> frozenset[str]:
        return self._read_only

    def is_read_only(self, feature_key: str) -> bool:
        return feature_key in self._read_only

    def allows(self, feature_key: str, tier: PlanTier) -> bool:
        """
        Raises:
            UnknownFeatureError: If the feature is not in the table
        """
        row = self._gates.get(feature_key)
        if row is None:
            raise UnknownFeatureError(feature_key)
        return row[tier]

    def minimum_tier(self, feature_key: str) -> Optional[PlanTier]:
        """Lowest tier that unlocks the feature, or None if no tier does."""
        for tier in TIER_ORDER:
            if self.allows(feature_key, tier):
                return tier
        return None

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        read_only_features: Optional[Iterable[str]] = None,
    ) -> "FeatureGateTable":
        """
        Build a table from parsed configuration.

        Args:
            data: Mapping with a ``features`` key and optional ``read_only_features``
            read_only_features: Overrides the read-only set from ``data``
        """
        features = data.get("features")
        if not isinstance(features, Mapping) or not features:
            raise InvalidFeatureGateError("Feature-gate config needs a non-empty 'features' mapping")

        gates = {key: _parse_row(key, value) for key, value in features.items()}
        if read_only_features is None:
            read_only_features = data.get("read_only_features", [])
        return cls(gates, read_only_features)

    @classmethod
    def from_file(
        cls,
        path: Path,
        read_only_features: Optional[Iterable[str]] = None,
    ) -> "FeatureGateTable":
        """
        Load a table from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            yaml.YAMLError: If the file is invalid YAML
            InvalidFeatureGateError: If the table is malformed or not monotonic
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_mapping(data, read_only_features)


def _parse_tier(feature_key: str, value: Any) -> PlanTier:
    try:
        return PlanTier(str(value).lower())
    except ValueError:
        raise InvalidFeatureGateError(f"Unknown tier {value!r} for feature {feature_key!r}")


def _parse_row(feature_key: str, value: Any) -> dict[PlanTier, bool]:
    if isinstance(value, Mapping):
        return {_parse_tier(feature_key, tier): bool(flag) for tier, flag in value.items()}
    if value is None:
        # Listed but not sold on any tier
        return {tier: False for tier in TIER_ORDER}
    minimum = _parse_tier(feature_key, value)
    return {tier: tier.at_least(minimum) for tier in TIER_ORDER}


def _check_monotonic(feature_key: str, row: Mapping[PlanTier, bool]) -> None:
    granted = False
    for tier in TIER_ORDER:
        if granted and not row[tier]:
            raise InvalidFeatureGateError(
                f"Feature {feature_key!r} is granted below {tier.value} but not at {tier.value}"
            )
        granted = granted or row[tier]


DEFAULT_FEATURE_GATES: dict[str, Any] = {
    "features": {
        "data-read": "free",
        "data-export": "free",
        "api-access": "free",
        "advanced-export": "pro",
        "custom-branding": "pro",
        "team-invites": "pro",
        "audit-log": "enterprise",
        "sso": "enterprise",
    },
    "read_only_features": ["data-read", "data-export"],
}


def load_feature_gates(
    path: Optional[str] = None,
    read_only_features: Optional[Iterable[str]] = None,
) -> FeatureGateTable:
    """Load the gate table from ``path`` or fall back to DEFAULT_FEATURE_GATES."""
    if path:
        return FeatureGateTable.from_file(Path(path), read_only_features)
    return FeatureGateTable.from_mapping(DEFAULT_FEATURE_GATES, read_only_features)
