"""Feature flag helpers for runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, TypedDict, cast


FeatureFlagKey = Literal[
    "public_sharing_enabled",
    "figma_import_enabled",
    "contracts_enabled",
]


class FeatureFlagValues(TypedDict):
    public_sharing_enabled: bool
    figma_import_enabled: bool
    contracts_enabled: bool


@dataclass(frozen=True)
class FeatureFlagDefinition:
    env_var: str
    default: bool


_FEATURE_FLAG_DEFINITIONS: Dict[FeatureFlagKey, FeatureFlagDefinition] = {
    "public_sharing_enabled": FeatureFlagDefinition("FEATURE_PUBLIC_SHARING_ENABLED", True),
    "figma_import_enabled": FeatureFlagDefinition("FEATURE_FIGMA_IMPORT_ENABLED", True),
    "contracts_enabled": FeatureFlagDefinition("FEATURE_CONTRACTS_ENABLED", True),
}


def _normalize_bool(value: str | None, default: bool = True) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> FeatureFlagValues:
    """Return the cached feature flag state sourced from the environment."""
    values: Dict[FeatureFlagKey, bool] = {}
    for key, definition in _FEATURE_FLAG_DEFINITIONS.items():
        values[key] = _normalize_bool(os.getenv(definition.env_var), default=definition.default)
    return cast(FeatureFlagValues, values)


def is_feature_enabled(flag: FeatureFlagKey) -> bool:
    return get_feature_flags()[flag]


def public_sharing_enabled() -> bool:
    """Toggle for share links and the unauthenticated review surface."""
    return is_feature_enabled("public_sharing_enabled")


def figma_import_enabled() -> bool:
    return is_feature_enabled("figma_import_enabled")


def contracts_enabled() -> bool:
    """Toggle for contracts and e-signature routes."""
    return is_feature_enabled("contracts_enabled")


def refresh_feature_flag_cache() -> None:
    """Invalidate cached feature flag values (useful for tests)."""
    get_feature_flags.cache_clear()
