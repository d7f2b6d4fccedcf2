# tenant_overlay/enforcement/__init__.py
"""Feature & Limit Enforcer and the usage counters it consults."""

from .models import Decision, DenyReason, FeatureCheck, LimitCheck, Resource, UsageCounters
from .enforcer import authorize, check_feature, check_limit
from .usage import AbstractUsageCounterSource, InMemoryUsageCounterSource

__all__ = [
    # Decisions and capabilities
    "Decision",
    "DenyReason",
    "FeatureCheck",
    "LimitCheck",
    "Resource",
    "UsageCounters",
    # Decision functions
    "authorize",
    "check_feature",
    "check_limit",
    # Usage collaborators
    "AbstractUsageCounterSource",
    "InMemoryUsageCounterSource",
]
