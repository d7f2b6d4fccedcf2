# tenant_overlay/enforcement/enforcer.py
"""
Feature & Limit Enforcer.

``authorize`` is a pure function of its arguments: no clock, no I/O, no
randomness. The tenant status gate runs before any feature or limit check.
"""
from typing import Dict, Optional, Tuple, Union

from ..context.models import ResolvedTenantContext
from .models import Capability, Decision, DenyReason, FeatureCheck, LimitCheck, Resource, UsageCounters

# resource -> (Limits field, UsageCounters field or None when counted in ``other``)
RESOURCE_LIMITS: Dict[Resource, Tuple[str, Optional[str]]] = {
    Resource.USERS: ("max_users", "active_users"),
    Resource.API_CALLS: ("max_api_calls_per_period", "api_calls_this_period"),
    Resource.STORAGE: ("max_storage_bytes", "storage_bytes"),
    Resource.POLLS: ("max_polls", None),
    Resource.TRAINING_SESSIONS: ("max_training_sessions", None),
    Resource.PRESENTATIONS: ("max_presentations", None),
    Resource.JOB_POSTS: ("max_job_posts", None),
}


def coerce_resource(resource: Union[Resource, str]) -> Resource:
    """
    Raises:
        ValueError: ``resource`` is not a known resource key
    """
    try:
        return Resource(resource)
    except ValueError:
        raise ValueError(f"Unknown resource '{resource}'. Known: {[r.value for r in Resource]}") from None


def current_usage(usage: UsageCounters, resource: Resource) -> int:
    _, counter = RESOURCE_LIMITS[resource]
    if counter is None:
        return usage.other.get(resource.value, 0)
    return getattr(usage, counter)


def limit_for(context: ResolvedTenantContext, resource: Resource) -> int:
    limit_field, _ = RESOURCE_LIMITS[resource]
    return getattr(context.limits, limit_field)


def authorize(
    context: ResolvedTenantContext,
    capability: Capability,
    usage: Optional[UsageCounters] = None,
) -> Decision:
    if not context.is_active:
        return Decision.deny(DenyReason.TENANT_INACTIVE, f"Tenant '{context.slug}' is {context.status.value}.")

    if isinstance(capability, FeatureCheck):
        if capability.feature not in context.feature_set:
            return Decision.deny(DenyReason.FEATURE_DISABLED, f"Feature '{capability.feature}' is not enabled.")
        return Decision.allow()

    if isinstance(capability, LimitCheck):
        usage = usage or UsageCounters()
        used = current_usage(usage, capability.resource)
        limit = limit_for(context, capability.resource)
        if used + capability.delta > limit:
            return Decision.deny(
                DenyReason.LIMIT_EXCEEDED,
                f"{capability.resource.value}: {used} + {capability.delta} exceeds limit {limit}.",
            )
        return Decision.allow()

    raise TypeError(f"Unsupported capability: {capability!r}")


def check_feature(context: ResolvedTenantContext, feature: str) -> Decision:
    return authorize(context, FeatureCheck(feature=feature))


def check_limit(
    context: ResolvedTenantContext,
    resource: Union[Resource, str],
    delta: int,
    usage: Optional[UsageCounters] = None,
) -> Decision:
    return authorize(context, LimitCheck(resource=coerce_resource(resource), delta=delta), usage)
