# tenant_overlay/context/__init__.py
"""
Tenant context: request identification, the context cache with its
invalidation bus, and the engine tying them to the resolver.
"""

from .models import (
    RequestDescriptor,
    IdentityContext,
    IdentificationMethod,
    IdentificationResult,
    ResolvedTenantContext,
)

__all__ = [
    "RequestDescriptor",
    "IdentityContext",
    "IdentificationMethod",
    "IdentificationResult",
    "ResolvedTenantContext",
]
