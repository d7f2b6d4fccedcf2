# tenant_overlay/__init__.py
"""
Tenant context resolution and configuration overlay engine.

Identifies the tenant of a request, resolves its configuration (default
template overlaid with the tenant's override), caches the result, gates
features and limits, and renders the tenant's brand identity.
"""
