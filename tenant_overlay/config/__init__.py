# tenant_overlay/config/__init__.py
"""
Configuration schema, default template, overlay merge, validation and the
Configuration Resolver.
"""

from .brand import BrandIdentity
from .schema import TenantConfig
from .merge import overlay_config
from .validator import ValidationReport, validate_config
from .template import DefaultConfigTemplate, DefaultTemplateProvider

__all__ = [
    # Typed configuration tree
    "BrandIdentity",
    "TenantConfig",
    # Merge and validation
    "overlay_config",
    "ValidationReport",
    "validate_config",
    # Default template
    "DefaultConfigTemplate",
    "DefaultTemplateProvider",
]
