# tenant_overlay/theme/__init__.py
"""Brand identity rendering: theme variables, stylesheet and brand assets."""

from .renderer import SECTION_ORDER, ThemeVariables, VariableFormat, render
from .stylesheet import stylesheet_chunks
from .assets import ASSET_CATEGORIES, BrandAssetResolver

__all__ = [
    "SECTION_ORDER",
    "ThemeVariables",
    "VariableFormat",
    "render",
    "stylesheet_chunks",
    "ASSET_CATEGORIES",
    "BrandAssetResolver",
]
