# tenant_overlay/theme/renderer.py
"""
Theme Overlay Renderer.

Flattens a tenant's brand identity into ``(name, value)`` pairs, one per
leaf, with palette tokens replaced by their concrete colors. Sections are
walked in ``SECTION_ORDER``; inside a section fields follow their schema
declaration order and open maps (palette, typefaces, motion patterns) are
walked in sorted key order.
"""
from enum import Enum
from typing import Any, Iterator, Tuple

from ..config.brand import BrandIdentity, is_palette_reference
from ..config.tree import Path, iter_leaves
from ..config.validator import unresolved_tokens
from ..context.models import ResolvedTenantContext
from ..errors import UnresolvedTokenError

SECTION_ORDER = (
    "colors",
    "spacing",
    "typography",
    "decorations",
    "motion",
    "interactive",
    "navigation",
)


class VariableFormat(str, Enum):
    DOTTED = "dotted"  # colors.interactive.base.brand-primary
    DASHED = "dashed"  # --colors-interactive-base-brand-primary


def variable_name(path: Path, fmt: VariableFormat) -> str:
    if fmt == VariableFormat.DASHED:
        return "--" + "-".join(path)
    return ".".join(path)


class ThemeVariables:
    """
    A restartable, finite sequence of ``(name, value)`` pairs.

    Palette references are checked when the sequence is created, so an
    unresolved token fails before a single pair has been produced.
    """

    def __init__(self, brand: BrandIdentity, fmt: VariableFormat = VariableFormat.DOTTED):
        missing = unresolved_tokens(brand)
        if missing:
            path, token = missing[0]
            raise UnresolvedTokenError(path, token)
        self.brand = brand
        self.format = VariableFormat(fmt)

    def leaves(self) -> Iterator[Tuple[Path, Any]]:
        for section in SECTION_ORDER:
            yield from iter_leaves(getattr(self.brand, section), (section,))

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        palette = self.brand.colors.palette
        for path, value in self.leaves():
            if path[0] == "colors" and path[1] != "palette" and isinstance(value, str) \
                    and is_palette_reference(value):
                if value not in palette:
                    raise UnresolvedTokenError(".".join(path), value)
                value = palette[value]
            yield variable_name(path, self.format), value


def render(context: ResolvedTenantContext, fmt: VariableFormat = VariableFormat.DOTTED) -> ThemeVariables:
    """
    Raises:
        UnresolvedTokenError: a color leaf names a palette entry that does not exist
    """
    return ThemeVariables(context.brand_identity, fmt)
