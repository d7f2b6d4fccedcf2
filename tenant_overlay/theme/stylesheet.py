# tenant_overlay/theme/stylesheet.py
"""Stylesheet generation from rendered theme variables."""
from typing import Any, Iterable, Iterator, List, Tuple

from ..config.brand import BrandIdentity
from .assets import DEFAULT_BRAND_ID, asset_url
from .renderer import ThemeVariables, VariableFormat

FONT_FORMATS = (("woff2", "woff2"), ("woff", "woff"))


def css_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return " ".join(css_value(item) for item in value)
    return str(value)


def font_face_rules(brand: BrandIdentity, brand_id: str = DEFAULT_BRAND_ID) -> Iterator[str]:
    for family in sorted(brand.typography.typefaces):
        typeface = brand.typography.typefaces[family]
        for font in typeface.imports:
            sources: List[str] = []
            for attr, fmt in FONT_FORMATS:
                filename = getattr(font.files, attr)
                if filename:
                    sources.append(f'url("{asset_url("fonts", filename, brand_id)}") format("{fmt}")')
            if not sources:
                continue
            yield "@font-face {\n"
            yield f'  font-family: "{family}";\n'
            yield f"  src: {', '.join(sources)};\n"
            yield f"  font-weight: {font.weight};\n"
            yield f"  font-style: {'italic' if font.italic else 'normal'};\n"
            yield "  font-display: swap;\n"
            yield "}\n"


def custom_properties(variables: Iterable[Tuple[str, Any]], selector: str = ":root") -> Iterator[str]:
    yield f"{selector} {{\n"
    for name, value in variables:
        yield f"  {name}: {css_value(value)};\n"
    yield "}\n"


def stylesheet_chunks(brand: BrandIdentity, brand_id: str = DEFAULT_BRAND_ID) -> Iterator[str]:
    """
    The stylesheet piece by piece: font faces, then one custom property
    per brand-identity leaf.

    Palette references are checked here, before the returned iterator
    produces anything; an unresolved token raises UnresolvedTokenError.
    """
    variables = ThemeVariables(brand, VariableFormat.DASHED)
    return _chunks(brand, variables, brand_id)


def _chunks(brand: BrandIdentity, variables: ThemeVariables, brand_id: str) -> Iterator[str]:
    yield from font_face_rules(brand, brand_id)
    yield from custom_properties(variables)
