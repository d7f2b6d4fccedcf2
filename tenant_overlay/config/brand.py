# tenant_overlay/config/brand.py
"""
Brand identity schema.

A strictly-typed tree of colors, spacing, typography, decorations, motion,
interactive link states and navigation layout. Keys are kebab-case in the
stored documents (``brand-primary``, ``card-radius-md``); fields are
snake_case in Python.

Color leaves are either a concrete color string (hex, rgb(), rgba()) or the
name of an entry in ``colors.palette``. Whether every name actually resolves
is checked by the schema validator, which needs the whole tree at hand.
"""
import re
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints

from .tree import FrozenMap

COLOR_STRING_REGEX = re.compile(
    r"^(#([\da-f]{3}){1,2}"
    r"|rgba\((\s?\d{1,3}%?,){3}\s?(1|0?\.\d+|0)\)"
    r"|rgb\(\s?\d{1,3}%?(,\s?\d{1,3}%?){2}\))$",
    re.IGNORECASE,
)
PALETTE_NAME_REGEX = re.compile(r"^[A-Za-z0-9]{2,}$")
DURATION_REGEX = r"^\d+(\.\d+)?(ms|s)$"


def is_color_string(value: str) -> bool:
    return bool(COLOR_STRING_REGEX.match(value))


def is_palette_reference(value: str) -> bool:
    """True when ``value`` is a token name rather than a concrete color."""
    return not is_color_string(value) and bool(PALETTE_NAME_REGEX.match(value))


def _check_color_string(value: str) -> str:
    if not is_color_string(value):
        raise ValueError("not a valid hex, rgb or rgba color string")
    return value


def _check_color_token(value: str) -> str:
    if not (is_color_string(value) or PALETTE_NAME_REGEX.match(value)):
        raise ValueError("not a valid color string or palette token name")
    return value


ColorString = Annotated[str, AfterValidator(_check_color_string)]
ColorToken = Annotated[str, AfterValidator(_check_color_token)]
PaletteName = Annotated[str, StringConstraints(pattern=PALETTE_NAME_REGEX.pattern)]
Duration = Annotated[str, StringConstraints(pattern=DURATION_REGEX)]
Size = Annotated[float, Field(ge=0, le=1024)]
FontWeight = Annotated[int, Field(ge=100, le=900)]
LineStyle = Literal["solid", "dashed", "dotted"]


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class BrandSection(BaseModel):
    """Base for every brand-identity node: kebab-case keys, no unknown keys, immutable."""
    model_config = ConfigDict(
        alias_generator=_kebab,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


# ---------------------------------------------------------------- colors

class ConsumptionBodyColors(BrandSection):
    bg_card: ColorToken
    body: ColorToken
    body_deemphasized: ColorToken
    accent: ColorToken
    divider: ColorToken
    link: ColorToken
    link_hover: ColorToken


class ConsumptionLeadColors(BrandSection):
    background: ColorToken
    heading: ColorToken
    description: ColorToken
    accent: ColorToken
    link: ColorToken
    link_hover: ColorToken


class ConsumptionBodyVariants(BrandSection):
    standard: ConsumptionBodyColors
    special: ConsumptionBodyColors
    inverted: ConsumptionBodyColors


class ConsumptionLeadVariants(BrandSection):
    standard: ConsumptionLeadColors
    special: ConsumptionLeadColors
    inverted: ConsumptionLeadColors


class ConsumptionColors(BrandSection):
    body: ConsumptionBodyVariants
    lead: ConsumptionLeadVariants


class DiscoveryLeadColors(BrandSection):
    background: ColorToken
    hed: ColorToken
    description: ColorToken
    accent: ColorToken
    link: ColorToken
    link_hover: ColorToken


class DiscoveryBodyColors(BrandSection):
    background: ColorToken
    heading: ColorToken
    description: ColorToken
    accent: ColorToken
    divider: ColorToken
    border: ColorToken


class DiscoveryLeadVariants(BrandSection):
    primary: DiscoveryLeadColors
    secondary: DiscoveryLeadColors


class DiscoveryBodyVariants(BrandSection):
    white: DiscoveryBodyColors
    light: DiscoveryBodyColors
    brand: DiscoveryBodyColors
    dark: DiscoveryBodyColors
    black: DiscoveryBodyColors


class DiscoveryColors(BrandSection):
    lead: DiscoveryLeadVariants
    body: DiscoveryBodyVariants


class MenuBackgroundColors(BrandSection):
    collapsed: ColorToken
    accent: ColorToken
    expanded: ColorToken


class IconColors(BrandSection):
    default: ColorToken
    hover: ColorToken


class FooterLinkColors(BrandSection):
    primary: ColorToken
    secondary: ColorToken


class FooterColors(BrandSection):
    bg: ColorToken
    accent: ColorToken
    meta_primary: ColorToken
    meta_secondary: ColorToken
    links: FooterLinkColors


class FoundationColors(BrandSection):
    menu_bg: MenuBackgroundColors
    icon: IconColors
    footer: FooterColors


class AdContainerColors(BrandSection):
    standard: ColorToken
    special: ColorToken
    inverted: ColorToken
    sticky: ColorToken


class BackgroundColors(BrandSection):
    white: ColorToken
    light: ColorToken
    brand: ColorToken
    dark: ColorToken
    black: ColorToken
    ad_container: AdContainerColors


class InteractiveBaseColors(BrandSection):
    brand_primary: ColorToken
    brand_secondary: ColorToken
    white: ColorToken
    light: ColorToken
    dark: ColorToken
    black: ColorToken
    body: ColorToken
    deemphasized: ColorToken
    border: ColorToken
    highlight: ColorToken
    hover: ColorToken


class FeedbackColors(BrandSection):
    valid_primary: ColorToken
    valid_secondary: ColorToken
    invalid_primary: ColorToken
    invalid_secondary: ColorToken
    notice_primary: ColorToken
    notice_secondary: ColorToken
    alert_primary: ColorToken
    alert_secondary: ColorToken


class SocialColors(BrandSection):
    primary: ColorToken
    primary_hover: ColorToken
    secondary: ColorToken
    secondary_hover: ColorToken


class InteractiveColors(BrandSection):
    base: InteractiveBaseColors
    feedback: FeedbackColors
    social: SocialColors


class NavigationColorSet(BrandSection):
    active: ColorToken
    background_primary: ColorToken
    background_secondary: ColorToken
    border: ColorToken
    divider: ColorToken
    focus: ColorToken
    hover: ColorToken
    item_primary: ColorToken
    item_secondary: ColorToken
    pressed: ColorToken


class NavigationColors(BrandSection):
    standard: NavigationColorSet
    inverted: Optional[NavigationColorSet] = None


class Colors(BrandSection):
    palette: FrozenMap[PaletteName, ColorString] = Field(json_schema_extra={"open_map": True})
    consumption: ConsumptionColors
    discovery: DiscoveryColors
    foundation: FoundationColors
    background: BackgroundColors
    interactive: InteractiveColors
    navigation: NavigationColors


# ---------------------------------------------------------------- spacing

class SectionSpacing(BrandSection):
    gap_sm: Size
    gap_md: Size
    padding_top_sm: Size
    padding_top_md: Size
    padding_bottom_sm: Size
    padding_bottom_md: Size


class Spacing(BrandSection):
    box_inset: Size
    spacing_0: Size
    spacing_4: Size
    spacing_8: Size
    spacing_12: Size
    spacing_16: Size
    spacing_24: Size
    spacing_32: Size
    spacing_48: Size
    spacing_64: Size
    section: SectionSpacing


# ---------------------------------------------------------------- typography

class FontFiles(BrandSection):
    woff: Optional[str] = None
    woff2: Optional[str] = None


class FontImport(BrandSection):
    files: FontFiles
    italic: bool
    weight: FontWeight


class Typeface(BrandSection):
    fallback: str
    imports: Tuple[FontImport, ...] = ()


class FontDefinition(BrandSection):
    family: str
    weight: FontWeight
    letter_spacing: Annotated[float, Field(ge=-1, le=1)]
    line_height: Annotated[float, Field(gt=0, le=4)]
    case: Literal["normal", "capitalize", "lowercase", "uppercase"]
    italic: bool
    mobile_size: Annotated[float, Field(ge=6, le=200)]
    font_size_md: Optional[Annotated[float, Field(ge=6, le=200)]] = None
    font_size_lg: Optional[Annotated[float, Field(ge=6, le=200)]] = None


class FoundationTypography(BrandSection):
    title_primary: FontDefinition
    title_secondary: FontDefinition
    link_primary: FontDefinition
    meta_primary: FontDefinition


class UtilityTypography(BrandSection):
    label: FontDefinition
    heading: FontDefinition
    body: FontDefinition
    button_core: FontDefinition


class ConsumptionTypography(BrandSection):
    hed_standard: FontDefinition
    body_core: FontDefinition
    description_core: FontDefinition


class NavigationTypography(BrandSection):
    text_primary: FontDefinition
    text_secondary: FontDefinition


class TypographyDefinitions(BrandSection):
    foundation: FoundationTypography
    utility: UtilityTypography
    consumption_editorial: ConsumptionTypography
    navigation: Optional[NavigationTypography] = None


class Typography(BrandSection):
    typefaces: FrozenMap[str, Typeface] = Field(json_schema_extra={"open_map": True})
    definitions: TypographyDefinitions


# ---------------------------------------------------------------- decorations

class BorderDecoration(BrandSection):
    type: Literal["none", "graphic-border-simple", "graphic-border-full"]
    file: Optional[str] = None
    thickness: Size
    offset: Size
    placement: Literal["grid", "edge", "outside", "inside", "offset"]
    repeat: Literal["repeat", "round", "space", "stretch"]


class BadgeDecoration(BrandSection):
    type: Literal["none", "badge"]
    file: Optional[str] = None
    width: Size
    height: Size
    placement: Literal["center", "inside", "outside"]
    rotation: Annotated[float, Field(ge=-360, le=360)]


class BackgroundImageDecoration(BrandSection):
    type: Literal["none", "background"]
    file: Optional[str] = None
    attachment: Literal["initial", "fixed"]
    position: Literal["initial", "bottom", "center", "left", "right", "top"]
    repeat: Literal["no-repeat", "repeat", "repeat-x", "repeat-y"]
    size: Literal["auto", "contain", "cover"]


class Logos(BrandSection):
    standard: str
    inverted: Optional[str] = None
    favicon: Optional[str] = None


class Decorations(BrandSection):
    border_radius: Size
    border_style: LineStyle
    border_width: Size
    card_radius_sm: Size
    card_radius_md: Size
    card_radius_lg: Size
    divider_style: LineStyle
    divider_width: Size
    icon_profile_radius: Size
    section_ornament_length: Size
    section_ornament_style: LineStyle
    section_ornament_width: Size
    title_border: BorderDecoration
    badge_primary: BadgeDecoration
    background_image_primary: BackgroundImageDecoration
    logos: Logos


# ---------------------------------------------------------------- motion

class MotionDurations(BrandSection):
    instant: Duration
    fast: Duration
    moderate: Duration
    slow: Duration
    deliberate: Duration


class MotionEasing(BrandSection):
    linear: str
    standard_in_and_out: str
    standard_in: str
    standard_out: str
    emphasized_in_and_out: str
    emphasized_in: str
    emphasized_out: str


class MotionPattern(BrandSection):
    easing: str
    duration: Duration


class Motion(BrandSection):
    duration: MotionDurations
    easing: MotionEasing
    pattern: FrozenMap[str, MotionPattern] = Field(json_schema_extra={"open_map": True})


# ---------------------------------------------------------------- interactive

class LinkStyle(BrandSection):
    style: Literal["underline", "none"]


class LinkStates(BrandSection):
    link: LinkStyle
    hover: LinkStyle
    focus: LinkStyle
    active: LinkStyle
    visited: LinkStyle


class LinkVariants(BrandSection):
    default: LinkStates
    navigation: LinkStates


class Interactive(BrandSection):
    links: LinkVariants


# ---------------------------------------------------------------- navigation

class HeaderBreakpoint(BrandSection):
    has_primary: bool
    has_secondary: bool
    align_logo: Literal["start", "center", "end"]
    logo_height: Size
    logo_padding: Union[Size, Annotated[Tuple[Size, ...], Field(min_length=2, max_length=4)]]


class NavigationHeader(BrandSection):
    container_spacing_unit: Size
    max_width: Union[Size, Literal["100%"]]
    sm: HeaderBreakpoint
    md: HeaderBreakpoint
    lg: HeaderBreakpoint
    xl: HeaderBreakpoint


class Navigation(BrandSection):
    header: NavigationHeader


# ---------------------------------------------------------------- root

class BrandIdentity(BrandSection):
    colors: Colors
    spacing: Spacing
    typography: Typography
    decorations: Decorations
    motion: Motion
    interactive: Interactive
    navigation: Navigation
