# tests/test_theme.py
import pytest

from tenant_overlay.config.brand import BrandIdentity
from tenant_overlay.config.tree import iter_leaves
from tenant_overlay.errors import AssetNotFoundError, InvalidAssetPathError, UnresolvedTokenError
from tenant_overlay.theme.assets import BrandAssetResolver, asset_url
from tenant_overlay.theme.renderer import SECTION_ORDER, ThemeVariables, VariableFormat, render
from tenant_overlay.theme.stylesheet import css_value, stylesheet_chunks


@pytest.fixture
def context(make_context):
    return make_context("acme", version=0)


@pytest.fixture
def broken_brand(template_document):
    brand = template_document["brandIdentity"]
    brand["colors"]["interactive"]["base"]["brand-primary"] = "missingToken"
    return BrandIdentity.model_validate(brand)


def test_every_leaf_is_emitted_exactly_once(context):
    names = [name for name, _ in render(context)]
    leaf_count = sum(
        1 for section in SECTION_ORDER
        for _ in iter_leaves(getattr(context.brand_identity, section))
    )

    assert len(names) == leaf_count
    assert len(set(names)) == len(names)


def test_sections_follow_the_fixed_order(context):
    sections = []
    for name, _ in render(context):
        section = name.split(".")[0]
        if not sections or sections[-1] != section:
            sections.append(section)

    assert sections == list(SECTION_ORDER)


def test_palette_tokens_are_resolved(context):
    variables = dict(render(context))

    assert variables["colors.interactive.base.brand-primary"] == "#1A365D"
    assert variables["colors.consumption.body.standard.bg-card"] == "#FFFFFF"
    assert variables["colors.palette.overlay"] == "rgba(17, 24, 39, 0.6)"
    assert variables["spacing.section.gap-md"] == 48


def test_dashed_format(context):
    variables = dict(render(context, VariableFormat.DASHED))

    assert variables["--colors-interactive-base-brand-primary"] == "#1A365D"
    assert all(name.startswith("--") for name in variables)


def test_overridden_palette_flows_into_tokens(make_context):
    context = make_context("acme", override={"brandIdentity": {"colors": {"palette": {"brandPrimary": "#FF0000"}}}})

    assert dict(render(context))["colors.interactive.base.brand-primary"] == "#FF0000"


def test_sequence_is_restartable(context):
    variables = render(context)

    assert list(variables) == list(variables)


def test_unresolved_token_fails_before_any_output(broken_brand):
    with pytest.raises(UnresolvedTokenError) as exc_info:
        ThemeVariables(broken_brand)

    assert exc_info.value.path == "colors.interactive.base.brand-primary"
    assert exc_info.value.token == "missingToken"


def test_stylesheet_checks_tokens_eagerly(broken_brand):
    with pytest.raises(UnresolvedTokenError):
        stylesheet_chunks(broken_brand)


def test_stylesheet_contents(context):
    css = "".join(stylesheet_chunks(context.brand_identity))

    assert css.count("@font-face") == 2
    assert 'url("/brand-identity/brand/default/fonts/Inter-Regular.woff2") format("woff2")' in css
    assert ":root {\n" in css
    assert "  --colors-palette-brandPrimary: #1A365D;\n" in css
    assert "  --navigation-header-xl-logo-padding: 12 24 12 24;\n" in css
    assert "  --navigation-header-sm-has-primary: false;\n" in css


@pytest.mark.parametrize("value, expected", [
    (True, "true"),
    (16.0, "16"),
    (1.25, "1.25"),
    ([8, 16.0], "8 16"),
    ("solid", "solid"),
])
def test_css_value(value, expected):
    assert css_value(value) == expected


def test_asset_url():
    assert asset_url("logos", "logo.svg") == "/brand-identity/brand/default/logos/logo.svg"


@pytest.fixture
def assets(tmp_path):
    logo = tmp_path / "acme" / "default" / "logos" / "logo.svg"
    logo.parent.mkdir(parents=True)
    logo.write_text("<svg/>")
    (tmp_path / "secret.txt").write_text("nope")
    return BrandAssetResolver(str(tmp_path))


def test_existing_asset_resolves(assets, tmp_path):
    path = assets.resolve("acme", "default", "logos", "logo.svg")

    assert path == (tmp_path / "acme" / "default" / "logos" / "logo.svg").resolve()


def test_missing_asset(assets):
    with pytest.raises(AssetNotFoundError):
        assets.resolve("acme", "default", "logos", "missing.svg")


def test_other_tenants_cannot_reach_the_asset(assets):
    with pytest.raises(AssetNotFoundError):
        assets.resolve("globex", "default", "logos", "logo.svg")


@pytest.mark.parametrize("brand_id, category, filename", [
    ("..", "logos", "logo.svg"),
    ("a b", "logos", "logo.svg"),
    ("default", "scripts", "logo.svg"),
    ("default", "logos", "../../secret.txt"),
    ("default", "logos", "..secret.txt"),
    ("default", "logos", ".env"),
])
def test_invalid_asset_paths(assets, brand_id, category, filename):
    with pytest.raises(InvalidAssetPathError):
        assets.resolve("acme", brand_id, category, filename)
