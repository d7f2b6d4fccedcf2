# tenant_overlay/theme/endpoints.py
import logging
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse, StreamingResponse
from typing import Annotated, Any, Dict

from ..context.models import ResolvedTenantContext
from ..dependencies import (
    TENANT_IDENTIFICATION_HEADER,
    TENANT_SLUG_HEADER,
    get_settings,
    get_tenant_context,
)
from ..settings import Settings
from .assets import BrandAssetResolver
from .renderer import VariableFormat, render
from .stylesheet import stylesheet_chunks

logger = logging.getLogger(__name__)

theme_router = APIRouter(tags=["Brand Identity"])

TenantContext = Annotated[ResolvedTenantContext, Depends(get_tenant_context)]


def _tenant_headers(request: Request, settings: Settings) -> Dict[str, str]:
    return {
        "Cache-Control": f"public, max-age={settings.theme_cache_max_age_seconds}",
        "Vary": "Host, " + ", ".join(settings.tenant_header_names),
        TENANT_SLUG_HEADER: request.state.tenant_context.slug,
        TENANT_IDENTIFICATION_HEADER: request.state.tenant_identification.method.value,
    }


@theme_router.get("/brand-identity.css", response_class=StreamingResponse)
async def brand_identity_stylesheet(
    request: Request,
    context: TenantContext,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """The tenant's brand identity as CSS custom properties, streamed."""
    # Built before streaming starts so an unresolved token fails with a proper error response.
    chunks = stylesheet_chunks(context.brand_identity)
    return StreamingResponse(chunks, media_type="text/css", headers=_tenant_headers(request, settings))


@theme_router.get("/brand-identity/variables")
async def brand_identity_variables(
    context: TenantContext,
    fmt: Annotated[VariableFormat, Query(alias="format")] = VariableFormat.DOTTED,
) -> Dict[str, Any]:
    variables = render(context, fmt)
    return {
        "slug": context.slug,
        "version": context.version,
        "format": fmt.value,
        "variables": [{"name": name, "value": value} for name, value in variables],
    }


@theme_router.get("/brand-identity/brand/{brand_id}/{category}/{filename}")
async def brand_asset(
    brand_id: str,
    category: str,
    filename: str,
    request: Request,
    context: TenantContext,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """A brand-specific binary asset (logo, icon, font, image) of the current tenant."""
    path = BrandAssetResolver(settings.brand_assets_root).resolve(context.slug, brand_id, category, filename)
    logger.debug(f"Serving brand asset {path} for tenant '{context.slug}'")
    return FileResponse(path, headers=_tenant_headers(request, settings))
