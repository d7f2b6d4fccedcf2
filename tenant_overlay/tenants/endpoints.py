# tenant_overlay/tenants/endpoints.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from typing import Any, Dict, List, Annotated, Optional

from pydantic import BaseModel

from .models import OverrideWrite, TenantCreate, TenantOverride, TenantRecord, TenantUpdate
from .service import TenantAdminService
from ..context.engine import TenantContextEngine
from ..dependencies import get_admin_api_key, get_engine

logger = logging.getLogger(__name__)

# Admin routers - require admin API key authentication
tenants_admin_router = APIRouter(
    prefix="/admin/tenants",
    tags=["Admin - Tenants"],
    dependencies=[Depends(get_admin_api_key)]
)
engine_admin_router = APIRouter(
    prefix="/admin",
    tags=["Admin - Engine"],
    dependencies=[Depends(get_admin_api_key)]
)

SlugPath = Annotated[str, Path(description="The slug of the tenant")]


class CacheInvalidation(BaseModel):
    slug: Optional[str] = None


async def get_tenant_admin_service(
    engine: Annotated[TenantContextEngine, Depends(get_engine)]
) -> TenantAdminService:
    return TenantAdminService(engine.store, engine)


Service = Annotated[TenantAdminService, Depends(get_tenant_admin_service)]


@tenants_admin_router.post("/", response_model=TenantRecord, status_code=status.HTTP_201_CREATED)
async def create_tenant_endpoint(tenant_create: TenantCreate, service: Service):
    """Create a new tenant. Returns 409 if the slug already exists."""
    logger.info(f"API: Received request to create tenant: {tenant_create.model_dump()}")
    try:
        return await service.create_tenant(tenant_create)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@tenants_admin_router.get("/", response_model=List[TenantRecord])
@tenants_admin_router.get("", response_model=List[TenantRecord], include_in_schema=False)
async def list_tenants_endpoint(
    service: Service,
    skip: Annotated[int, Query(ge=0, description="Number of tenants to skip.")] = 0,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum number of tenants to return.")] = 100
):
    return await service.list_tenants(skip=skip, limit=limit)


@tenants_admin_router.get("/{slug}", response_model=TenantRecord)
async def get_tenant_endpoint(slug: SlugPath, service: Service):
    record = await service.get_tenant(slug)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return record


@tenants_admin_router.put("/{slug}", response_model=TenantRecord)
async def update_tenant_endpoint(slug: SlugPath, tenant_update: TenantUpdate, service: Service):
    """Update display name, status or custom domains. Returns 404 if the tenant does not exist."""
    try:
        record = await service.update_tenant(slug, tenant_update)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return record


@tenants_admin_router.delete("/{slug}", response_model=TenantRecord)
async def delete_tenant_endpoint(slug: SlugPath, service: Service):
    """Soft-delete a tenant (status becomes ``deleted``; the record is kept)."""
    record = await service.delete_tenant(slug)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return record


@tenants_admin_router.get("/{slug}/override", response_model=TenantOverride)
async def get_override_endpoint(slug: SlugPath, service: Service):
    override = await service.get_override(slug)
    if not override:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant has no override")
    return override


@tenants_admin_router.put("/{slug}/override", response_model=TenantOverride)
async def put_override_endpoint(slug: SlugPath, body: OverrideWrite, service: Service):
    """Replace the tenant's override. Rejected with 422 and the issue list if it would be invalid."""
    return await service.put_override(slug, body.document)


@tenants_admin_router.post("/{slug}/override/preview")
async def preview_override_endpoint(slug: SlugPath, body: OverrideWrite, service: Service) -> Dict[str, Any]:
    """Validate an override without storing it."""
    report = service.preview_override(body.document)
    return {
        "slug": slug,
        "valid": report.valid,
        "issues": [issue.model_dump() for issue in report.issues],
    }


@tenants_admin_router.delete("/{slug}/override", status_code=status.HTTP_204_NO_CONTENT)
async def delete_override_endpoint(slug: SlugPath, service: Service):
    deleted = await service.delete_override(slug)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant has no override")
    return None


@engine_admin_router.post("/cache/invalidate")
async def invalidate_cache_endpoint(body: CacheInvalidation, service: Service) -> Dict[str, Any]:
    """Invalidate one tenant's cached context, or every tenant's when no slug is given."""
    await service.invalidate_cache(body.slug)
    return {"invalidated": body.slug or "*"}


@engine_admin_router.post("/template/reload")
async def reload_template_endpoint(service: Service) -> Dict[str, Any]:
    revision = await service.reload_template()
    return {"revision": revision}
