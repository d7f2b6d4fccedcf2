# tenant_overlay/tenants/service.py
import logging
from typing import Any, Dict, List, Optional

from ..config.validator import ValidationReport
from ..context.engine import TenantContextEngine
from ..errors import OverrideRejectedError, TenantNotFoundError
from .models import TenantCreate, TenantOverride, TenantRecord, TenantStatus, TenantUpdate
from .storage_interfaces import AbstractConfigStore

logger = logging.getLogger(__name__)


class TenantAdminService:
    """
    Service layer for tenant and override administration.

    Every write goes store first, then cache invalidation (local and
    broadcast), so no instance keeps serving the pre-write configuration
    past its next invalidation message.
    """

    def __init__(self, store: AbstractConfigStore, engine: TenantContextEngine):
        self.store = store
        self.engine = engine

    async def create_tenant(self, tenant_create: TenantCreate) -> TenantRecord:
        logger.info(f"Service: Attempting to create tenant with slug: {tenant_create.slug}")
        try:
            record = await self.store.create_tenant(tenant_create)
        except ValueError as ve:
            logger.warning(f"Service: Tenant creation failed for slug '{tenant_create.slug}': {ve}")
            raise
        await self.engine.invalidate(record.slug)
        return record

    async def get_tenant(self, slug: str) -> Optional[TenantRecord]:
        logger.info(f"Service: Getting tenant with slug: {slug}")
        return await self.store.get_tenant_record(slug)

    async def list_tenants(self, skip: int = 0, limit: int = 100) -> List[TenantRecord]:
        logger.info(f"Service: Listing tenants with skip: {skip}, limit: {limit}")
        return await self.store.list_tenants(skip=skip, limit=limit)

    async def update_tenant(self, slug: str, tenant_update: TenantUpdate) -> Optional[TenantRecord]:
        logger.info(f"Service: Updating tenant with slug: {slug}")
        record = await self.store.update_tenant(slug, tenant_update)
        if record is not None:
            await self.engine.invalidate(slug)
        return record

    async def delete_tenant(self, slug: str) -> Optional[TenantRecord]:
        """Soft delete: the record stays, its status becomes ``deleted``."""
        logger.info(f"Service: Soft-deleting tenant with slug: {slug}")
        return await self.update_tenant(slug, TenantUpdate(status=TenantStatus.DELETED))

    async def _ensure_tenant(self, slug: str) -> None:
        if slug == self.engine.resolver.default_tenant_slug:
            return
        if await self.store.get_tenant_record(slug) is None:
            raise TenantNotFoundError(slug)

    async def get_override(self, slug: str) -> Optional[TenantOverride]:
        logger.info(f"Service: Getting override for tenant: {slug}")
        override = await self.store.get_override(slug)
        if override is None or override.deleted:
            return None
        return override

    def preview_override(self, document: Dict[str, Any]) -> ValidationReport:
        return self.engine.resolver.preview(document)

    async def put_override(self, slug: str, document: Dict[str, Any]) -> TenantOverride:
        """
        Validate what ``document`` would produce, then store it.

        Raises:
            TenantNotFoundError: unknown tenant
            OverrideRejectedError: the merged configuration would be invalid
        """
        await self._ensure_tenant(slug)
        report = self.preview_override(document)
        if not report.valid:
            logger.warning(
                f"Service: Rejected override for tenant '{slug}': "
                + "; ".join(str(issue) for issue in report.issues)
            )
            raise OverrideRejectedError(slug, report.issues)

        override = await self.store.put_override(slug, document)
        await self.engine.invalidate(slug)
        logger.info(f"Service: Stored override version {override.version} for tenant '{slug}'")
        return override

    async def delete_override(self, slug: str) -> bool:
        logger.info(f"Service: Deleting override for tenant: {slug}")
        deleted = await self.store.delete_override(slug)
        if deleted:
            await self.engine.invalidate(slug)
        return deleted

    async def invalidate_cache(self, slug: Optional[str] = None) -> None:
        logger.info(f"Service: Invalidating cached context for {slug or 'all tenants'}")
        await self.engine.invalidate(slug)

    async def reload_template(self) -> int:
        logger.info("Service: Reloading default configuration template")
        return await self.engine.reload_template()
