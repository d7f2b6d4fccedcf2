# tenant_overlay/tenants/memory_config_store.py
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import OverrideChangeEvent, TenantCreate, TenantOverride, TenantRecord, TenantUpdate
from .storage_interfaces import AbstractConfigStore

logger = logging.getLogger(__name__)


class InMemoryConfigStore(AbstractConfigStore):
    """Process-local Config Store, used for development and tests."""

    def __init__(self) -> None:
        super().__init__()
        self._tenants: Dict[str, TenantRecord] = {}
        self._overrides: Dict[str, TenantOverride] = {}
        # Kept across deletes so a re-created override never reuses a version.
        self._versions: Dict[str, int] = {}

    async def initialize(self) -> None:
        logger.info("InMemoryConfigStore initialized.")

    async def teardown(self) -> None:
        logger.info("InMemoryConfigStore teardown.")

    async def get_tenant_record(self, slug: str) -> Optional[TenantRecord]:
        return self._tenants.get(slug)

    async def get_tenant_by_domain(self, host: str) -> Optional[TenantRecord]:
        host = host.lower()
        for record in self._tenants.values():
            if host in (domain.lower() for domain in record.custom_domains):
                return record
        return None

    async def list_tenants(self, skip: int = 0, limit: int = 100) -> List[TenantRecord]:
        records = sorted(self._tenants.values(), key=lambda r: r.created_at, reverse=True)
        return records[skip:skip + limit]

    async def create_tenant(self, tenant_create: TenantCreate) -> TenantRecord:
        if tenant_create.slug in self._tenants:
            raise ValueError(f"Tenant with slug '{tenant_create.slug}' already exists.")
        record = TenantRecord(
            slug=tenant_create.slug,
            display_name=tenant_create.display_name,
            status=tenant_create.status,
            custom_domains=list(tenant_create.custom_domains),
            created_at=datetime.now(timezone.utc),
        )
        self._tenants[record.slug] = record
        self.publish_change(OverrideChangeEvent(slug=record.slug, reason="tenant_created"))
        return record

    async def update_tenant(self, slug: str, tenant_update: TenantUpdate) -> Optional[TenantRecord]:
        current = self._tenants.get(slug)
        if current is None:
            return None
        update_fields = tenant_update.model_dump(exclude_unset=True)
        if not update_fields:
            return current
        updated = current.model_copy(update=update_fields)
        self._tenants[slug] = updated
        self.publish_change(OverrideChangeEvent(slug=slug, reason="tenant_updated"))
        return updated

    async def get_override(self, slug: str) -> Optional[TenantOverride]:
        return self._overrides.get(slug)

    def _next_version(self, slug: str) -> int:
        version = self._versions.get(slug, 0) + 1
        self._versions[slug] = version
        return version

    async def put_override(self, slug: str, document: Dict[str, Any]) -> TenantOverride:
        version = self._next_version(slug)
        override = TenantOverride(
            slug=slug,
            document=copy.deepcopy(document),
            version=version,
            updated_at=datetime.now(timezone.utc),
        )
        self._overrides[slug] = override
        self.publish_change(OverrideChangeEvent(slug=slug, version=version))
        return override

    async def delete_override(self, slug: str) -> bool:
        current = self._overrides.get(slug)
        if current is None or current.deleted:
            return False
        version = self._next_version(slug)
        self._overrides[slug] = TenantOverride(
            slug=slug,
            document={},
            version=version,
            updated_at=datetime.now(timezone.utc),
            deleted=True,
        )
        self.publish_change(OverrideChangeEvent(slug=slug, version=version, reason="override_deleted"))
        return True
