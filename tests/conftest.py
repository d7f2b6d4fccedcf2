# tests/conftest.py
import asyncio
import copy
import json
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from tenant_overlay.config.resolver import ConfigurationResolver
from tenant_overlay.config.template import DefaultTemplateProvider
from tenant_overlay.context.engine import TenantContextEngine
from tenant_overlay.context.invalidation import InProcessInvalidationBus
from tenant_overlay.enforcement.usage import InMemoryUsageCounterSource
from tenant_overlay.main import create_app
from tenant_overlay.settings import DEFAULT_TEMPLATE_PATH, Settings
from tenant_overlay.tenants.memory_config_store import InMemoryConfigStore
from tenant_overlay.tenants.models import TenantCreate, TenantOverride, TenantRecord, TenantStatus

ADMIN_API_KEY = "test-admin-key"
FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


async def wait_until(predicate, attempts: int = 100) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture(scope="session")
def template_source():
    with open(DEFAULT_TEMPLATE_PATH, encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture
def template_document(template_source):
    return copy.deepcopy(template_source)


@pytest.fixture
def templates(template_document):
    provider = DefaultTemplateProvider(document=template_document)
    provider.load()
    return provider


@pytest.fixture
def store():
    return InMemoryConfigStore()


@pytest.fixture
async def tenants(store):
    """acme (custom domain portal.acme-corp.com), globex, and the suspended initech."""
    await store.create_tenant(TenantCreate(
        slug="acme", display_name="Acme Corp", custom_domains=["portal.acme-corp.com"]
    ))
    await store.create_tenant(TenantCreate(slug="globex", display_name="Globex"))
    await store.create_tenant(TenantCreate(
        slug="initech", display_name="Initech", status=TenantStatus.SUSPENDED
    ))
    return store


@pytest.fixture
def resolver(store, templates):
    return ConfigurationResolver(store, templates, default_tenant_slug="default", store_timeout_seconds=0.5)


@pytest.fixture
def make_context(templates):
    """Build a ResolvedTenantContext from an override document without touching a store."""
    builder = ConfigurationResolver(InMemoryConfigStore(), templates, default_tenant_slug="default")

    def _make(slug="acme", override=None, version=1, status=TenantStatus.ACTIVE):
        record = TenantRecord(slug=slug, display_name=slug.title(), status=status, created_at=FIXED_NOW)
        tenant_override = None
        if version:
            tenant_override = TenantOverride(
                slug=slug, document=override or {}, version=version, updated_at=FIXED_NOW
            )
        return builder.build(record, tenant_override)

    return _make


def make_settings(**overrides) -> Settings:
    values = {
        "storage_backend": "memory",
        "invalidation_backend": "local",
        "admin_api_key": ADMIN_API_KEY,
        "default_tenant_slug": "default",
        "cache_ttl_seconds": 300,
        "store_timeout_seconds": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
async def engine(tenants, templates):
    engine = TenantContextEngine.from_settings(
        make_settings(), store=tenants, bus=InProcessInvalidationBus(), templates=templates
    )
    await engine.start()
    yield engine
    await engine.close()


@pytest.fixture
def usage():
    return InMemoryUsageCounterSource()


@pytest.fixture
def client(tmp_path, usage):
    app = create_app(
        make_settings(brand_assets_root=str(tmp_path)),
        store=InMemoryConfigStore(),
        usage=usage,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"X-Admin-API-Key": ADMIN_API_KEY}
