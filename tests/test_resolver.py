# tests/test_resolver.py
import asyncio

import pytest

from tenant_overlay.config.resolver import ConfigurationResolver
from tenant_overlay.config.tree import thaw
from tenant_overlay.errors import (
    ConfigInvalidError,
    StoreTimeoutError,
    StoreUnavailableError,
    TenantNotFoundError,
)
from tenant_overlay.tenants.memory_config_store import InMemoryConfigStore
from tenant_overlay.tenants.models import TenantCreate, TenantStatus


class SlowConfigStore(InMemoryConfigStore):
    async def get_override(self, slug):
        await asyncio.sleep(5)
        return await super().get_override(slug)


class BrokenConfigStore(InMemoryConfigStore):
    async def get_tenant_record(self, slug):
        raise ConnectionError("database is gone")


async def test_tenant_without_override_gets_the_template(resolver, tenants, templates):
    context = await resolver.resolve("acme")

    assert context.slug == "acme"
    assert context.display_name == "Acme Corp"
    assert context.version == 0
    assert thaw(context.merged_config) == templates.current.document
    assert context.config == templates.current.config


async def test_override_keys_take_the_override_value(resolver, tenants):
    await tenants.put_override("acme", {
        "limits": {"maxUsers": 10},
        "features": {"jobBoard": {"enabled": True}},
    })

    context = await resolver.resolve("acme")

    assert context.version == 1
    assert context.limits.max_users == 10
    assert context.limits.max_polls == 50
    assert "jobBoard" in context.feature_set
    assert "polls" in context.feature_set


async def test_resolution_is_idempotent(resolver, tenants):
    await tenants.put_override("acme", {"limits": {"maxUsers": 10}})

    first = await resolver.resolve("acme")
    second = await resolver.resolve("acme")

    assert first is not second
    assert first.same_configuration(second)


async def test_unknown_tenant_is_not_found(resolver, tenants):
    with pytest.raises(TenantNotFoundError) as exc_info:
        await resolver.resolve("nope")

    assert exc_info.value.status_code == 404


async def test_default_tenant_resolves_without_a_record(resolver, templates):
    context = await resolver.resolve("default")

    assert context.slug == "default"
    assert context.is_active
    assert thaw(context.merged_config) == templates.current.document


async def test_suspended_tenant_still_resolves(resolver, tenants):
    context = await resolver.resolve("initech")

    assert context.status == TenantStatus.SUSPENDED
    assert not context.is_active


async def test_invalid_stored_override_fails_without_fallback(resolver, tenants):
    # Written straight to the store, bypassing the admin validation.
    await tenants.put_override("acme", {"security": {"sessionTimeoutSeconds": 1}})

    with pytest.raises(ConfigInvalidError) as exc_info:
        await resolver.resolve("acme")

    error = exc_info.value
    assert error.status_code == 500
    assert [issue.path for issue in error.issues] == ["security.sessionTimeoutSeconds"]
    assert "issues" not in error.detail


async def test_unknown_key_in_stored_override_fails(resolver, tenants):
    await tenants.put_override("acme", {"limits": {"maxWidgets": 1}})

    with pytest.raises(ConfigInvalidError) as exc_info:
        await resolver.resolve("acme")

    assert [issue.path for issue in exc_info.value.issues] == ["limits.maxWidgets"]


async def test_store_timeout_is_reported_as_retryable(templates):
    store = SlowConfigStore()
    await store.create_tenant(TenantCreate(slug="acme", display_name="Acme"))
    resolver = ConfigurationResolver(store, templates, store_timeout_seconds=0.05)

    with pytest.raises(StoreTimeoutError) as exc_info:
        await resolver.resolve("acme")

    assert exc_info.value.retryable
    assert exc_info.value.status_code == 503
    assert exc_info.value.operation == "get_override"


async def test_store_failure_is_reported_as_unavailable(templates):
    resolver = ConfigurationResolver(BrokenConfigStore(), templates)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await resolver.resolve("acme")

    assert exc_info.value.retryable
    assert "database is gone" in exc_info.value.cause


def test_preview_reports_every_issue_without_storing(resolver):
    report = resolver.preview({"limits": {"maxUsers": -1}, "billing": True})

    assert not report.valid
    assert [issue.path for issue in report.issues] == ["billing", "limits.maxUsers"]


def test_preview_of_valid_override(resolver):
    report = resolver.preview({"limits": {"maxUsers": 10}})

    assert report.valid
    assert report.config.limits.max_users == 10


async def test_deleted_override_resolves_to_the_template_at_a_newer_version(resolver, tenants):
    await tenants.put_override("acme", {"limits": {"maxUsers": 10}})
    await tenants.delete_override("acme")

    context = await resolver.resolve("acme")

    assert context.version == 2
    assert context.limits.max_users == 25
