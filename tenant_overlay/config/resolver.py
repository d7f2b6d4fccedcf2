# tenant_overlay/config/resolver.py
"""
Configuration Resolver: template ⊕ override → ResolvedTenantContext.

Every Config Store read is bounded by a timeout. A merged document that
fails validation is surfaced as ConfigInvalidError; the resolver never
falls back to the template alone, so a broken override cannot quietly
downgrade a tenant's security settings to the defaults.
"""
import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple, TypeVar

from ..context.models import ResolvedTenantContext
from ..errors import (
    ConfigInvalidError,
    StoreTimeoutError,
    StoreUnavailableError,
    TenantContextError,
    TenantNotFoundError,
)
from ..tenants.models import TenantOverride, TenantRecord, TenantStatus
from ..tenants.storage_interfaces import AbstractConfigStore
from .merge import overlay_config
from .template import DefaultTemplateProvider
from .validator import ValidationReport, validate_config

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def bounded_store_call(operation: str, call: Awaitable[T], timeout_seconds: float) -> T:
    """Await a Config Store call, translating timeouts and infrastructure failures."""
    try:
        return await asyncio.wait_for(call, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"Config store {operation} timed out after {timeout_seconds}s")
        raise StoreTimeoutError(operation, timeout_seconds)
    except TenantContextError:
        raise
    except Exception as e:
        logger.error(f"Config store {operation} failed: {e}", exc_info=True)
        raise StoreUnavailableError(operation, cause=str(e)) from e


class ConfigurationResolver:
    def __init__(
        self,
        store: AbstractConfigStore,
        templates: DefaultTemplateProvider,
        default_tenant_slug: Optional[str] = None,
        store_timeout_seconds: float = 2.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.templates = templates
        self.default_tenant_slug = default_tenant_slug or None
        self.store_timeout_seconds = store_timeout_seconds
        self._clock = clock

    async def _fetch(self, operation: str, call: Awaitable[T]) -> T:
        return await bounded_store_call(operation, call, self.store_timeout_seconds)

    def implicit_default_record(self, slug: str) -> TenantRecord:
        """The record used for the default tenant when the store holds none."""
        return TenantRecord(
            slug=slug,
            display_name=slug,
            status=TenantStatus.ACTIVE,
            created_at=self.templates.current.loaded_at,
        )

    async def get_record(self, slug: str) -> TenantRecord:
        record = await self._fetch("get_tenant_record", self.store.get_tenant_record(slug))
        if record is None:
            if slug == self.default_tenant_slug:
                return self.implicit_default_record(slug)
            raise TenantNotFoundError(slug)
        return record

    async def resolve(self, slug: str) -> ResolvedTenantContext:
        """
        Resolve the effective configuration of ``slug``.

        Raises:
            TenantNotFoundError: no record and ``slug`` is not the default tenant
            ConfigInvalidError: the merged document fails validation
            StoreTimeoutError / StoreUnavailableError: the Config Store failed
        """
        record = await self.get_record(slug)
        override = await self._fetch("get_override", self.store.get_override(slug))
        return self.build(record, override)

    def evaluate(self, override_document: Mapping[str, Any]) -> Tuple[dict, ValidationReport]:
        """
        Overlay ``override_document`` on the current template and validate the result.

        Keys the overlay rejects are left out of the merged document, which
        is validated all the same, so the report lists every failure at once.
        """
        merged, issues = overlay_config(self.templates.current.document, override_document)
        report = validate_config(merged)
        if issues:
            report = ValidationReport(issues=issues + report.issues)
        return merged, report

    def build(self, record: TenantRecord, override: Optional[TenantOverride]) -> ResolvedTenantContext:
        # A deleted override leaves a tombstone whose version still counts.
        version = override.version if override else 0
        document = override.document if override and not override.deleted else {}
        merged, report = self.evaluate(document)

        if not report.valid:
            logger.error(
                f"Tenant '{record.slug}' configuration is invalid (override version {version}): "
                + "; ".join(str(issue) for issue in report.issues)
            )
            raise ConfigInvalidError(record.slug, report.issues)

        context = ResolvedTenantContext(
            slug=record.slug,
            display_name=record.display_name,
            status=record.status,
            merged_config=merged,
            config=report.config,
            resolved_at=self._clock(),
            version=version,
        )
        logger.debug(f"Resolved tenant '{record.slug}' at version {context.version}")
        return context

    def preview(self, override_document: Mapping[str, Any]) -> ValidationReport:
        """Validate what ``override_document`` would produce, without storing anything."""
        _, report = self.evaluate(copy.deepcopy(override_document))
        return report
