# tenant_overlay/context/engine.py
"""
The engine: one explicitly-owned object wiring the identifier, resolver,
cache, invalidation bus and usage counters together. It is created per
application (see ``main.create_app``) and torn down with it, never held
in a module-level global.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..config.resolver import ConfigurationResolver
from ..config.template import DefaultTemplateProvider
from ..enforcement.enforcer import authorize
from ..enforcement.models import Capability, Decision, LimitCheck
from ..enforcement.usage import AbstractUsageCounterSource, InMemoryUsageCounterSource
from ..errors import TenantInactiveError
from ..settings import Settings
from ..tenants.memory_config_store import InMemoryConfigStore
from ..tenants.sqlite_config_store import SQLiteConfigStore
from ..tenants.storage_interfaces import AbstractConfigStore
from .cache import TenantContextCache
from .identifier import TenantIdentifier
from .invalidation import AbstractInvalidationBus, InProcessInvalidationBus, RedisInvalidationBus
from .models import IdentificationResult, IdentityContext, RequestDescriptor, ResolvedTenantContext

logger = logging.getLogger(__name__)


def build_config_store(settings: Settings) -> AbstractConfigStore:
    if settings.storage_backend == "sqlite":
        return SQLiteConfigStore(settings.sqlite_db_path)
    if settings.storage_backend == "memory":
        return InMemoryConfigStore()
    raise ValueError(f"Unsupported storage_backend: {settings.storage_backend}")


def build_invalidation_bus(settings: Settings) -> AbstractInvalidationBus:
    if settings.invalidation_backend == "redis":
        return RedisInvalidationBus(
            channel=settings.invalidation_channel,
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
        )
    if settings.invalidation_backend == "local":
        return InProcessInvalidationBus()
    raise ValueError(f"Unsupported invalidation_backend: {settings.invalidation_backend}")


class TenantContextEngine:
    def __init__(
        self,
        store: AbstractConfigStore,
        templates: DefaultTemplateProvider,
        identifier: TenantIdentifier,
        resolver: ConfigurationResolver,
        cache: TenantContextCache,
        bus: AbstractInvalidationBus,
        usage: AbstractUsageCounterSource,
    ):
        self.store = store
        self.templates = templates
        self.identifier = identifier
        self.resolver = resolver
        self.cache = cache
        self.bus = bus
        self.usage = usage
        self._watcher: Optional[asyncio.Task] = None
        self._started: List[Any] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Optional[AbstractConfigStore] = None,
        bus: Optional[AbstractInvalidationBus] = None,
        usage: Optional[AbstractUsageCounterSource] = None,
        templates: Optional[DefaultTemplateProvider] = None,
    ) -> "TenantContextEngine":
        store = store or build_config_store(settings)
        templates = templates or DefaultTemplateProvider(path=settings.default_template_path)
        identifier = TenantIdentifier(
            store,
            header_names=settings.tenant_header_names,
            query_params=settings.tenant_query_params,
            reserved_subdomains=settings.reserved_subdomains,
            default_tenant_slug=settings.default_tenant_slug,
            store_timeout_seconds=settings.store_timeout_seconds,
        )
        resolver = ConfigurationResolver(
            store,
            templates,
            default_tenant_slug=settings.default_tenant_slug,
            store_timeout_seconds=settings.store_timeout_seconds,
        )
        cache = TenantContextCache(resolver.resolve, ttl_seconds=settings.cache_ttl_seconds)
        return cls(
            store=store,
            templates=templates,
            identifier=identifier,
            resolver=resolver,
            cache=cache,
            bus=bus or build_invalidation_bus(settings),
            usage=usage or InMemoryUsageCounterSource(),
        )

    async def start(self) -> None:
        logger.info("Tenant context engine startup initiated.")
        self.templates.load()
        for component in (self.store, self.bus, self.usage):
            await component.initialize()
            self._started.append(component)
        self.bus.subscribe(self._on_remote_invalidation)
        self._watcher = asyncio.get_running_loop().create_task(
            self._watch_store_changes(), name="tenant-overlay-store-watcher"
        )
        # Let the watcher subscribe before any write can happen.
        await asyncio.sleep(0)
        logger.info("Tenant context engine started.")

    async def close(self) -> None:
        logger.info("Tenant context engine shutdown initiated.")
        if self._watcher is not None:
            self._watcher.cancel()
            try:
                await self._watcher
            except asyncio.CancelledError:
                pass
            self._watcher = None
        await self.cache.close()
        for component in reversed(self._started):
            try:
                await component.teardown()
            except Exception as e:
                logger.error(f"Teardown error for {type(component).__name__}: {e}", exc_info=True)
        self._started.clear()
        logger.info("All engine components torn down.")

    async def _watch_store_changes(self) -> None:
        async for event in self.store.override_changes():
            logger.debug(f"Store change for tenant '{event.slug}' ({event.reason}).")
            self.cache.invalidate(event.slug)

    def _on_remote_invalidation(self, slug: Optional[str]) -> None:
        if slug is None:
            self.cache.invalidate_all()
        else:
            self.cache.invalidate(slug)

    async def identify(
        self, request: RequestDescriptor, identity: Optional[IdentityContext] = None
    ) -> IdentificationResult:
        return await self.identifier.identify(request, identity)

    async def get_context(self, slug: str) -> ResolvedTenantContext:
        return await self.cache.get_or_resolve(slug)

    async def resolve_request(
        self,
        request: RequestDescriptor,
        identity: Optional[IdentityContext] = None,
        require_active: bool = True,
    ) -> Tuple[IdentificationResult, ResolvedTenantContext]:
        """
        Identify the tenant of ``request`` and return its context.

        Raises:
            TenantInactiveError: the tenant is suspended or deleted and ``require_active`` is set
        """
        identification = await self.identify(request, identity)
        context = await self.get_context(identification.slug)
        if require_active and not context.is_active:
            logger.warning(f"Rejected request for inactive tenant '{context.slug}' ({context.status.value}).")
            raise TenantInactiveError(context.slug, context.status.value)
        return identification, context

    async def authorize(self, context: ResolvedTenantContext, capability: Capability) -> Decision:
        usage = await self.usage.get_usage(context.slug) if isinstance(capability, LimitCheck) else None
        decision = authorize(context, capability, usage)
        if not decision.allowed:
            logger.info(f"Denied {capability!r} for tenant '{context.slug}': {decision.reason.value}")
        return decision

    async def invalidate(self, slug: Optional[str] = None) -> None:
        """
        Invalidate locally and broadcast to every other instance (None: all tenants).

        A failed broadcast is logged, not raised: the write that triggered it
        has already been stored, and other instances catch up within the
        cache TTL.
        """
        if slug is None:
            self.cache.invalidate_all()
        else:
            self.cache.invalidate(slug)
        try:
            await self.bus.publish(slug)
        except Exception as e:
            logger.error(
                f"Failed to broadcast invalidation for {slug or 'all tenants'}; other instances "
                f"may serve the previous configuration for up to {self.cache.ttl_seconds}s: {e}",
                exc_info=True,
            )

    async def reload_template(self) -> int:
        template = self.templates.reload()
        await self.invalidate(None)
        return template.revision

    def health(self) -> Dict[str, Any]:
        template = self.templates.current
        return {
            "store": type(self.store).__name__,
            "template": {"source": template.source, "revision": template.revision,
                         "loadedAt": template.loaded_at.isoformat()},
            "invalidation": self.bus.describe(),
            "cache": self.cache.describe(),
        }
