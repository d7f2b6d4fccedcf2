# tenant_overlay/context/cache.py
"""
Per-slug cache of ResolvedTenantContext with single-flight population.

The cache is the only shared mutable structure of the engine. Entries are
built off to the side and installed whole; an entry is only installed when
no invalidation for its slug happened while it was being built, so a
resolution that started before an override write can never overwrite the
newer state.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .models import ResolvedTenantContext

logger = logging.getLogger(__name__)

Resolve = Callable[[str], Awaitable[ResolvedTenantContext]]


class CacheEntry(BaseModel):
    slug: str
    value: ResolvedTenantContext
    expires_at: float
    source_version: int

    model_config = ConfigDict(frozen=True)


class CacheStats(BaseModel):
    hits: int = 0
    misses: int = 0
    joins: int = 0
    installs: int = 0
    discarded: int = 0
    invalidations: int = 0


class TenantContextCache:
    def __init__(
        self,
        resolve: Resolve,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._resolve = resolve
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._generations: Dict[str, int] = {}
        self._global_generation = 0
        self.stats = CacheStats()

    def _generation(self, slug: str) -> Tuple[int, int]:
        return self._global_generation, self._generations.get(slug, 0)

    def peek(self, slug: str) -> Optional[CacheEntry]:
        """The live entry for ``slug``, if any. Never triggers a resolution."""
        entry = self._entries.get(slug)
        if entry is not None and entry.expires_at > self._clock():
            return entry
        return None

    async def get_or_resolve(self, slug: str) -> ResolvedTenantContext:
        """
        Return the cached context for ``slug`` or resolve it.

        Concurrent misses for the same slug share one resolution. Cancelling
        a caller abandons only that caller's wait.
        """
        entry = self.peek(slug)
        if entry is not None:
            self.stats.hits += 1
            return entry.value

        task = self._inflight.get(slug)
        if task is None:
            self.stats.misses += 1
            logger.debug(f"Cache miss for tenant '{slug}', resolving.")
            task = asyncio.get_running_loop().create_task(
                self._populate(slug, self._generation(slug)),
                name=f"tenant-context-resolve:{slug}",
            )
            task.add_done_callback(_retrieve_exception)
            self._inflight[slug] = task
        else:
            self.stats.joins += 1
            logger.debug(f"Joining in-flight resolution for tenant '{slug}'.")
        return await asyncio.shield(task)

    async def _populate(self, slug: str, generation: Tuple[int, int]) -> ResolvedTenantContext:
        try:
            context = await self._resolve(slug)
        finally:
            if self._inflight.get(slug) is asyncio.current_task():
                del self._inflight[slug]

        if self._generation(slug) != generation:
            # Invalidated while resolving; hand the result to this flight's waiters only.
            self.stats.discarded += 1
            logger.debug(f"Discarding stale resolution for tenant '{slug}' (invalidated in flight).")
            return context

        self._entries[slug] = CacheEntry(
            slug=slug,
            value=context,
            expires_at=self._clock() + self.ttl_seconds,
            source_version=context.version,
        )
        self.stats.installs += 1
        logger.debug(f"Installed context for tenant '{slug}' at version {context.version}.")
        return context

    def invalidate(self, slug: str) -> None:
        """Drop the entry and any in-flight resolution for ``slug``."""
        self._generations[slug] = self._generations.get(slug, 0) + 1
        self._entries.pop(slug, None)
        self._inflight.pop(slug, None)
        self.stats.invalidations += 1
        logger.info(f"Invalidated cached context for tenant '{slug}'.")

    def invalidate_all(self) -> None:
        self._global_generation += 1
        self._generations.clear()
        self._entries.clear()
        self._inflight.clear()
        self.stats.invalidations += 1
        logger.info("Invalidated every cached tenant context.")

    def __len__(self) -> int:
        return len(self._entries)

    def describe(self) -> dict:
        return {
            "entries": len(self._entries),
            "inflight": len(self._inflight),
            "ttlSeconds": self.ttl_seconds,
            **self.stats.model_dump(),
        }

    async def close(self) -> None:
        """Cancel outstanding resolutions and drop every entry."""
        tasks = list(self._inflight.values())
        self.invalidate_all()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def _retrieve_exception(task: asyncio.Task) -> None:
    # Waiters may all have been cancelled; mark the failure as observed.
    if not task.cancelled():
        task.exception()
