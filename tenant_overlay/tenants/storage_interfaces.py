# tenant_overlay/tenants/storage_interfaces.py
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from .models import OverrideChangeEvent, TenantCreate, TenantOverride, TenantRecord, TenantUpdate

logger = logging.getLogger(__name__)


class AbstractConfigStore(ABC):
    """
    Abstract base class for the durable home of tenant records and overrides.

    Implementations may be slow or unavailable; callers bound every read
    with a timeout. Writers publish an OverrideChangeEvent for every change
    so subscribers (the context cache, other processes) can invalidate.
    """

    def __init__(self) -> None:
        self._subscribers: Set[asyncio.Queue] = set()

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend and prepare it for operations."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up resources and properly close the storage backend."""
        pass

    @abstractmethod
    async def get_tenant_record(self, slug: str) -> Optional[TenantRecord]:
        """Return the record for ``slug``, None if it never existed."""
        pass

    @abstractmethod
    async def get_tenant_by_domain(self, host: str) -> Optional[TenantRecord]:
        """Return the tenant owning ``host`` as a custom domain (exact, case-insensitive)."""
        pass

    @abstractmethod
    async def list_tenants(self, skip: int = 0, limit: int = 100) -> List[TenantRecord]:
        pass

    @abstractmethod
    async def create_tenant(self, tenant_create: TenantCreate) -> TenantRecord:
        """
        Create a new tenant.

        Raises:
            ValueError: If a tenant with the same slug already exists
        """
        pass

    @abstractmethod
    async def update_tenant(self, slug: str, tenant_update: TenantUpdate) -> Optional[TenantRecord]:
        """Apply the set fields of ``tenant_update``; None if the tenant doesn't exist."""
        pass

    @abstractmethod
    async def get_override(self, slug: str) -> Optional[TenantOverride]:
        """Return the tenant's override or its tombstone, None when it never had one."""
        pass

    @abstractmethod
    async def put_override(self, slug: str, document: Dict[str, Any]) -> TenantOverride:
        """Store ``document`` as the tenant's override, bumping its version."""
        pass

    @abstractmethod
    async def delete_override(self, slug: str) -> bool:
        """Replace a live override with a tombstone at the next version; False if there was none."""
        pass

    async def override_changes(self) -> AsyncIterator[OverrideChangeEvent]:
        """Yield change events published after the subscription started."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    def publish_change(self, event: OverrideChangeEvent) -> None:
        logger.debug(f"Config store change for tenant '{event.slug}' ({event.reason}), "
                     f"{len(self._subscribers)} subscriber(s).")
        for queue in list(self._subscribers):
            queue.put_nowait(event)
