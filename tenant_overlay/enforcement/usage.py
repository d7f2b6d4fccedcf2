# tenant_overlay/enforcement/usage.py
import logging
from abc import ABC, abstractmethod
from typing import Dict, Union

from .enforcer import RESOURCE_LIMITS, coerce_resource, current_usage
from .models import Resource, UsageCounters

logger = logging.getLogger(__name__)


class AbstractUsageCounterSource(ABC):
    """Where the enforcer reads a tenant's current consumption from."""

    async def initialize(self) -> None:
        pass

    async def teardown(self) -> None:
        pass

    @abstractmethod
    async def get_usage(self, slug: str) -> UsageCounters:
        pass


class InMemoryUsageCounterSource(AbstractUsageCounterSource):
    """Process-local counters with increment, set and period reset."""

    def __init__(self) -> None:
        self._counters: Dict[str, UsageCounters] = {}

    async def get_usage(self, slug: str) -> UsageCounters:
        return self._counters.get(slug, UsageCounters())

    def _with(self, slug: str, resource: Resource, value: int) -> UsageCounters:
        current = self._counters.get(slug, UsageCounters())
        _, counter = RESOURCE_LIMITS[resource]
        if counter is None:
            updated = current.model_copy(update={"other": {**current.other, resource.value: value}})
        else:
            updated = current.model_copy(update={counter: value})
        self._counters[slug] = updated
        return updated

    async def set(self, slug: str, resource: Union[Resource, str], value: int) -> UsageCounters:
        if value < 0:
            raise ValueError("Usage counters cannot be negative.")
        return self._with(slug, coerce_resource(resource), value)

    async def increment(self, slug: str, resource: Union[Resource, str], delta: int = 1) -> UsageCounters:
        resource = coerce_resource(resource)
        current = current_usage(await self.get_usage(slug), resource)
        return self._with(slug, resource, max(0, current + delta))

    async def reset_period(self, slug: str) -> UsageCounters:
        """Zero the per-period counters (API calls); stock counters are kept."""
        logger.info(f"Resetting period usage counters for tenant '{slug}'.")
        return self._with(slug, Resource.API_CALLS, 0)
