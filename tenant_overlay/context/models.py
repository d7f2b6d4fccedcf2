# tenant_overlay/context/models.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config.brand import BrandIdentity
from ..config.schema import Limits, TenantConfig
from ..config.tree import FrozenDocument
from ..tenants.models import TenantStatus


class RequestDescriptor(BaseModel):
    """What the routing layer knows about an inbound request."""
    host: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    query: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class IdentityContext(BaseModel):
    """The authenticated principal, when there is one."""
    user_id: str
    tenant_claim: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class IdentificationMethod(str, Enum):
    HEADER = "header"
    QUERY = "query"
    IDENTITY = "identity"
    CUSTOM_DOMAIN = "custom_domain"
    SUBDOMAIN = "subdomain"
    DEFAULT = "default"


class IdentificationResult(BaseModel):
    slug: str
    method: IdentificationMethod
    # Set when the default tenant was used; names why.
    fallback_reason: Optional[str] = None
    candidate: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_fallback(self) -> bool:
        return self.method == IdentificationMethod.DEFAULT


class ResolvedTenantContext(BaseModel):
    """
    An immutable snapshot of one tenant's effective configuration.

    ``merged_config`` is the raw merged document (template overlaid with the
    tenant's override); ``config`` is the same document as a validated,
    typed tree. Both are read-only all the way down (mappingproxies and
    tuples), since the cache shares one instance between every request for
    the tenant. A new override produces a new instance.
    """
    slug: str
    display_name: str
    status: TenantStatus
    merged_config: FrozenDocument
    config: TenantConfig
    resolved_at: datetime
    version: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def brand_identity(self) -> BrandIdentity:
        return self.config.brand_identity

    @property
    def feature_set(self) -> FrozenSet[str]:
        """Keys of every enabled feature."""
        return frozenset(key for key, flag in self.config.features.items() if flag.enabled)

    @property
    def limits(self) -> Limits:
        return self.config.limits

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE

    def same_configuration(self, other: "ResolvedTenantContext") -> bool:
        """Equal in every field except ``resolved_at``."""
        return self.model_dump(exclude={"resolved_at"}) == other.model_dump(exclude={"resolved_at"})

    def summary(self) -> Mapping[str, Any]:
        return {
            "slug": self.slug,
            "displayName": self.display_name,
            "status": self.status.value,
            "version": self.version,
            "resolvedAt": self.resolved_at.isoformat(),
            "features": sorted(self.feature_set),
            "limits": self.limits.model_dump(by_alias=True),
        }
