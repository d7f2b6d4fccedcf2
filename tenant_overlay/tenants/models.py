# tenant_overlay/tenants/models.py
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

SLUG_PATTERN = r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$"


class TenantStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class TenantBase(BaseModel):
    """Base model containing common tenant fields shared across operations."""
    display_name: str
    status: TenantStatus = Field(
        default=TenantStatus.ACTIVE,
        description="Tenant status (active, suspended, deleted)"
    )
    custom_domains: List[str] = Field(
        default_factory=list,
        description="Exact host names that identify this tenant"
    )


class TenantCreate(TenantBase):
    """Model for tenant creation requests, includes slug as required field."""
    slug: str = Field(
        pattern=SLUG_PATTERN,
        description="Unique identifier for the tenant (URL slug, subdomain label)"
    )


class TenantUpdate(BaseModel):
    """Model for partial tenant updates - all fields are optional."""
    display_name: Optional[str] = None
    status: Optional[TenantStatus] = None
    custom_domains: Optional[List[str]] = None


class TenantRecord(TenantBase):
    """A tenant as held by the Config Store."""
    slug: str
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE


class TenantOverride(BaseModel):
    """
    A tenant's partial configuration document and its version.

    Deleting an override leaves a tombstone (``deleted``, empty document)
    carrying the next version, so a tenant's version never goes backwards.
    """
    slug: str
    document: Dict[str, Any]
    version: int = Field(ge=1)
    updated_at: datetime
    deleted: bool = False

    model_config = {"frozen": True}


class OverrideWrite(BaseModel):
    """Body of an administrative override write."""
    document: Dict[str, Any]


class OverrideChangeEvent(BaseModel):
    """Emitted by a Config Store after a tenant's record or override changed."""
    slug: str
    version: Optional[int] = None
    reason: str = "override_updated"
