# tenant_overlay/tenants/__init__.py
"""
Tenant records and overrides.

Data models, the Config Store abstraction with its in-memory and SQLite
implementations, and the administrative service. The admin routers live
in ``tenants.endpoints``.
"""

from .models import (
    TenantStatus,
    TenantCreate,
    TenantUpdate,
    TenantRecord,
    TenantOverride,
    OverrideChangeEvent,
)
from .storage_interfaces import AbstractConfigStore
from .memory_config_store import InMemoryConfigStore
from .sqlite_config_store import SQLiteConfigStore

__all__ = [
    # Data models
    "TenantStatus",
    "TenantCreate",
    "TenantUpdate",
    "TenantRecord",
    "TenantOverride",
    "OverrideChangeEvent",
    # Config Store abstraction and implementations
    "AbstractConfigStore",
    "InMemoryConfigStore",
    "SQLiteConfigStore",
]
