# tenant_overlay/config/schema.py
from typing import Annotated, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .brand import BrandIdentity
from .tree import FrozenMap

Count = Annotated[int, Field(ge=0)]
Days = Annotated[int, Field(ge=1, le=3650)]


class ConfigSection(BaseModel):
    """Base for the top-level configuration sections: camelCase keys, closed, immutable."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class GeneralSettings(ConfigSection):
    locale: Annotated[str, Field(min_length=2, max_length=16)]
    timezone: str
    support_email: Optional[str] = None


class FeatureFlag(ConfigSection):
    enabled: bool


class Limits(ConfigSection):
    max_users: Count
    max_api_calls_per_period: Count
    max_storage_bytes: Count
    max_polls: Count
    max_training_sessions: Count
    max_presentations: Count
    max_job_posts: Count


class PasswordPolicy(ConfigSection):
    min_length: Annotated[int, Field(ge=6, le=128)]
    require_uppercase: bool
    require_lowercase: bool
    require_numbers: bool
    require_special_chars: bool
    max_age_days: Days


class SecuritySettings(ConfigSection):
    mfa_required: bool
    sso_enabled: bool
    session_timeout_seconds: Annotated[int, Field(ge=300, le=86400)]
    password_policy: PasswordPolicy
    ip_allowlist: Tuple[str, ...]
    allowed_domains: Tuple[str, ...]


class EmailChannel(ConfigSection):
    enabled: bool
    from_address: Optional[str] = None


class ProviderChannel(ConfigSection):
    enabled: bool
    provider: str


class NotificationSettings(ConfigSection):
    email: EmailChannel
    sms: ProviderChannel
    push: ProviderChannel


class DataRetention(ConfigSection):
    user_data_days: Days
    activity_log_days: Days
    audit_log_days: Days


class TenantConfig(ConfigSection):
    """The complete configuration of one tenant (template ⊕ override)."""
    general: GeneralSettings
    features: FrozenMap[str, FeatureFlag]
    limits: Limits
    security: SecuritySettings
    notifications: NotificationSettings
    data_retention: DataRetention
    brand_identity: BrandIdentity


