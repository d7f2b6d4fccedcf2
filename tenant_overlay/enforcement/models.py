# tenant_overlay/enforcement/models.py
from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DenyReason(str, Enum):
    FEATURE_DISABLED = "FeatureDisabled"
    LIMIT_EXCEEDED = "LimitExceeded"
    TENANT_INACTIVE = "TenantInactive"


class Resource(str, Enum):
    USERS = "users"
    API_CALLS = "api_calls"
    STORAGE = "storage"
    POLLS = "polls"
    TRAINING_SESSIONS = "training_sessions"
    PRESENTATIONS = "presentations"
    JOB_POSTS = "job_posts"


class FeatureCheck(BaseModel):
    feature: str

    model_config = ConfigDict(frozen=True)


class LimitCheck(BaseModel):
    resource: Resource
    delta: int = Field(default=1, ge=0)

    model_config = ConfigDict(frozen=True)


Capability = Union[FeatureCheck, LimitCheck]


class Decision(BaseModel):
    allowed: bool
    reason: Optional[DenyReason] = None
    detail: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str) -> "Decision":
        return cls(allowed=False, reason=reason, detail=detail)


class UsageCounters(BaseModel):
    """A tenant's current consumption, owned by an external collaborator."""
    active_users: int = Field(default=0, ge=0)
    api_calls_this_period: int = Field(default=0, ge=0)
    storage_bytes: int = Field(default=0, ge=0)
    other: Dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)
