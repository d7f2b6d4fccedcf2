# tenant_overlay/errors.py
from fastapi import HTTPException, status
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel


class ValidationIssue(BaseModel):
    """One failed constraint in a configuration document."""
    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


class TenantContextError(HTTPException):
    """Base class for tenant identification and resolution errors.

    Inherits from FastAPI's HTTPException so the routing layer renders it
    directly. The ``detail`` only ever carries a client-safe message.
    """

    retryable: bool = False

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        headers: Optional[Dict[str, str]] = None
    ):
        self.error = error
        self.message = message
        super().__init__(
            status_code=status_code,
            detail={"error": error, "message": message},
            headers=headers
        )


class TenantNotIdentifiedError(TenantContextError):
    """No tenant signal matched and no default tenant is configured."""

    def __init__(self, message: str = "Tenant could not be identified from the request."):
        super().__init__(status.HTTP_400_BAD_REQUEST, "tenant_not_identified", message)


class TenantNotFoundError(TenantContextError):
    """The slug matches no tenant record."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            "tenant_not_found",
            f"Tenant '{slug}' does not exist."
        )


class TenantInactiveError(TenantContextError):
    """The tenant exists but is suspended or deleted.

    Kept distinct from TenantNotFoundError so "never existed" and
    "existed then revoked" can be told apart.
    """

    def __init__(self, slug: str, tenant_status: str):
        self.slug = slug
        self.tenant_status = tenant_status
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "tenant_inactive",
            f"Tenant '{slug}' is not active."
        )


class ConfigInvalidError(TenantContextError):
    """The merged configuration failed schema validation.

    ``issues`` holds every failure (path + reason) for operators; it is
    logged, never rendered to clients.
    """

    def __init__(self, slug: str, issues: Sequence[ValidationIssue]):
        self.slug = slug
        self.issues: List[ValidationIssue] = list(issues)
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "tenant_config_invalid",
            "Tenant configuration is invalid."
        )


class StoreTimeoutError(TenantContextError):
    """The Config Store did not answer within the configured timeout."""

    retryable = True

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "config_store_timeout",
            "Tenant configuration is temporarily unavailable.",
            headers={"Retry-After": "1"}
        )


class StoreUnavailableError(TenantContextError):
    """The Config Store failed for an infrastructure reason."""

    retryable = True

    def __init__(self, operation: str, cause: Optional[str] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "config_store_unavailable",
            "Tenant configuration is temporarily unavailable."
        )


class UnresolvedTokenError(TenantContextError):
    """A brand-identity leaf references a palette token that does not exist."""

    def __init__(self, path: str, token: str):
        self.path = path
        self.token = token
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "theme_token_unresolved",
            "Brand identity could not be rendered."
        )


class AssetNotFoundError(TenantContextError):
    def __init__(self):
        super().__init__(status.HTTP_404_NOT_FOUND, "brand_asset_not_found", "Brand asset not found.")


class InvalidAssetPathError(TenantContextError):
    def __init__(self, message: str = "Invalid brand asset path."):
        super().__init__(status.HTTP_400_BAD_REQUEST, "invalid_asset_path", message)


class OverrideRejectedError(TenantContextError):
    """An administrative override write would produce an invalid configuration.

    Unlike ConfigInvalidError the issues are returned to the (admin) caller.
    """

    def __init__(self, slug: str, issues: Sequence[ValidationIssue]):
        self.slug = slug
        self.issues = list(issues)
        HTTPException.__init__(
            self,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "override_rejected",
                "message": f"Override for tenant '{slug}' does not produce a valid configuration.",
                "issues": [issue.model_dump() for issue in self.issues],
            },
        )
        self.error = "override_rejected"
        self.message = self.detail["message"]


class MissingTenantContextError(TenantContextError):
    """A handler ran without a resolved tenant context."""

    def __init__(self):
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "tenant_context_missing",
            "Request is not scoped to a tenant."
        )


class CapabilityDeniedError(TenantContextError):
    """The enforcer denied a feature or capacity required by a handler."""

    def __init__(self, reason: str, detail: Optional[str] = None):
        self.reason = reason
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "capability_denied",
            detail or "Operation not permitted for this tenant."
        )
        self.detail["reason"] = reason
