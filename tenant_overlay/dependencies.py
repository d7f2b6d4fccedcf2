# tenant_overlay/dependencies.py
import logging
from fastapi import Depends, HTTPException, Request, Response, status, Header
from typing import Callable, Optional, Annotated

from .context.engine import TenantContextEngine
from .context.models import IdentityContext, RequestDescriptor, ResolvedTenantContext
from .enforcement.enforcer import coerce_resource
from .enforcement.models import FeatureCheck, LimitCheck
from .errors import CapabilityDeniedError, MissingTenantContextError
from .settings import Settings

logger = logging.getLogger(__name__)

TENANT_SLUG_HEADER = "X-Tenant-Slug"
TENANT_IDENTIFICATION_HEADER = "X-Tenant-Identification"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_engine(request: Request) -> TenantContextEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        logger.critical("Tenant context engine is not available on the application state.")
        raise MissingTenantContextError()
    return engine


async def get_admin_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    x_admin_api_key: Annotated[
        Optional[str],
        Header(description="The API Key for accessing admin routes.")
    ] = None
) -> str:
    """
    Validates admin API key authentication for protected admin endpoints.

    Returns the validated API key if authentication succeeds.
    """
    # Ensure server has admin API key configured before processing requests
    if not settings.admin_api_key:
        logger.critical("ADMIN_API_KEY is not configured on the server. Admin endpoints are effectively disabled.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API service is not configured properly (API Key missing on server).",
        )

    if not x_admin_api_key:
        logger.warning("Admin API: Missing X-Admin-API-Key header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated: X-Admin-API-Key header missing.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    if x_admin_api_key != settings.admin_api_key:
        logger.warning("Admin API: Invalid X-Admin-API-Key provided.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid API Key.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    return x_admin_api_key


def build_request_descriptor(request: Request) -> RequestDescriptor:
    return RequestDescriptor(
        host=request.headers.get("host") or request.url.hostname,
        headers=dict(request.headers),
        query=dict(request.query_params),
    )


def get_identity(request: Request) -> Optional[IdentityContext]:
    """The identity an upstream authentication layer attached to the request, if any."""
    identity = getattr(request.state, "identity", None)
    return identity if isinstance(identity, IdentityContext) else None


async def get_tenant_context(
    request: Request,
    response: Response,
    engine: Annotated[TenantContextEngine, Depends(get_engine)],
) -> ResolvedTenantContext:
    """
    Resolve the tenant of the current request.

    Handlers depending on this never run unscoped: identification and
    resolution failures are raised as TenantContextError subclasses.
    """
    identification, context = await engine.resolve_request(
        build_request_descriptor(request), get_identity(request)
    )
    request.state.tenant_context = context
    request.state.tenant_identification = identification
    response.headers[TENANT_SLUG_HEADER] = context.slug
    response.headers[TENANT_IDENTIFICATION_HEADER] = identification.method.value
    return context


def require_feature(feature: str) -> Callable:
    """Dependency factory: the tenant must have ``feature`` enabled."""

    async def _require_feature(
        context: Annotated[ResolvedTenantContext, Depends(get_tenant_context)],
        engine: Annotated[TenantContextEngine, Depends(get_engine)],
    ) -> ResolvedTenantContext:
        decision = await engine.authorize(context, FeatureCheck(feature=feature))
        if not decision.allowed:
            raise CapabilityDeniedError(decision.reason.value, decision.detail)
        return context

    return _require_feature


def require_capacity(resource: str, delta: int = 1) -> Callable:
    """Dependency factory: the tenant must have room for ``delta`` more of ``resource``."""
    checked_resource = coerce_resource(resource)

    async def _require_capacity(
        context: Annotated[ResolvedTenantContext, Depends(get_tenant_context)],
        engine: Annotated[TenantContextEngine, Depends(get_engine)],
    ) -> ResolvedTenantContext:
        decision = await engine.authorize(context, LimitCheck(resource=checked_resource, delta=delta))
        if not decision.allowed:
            raise CapabilityDeniedError(decision.reason.value, decision.detail)
        return context

    return _require_capacity


def current_tenant_context(request: Request) -> ResolvedTenantContext:
    """The context resolved earlier in this request; a hard failure when there is none."""
    context = getattr(request.state, "tenant_context", None)
    if context is None:
        raise MissingTenantContextError()
    return context
