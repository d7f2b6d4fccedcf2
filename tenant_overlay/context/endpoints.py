# tenant_overlay/context/endpoints.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from ..dependencies import build_request_descriptor, get_engine, get_identity, get_tenant_context
from ..enforcement.enforcer import coerce_resource
from ..enforcement.models import Decision, FeatureCheck, LimitCheck
from .engine import TenantContextEngine
from .models import ResolvedTenantContext

logger = logging.getLogger(__name__)

tenant_router = APIRouter(prefix="/tenant", tags=["Tenant Context"])


class AuthorizeRequest(BaseModel):
    """Either ``feature`` or ``resource`` (with ``delta``)."""
    feature: Optional[str] = None
    resource: Optional[str] = None
    delta: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def _one_capability(self) -> "AuthorizeRequest":
        if (self.feature is None) == (self.resource is None):
            raise ValueError("Provide exactly one of 'feature' or 'resource'.")
        return self


@tenant_router.get("/context")
async def tenant_context_endpoint(
    context: Annotated[ResolvedTenantContext, Depends(get_tenant_context)],
    request: Request,
) -> Dict[str, Any]:
    identification = request.state.tenant_identification
    return {
        **context.summary(),
        "identification": identification.model_dump(mode="json"),
    }


@tenant_router.post("/authorize", response_model=Decision)
async def authorize_endpoint(
    body: AuthorizeRequest,
    request: Request,
    engine: Annotated[TenantContextEngine, Depends(get_engine)],
):
    """Ask the enforcer directly. Inactive tenants get a TenantInactive decision, not an error."""
    _, context = await engine.resolve_request(
        build_request_descriptor(request), get_identity(request), require_active=False
    )
    if body.feature is not None:
        capability = FeatureCheck(feature=body.feature)
    else:
        try:
            resource = coerce_resource(body.resource)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
        capability = LimitCheck(resource=resource, delta=body.delta)
    return await engine.authorize(context, capability)
