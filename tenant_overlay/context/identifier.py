# tenant_overlay/context/identifier.py
"""
Tenant Identifier: Request Descriptor (+ optional identity) → tenant slug.

Signals are consulted in a fixed order and the first one that yields a
candidate wins; later signals are never consulted:

1. tenant header (``X-Tenant-Slug``, ``X-Tenant-ID``)
2. query parameter (``tenant``, ``tenantId``)
3. the authenticated identity's tenant claim
4. exact custom-domain match on the request host
5. first label of the request host, unless reserved

When no signal yields a candidate, or the candidate is not a known tenant,
the configured default slug is used and the fallback is logged. Suspended
or deleted tenants are still identified; rejecting them is left to the
status gate downstream.
"""
import ipaddress
import logging
from typing import Iterable, Optional, Tuple

from ..config.resolver import bounded_store_call
from ..errors import TenantNotIdentifiedError
from ..tenants.storage_interfaces import AbstractConfigStore
from .models import IdentificationMethod, IdentificationResult, IdentityContext, RequestDescriptor

logger = logging.getLogger(__name__)


def normalize_host(host: Optional[str]) -> Optional[str]:
    """Lower-case ``host`` and strip its port and trailing dot."""
    if not host:
        return None
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, possibly with a port
        return host[1:host.index("]")] if "]" in host else host
    host = host.rsplit(":", 1)[0] if host.count(":") == 1 else host
    return host.rstrip(".") or None


def _is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


class TenantIdentifier:
    def __init__(
        self,
        store: AbstractConfigStore,
        header_names: Iterable[str] = ("X-Tenant-Slug", "X-Tenant-ID"),
        query_params: Iterable[str] = ("tenant", "tenantId"),
        reserved_subdomains: Iterable[str] = ("www", "app", "api", "localhost"),
        default_tenant_slug: Optional[str] = None,
        store_timeout_seconds: float = 2.0,
    ):
        self.store = store
        self.header_names = list(header_names)
        self.query_params = list(query_params)
        self.reserved_subdomains = {label.lower() for label in reserved_subdomains}
        self.default_tenant_slug = default_tenant_slug or None
        self.store_timeout_seconds = store_timeout_seconds

    def subdomain_label(self, host: Optional[str]) -> Optional[str]:
        """The tenant label of ``host`` (``acme`` for ``acme.example.com``), if any."""
        host = normalize_host(host)
        if not host or _is_ip_address(host):
            return None
        labels = host.split(".")
        if len(labels) < 3:
            return None
        label = labels[0]
        if not label or label in self.reserved_subdomains:
            return None
        return label

    def explicit_candidate(
        self, request: RequestDescriptor, identity: Optional[IdentityContext] = None
    ) -> Optional[Tuple[str, IdentificationMethod]]:
        """The first candidate from signals 1-3, which need no store lookup."""
        for name in self.header_names:
            value = request.header(name)
            if value and value.strip():
                return value.strip(), IdentificationMethod.HEADER
        for name in self.query_params:
            value = request.query.get(name)
            if value and value.strip():
                return value.strip(), IdentificationMethod.QUERY
        if identity is not None and identity.tenant_claim:
            return identity.tenant_claim, IdentificationMethod.IDENTITY
        return None

    async def _is_known(self, slug: str) -> bool:
        if slug == self.default_tenant_slug:
            return True
        record = await bounded_store_call(
            "get_tenant_record", self.store.get_tenant_record(slug), self.store_timeout_seconds
        )
        return record is not None

    async def identify(
        self, request: RequestDescriptor, identity: Optional[IdentityContext] = None
    ) -> IdentificationResult:
        """
        Raises:
            TenantNotIdentifiedError: nothing matched and no default slug is configured
            StoreTimeoutError / StoreUnavailableError: a store lookup failed
        """
        candidate = self.explicit_candidate(request, identity)

        if candidate is None:
            host = normalize_host(request.host)
            if host:
                record = await bounded_store_call(
                    "get_tenant_by_domain", self.store.get_tenant_by_domain(host), self.store_timeout_seconds
                )
                if record is not None:
                    logger.debug(f"Tenant '{record.slug}' identified by custom domain '{host}'.")
                    return IdentificationResult(slug=record.slug, method=IdentificationMethod.CUSTOM_DOMAIN)
            label = self.subdomain_label(host)
            if label:
                candidate = label, IdentificationMethod.SUBDOMAIN

        if candidate is None:
            return self._fallback("no_signal", None)

        slug, method = candidate
        if not await self._is_known(slug):
            return self._fallback("unknown_candidate", slug)

        logger.debug(f"Tenant '{slug}' identified by {method.value}.")
        return IdentificationResult(slug=slug, method=method, candidate=slug)

    def _fallback(self, reason: str, candidate: Optional[str]) -> IdentificationResult:
        if not self.default_tenant_slug:
            logger.warning(f"Tenant not identified ({reason}, candidate={candidate!r}) and no default tenant configured.")
            raise TenantNotIdentifiedError()
        logger.warning(
            f"Falling back to default tenant '{self.default_tenant_slug}' "
            f"(reason: {reason}, candidate: {candidate!r})."
        )
        return IdentificationResult(
            slug=self.default_tenant_slug,
            method=IdentificationMethod.DEFAULT,
            fallback_reason=reason,
            candidate=candidate,
        )
