# app/core/tenant_context.py
"""
Tenant resolution for incoming requests.

Resolution order (first match wins):
1. Authenticated user's own tenant_id (always overrides everything else)
2. Host: subdomain label (apollo.example.com -> apollo) or a custom domain
3. X-Tenant-Subdomain header (development/testing)
4. ?tenant= query parameter (development/testing)
5. The default tenant, for backward compatibility, only when the host
   carries no subdomain (an unknown subdomain is NotFound)

The resolved tenant is validated (active, subscription not blocked)
and handed to services as an explicit TenantContext.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.exceptions import Forbidden, NotFound, OrgRequired
from app.dependencies.auth import get_optional_current_user
from app.models.organization import BLOCKED_SUBSCRIPTION_STATUSES, Organization
from app.models.user import RoleName, User

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-Subdomain"
TENANT_QUERY_PARAM = "tenant"


@dataclass(frozen=True)
class TenantSignals:
    """Identity signals of one request, in the shape the resolver needs."""

    user_tenant_id: UUID | None = None
    host: str | None = None
    header_subdomain: str | None = None
    query_subdomain: str | None = None


@dataclass(frozen=True)
class TenantContext:
    """
    Wraps the current tenant and user for tenant-scoped operations.

    - tenant: resolved, validated organization
    - user:   authenticated user, or None for unauthenticated display clients
    - source: which signal resolved the tenant
    """

    tenant: Organization
    user: User | None
    source: str

    @property
    def tenant_id(self) -> UUID:
        return self.tenant.id

    @property
    def user_id(self) -> UUID | None:
        return self.user.id if self.user else None

    @property
    def role(self) -> RoleName | None:
        return self.user.role if self.user else None


class TenantResolver:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def resolve(self, signals: TenantSignals) -> tuple[Organization, str]:
        """
        Resolve and validate the tenant for a request.

        Raises NotFound when an explicit signal names an unknown tenant,
        OrgRequired when there is no signal and no default tenant, and
        Forbidden when the tenant is inactive or its subscription is blocked.
        """
        if signals.user_tenant_id is not None:
            org = self.db.query(Organization).filter(Organization.id == signals.user_tenant_id).first()
            if org:
                return self._validate(org), "user"
            logger.warning("User tenant %s not found, falling back to request signals", signals.user_tenant_id)

        host = (signals.host or "").lower()
        host_subdomain = self._subdomain_from_host(host)
        if host:
            org = self._find_by_host(host, host_subdomain)
            if org:
                source = "subdomain" if host_subdomain and org.subdomain == host_subdomain else "custom_domain"
                return self._validate(org), source

        for source, value in (("header", signals.header_subdomain), ("query", signals.query_subdomain)):
            subdomain = (value or "").strip().lower()
            if not subdomain:
                continue
            org = self._find_by_subdomain(subdomain)
            if not org:
                raise NotFound(f"Organization not found: {subdomain}")
            return self._validate(org), source

        # An unknown subdomain never falls back to the default tenant
        if host_subdomain:
            raise NotFound(f"Organization not found: {host_subdomain}")

        default_org = self._find_by_subdomain(self.settings.default_tenant_subdomain)
        if default_org:
            return self._validate(default_org), "default"

        raise OrgRequired()

    def _subdomain_from_host(self, host: str) -> str | None:
        if not host:
            return None
        try:
            ipaddress.ip_address(host)
            return None
        except ValueError:
            pass
        parts = host.split(".")
        if len(parts) >= self.settings.tenant_base_domain_parts and parts[0] != "www":
            return parts[0]
        return None

    def _find_by_host(self, host: str, subdomain: str | None) -> Organization | None:
        query = self.db.query(Organization)
        if subdomain:
            query = query.filter(or_(Organization.subdomain == subdomain, Organization.custom_domain == host))
        else:
            query = query.filter(Organization.custom_domain == host)
        return query.first()

    def _find_by_subdomain(self, subdomain: str) -> Organization | None:
        return self.db.query(Organization).filter(Organization.subdomain == subdomain).first()

    @staticmethod
    def _validate(org: Organization) -> Organization:
        if not org.is_active:
            raise Forbidden(f"Organization '{org.name}' is not active")
        if org.subscription_status in BLOCKED_SUBSCRIPTION_STATUSES:
            raise Forbidden(f"Subscription {org.subscription_status} for '{org.name}'. Please contact support.")
        return org


def signals_from_request(request: Request, user: User | None) -> TenantSignals:
    return TenantSignals(
        user_tenant_id=user.tenant_id if user else None,
        host=request.url.hostname,
        header_subdomain=request.headers.get(TENANT_HEADER),
        query_subdomain=request.query_params.get(TENANT_QUERY_PARAM),
    )


def get_tenant_context(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_current_user),
) -> TenantContext:
    """
    Resolve the tenant of the request and wrap it with the current user.
    """
    resolver = TenantResolver(db, get_settings())
    tenant, source = resolver.resolve(signals_from_request(request, current_user))
    logger.debug("Resolved tenant %s (%s) via %s", tenant.subdomain, tenant.id, source)
    return TenantContext(tenant=tenant, user=current_user, source=source)
