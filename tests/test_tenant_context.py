"""Tests for tenant resolution and validation."""

import uuid

import pytest

from app.core.config import Settings
from app.core.exceptions import Forbidden, NotFound, OrgRequired
from app.core.tenant_context import TenantResolver, TenantSignals


@pytest.fixture
def resolver(db):
    return TenantResolver(db, Settings(database_url="sqlite://"))


class TestResolutionOrder:
    def test_user_tenant_overrides_every_other_signal(self, resolver, org, other_org):
        tenant, source = resolver.resolve(
            TenantSignals(
                user_tenant_id=org.id,
                host="max.hospital.example",
                header_subdomain="max",
                query_subdomain="max",
            )
        )
        assert tenant.id == org.id
        assert source == "user"

    def test_subdomain_of_host(self, resolver, org):
        tenant, source = resolver.resolve(TenantSignals(host="apollo.hospital.example"))
        assert tenant.id == org.id
        assert source == "subdomain"

    def test_subdomain_beats_header_and_query(self, resolver, org, other_org):
        tenant, _ = resolver.resolve(
            TenantSignals(host="apollo.hospital.example", header_subdomain="max", query_subdomain="max")
        )
        assert tenant.id == org.id

    def test_www_is_not_a_subdomain(self, resolver, org, make_org):
        default = make_org("default")
        tenant, source = resolver.resolve(TenantSignals(host="www.hospital.example"))
        assert tenant.id == default.id
        assert source == "default"

    def test_ip_host_is_not_a_subdomain(self, resolver, org):
        tenant, source = resolver.resolve(TenantSignals(host="127.0.0.1", header_subdomain="apollo"))
        assert tenant.id == org.id
        assert source == "header"

    def test_custom_domain(self, resolver, make_org):
        org = make_org("fortis", custom_domain="fortis-care.com")
        tenant, source = resolver.resolve(TenantSignals(host="fortis-care.com"))
        assert tenant.id == org.id
        assert source == "custom_domain"

    def test_header_beats_query(self, resolver, org, other_org):
        tenant, source = resolver.resolve(TenantSignals(host="localhost", header_subdomain="MAX", query_subdomain="apollo"))
        assert tenant.id == other_org.id
        assert source == "header"

    def test_query_parameter(self, resolver, org):
        tenant, source = resolver.resolve(TenantSignals(host="localhost", query_subdomain="apollo"))
        assert tenant.id == org.id
        assert source == "query"

    def test_unknown_host_subdomain_falls_through_to_header(self, resolver, org):
        tenant, source = resolver.resolve(TenantSignals(host="api.hospital.example", header_subdomain="apollo"))
        assert tenant.id == org.id
        assert source == "header"

    def test_missing_user_tenant_falls_back_to_signals(self, resolver, org):
        tenant, source = resolver.resolve(TenantSignals(user_tenant_id=uuid.uuid4(), header_subdomain="apollo"))
        assert tenant.id == org.id
        assert source == "header"

    def test_default_tenant_when_no_signal(self, resolver, make_org):
        default = make_org("default")
        tenant, source = resolver.resolve(TenantSignals(host="localhost"))
        assert tenant.id == default.id
        assert source == "default"


class TestResolutionFailures:
    def test_unknown_header_tenant_is_not_found(self, resolver, make_org):
        make_org("default")
        with pytest.raises(NotFound):
            resolver.resolve(TenantSignals(header_subdomain="nowhere"))

    def test_unknown_host_subdomain_without_default_is_not_found(self, resolver, org):
        with pytest.raises(NotFound):
            resolver.resolve(TenantSignals(host="nowhere.hospital.example"))

    def test_unknown_host_subdomain_never_gets_the_default_tenant(self, resolver, org, make_org):
        make_org("default")
        with pytest.raises(NotFound):
            resolver.resolve(TenantSignals(host="typo.hospital.example"))

    def test_no_signal_and_no_default_requires_org(self, resolver, org):
        with pytest.raises(OrgRequired):
            resolver.resolve(TenantSignals(host="localhost"))

    def test_inactive_tenant_is_forbidden(self, resolver, make_org):
        make_org("closed", is_active=False)
        with pytest.raises(Forbidden):
            resolver.resolve(TenantSignals(header_subdomain="closed"))

    def test_inactive_user_tenant_is_forbidden(self, resolver, make_org):
        closed = make_org("closed", is_active=False)
        with pytest.raises(Forbidden):
            resolver.resolve(TenantSignals(user_tenant_id=closed.id))

    @pytest.mark.parametrize("status", ["suspended", "cancelled"])
    def test_blocked_subscription_is_forbidden(self, resolver, make_org, status):
        make_org("lapsed", subscription_status=status)
        with pytest.raises(Forbidden):
            resolver.resolve(TenantSignals(query_subdomain="lapsed"))

    @pytest.mark.parametrize("status", ["active", "trial", None])
    def test_usable_subscription_passes(self, resolver, make_org, status):
        org = make_org("paying", subscription_status=status)
        tenant, _ = resolver.resolve(TenantSignals(query_subdomain="paying"))
        assert tenant.id == org.id
