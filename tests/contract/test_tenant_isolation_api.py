"""Contract tests for tenant isolation at the gateway and in the data layer."""

import pytest

from conftest import bearer_headers
from easybill.services.tenants import TenantService
from easybill.storage.db import get_session


INVOICE = {"items": [{"product_name": "Tea 250g", "quantity": 1, "unit_price": "120.00"}]}


@pytest.mark.contract
class TestTenantIsolation:
    """One tenant can never read or act on another tenant's data."""

    @pytest.mark.asyncio
    async def test_token_for_another_tenant_is_forbidden(self, client, admin_user, other_tenant):
        """A valid token presented with a different tenant header is rejected."""
        headers = {**bearer_headers(admin_user), "X-Tenant-Id": other_tenant.id}

        response = await client.get("/api/v1/invoices", headers=headers)

        assert response.status_code == 403
        assert response.json()["code"] == "ERR_FORBIDDEN"

    @pytest.mark.asyncio
    async def test_other_tenant_invoice_is_not_found(self, client, admin_headers, other_admin):
        created = await client.post("/api/v1/invoices", json=INVOICE, headers=admin_headers)
        invoice_id = created.json()["id"]

        response = await client.get(f"/api/v1/invoices/{invoice_id}", headers=bearer_headers(other_admin))

        assert response.status_code == 404
        assert (await client.get(f"/api/v1/invoices/{invoice_id}", headers=admin_headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_listings_are_scoped(self, client, admin_headers, other_admin):
        await client.post("/api/v1/invoices", json=INVOICE, headers=admin_headers)
        await client.post("/api/v1/invoices", json=INVOICE, headers=admin_headers)
        await client.post("/api/v1/invoices", json=INVOICE, headers=bearer_headers(other_admin))

        mine = await client.get("/api/v1/invoices", headers=admin_headers)
        theirs = await client.get("/api/v1/invoices", headers=bearer_headers(other_admin))

        assert mine.json()["total"] == 2
        assert theirs.json()["total"] == 1
        # Each tenant numbers its own invoices from 1
        assert theirs.json()["items"][0]["invoice_number"].endswith("-00001")

    @pytest.mark.asyncio
    async def test_slug_header_resolves_to_tenant(self, client, admin_user):
        headers = {**bearer_headers(admin_user), "X-Tenant-Id": "acme-retail"}

        response = await client.get("/api/v1/users/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["tenant_id"] == admin_user.tenant_id

    @pytest.mark.asyncio
    async def test_subdomain_resolves_tenant(self, client, admin_user):
        token_only = {"Authorization": bearer_headers(admin_user)["Authorization"]}

        response = await client.get(
            "/api/v1/users/me", headers={**token_only, "Host": "acme-retail.easybilling.com"}
        )

        assert response.status_code == 200
        assert response.json()["username"] == "acme-admin"

    @pytest.mark.asyncio
    async def test_suspended_tenant_is_blocked(self, client, tenant, admin_headers):
        """Suspension takes effect on the next request despite the cached status."""
        assert (await client.get("/api/v1/users/me", headers=admin_headers)).status_code == 200

        async with get_session() as session:
            await TenantService(session).suspend(tenant.id)

        response = await client.get("/api/v1/users/me", headers=admin_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "ERR_TENANT_SUSPENDED"

    @pytest.mark.asyncio
    async def test_reactivated_tenant_is_allowed_again(self, client, tenant, admin_headers):
        async with get_session() as session:
            await TenantService(session).suspend(tenant.id)
        async with get_session() as session:
            await TenantService(session).activate(tenant.id)

        response = await client.get("/api/v1/users/me", headers=admin_headers)

        assert response.status_code == 200
