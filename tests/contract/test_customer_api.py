"""Contract tests for customers, offers and reports over HTTP."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest


async def create_customer(client, headers, phone: str = "9876500001") -> dict:
    response = await client.post(
        "/api/v1/customers",
        json={"name": "Meera Iyer", "phone": phone, "email": "meera@example.com", "city": "Chennai"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def offer_payload(**overrides) -> dict:
    now = datetime.now(UTC)
    payload = {
        "name": "Festive 10%",
        "type": "PERCENTAGE_DISCOUNT",
        "discount_value": "10",
        "maximum_discount_amount": "200",
        "valid_from": (now - timedelta(days=1)).isoformat(),
        "valid_to": (now + timedelta(days=7)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.mark.contract
class TestCustomerApi:
    """Customer records, loyalty points and wallet."""

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client, cashier_headers):
        customer = await create_customer(client, cashier_headers)

        assert customer["segment"] == "REGULAR"
        assert customer["loyalty_points"] == 0

        by_id = await client.get(f"/api/v1/customers/{customer['id']}", headers=cashier_headers)
        by_phone = await client.get("/api/v1/customers/phone/9876500001", headers=cashier_headers)
        assert by_id.status_code == by_phone.status_code == 200
        assert by_phone.json()["id"] == customer["id"]

        listing = await client.get("/api/v1/customers", params={"search": "meera"}, headers=cashier_headers)
        assert listing.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_duplicate_phone_rejected(self, client, cashier_headers):
        await create_customer(client, cashier_headers)

        response = await client.post(
            "/api/v1/customers", json={"name": "Someone Else", "phone": "9876500001"}, headers=cashier_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_DUPLICATE_RESOURCE"

    @pytest.mark.asyncio
    async def test_unknown_customer(self, client, cashier_headers):
        response = await client.get("/api/v1/customers/does-not-exist", headers=cashier_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_CUSTOMER_NOT_FOUND"
        assert "correlation_id" in response.json()

    @pytest.mark.asyncio
    async def test_purchase_then_redeem(self, client, cashier_headers):
        customer = await create_customer(client, cashier_headers)
        base = f"/api/v1/customers/{customer['id']}"

        purchase = await client.post(f"{base}/purchases", json={"amount": "1500.00"}, headers=cashier_headers)
        assert purchase.status_code == 200
        assert purchase.json()["loyalty_points"] == 15

        too_many = await client.post(f"{base}/loyalty/redeem", json={"points": 16}, headers=cashier_headers)
        assert too_many.status_code == 400
        assert too_many.json()["code"] == "ERR_INSUFFICIENT_POINTS"

        redeemed = await client.post(f"{base}/loyalty/redeem", json={"points": 15}, headers=cashier_headers)
        assert redeemed.status_code == 200
        assert redeemed.json()["loyalty_points"] == 0
        assert Decimal(redeemed.json()["wallet_balance"]) == Decimal("0.15")

        history = await client.get(f"{base}/loyalty/transactions", headers=cashier_headers)
        assert sorted(entry["type"] for entry in history.json()) == ["EARNED", "REDEEMED"]

    @pytest.mark.asyncio
    async def test_wallet_flow(self, client, cashier_headers):
        customer = await create_customer(client, cashier_headers)
        base = f"/api/v1/customers/{customer['id']}/wallet"

        await client.post(f"{base}/add", json={"amount": "250.00", "description": "Refund"}, headers=cashier_headers)
        deducted = await client.post(f"{base}/deduct", json={"amount": "100.00"}, headers=cashier_headers)
        assert Decimal(deducted.json()["wallet_balance"]) == Decimal("150.00")

        overdraw = await client.post(f"{base}/deduct", json={"amount": "150.01"}, headers=cashier_headers)
        assert overdraw.status_code == 400
        assert overdraw.json()["code"] == "ERR_INSUFFICIENT_WALLET_BALANCE"

        history = await client.get(f"{base}/transactions", headers=cashier_headers)
        assert len(history.json()) == 2

    @pytest.mark.asyncio
    async def test_cashier_cannot_delete(self, client, admin_headers, cashier_headers):
        customer = await create_customer(client, cashier_headers)
        url = f"/api/v1/customers/{customer['id']}"

        assert (await client.delete(url, headers=cashier_headers)).status_code == 403
        assert (await client.delete(url, headers=admin_headers)).status_code == 204
        assert (await client.get(url, headers=admin_headers)).status_code == 404


@pytest.mark.contract
class TestOfferApi:

    @pytest.mark.asyncio
    async def test_offer_lifecycle_and_discount(self, client, admin_headers, cashier_headers):
        created = await client.post("/api/v1/offers", json=offer_payload(), headers=admin_headers)
        assert created.status_code == 201
        offer = created.json()
        assert offer["status"] == "DRAFT"

        cart = {"purchase_amount": "3000.00"}
        draft = await client.post(f"/api/v1/offers/{offer['id']}/calculate", json=cart, headers=cashier_headers)
        assert draft.status_code == 400
        assert draft.json()["code"] == "ERR_OFFER_NOT_VALID"

        activated = await client.post(f"/api/v1/offers/{offer['id']}/activate", headers=admin_headers)
        assert activated.json()["status"] == "ACTIVE"

        discount = await client.post(f"/api/v1/offers/{offer['id']}/calculate", json=cart, headers=cashier_headers)
        assert discount.status_code == 200
        assert Decimal(discount.json()["discount"]) == Decimal("200.00")

        active = await client.get("/api/v1/offers/active", headers=cashier_headers)
        assert [o["id"] for o in active.json()] == [offer["id"]]

    @pytest.mark.asyncio
    async def test_cashier_cannot_create(self, client, cashier_headers):
        response = await client.post("/api/v1/offers", json=offer_payload(), headers=cashier_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_offer(self, client, admin_headers):
        response = await client.get("/api/v1/offers/missing", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "ERR_OFFER_NOT_FOUND"


@pytest.mark.contract
class TestReportApi:

    @pytest.mark.asyncio
    async def test_report_types_for_any_user(self, client, cashier_headers):
        response = await client.get("/api/v1/reports/types", headers=cashier_headers)

        assert response.status_code == 200
        assert [t["report_type"] for t in response.json()] == ["SALES", "INVENTORY", "CUSTOMER", "TAX"]

    @pytest.mark.asyncio
    async def test_generate_requires_manager(self, client, admin_headers, cashier_headers):
        payload = {"report_type": "SALES"}

        assert (await client.post("/api/v1/reports/generate", json=payload, headers=cashier_headers)).status_code == 403

        response = await client.post("/api/v1/reports/generate", json=payload, headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["report_type"] == "SALES"
        assert data["sales"]["total_invoices"] == 0
        assert data["inventory"] is None

    @pytest.mark.asyncio
    async def test_inverted_period(self, client, admin_headers):
        response = await client.get(
            "/api/v1/reports/sales", params={"start_date": "2026-10-02", "end_date": "2026-10-01"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "ERR_INVALID_REPORT_PERIOD"
