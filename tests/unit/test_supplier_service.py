"""Unit tests for suppliers, purchases, payments and credit terms."""

import datetime as dt
from decimal import Decimal

import pytest

from factories.data_factories import SupplierFactory
from easybill.errors import ResourceNotFoundError, ValidationError
from easybill.schemas.supplier import SupplierRequest
from easybill.services.suppliers import SupplierService
from easybill.storage.models import Supplier


suppliers = SupplierFactory()


@pytest.fixture
def service(db_session, tenant) -> SupplierService:
    return SupplierService(db_session, tenant.id)


@pytest.mark.unit
class TestSupplierRecords:

    async def test_create_defaults(self, service):
        supplier = await service.create(suppliers.supplier_request(name="Metro Wholesale", credit_days=None))

        assert supplier.credit_days == 0
        assert supplier.outstanding_balance == Decimal("0.00")
        assert supplier.purchase_count == 0
        assert supplier.is_active

    async def test_get_list_search(self, service):
        metro = await service.create(suppliers.supplier_request(name="Metro Wholesale", phone="9000000001"))
        await service.create(suppliers.supplier_request(name="Apex Traders"))

        assert (await service.get(metro.id)).name == "Metro Wholesale"
        assert [s.name for s in await service.search("metro")] == ["Metro Wholesale"]
        assert [s.name for s in await service.search("9000000001")] == ["Metro Wholesale"]

        page, total = await service.list_suppliers(page=0, size=10)
        assert total == 2
        assert [s.name for s in page] == ["Apex Traders", "Metro Wholesale"]

    async def test_other_tenant_supplier_is_not_found(self, db_session, service, other_tenant):
        supplier = await service.create(suppliers.supplier_request())

        with pytest.raises(ResourceNotFoundError):
            await SupplierService(db_session, other_tenant.id).get(supplier.id)

    async def test_update_keeps_credit_days_when_omitted(self, service):
        supplier = await service.create(suppliers.supplier_request(credit_days=45))

        updated = await service.update(supplier.id, SupplierRequest(name="Renamed", credit_days=None))

        assert updated.name == "Renamed"
        assert updated.credit_days == 45

    async def test_activation_and_delete(self, service):
        supplier = await service.create(suppliers.supplier_request())

        assert not (await service.deactivate(supplier.id)).is_active
        assert (await service.reactivate(supplier.id)).is_active

        await service.delete(supplier.id)
        with pytest.raises(ResourceNotFoundError):
            await service.get(supplier.id)

    async def test_credit_terms(self, service):
        supplier = await service.create(suppliers.supplier_request())

        assert (await service.update_credit_terms(supplier.id, 15)).credit_days == 15
        with pytest.raises(ValidationError):
            await service.update_credit_terms(supplier.id, -1)


@pytest.mark.unit
class TestPurchasesAndPayments:

    async def test_purchases_and_payments(self, service):
        supplier = await service.create(suppliers.supplier_request())

        await service.record_purchase(supplier.id, Decimal("1000.00"))
        await service.record_purchase(supplier.id, Decimal("250.50"), is_paid=True)
        supplier = await service.record_payment(supplier.id, Decimal("400.00"))

        assert supplier.total_purchases == Decimal("1250.50")
        assert supplier.outstanding_balance == Decimal("600.00")
        assert supplier.purchase_count == 2
        assert supplier.last_purchase_date is not None

    async def test_overpayment_is_rejected(self, service):
        supplier = await service.create(suppliers.supplier_request())
        await service.record_purchase(supplier.id, Decimal("100.00"))

        with pytest.raises(ValidationError) as exc_info:
            await service.record_payment(supplier.id, Decimal("100.01"))

        assert "amount" in exc_info.value.field_errors

    async def test_list_with_outstanding(self, service):
        small = await service.create(suppliers.supplier_request(name="Small"))
        large = await service.create(suppliers.supplier_request(name="Large"))
        await service.create(suppliers.supplier_request(name="Settled"))
        await service.record_purchase(small.id, Decimal("10.00"))
        await service.record_purchase(large.id, Decimal("900.00"))

        assert [s.name for s in await service.list_with_outstanding()] == ["Large", "Small"]

    async def test_due_date_response(self, service):
        supplier = await service.create(suppliers.supplier_request(credit_days=30))
        await service.record_purchase(supplier.id, Decimal("100.00"))

        due = await service.due_date(supplier.id)

        assert due.due_date == supplier.last_purchase_date + dt.timedelta(days=30)
        assert not due.is_overdue
        assert due.outstanding_balance == Decimal("100.00")


@pytest.mark.unit
class TestCreditArithmetic:

    NOW = dt.datetime(2025, 8, 17, 10, 0)

    def test_due_date_from_last_purchase(self):
        supplier = Supplier(credit_days=30, last_purchase_date=dt.datetime(2025, 7, 1))

        assert SupplierService.calculate_due_date(supplier, self.NOW) == dt.datetime(2025, 7, 31)

    def test_due_date_without_purchases(self):
        supplier = Supplier(credit_days=7, last_purchase_date=None)

        assert SupplierService.calculate_due_date(supplier, self.NOW) == self.NOW + dt.timedelta(days=7)

    def test_overdue(self):
        supplier = Supplier(
            credit_days=30,
            last_purchase_date=dt.datetime(2025, 7, 1),
            outstanding_balance=Decimal("500.00"),
        )

        assert SupplierService.is_payment_overdue(supplier, self.NOW)

    def test_nothing_outstanding_is_never_overdue(self):
        supplier = Supplier(
            credit_days=0,
            last_purchase_date=dt.datetime(2020, 1, 1),
            outstanding_balance=Decimal("0.00"),
        )

        assert not SupplierService.is_payment_overdue(supplier, self.NOW)
