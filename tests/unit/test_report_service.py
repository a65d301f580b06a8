"""Unit tests for sales, inventory, customer and tax reports."""

import datetime as dt
from decimal import Decimal

import pytest
import pytest_asyncio

from factories.data_factories import CatalogFactory, CustomerFactory, InvoiceFactory
from easybill.business.statuses import MovementType, ReportType
from easybill.errors import ErrorCodes, ValidationError
from easybill.schemas.inventory import CategoryRequest
from easybill.schemas.report import ReportRequest
from easybill.services.billing import BillingService
from easybill.services.customers import CustomerService
from easybill.services.inventory import InventoryService
from easybill.services.reports import ReportService, resolve_period
from easybill.storage.models import utcnow


catalog = CatalogFactory()
customers = CustomerFactory()
invoices = InvoiceFactory()


@pytest.fixture
def reports(db_session, tenant) -> ReportService:
    return ReportService(db_session, tenant.id)


@pytest.fixture
def inventory(db_session, tenant) -> InventoryService:
    return InventoryService(db_session, tenant.id)


@pytest.fixture
def billing(db_session, tenant, admin_user) -> BillingService:
    return BillingService(db_session, tenant.id, admin_user.id)


async def stocked(inventory: InventoryService, quantity: int, **overrides):
    product = await inventory.create_product(catalog.product_request(**overrides))
    await inventory.record_stock_movement(product.id, MovementType.IN, quantity)
    return product


@pytest_asyncio.fixture
async def two_sales(billing, inventory):
    """A taxed catalogue sale, an untaxed loose item sale and an open draft."""
    grocery = await inventory.create_category(CategoryRequest(name="Grocery"))
    rice = await stocked(inventory, 10, name="Basmati Rice", category_id=grocery.id)

    taxed = await billing.create_invoice(invoices.invoice(items=[invoices.item(
        rice.id, quantity=3, unit_price="100.00", product_name="Basmati Rice",
        cgst_rate=Decimal("9"), sgst_rate=Decimal("9"),
    )]))
    await billing.complete_invoice(taxed.id, [invoices.cash("354.00")])

    loose = await billing.create_invoice(invoices.invoice(
        items=[invoices.item(unit_price="50.00", product_name="Carry Bag")], customer_phone="9000000000",
    ))
    await billing.complete_invoice(loose.id, [invoices.cash("50.00")])

    await billing.create_invoice(invoices.invoice(items=[invoices.item(unit_price="999.00")]))
    return rice


@pytest.mark.unit
class TestPeriods:

    def test_missing_range_is_last_thirty_days(self):
        start, end = resolve_period(None, None)

        assert end == utcnow().date()
        assert (end - start).days == 29

    def test_start_after_end(self):
        with pytest.raises(ValidationError) as exc_info:
            resolve_period(dt.date(2026, 10, 2), dt.date(2026, 10, 1))

        assert exc_info.value.error_code == ErrorCodes.INVALID_REPORT_PERIOD


@pytest.mark.unit
class TestSalesReport:

    async def test_totals_from_completed_invoices(self, reports, two_sales):
        today = utcnow().date()

        report = await reports.sales_report(today, today)

        assert report.total_invoices == 2
        assert report.total_sales == Decimal("404.00")
        assert report.total_tax == Decimal("54.00")
        assert report.total_cost == Decimal("180.00")
        assert report.gross_profit == Decimal("170.00")
        assert report.net_profit == Decimal("170.00")
        assert report.total_customers == 2
        assert report.average_order_value == Decimal("202.00")
        assert [(d.day, d.sales, d.invoices) for d in report.daily_sales] == [(today, Decimal("404.00"), 2)]
        assert [(c.category_name, c.sales, c.quantity) for c in report.category_sales] == [
            ("Grocery", Decimal("354.00"), 3),
            ("Uncategorised", Decimal("50.00"), 1),
        ]
        assert report.top_products[0].product_name == "Basmati Rice"

    async def test_period_without_sales(self, reports, two_sales):
        tomorrow = utcnow().date() + dt.timedelta(days=1)

        report = await reports.sales_report(tomorrow, tomorrow)

        assert report.total_invoices == 0
        assert report.total_sales == Decimal("0.00")
        assert report.average_order_value == Decimal("0.00")
        assert report.daily_sales == []

    async def test_store_filter(self, reports, two_sales):
        today = utcnow().date()

        assert (await reports.sales_report(today, today, store_id="BRANCH-2")).total_invoices == 0


@pytest.mark.unit
class TestTaxReport:

    async def test_components_and_rates(self, reports, two_sales):
        today = utcnow().date()

        report = await reports.tax_report(today, today)

        assert report.taxable_value == Decimal("350.00")
        assert (report.cgst, report.sgst, report.igst) == (Decimal("27.00"), Decimal("27.00"), Decimal("0.00"))
        assert report.total_tax == Decimal("54.00")
        assert [(r.rate, r.taxable_value, r.tax_amount) for r in report.by_rate] == [
            (Decimal("0.00"), Decimal("50.00"), Decimal("0.00")),
            (Decimal("18.00"), Decimal("300.00"), Decimal("54.00")),
        ]


@pytest.mark.unit
class TestInventoryReport:

    async def test_stock_status_and_valuation(self, reports, inventory):
        await stocked(inventory, 10, name="Sugar 1kg")
        await stocked(inventory, 2, name="Salt 1kg")
        empty = await stocked(inventory, 3, name="Tea 250g")
        await inventory.record_stock_movement(empty.id, MovementType.OUT, 3)

        report = await reports.inventory_report()

        assert report.total_products == 3
        assert report.out_of_stock_products == 1
        assert report.low_stock_products == 2
        assert report.total_inventory_value == Decimal("720.00")
        assert {i.product_name: i.status for i in report.stock_items} == {
            "Sugar 1kg": "IN_STOCK", "Salt 1kg": "LOW_STOCK", "Tea 250g": "OUT_OF_STOCK",
        }
        salt = next(i for i in report.low_stock_items if i.product_name == "Salt 1kg")
        assert (salt.current_stock, salt.threshold, salt.reorder_quantity) == (2, 5, 8)


@pytest.mark.unit
class TestCustomerReport:

    async def test_segments_and_balances(self, db_session, tenant, reports):
        service = CustomerService(db_session, tenant.id)
        vip = await service.create(customers.customer_request(name="Big Spender"))
        regular = await service.create(customers.customer_request(name="Occasional"))
        await service.record_purchase(vip.id, Decimal("60000"))
        await service.add_to_wallet(regular.id, Decimal("100.00"))
        await service.deactivate(regular.id)

        report = await reports.customer_report()

        assert (report.total_customers, report.active_customers) == (2, 1)
        assert report.total_loyalty_points == 600
        assert report.total_wallet_balance == Decimal("100.00")
        assert {s.segment: s.customers for s in report.segments} == {"REGULAR": 1, "VIP": 1, "PREMIUM": 0}
        assert [c.name for c in report.top_customers] == ["Big Spender", "Occasional"]


@pytest.mark.unit
class TestGenerate:

    async def test_envelope_carries_only_requested_section(self, reports, two_sales):
        response = await reports.generate(ReportRequest(report_type=ReportType.INVENTORY, store_id="MAIN"))

        assert response.report_type == ReportType.INVENTORY
        assert response.store_id == "MAIN"
        assert response.inventory.stock_items[0].quantity == 7
        assert response.sales is None and response.tax is None and response.customers is None

    def test_report_types(self):
        assert [t.report_type for t in ReportService.report_types()] == [
            ReportType.SALES, ReportType.INVENTORY, ReportType.CUSTOMER, ReportType.TAX,
        ]
