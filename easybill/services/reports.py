# ==== REPORTS SERVICE ==== #

"""
Sales, inventory, customer and tax reports computed from live tenant data.

Sales and tax figures come from COMPLETED invoices whose ``completed_at``
falls inside the inclusive date range. Cost of goods uses each product's
current ``cost_price``; lines without a catalogue product carry no cost.

    gross_profit = Σ line gross − cost of goods
    net_profit   = gross_profit − Σ discounts
"""

import datetime as dt
import time
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.pricing import CENT, ZERO, money
from easybill.business.statuses import CustomerSegment, ReportType
from easybill.errors import ErrorCodes, ValidationError
from easybill.observability.logging import get_logger, log_performance
from easybill.observability.metrics import reports_generated_total
from easybill.observability.tracing import get_tracer
from easybill.repositories.customers import CustomerRepository
from easybill.repositories.inventory import CategoryRepository, ProductRepository, StockRepository
from easybill.repositories.invoices import InvoiceRepository
from easybill.schemas.report import (
    CategorySales,
    CustomerReport,
    DailySales,
    InventoryReport,
    LowStockItem,
    ProductSales,
    ReportRequest,
    ReportResponse,
    ReportTypeInfo,
    SalesReport,
    SegmentSummary,
    StockItem,
    TaxRateSummary,
    TaxReport,
    TopCustomer,
)
from easybill.services.inventory import is_low_stock
from easybill.storage.models import Customer, Invoice, InvoiceItem, Product, utcnow


logger = get_logger(__name__)
tracer = get_tracer(__name__)

DEFAULT_PERIOD_DAYS = 30
TOP_N = 10
UNCATEGORISED = "Uncategorised"

REPORT_TYPES = [
    ReportTypeInfo(report_type=ReportType.SALES, requires_period=True,
                   description="Sales, cost, profit and tax over a period with daily, category and product breakdowns"),
    ReportTypeInfo(report_type=ReportType.INVENTORY, requires_period=False,
                   description="Current stock levels, valuation and low stock items"),
    ReportTypeInfo(report_type=ReportType.CUSTOMER, requires_period=False,
                   description="Customer counts, segments, loyalty and wallet balances"),
    ReportTypeInfo(report_type=ReportType.TAX, requires_period=True,
                   description="GST collected over a period, split by component and rate"),
]


def resolve_period(start: Optional[dt.date], end: Optional[dt.date]) -> Tuple[dt.date, dt.date]:
    """Fill a missing bound; a missing range is the last ``DEFAULT_PERIOD_DAYS`` days."""
    end = end or utcnow().date()
    start = start or end - dt.timedelta(days=DEFAULT_PERIOD_DAYS - 1)
    if start > end:
        raise ValidationError(
            "Report start date must not be after end date",
            field_errors={"start_date": f"{start} is after {end}"},
            error_code=ErrorCodes.INVALID_REPORT_PERIOD,
        )
    return start, end


def _bounds(start: dt.date, end: dt.date) -> Tuple[dt.datetime, dt.datetime]:
    return dt.datetime.combine(start, dt.time.min), dt.datetime.combine(end + dt.timedelta(days=1), dt.time.min)


def _line_gross(item: InvoiceItem) -> Decimal:
    return money(money(item.unit_price) * item.quantity)


def _line_rate(item: InvoiceItem) -> Decimal:
    """Effective GST rate of a line: IGST, else CGST + SGST, else the flat tax rate."""
    if item.igst_rate:
        return money(item.igst_rate)
    if item.cgst_rate or item.sgst_rate:
        return money(item.cgst_rate) + money(item.sgst_rate)
    return money(item.tax_rate)


def _average(total: Decimal, count: int) -> Decimal:
    if not count:
        return ZERO
    return (total / count).quantize(CENT, rounding=ROUND_HALF_UP)


class ReportService:

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id
        self.invoices = InvoiceRepository(session, tenant_id)
        self.products = ProductRepository(session, tenant_id)
        self.categories = CategoryRepository(session, tenant_id)
        self.stock = StockRepository(session, tenant_id)
        self.customers = CustomerRepository(session, tenant_id)

    @staticmethod
    def report_types() -> List[ReportTypeInfo]:
        return list(REPORT_TYPES)

    async def generate(self, request: ReportRequest) -> ReportResponse:
        """Build the requested report inside the generation envelope."""
        start_time = time.perf_counter()
        kind = request.report_type
        response = ReportResponse(report_type=kind, generated_at=utcnow(), store_id=request.store_id)

        with tracer.start_as_current_span("report_generate") as span:
            span.set_attribute("tenant", self.tenant_id)
            span.set_attribute("report_type", kind.value)

            if kind == ReportType.SALES:
                response.sales = await self.sales_report(request.start_date, request.end_date, request.store_id)
            elif kind == ReportType.INVENTORY:
                response.inventory = await self.inventory_report(request.store_id)
            elif kind == ReportType.CUSTOMER:
                response.customers = await self.customer_report()
            elif kind == ReportType.TAX:
                response.tax = await self.tax_report(request.start_date, request.end_date, request.store_id)

        reports_generated_total.labels(tenant=self.tenant_id, report_type=kind.value).inc()
        log_performance("report_generate", time.perf_counter() - start_time,
                        tenant=self.tenant_id, report_type=kind.value)
        return response

    # ==== SALES ==== #

    async def sales_report(
        self,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
        store_id: Optional[str] = None,
    ) -> SalesReport:
        start, end = resolve_period(start_date, end_date)
        invoices = await self._completed(start, end, store_id)
        products = await self._products_for(item for inv in invoices for item in inv.items)
        category_names = {c.id: c.name for c in await self.categories.list()}

        total_sales = total_tax = total_discount = gross = cost = ZERO
        daily: Dict[dt.date, List] = defaultdict(lambda: [ZERO, 0])
        by_category: Dict[str, List] = defaultdict(lambda: [ZERO, 0])
        by_product: Dict[str, List] = defaultdict(lambda: [ZERO, 0])
        customers = set()

        for invoice in invoices:
            total_sales += money(invoice.total_amount)
            total_tax += money(invoice.tax_amount)
            total_discount += money(invoice.discount_amount)
            day = daily[invoice.completed_at.date()]
            day[0] += money(invoice.total_amount)
            day[1] += 1
            customer_key = invoice.customer_id or invoice.customer_phone
            if customer_key:
                customers.add(customer_key)

            for item in invoice.items:
                gross += _line_gross(item)
                product = products.get(item.product_id)
                if product is not None and product.cost_price is not None:
                    cost += money(money(product.cost_price) * item.quantity)
                category = UNCATEGORISED
                if product is not None and product.category_id in category_names:
                    category = category_names[product.category_id]
                by_category[category][0] += money(item.line_total)
                by_category[category][1] += item.quantity
                by_product[item.product_name][0] += money(item.line_total)
                by_product[item.product_name][1] += item.quantity

        gross_profit = gross - cost
        top_products = sorted(by_product.items(), key=lambda kv: (-kv[1][0], kv[0]))[:TOP_N]

        return SalesReport(
            start_date=start,
            end_date=end,
            total_sales=total_sales,
            total_cost=cost,
            gross_profit=gross_profit,
            total_discount=total_discount,
            total_tax=total_tax,
            net_profit=gross_profit - total_discount,
            total_invoices=len(invoices),
            total_customers=len(customers),
            average_order_value=_average(total_sales, len(invoices)),
            daily_sales=[
                DailySales(day=day, sales=values[0], invoices=values[1])
                for day, values in sorted(daily.items())
            ],
            category_sales=[
                CategorySales(category_name=name, sales=values[0], quantity=values[1])
                for name, values in sorted(by_category.items(), key=lambda kv: (-kv[1][0], kv[0]))
            ],
            top_products=[
                ProductSales(product_name=name, revenue=values[0], quantity_sold=values[1])
                for name, values in top_products
            ],
        )

    # ==== INVENTORY ==== #

    async def inventory_report(self, store_id: Optional[str] = None) -> InventoryReport:
        rows = [
            (stock, product) for stock, product in await self.stock.with_products()
            if store_id is None or stock.store_id == store_id
        ]

        stock_items, low_items = [], []
        total_value = ZERO
        out_of_stock = 0
        for stock, product in rows:
            available = stock.available_quantity
            value = money(money(product.cost_price) * stock.quantity)
            total_value += value
            if available <= 0:
                status = "OUT_OF_STOCK"
                out_of_stock += 1
            elif is_low_stock(product, available):
                status = "LOW_STOCK"
            else:
                status = "IN_STOCK"
            stock_items.append(StockItem(
                product_name=product.name, sku=product.sku, store_id=stock.store_id,
                quantity=stock.quantity, value=value, status=status,
            ))
            if is_low_stock(product, available):
                threshold = product.low_stock_threshold or 0
                low_items.append(LowStockItem(
                    product_name=product.name,
                    sku=product.sku,
                    current_stock=available,
                    threshold=threshold,
                    reorder_quantity=max(threshold * 2 - available, threshold),
                ))

        return InventoryReport(
            total_products=await self.products.count(Product.is_active.is_(True)),
            low_stock_products=len(low_items),
            out_of_stock_products=out_of_stock,
            total_inventory_value=total_value,
            stock_items=stock_items,
            low_stock_items=low_items,
        )

    # ==== CUSTOMERS ==== #

    async def customer_report(self) -> CustomerReport:
        customers = await self.customers.list(order_by=(Customer.total_spent.desc(), Customer.name))

        segments = {s.value: [0, ZERO] for s in CustomerSegment}
        for customer in customers:
            bucket = segments.setdefault(customer.segment, [0, ZERO])
            bucket[0] += 1
            bucket[1] += money(customer.total_spent)

        return CustomerReport(
            total_customers=len(customers),
            active_customers=sum(1 for c in customers if c.is_active),
            total_loyalty_points=sum(c.loyalty_points or 0 for c in customers),
            total_wallet_balance=sum((money(c.wallet_balance) for c in customers), ZERO),
            segments=[
                SegmentSummary(segment=name, customers=count, total_spent=spent)
                for name, (count, spent) in segments.items()
            ],
            top_customers=[
                TopCustomer(
                    customer_id=c.id, name=c.name, phone=c.phone, segment=c.segment,
                    total_spent=money(c.total_spent), visit_count=c.visit_count or 0,
                )
                for c in customers[:TOP_N]
            ],
        )

    # ==== TAX ==== #

    async def tax_report(
        self,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
        store_id: Optional[str] = None,
    ) -> TaxReport:
        start, end = resolve_period(start_date, end_date)
        invoices = await self._completed(start, end, store_id)

        taxable = cgst = sgst = igst = cess = ZERO
        by_rate: Dict[Decimal, List[Decimal]] = defaultdict(lambda: [ZERO, ZERO])
        for invoice in invoices:
            cgst += money(invoice.cgst_amount)
            sgst += money(invoice.sgst_amount)
            igst += money(invoice.igst_amount)
            cess += money(invoice.cess_amount)
            for item in invoice.items:
                line_taxable = _line_gross(item) - money(item.discount_amount)
                taxable += line_taxable
                bucket = by_rate[_line_rate(item)]
                bucket[0] += line_taxable
                bucket[1] += money(item.tax_amount)

        return TaxReport(
            start_date=start,
            end_date=end,
            taxable_value=taxable,
            cgst=cgst,
            sgst=sgst,
            igst=igst,
            cess=cess,
            total_tax=sum((money(i.tax_amount) for i in invoices), ZERO),
            by_rate=[
                TaxRateSummary(rate=rate, taxable_value=values[0], tax_amount=values[1])
                for rate, values in sorted(by_rate.items())
            ],
        )

    # ==== INTERNALS ==== #

    async def _completed(self, start: dt.date, end: dt.date, store_id: Optional[str]) -> List[Invoice]:
        invoices = await self.invoices.completed_between(*_bounds(start, end))
        if store_id is not None:
            invoices = [i for i in invoices if i.store_id == store_id]
        return invoices

    async def _products_for(self, items: Iterable[InvoiceItem]) -> Dict[int, Product]:
        ids = {item.product_id for item in items if item.product_id is not None}
        if not ids:
            return {}
        return {p.id: p for p in await self.products.list(Product.id.in_(ids))}
