"""Pydantic schemas for business reports."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from easybill.business.statuses import ReportType


class ReportRequest(BaseModel):
    report_type: ReportType
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    store_id: Optional[str] = Field(None, max_length=64)


class ReportTypeInfo(BaseModel):
    report_type: ReportType
    description: str
    requires_period: bool


# ==== SALES ==== #


class DailySales(BaseModel):
    day: date
    sales: Decimal
    invoices: int


class CategorySales(BaseModel):
    category_name: str
    sales: Decimal
    quantity: int


class ProductSales(BaseModel):
    product_name: str
    revenue: Decimal
    quantity_sold: int


class SalesReport(BaseModel):
    start_date: date
    end_date: date
    total_sales: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    total_discount: Decimal
    total_tax: Decimal
    net_profit: Decimal
    total_invoices: int
    total_customers: int
    average_order_value: Decimal
    daily_sales: List[DailySales]
    category_sales: List[CategorySales]
    top_products: List[ProductSales]


# ==== INVENTORY ==== #


class StockItem(BaseModel):
    product_name: str
    sku: str
    store_id: str
    quantity: int
    value: Decimal
    status: str


class LowStockItem(BaseModel):
    product_name: str
    sku: str
    current_stock: int
    threshold: int
    reorder_quantity: int


class InventoryReport(BaseModel):
    total_products: int
    low_stock_products: int
    out_of_stock_products: int
    total_inventory_value: Decimal
    stock_items: List[StockItem]
    low_stock_items: List[LowStockItem]


# ==== CUSTOMERS ==== #


class SegmentSummary(BaseModel):
    segment: str
    customers: int
    total_spent: Decimal


class TopCustomer(BaseModel):
    customer_id: str
    name: str
    phone: str
    segment: str
    total_spent: Decimal
    visit_count: int


class CustomerReport(BaseModel):
    total_customers: int
    active_customers: int
    total_loyalty_points: int
    total_wallet_balance: Decimal
    segments: List[SegmentSummary]
    top_customers: List[TopCustomer]


# ==== TAX ==== #


class TaxRateSummary(BaseModel):
    rate: Decimal
    taxable_value: Decimal
    tax_amount: Decimal


class TaxReport(BaseModel):
    start_date: date
    end_date: date
    taxable_value: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    cess: Decimal
    total_tax: Decimal
    by_rate: List[TaxRateSummary]


class ReportResponse(BaseModel):
    """Envelope for ``/reports/generate``; only the requested section is set."""

    report_type: ReportType
    generated_at: datetime
    store_id: Optional[str] = None
    sales: Optional[SalesReport] = None
    inventory: Optional[InventoryReport] = None
    customers: Optional[CustomerReport] = None
    tax: Optional[TaxReport] = None
