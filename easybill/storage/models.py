"""SQLAlchemy models for the EasyBill platform."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON, Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text,
    UniqueConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from easybill.storage.db import Base
from easybill.storage.tenant_filter import TenantScopedMixin


def utcnow() -> dt.datetime:
    """Naive UTC timestamp, the convention for every DateTime column."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def new_uuid() -> str:
    return str(uuid.uuid4())


MONEY = Numeric(12, 2)
RATE = Numeric(5, 2)
ZERO = Decimal("0.00")


class TimestampMixin:
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


# ==== TENANCY AND USERS ==== #


class Tenant(TimestampMixin, Base):
    """Customer organisation. Platform-level, not tenant-scoped."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING", index=True)
    plan: Mapped[str] = mapped_column(String(16), nullable=False, default="BASIC")

    contact_email: Mapped[Optional[str]] = mapped_column(String(255))
    contact_phone: Mapped[Optional[str]] = mapped_column(String(32))
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[Optional[str]] = mapped_column(String(100))
    postal_code: Mapped[Optional[str]] = mapped_column(String(20))
    tax_number: Mapped[Optional[str]] = mapped_column(String(32))
    logo_url: Mapped[Optional[str]] = mapped_column(String(512))

    subscription_start: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    subscription_end: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    trial_end: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    max_users: Mapped[Optional[int]] = mapped_column(Integer)
    max_stores: Mapped[Optional[int]] = mapped_column(Integer)
    schema_name: Mapped[Optional[str]] = mapped_column(String(80))


class User(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    username: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="ACTIVE")
    roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    account_locked_until: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    last_login: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint("tenant_id", "username", name="uq_users_tenant_username"),
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )


# ==== BILLING ==== #


class Invoice(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    invoice_number: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="DRAFT", index=True)

    store_id: Mapped[Optional[str]] = mapped_column(String(64))
    counter_id: Mapped[Optional[str]] = mapped_column(String(64))
    customer_id: Mapped[Optional[str]] = mapped_column(String(64))
    customer_name: Mapped[Optional[str]] = mapped_column(String(255))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32))
    customer_email: Mapped[Optional[str]] = mapped_column(String(255))
    is_interstate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    subtotal: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    discount_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    tax_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    cgst_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    sgst_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    igst_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    cess_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    paid_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    balance_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)

    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    completed_by: Mapped[Optional[str]] = mapped_column(String(36))
    completed_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)

    items: Mapped[List["InvoiceItem"]] = relationship(
        back_populates="invoice", cascade="all, delete-orphan", lazy="selectin",
        order_by="InvoiceItem.position"
    )
    payments: Mapped[List["Payment"]] = relationship(
        back_populates="invoice", cascade="all, delete-orphan", lazy="selectin",
        order_by="Payment.paid_at"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_number"),
        Index("ix_invoices_tenant_created", "tenant_id", "created_at"),
    )


class InvoiceItem(TenantScopedMixin, Base):
    __tablename__ = "invoice_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    invoice_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product_id: Mapped[Optional[int]] = mapped_column(Integer)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_code: Mapped[Optional[str]] = mapped_column(String(64))
    barcode: Mapped[Optional[str]] = mapped_column(String(64))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    discount_type: Mapped[Optional[str]] = mapped_column(String(16))
    discount_value: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    discount_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    tax_rate: Mapped[Optional[Decimal]] = mapped_column(RATE)
    tax_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    cgst_rate: Mapped[Optional[Decimal]] = mapped_column(RATE)
    cgst_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    sgst_rate: Mapped[Optional[Decimal]] = mapped_column(RATE)
    sgst_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    igst_rate: Mapped[Optional[Decimal]] = mapped_column(RATE)
    igst_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    cess_rate: Mapped[Optional[Decimal]] = mapped_column(RATE)
    cess_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    line_total: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)

    invoice: Mapped[Invoice] = relationship(back_populates="items")


class Payment(TenantScopedMixin, Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    invoice_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    reference_number: Mapped[Optional[str]] = mapped_column(String(128))
    card_last4: Mapped[Optional[str]] = mapped_column(String(4))
    upi_id: Mapped[Optional[str]] = mapped_column(String(128))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    paid_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    invoice: Mapped[Invoice] = relationship(back_populates="payments")


class HeldInvoice(TenantScopedMixin, Base):
    """Parked cart that a cashier can resume later."""

    __tablename__ = "held_invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    hold_reference: Mapped[str] = mapped_column(String(32), nullable=False)
    request_data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    held_by: Mapped[Optional[str]] = mapped_column(String(36))
    held_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "hold_reference", name="uq_held_invoices_reference"),
    )


# ==== INVENTORY ==== #


class Category(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Brand(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    logo_url: Mapped[Optional[str]] = mapped_column(String(512))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Product(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sku: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    barcode: Mapped[Optional[str]] = mapped_column(String(64))
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    brand_id: Mapped[Optional[int]] = mapped_column(ForeignKey("brands.id"))
    cost_price: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    selling_price: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    mrp: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    tax_rate: Mapped[Optional[Decimal]] = mapped_column(RATE)
    hsn_code: Mapped[Optional[str]] = mapped_column(String(16))
    unit: Mapped[str] = mapped_column(String(16), nullable=False, default="PCS")
    image_url: Mapped[Optional[str]] = mapped_column(String(512))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    track_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        UniqueConstraint("tenant_id", "barcode", name="uq_products_tenant_barcode"),
    )


class Stock(TenantScopedMixin, Base):
    """On-hand quantity of one product at one store."""

    __tablename__ = "stock"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False, default="MAIN")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "product_id", "store_id", name="uq_stock_product_store"),
    )


class StockMovement(TenantScopedMixin, Base):
    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False, default="MAIN")
    movement_type: Mapped[str] = mapped_column(String(16), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    new_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_type: Mapped[Optional[str]] = mapped_column(String(32))
    reference_id: Mapped[Optional[str]] = mapped_column(String(64))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    performed_by: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_stock_movements_tenant_created", "tenant_id", "created_at"),
    )


# ==== SUPPLIERS ==== #


class Supplier(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "suppliers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[Optional[str]] = mapped_column(String(255))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[Optional[str]] = mapped_column(String(100))
    postal_code: Mapped[Optional[str]] = mapped_column(String(20))
    gstin: Mapped[Optional[str]] = mapped_column(String(20))
    pan_number: Mapped[Optional[str]] = mapped_column(String(20))
    bank_name: Mapped[Optional[str]] = mapped_column(String(128))
    account_number: Mapped[Optional[str]] = mapped_column(String(64))
    ifsc_code: Mapped[Optional[str]] = mapped_column(String(16))
    credit_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_purchases: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    outstanding_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    purchase_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_purchase_date: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)


# ==== CUSTOMERS ==== #


class Customer(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    date_of_birth: Mapped[Optional[dt.date]] = mapped_column(Date)
    address: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    pincode: Mapped[Optional[str]] = mapped_column(String(20))
    gstin: Mapped[Optional[str]] = mapped_column(String(20))
    segment: Mapped[str] = mapped_column(String(16), nullable=False, default="REGULAR", index=True)
    loyalty_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wallet_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    total_spent: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    visit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_visit_date: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (UniqueConstraint("tenant_id", "phone", name="uq_customers_tenant_phone"),)


class WalletTransaction(TenantScopedMixin, Base):
    """Ledger row for every wallet credit or debit."""

    __tablename__ = "wallet_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    customer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    invoice_id: Mapped[Optional[str]] = mapped_column(String(36))
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class LoyaltyTransaction(TenantScopedMixin, Base):
    __tablename__ = "loyalty_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    customer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_id: Mapped[Optional[str]] = mapped_column(String(36))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# ==== OFFERS ==== #


class Offer(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="DRAFT", index=True)
    discount_value: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    minimum_purchase_amount: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    maximum_discount_amount: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    valid_from: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    valid_to: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    applicable_products: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
    applicable_categories: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
    stackable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    terms_and_conditions: Mapped[Optional[str]] = mapped_column(Text)


# ==== NOTIFICATIONS ==== #


class Notification(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text, nullable=False)
    template_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING", index=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    sent_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)


# ==== METADATA DEFINITIONS ==== #


class Plugin(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "plugins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    plugin_type: Mapped[str] = mapped_column(String(64), nullable=False)
    version: Mapped[str] = mapped_column(String(32), nullable=False, default="1.0.0")
    description: Mapped[Optional[str]] = mapped_column(Text)
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_plugins_tenant_name"),)


class BusinessRule(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "business_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    trigger: Mapped[str] = mapped_column(String(64), nullable=False)
    condition: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    actions: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_business_rules_tenant_name"),
        Index("ix_business_rules_lookup", "tenant_id", "entity_type", "trigger"),
    )


class InvoiceTemplate(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "invoice_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    template_type: Mapped[str] = mapped_column(String(32), nullable=False, default="INVOICE")
    format: Mapped[str] = mapped_column(String(16), nullable=False, default="HTML")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_invoice_templates_tenant_name"),)


class WorkflowDefinition(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "workflow_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    trigger: Mapped[str] = mapped_column(String(64), nullable=False)
    steps: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_workflows_tenant_name"),)
