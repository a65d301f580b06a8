# ==== BILLING SCHEMAS ==== #

"""
Pydantic schemas for invoices, payments and held carts.

Money fields are ``Decimal`` and serialize as strings, so clients never see
binary floating point rounding.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from easybill.business.statuses import DiscountType, PaymentMode
from easybill.schemas.common import ORMModel


# ==== REQUESTS ==== #


class InvoiceItemRequest(BaseModel):
    """
    One cart line.

    Discount is either explicit (``discount_amount``) or derived from
    ``discount_type`` and ``discount_value``. Tax is derived from GST rates
    when any is given, else from ``tax_rate``, else taken from ``tax_amount``.
    """

    product_id: Optional[int] = None
    product_name: str = Field(..., min_length=1, max_length=255)
    product_code: Optional[str] = Field(None, max_length=64)
    barcode: Optional[str] = Field(None, max_length=64)
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)

    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    discount_amount: Optional[Decimal] = Field(None, ge=0)

    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    cgst_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    sgst_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    igst_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    cess_rate: Optional[Decimal] = Field(None, ge=0, le=100)


class CreateInvoiceRequest(BaseModel):
    store_id: Optional[str] = Field("MAIN", max_length=64)
    counter_id: Optional[str] = Field(None, max_length=64)
    customer_id: Optional[str] = Field(None, max_length=64)
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=32)
    customer_email: Optional[str] = Field(None, max_length=255)
    is_interstate: bool = False
    items: List[InvoiceItemRequest] = Field(..., min_length=1)
    notes: Optional[str] = None


class PaymentRequest(BaseModel):
    mode: PaymentMode
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    reference_number: Optional[str] = Field(None, max_length=128)
    card_last4: Optional[str] = Field(None, pattern=r"^\d{4}$")
    upi_id: Optional[str] = Field(None, max_length=128)
    notes: Optional[str] = None


class CompleteInvoiceRequest(BaseModel):
    payments: List[PaymentRequest] = Field(default_factory=list)


class CancelInvoiceRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ReturnRequest(BaseModel):
    item_ids: List[str] = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=500)


class HoldInvoiceRequest(BaseModel):
    invoice: CreateInvoiceRequest
    notes: Optional[str] = None


# ==== RESPONSES ==== #


class InvoiceItemResponse(ORMModel):
    id: str
    product_id: Optional[int] = None
    product_name: str
    product_code: Optional[str] = None
    barcode: Optional[str] = None
    quantity: int
    unit_price: Decimal
    discount_amount: Decimal
    tax_rate: Optional[Decimal] = None
    tax_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    cess_amount: Decimal
    line_total: Decimal


class PaymentResponse(ORMModel):
    id: str
    mode: str
    amount: Decimal
    reference_number: Optional[str] = None
    card_last4: Optional[str] = None
    upi_id: Optional[str] = None
    notes: Optional[str] = None
    paid_at: datetime


class InvoiceResponse(ORMModel):
    id: str
    tenant_id: str
    invoice_number: str
    status: str
    store_id: Optional[str] = None
    counter_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    is_interstate: bool
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    cess_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    notes: Optional[str] = None
    created_by: Optional[str] = None
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    items: List[InvoiceItemResponse] = []
    payments: List[PaymentResponse] = []


class HeldInvoiceResponse(BaseModel):
    hold_reference: str
    customer_name: Optional[str] = None
    item_count: int
    estimated_total: Decimal
    notes: Optional[str] = None
    held_by: Optional[str] = None
    held_at: datetime
