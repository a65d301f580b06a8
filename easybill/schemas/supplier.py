"""Pydantic schemas for supplier management."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from easybill.schemas.common import ORMModel


class SupplierRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    gstin: Optional[str] = Field(None, max_length=20)
    pan_number: Optional[str] = Field(None, max_length=20)
    bank_name: Optional[str] = Field(None, max_length=128)
    account_number: Optional[str] = Field(None, max_length=64)
    ifsc_code: Optional[str] = Field(None, max_length=16)
    credit_days: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class PurchaseRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    is_paid: bool = False


class SupplierPaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


class CreditTermsRequest(BaseModel):
    credit_days: int = Field(..., ge=0)


class SupplierResponse(ORMModel):
    id: str
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    gstin: Optional[str] = None
    pan_number: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    credit_days: int
    total_purchases: Decimal
    outstanding_balance: Decimal
    purchase_count: int
    last_purchase_date: Optional[datetime] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime


class DueDateResponse(BaseModel):
    supplier_id: str
    due_date: datetime
    is_overdue: bool
    outstanding_balance: Decimal
