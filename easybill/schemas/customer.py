"""Pydantic schemas for customers, wallets and loyalty points."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from easybill.business.statuses import CustomerSegment
from easybill.schemas.common import ORMModel


class CustomerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=5, max_length=32)
    email: Optional[EmailStr] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, max_length=20)
    gstin: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None


class CustomerPurchaseRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    invoice_id: Optional[str] = None


class WalletRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    invoice_id: Optional[str] = None
    description: Optional[str] = None


class RedeemPointsRequest(BaseModel):
    points: int = Field(..., gt=0)


class CustomerResponse(ORMModel):
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    gstin: Optional[str] = None
    segment: CustomerSegment
    loyalty_points: int
    wallet_balance: Decimal
    total_spent: Decimal
    visit_count: int
    last_visit_date: Optional[datetime] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime


class WalletTransactionResponse(ORMModel):
    id: str
    type: str
    amount: Decimal
    balance_after: Decimal
    invoice_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime


class LoyaltyTransactionResponse(ORMModel):
    id: str
    type: str
    points: int
    amount: Optional[Decimal] = None
    balance_after: int
    invoice_id: Optional[str] = None
    created_at: datetime


class CustomerStatistics(BaseModel):
    customer_id: str
    segment: CustomerSegment
    total_spent: Decimal
    visit_count: int
    average_order_value: Decimal
    loyalty_points: int
    wallet_balance: Decimal
    last_visit_date: Optional[datetime] = None
