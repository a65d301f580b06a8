"""Pydantic schemas for tenant administration."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from easybill.business.statuses import SubscriptionPlan
from easybill.schemas.common import ORMModel


class TenantRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    slug: str = Field(..., min_length=2, max_length=50, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = None
    plan: SubscriptionPlan = SubscriptionPlan.BASIC
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    tax_number: Optional[str] = Field(None, max_length=32)
    logo_url: Optional[str] = Field(None, max_length=512)
    max_users: Optional[int] = Field(None, ge=1)
    max_stores: Optional[int] = Field(None, ge=1)


class TenantUpdateRequest(BaseModel):
    """Partial update; slug and status change only through dedicated operations."""

    name: Optional[str] = Field(None, min_length=1, max_length=128)
    description: Optional[str] = None
    plan: Optional[SubscriptionPlan] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    tax_number: Optional[str] = Field(None, max_length=32)
    logo_url: Optional[str] = Field(None, max_length=512)
    max_users: Optional[int] = Field(None, ge=1)
    max_stores: Optional[int] = Field(None, ge=1)


class TenantResponse(ORMModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    status: str
    plan: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    tax_number: Optional[str] = None
    logo_url: Optional[str] = None
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    max_users: Optional[int] = None
    max_stores: Optional[int] = None
    schema_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
