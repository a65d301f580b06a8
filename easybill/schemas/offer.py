"""Pydantic schemas for promotional offers."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from easybill.business.statuses import OfferStatus, OfferType
from easybill.schemas.common import ORMModel


class OfferRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: OfferType
    discount_value: Decimal = Field(..., gt=0)
    minimum_purchase_amount: Optional[Decimal] = Field(None, ge=0)
    maximum_discount_amount: Optional[Decimal] = Field(None, gt=0)
    valid_from: datetime
    valid_to: datetime
    usage_limit: Optional[int] = Field(None, ge=1)
    applicable_products: List[int] = Field(default_factory=list)
    applicable_categories: List[int] = Field(default_factory=list)
    stackable: bool = False
    priority: int = 0
    terms_and_conditions: Optional[str] = None

    @model_validator(mode="after")
    def check_offer(self) -> "OfferRequest":
        if self.valid_to <= self.valid_from:
            raise ValueError("valid_to must be after valid_from")
        if self.type == OfferType.PERCENTAGE_DISCOUNT and self.discount_value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class CartRequest(BaseModel):
    """Purchase an offer is evaluated against."""

    purchase_amount: Decimal = Field(..., ge=0)
    product_ids: List[int] = Field(default_factory=list)
    category_ids: List[int] = Field(default_factory=list)


class OfferResponse(ORMModel):
    id: str
    name: str
    description: Optional[str] = None
    type: OfferType
    status: OfferStatus
    discount_value: Decimal
    minimum_purchase_amount: Optional[Decimal] = None
    maximum_discount_amount: Optional[Decimal] = None
    valid_from: datetime
    valid_to: datetime
    usage_limit: Optional[int] = None
    usage_count: int
    applicable_products: List[int]
    applicable_categories: List[int]
    stackable: bool
    priority: int
    terms_and_conditions: Optional[str] = None
    created_at: datetime


class DiscountResponse(BaseModel):
    offer_id: str
    purchase_amount: Decimal
    discount: Decimal
