"""Pydantic schemas for the product catalogue and stock operations."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from easybill.business.statuses import AdjustmentType, MovementType
from easybill.schemas.common import ORMModel


class ProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    barcode: Optional[str] = Field(None, max_length=64)
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Decimal = Field(..., ge=0)
    mrp: Optional[Decimal] = Field(None, ge=0)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    hsn_code: Optional[str] = Field(None, max_length=16)
    unit: str = Field("PCS", max_length=16)
    image_url: Optional[str] = Field(None, max_length=512)
    track_stock: bool = True
    low_stock_threshold: int = Field(10, ge=0)


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    barcode: Optional[str] = Field(None, max_length=64)
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    mrp: Optional[Decimal] = Field(None, ge=0)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    hsn_code: Optional[str] = Field(None, max_length=16)
    unit: Optional[str] = Field(None, max_length=16)
    image_url: Optional[str] = Field(None, max_length=512)
    is_active: Optional[bool] = None
    track_stock: Optional[bool] = None
    low_stock_threshold: Optional[int] = Field(None, ge=0)


class ProductResponse(ORMModel):
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    barcode: Optional[str] = None
    category_id: Optional[int] = None
    brand_id: Optional[int] = None
    cost_price: Optional[Decimal] = None
    selling_price: Decimal
    mrp: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    hsn_code: Optional[str] = None
    unit: str
    image_url: Optional[str] = None
    is_active: bool
    track_stock: bool
    low_stock_threshold: int
    created_at: datetime


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    parent_id: Optional[int] = None


class CategoryResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    is_active: bool


class BrandRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=512)


class BrandResponse(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool


class StockMovementRequest(BaseModel):
    product_id: int
    store_id: str = Field("MAIN", max_length=64)
    movement_type: MovementType
    quantity: int = Field(..., ge=1)
    reference_type: Optional[str] = Field(None, max_length=32)
    reference_id: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = None


class StockAdjustmentRequest(BaseModel):
    product_id: int
    store_id: str = Field("MAIN", max_length=64)
    adjustment_type: AdjustmentType
    quantity: int = Field(..., ge=0)
    reason: Optional[str] = None


class StockTransferRequest(BaseModel):
    product_id: int
    from_store_id: str = Field(..., max_length=64)
    to_store_id: str = Field(..., max_length=64)
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = None


class StockResponse(BaseModel):
    product_id: int
    product_name: str
    store_id: str
    quantity: int
    reserved_quantity: int
    available_quantity: int
    low_stock_threshold: int
    is_low_stock: bool
    updated_at: Optional[datetime] = None


class StockMovementResponse(ORMModel):
    id: int
    product_id: int
    store_id: str
    movement_type: str
    quantity: int
    previous_quantity: int
    new_quantity: int
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    performed_by: Optional[str] = None
    created_at: datetime


class InventoryDashboard(BaseModel):
    total_products: int
    active_products: int
    low_stock_count: int
    total_stock_value: Decimal
    low_stock_alerts: List[StockResponse]
    recent_movements: List[StockMovementResponse]
