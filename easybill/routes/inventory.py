# ==== INVENTORY ROUTES MODULE ==== #

"""
Inventory endpoints: product catalogue, categories, brands, stock levels,
stock movements and the inventory dashboard.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import Role
from easybill.schemas.common import Page
from easybill.schemas.inventory import (
    BrandRequest,
    BrandResponse,
    CategoryRequest,
    CategoryResponse,
    InventoryDashboard,
    ProductRequest,
    ProductResponse,
    ProductUpdateRequest,
    StockAdjustmentRequest,
    StockMovementRequest,
    StockMovementResponse,
    StockResponse,
    StockTransferRequest,
)
from easybill.security.auth import AuthenticatedUser, get_current_user, require_roles
from easybill.services.inventory import DEFAULT_STORE, InventoryService
from easybill.storage.db import get_db_session


router = APIRouter()

require_stock_manager = require_roles(Role.ADMIN, Role.MANAGER)


# ==== PRODUCTS ==== #


@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    payload: ProductRequest,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> ProductResponse:
    product = await InventoryService(db, user.tenant_id).create_product(payload)
    return ProductResponse.model_validate(product)


@router.get("/products", response_model=Page[ProductResponse])
async def list_products(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Page[ProductResponse]:
    rows, total = await InventoryService(db, user.tenant_id).list_products(page, size)
    return Page[ProductResponse](
        items=[ProductResponse.model_validate(p) for p in rows], total=total, page=page, size=size
    )


@router.get("/products/search", response_model=List[ProductResponse])
async def search_products(
    q: Optional[str] = Query(None, description="Matches name, SKU or barcode"),
    active_only: bool = Query(True),
    low_stock_only: bool = Query(False),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ProductResponse]:
    products = await InventoryService(db, user.tenant_id).search_products(q, active_only, low_stock_only)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/products/barcode/{barcode}", response_model=ProductResponse)
async def get_product_by_barcode(
    barcode: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProductResponse:
    return ProductResponse.model_validate(await InventoryService(db, user.tenant_id).get_by_barcode(barcode))


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProductResponse:
    return ProductResponse.model_validate(await InventoryService(db, user.tenant_id).get_product(product_id))


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductUpdateRequest,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> ProductResponse:
    product = await InventoryService(db, user.tenant_id).update_product(product_id, payload)
    return ProductResponse.model_validate(product)


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(
    product_id: int,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await InventoryService(db, user.tenant_id).delete_product(product_id)
    return Response(status_code=204)


# ==== CATEGORIES AND BRANDS ==== #


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    payload: CategoryRequest,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> CategoryResponse:
    return CategoryResponse.model_validate(await InventoryService(db, user.tenant_id).create_category(payload))


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in await InventoryService(db, user.tenant_id).list_categories()]


@router.post("/brands", response_model=BrandResponse, status_code=201)
async def create_brand(
    payload: BrandRequest,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> BrandResponse:
    return BrandResponse.model_validate(await InventoryService(db, user.tenant_id).create_brand(payload))


@router.get("/brands", response_model=List[BrandResponse])
async def list_brands(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[BrandResponse]:
    return [BrandResponse.model_validate(b) for b in await InventoryService(db, user.tenant_id).list_brands()]


# ==== STOCK ==== #


@router.post("/stock/movements", response_model=StockMovementResponse, status_code=201)
async def record_stock_movement(
    payload: StockMovementRequest,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> StockMovementResponse:
    movement = await InventoryService(db, user.tenant_id).record_stock_movement(
        payload.product_id,
        payload.movement_type,
        payload.quantity,
        payload.store_id,
        payload.reference_type,
        payload.reference_id,
        payload.notes,
        user.user_id,
    )
    return StockMovementResponse.model_validate(movement)


@router.post("/stock/adjust", response_model=StockResponse)
async def adjust_stock(
    payload: StockAdjustmentRequest,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> StockResponse:
    return await InventoryService(db, user.tenant_id).adjust_stock(
        payload.product_id,
        payload.adjustment_type,
        payload.quantity,
        payload.store_id,
        payload.reason,
        user.user_id,
    )


@router.post("/stock/transfer", response_model=List[StockResponse])
async def transfer_stock(
    payload: StockTransferRequest,
    user: AuthenticatedUser = Depends(require_stock_manager),
    db: AsyncSession = Depends(get_db_session),
) -> List[StockResponse]:
    return await InventoryService(db, user.tenant_id).transfer_stock(
        payload.product_id,
        payload.from_store_id,
        payload.to_store_id,
        payload.quantity,
        payload.notes,
        user.user_id,
    )


@router.get("/stock/{product_id}", response_model=List[StockResponse])
async def get_stock(
    product_id: int,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[StockResponse]:
    return await InventoryService(db, user.tenant_id).get_stock_for_product(product_id)


@router.get("/stock/{product_id}/availability")
async def check_availability(
    product_id: int,
    quantity: int = Query(..., ge=1),
    store_id: str = Query(DEFAULT_STORE),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    available = await InventoryService(db, user.tenant_id).check_stock_availability(
        product_id, quantity, store_id
    )
    return {"product_id": product_id, "store_id": store_id, "quantity": quantity, "available": available}


@router.get("/inventory/dashboard", response_model=InventoryDashboard)
async def inventory_dashboard(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> InventoryDashboard:
    return await InventoryService(db, user.tenant_id).dashboard()
