# ==== INVENTORY SERVICE ==== #

"""
Product catalogue and stock management.

Every quantity change goes through ``record_stock_movement`` so the stock
row and its movement journal always agree. ``available_quantity`` is kept
equal to ``quantity - reserved_quantity`` after every change.
"""

import random
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import AdjustmentType, MovementType, ReferenceType
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError, ValidationError
from easybill.observability.logging import get_logger
from easybill.observability.metrics import stock_movements_total
from easybill.observability.tracing import get_tracer
from easybill.repositories.inventory import (
    BrandRepository,
    CategoryRepository,
    ProductRepository,
    StockMovementRepository,
    StockRepository,
)
from easybill.schemas.inventory import (
    BrandRequest,
    CategoryRequest,
    InventoryDashboard,
    ProductRequest,
    ProductUpdateRequest,
    StockMovementResponse,
    StockResponse,
)
from easybill.storage.models import Brand, Category, Product, Stock, StockMovement, utcnow


logger = get_logger(__name__)
tracer = get_tracer(__name__)

DEFAULT_STORE = "MAIN"


def generate_sku() -> str:
    return f"SKU-{utcnow():%Y%m%d}-{random.randint(0, 99999):05d}"


def is_low_stock(product: Product, available: int) -> bool:
    return bool(product.track_stock) and available < (product.low_stock_threshold or 0)


def to_stock_response(product: Product, stock: Optional[Stock], store_id: str = DEFAULT_STORE) -> StockResponse:
    quantity = stock.quantity if stock else 0
    reserved = stock.reserved_quantity if stock else 0
    available = stock.available_quantity if stock else 0
    return StockResponse(
        product_id=product.id,
        product_name=product.name,
        store_id=stock.store_id if stock else store_id,
        quantity=quantity,
        reserved_quantity=reserved,
        available_quantity=available,
        low_stock_threshold=product.low_stock_threshold,
        is_low_stock=is_low_stock(product, available),
        updated_at=stock.updated_at if stock else None,
    )


# ==== INVENTORY SERVICE CLASS ==== #


class InventoryService:

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id
        self.products = ProductRepository(session, tenant_id)
        self.categories = CategoryRepository(session, tenant_id)
        self.brands = BrandRepository(session, tenant_id)
        self.stock = StockRepository(session, tenant_id)
        self.movements = StockMovementRepository(session, tenant_id)

    # ==== PRODUCTS ==== #

    async def create_product(self, request: ProductRequest) -> Product:
        """
        Create a catalogue product with a generated SKU.

        Raises:
            BusinessError: DUPLICATE_BARCODE when the barcode is used in this tenant
            ResourceNotFoundError: Unknown category or brand
        """
        if request.barcode and await self.products.barcode_exists(request.barcode):
            raise BusinessError(
                ErrorCodes.DUPLICATE_BARCODE, "Product with barcode %s already exists", request.barcode
            )
        await self._check_references(request.category_id, request.brand_id)

        product = Product(sku=generate_sku(), **request.model_dump())
        await self.products.add(product)
        logger.info("Product created", product_id=product.id, sku=product.sku)
        return product

    async def _check_references(self, category_id: Optional[int], brand_id: Optional[int]) -> None:
        if category_id is not None and await self.categories.get(category_id) is None:
            raise ResourceNotFoundError("Category", category_id)
        if brand_id is not None and await self.brands.get(brand_id) is None:
            raise ResourceNotFoundError("Brand", brand_id)

    async def get_product(self, product_id: int) -> Product:
        product = await self.products.get(product_id)
        if product is None:
            raise ResourceNotFoundError("Product", product_id, ErrorCodes.PRODUCT_NOT_FOUND)
        return product

    async def get_by_barcode(self, barcode: str) -> Product:
        product = await self.products.by_barcode(barcode)
        if product is None:
            raise ResourceNotFoundError("Product", barcode, ErrorCodes.PRODUCT_NOT_FOUND)
        return product

    async def list_products(self, page: int = 0, size: int = 20) -> Tuple[List[Product], int]:
        return await self.products.list_page(
            offset=page * size, limit=size, order_by=(Product.name, Product.id)
        )

    async def search_products(
        self,
        term: Optional[str] = None,
        active_only: bool = True,
        low_stock_only: bool = False,
    ) -> List[Product]:
        products = await self.products.search(term, active_only)
        if not low_stock_only:
            return products

        flagged = []
        for product in products:
            stock = await self.stock.for_product(product.id, DEFAULT_STORE)
            if is_low_stock(product, stock.available_quantity if stock else 0):
                flagged.append(product)
        return flagged

    async def update_product(self, product_id: int, request: ProductUpdateRequest) -> Product:
        product = await self.get_product(product_id)
        changes = request.model_dump(exclude_unset=True)

        barcode = changes.get("barcode")
        if barcode and barcode != product.barcode and await self.products.barcode_exists(barcode, product.id):
            raise BusinessError(
                ErrorCodes.DUPLICATE_BARCODE, "Product with barcode %s already exists", barcode
            )
        await self._check_references(changes.get("category_id"), changes.get("brand_id"))

        for key, value in changes.items():
            setattr(product, key, value)
        return await self.products.save(product)

    async def delete_product(self, product_id: int) -> None:
        """Soft delete: the product stays referenced by past invoices."""
        product = await self.get_product(product_id)
        product.is_active = False
        await self.products.save(product)

    # ==== CATEGORIES AND BRANDS ==== #

    async def create_category(self, request: CategoryRequest) -> Category:
        if request.parent_id is not None and await self.categories.get(request.parent_id) is None:
            raise ResourceNotFoundError("Category", request.parent_id)
        return await self.categories.add(Category(**request.model_dump(), is_active=True))

    async def list_categories(self) -> List[Category]:
        return await self.categories.active()

    async def create_brand(self, request: BrandRequest) -> Brand:
        return await self.brands.add(Brand(**request.model_dump(), is_active=True))

    async def list_brands(self) -> List[Brand]:
        return await self.brands.active()

    # ==== STOCK QUERIES ==== #

    async def get_stock_for_product(self, product_id: int) -> List[StockResponse]:
        product = await self.get_product(product_id)
        rows = await self.stock.all_for_product(product_id)
        if not rows:
            return [to_stock_response(product, None)]
        return [to_stock_response(product, row) for row in rows]

    async def check_stock_availability(
        self, product_id: int, quantity: int, store_id: str = DEFAULT_STORE
    ) -> bool:
        stock = await self.stock.for_product(product_id, store_id)
        if stock is None:
            return False
        return stock.available_quantity >= quantity

    # ==== STOCK MOVEMENTS ==== #

    async def record_stock_movement(
        self,
        product_id: int,
        movement_type: MovementType,
        quantity: int,
        store_id: str = DEFAULT_STORE,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> StockMovement:
        """
        Apply one stock movement and journal it.

        IN and ADJUSTMENT add ``quantity``; OUT and TRANSFER subtract it.

        Raises:
            ValidationError: Non-positive quantity
            BusinessError: INSUFFICIENT_STOCK when the result would go negative
        """
        movement_type = MovementType(movement_type)
        if quantity <= 0:
            raise ValidationError("Movement quantity must be positive", field_errors={"quantity": "must be > 0"})

        with tracer.start_as_current_span("stock_movement") as span:
            span.set_attribute("product_id", product_id)
            span.set_attribute("movement_type", movement_type.value)

            product = await self.get_product(product_id)
            stock = await self._get_or_create_stock(product.id, store_id)
            previous = stock.quantity

            if movement_type in (MovementType.IN, MovementType.ADJUSTMENT):
                new_quantity = previous + quantity
            else:
                new_quantity = previous - quantity
                if new_quantity < 0:
                    raise BusinessError(
                        ErrorCodes.INSUFFICIENT_STOCK,
                        "Insufficient stock for product %s: available %s, requested %s",
                        product.name,
                        previous,
                        quantity,
                    )

            self._set_quantity(stock, new_quantity)

            movement = await self.movements.add(StockMovement(
                product_id=product.id,
                store_id=store_id,
                movement_type=movement_type.value,
                quantity=quantity,
                previous_quantity=previous,
                new_quantity=new_quantity,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=notes,
                performed_by=performed_by,
            ))

            stock_movements_total.labels(tenant=self.tenant_id, movement_type=movement_type.value).inc()
            if is_low_stock(product, stock.available_quantity):
                logger.warning(
                    "Product below low stock threshold",
                    product_id=product.id,
                    available=stock.available_quantity,
                    threshold=product.low_stock_threshold,
                )
            return movement

    async def adjust_stock(
        self,
        product_id: int,
        adjustment_type: AdjustmentType,
        quantity: int,
        store_id: str = DEFAULT_STORE,
        reason: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> StockResponse:
        """Increase, decrease or set the on-hand quantity after a stock count."""
        adjustment_type = AdjustmentType(adjustment_type)
        product = await self.get_product(product_id)
        stock = await self._get_or_create_stock(product.id, store_id)
        previous = stock.quantity

        if adjustment_type == AdjustmentType.INCREASE:
            new_quantity = previous + quantity
        elif adjustment_type == AdjustmentType.DECREASE:
            new_quantity = previous - quantity
            if new_quantity < 0:
                raise BusinessError(
                    ErrorCodes.INSUFFICIENT_STOCK,
                    "Cannot decrease stock below zero: on hand %s, decrease %s",
                    previous,
                    quantity,
                )
        else:
            new_quantity = quantity

        self._set_quantity(stock, new_quantity)
        await self.movements.add(StockMovement(
            product_id=product.id,
            store_id=store_id,
            movement_type=MovementType.ADJUSTMENT.value,
            quantity=abs(new_quantity - previous),
            previous_quantity=previous,
            new_quantity=new_quantity,
            reference_type=ReferenceType.ADJUSTMENT.value,
            notes=f"{adjustment_type.value}: {reason}" if reason else adjustment_type.value,
            performed_by=performed_by,
        ))
        stock_movements_total.labels(tenant=self.tenant_id, movement_type=MovementType.ADJUSTMENT.value).inc()
        return to_stock_response(product, stock)

    async def transfer_stock(
        self,
        product_id: int,
        from_store_id: str,
        to_store_id: str,
        quantity: int,
        notes: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> List[StockResponse]:
        """Move stock between stores as a TRANSFER out plus an IN movement."""
        if from_store_id == to_store_id:
            raise ValidationError("Source and destination stores must differ")

        product = await self.get_product(product_id)
        source = await self.stock.for_product(product.id, from_store_id)
        if source is None or source.available_quantity < quantity:
            raise BusinessError(
                ErrorCodes.INSUFFICIENT_STOCK,
                "Insufficient stock in %s for transfer of %s",
                from_store_id,
                quantity,
            )

        reference = f"TRF-{utcnow():%Y%m%d%H%M%S}-{product.id}"
        await self.record_stock_movement(
            product.id, MovementType.TRANSFER, quantity, from_store_id,
            ReferenceType.TRANSFER.value, reference, notes, performed_by,
        )
        await self.record_stock_movement(
            product.id, MovementType.IN, quantity, to_store_id,
            ReferenceType.TRANSFER.value, reference, notes, performed_by,
        )

        return [
            to_stock_response(product, await self.stock.for_product(product.id, from_store_id)),
            to_stock_response(product, await self.stock.for_product(product.id, to_store_id)),
        ]

    # ==== SALES INTEGRATION ==== #

    async def deduct_stock(
        self,
        product_id: int,
        quantity: int,
        store_id: str,
        reference_id: str,
        performed_by: Optional[str] = None,
    ) -> bool:
        """Deduct sold stock. Failures are logged, never raised, so a sale is not lost."""
        try:
            await self.record_stock_movement(
                product_id, MovementType.OUT, quantity, store_id,
                ReferenceType.SALE.value, reference_id, None, performed_by,
            )
            return True
        except BusinessError as e:
            logger.error(
                "Stock deduction failed",
                product_id=product_id,
                reference_id=reference_id,
                error_code=e.error_code,
                error=e.formatted_message,
            )
            return False

    async def reverse_stock_deduction(
        self,
        product_id: int,
        quantity: int,
        store_id: str,
        reference_id: str,
        performed_by: Optional[str] = None,
    ) -> bool:
        try:
            await self.record_stock_movement(
                product_id, MovementType.IN, quantity, store_id,
                ReferenceType.RETURN.value, reference_id, None, performed_by,
            )
            return True
        except BusinessError as e:
            logger.error(
                "Stock reversal failed",
                product_id=product_id,
                reference_id=reference_id,
                error_code=e.error_code,
                error=e.formatted_message,
            )
            return False

    # ==== DASHBOARD ==== #

    async def dashboard(self) -> InventoryDashboard:
        total_products = await self.products.count()
        active_products = await self.products.count(Product.is_active.is_(True))

        low_stock = [
            to_stock_response(product, stock)
            for stock, product in await self.stock.with_products()
            if is_low_stock(product, stock.available_quantity)
        ]
        recent = await self.movements.recent(10)

        return InventoryDashboard(
            total_products=total_products,
            active_products=active_products,
            low_stock_count=len(low_stock),
            total_stock_value=Decimal(str(await self.stock.stock_value() or 0)).quantize(Decimal("0.01")),
            low_stock_alerts=low_stock[:10],
            recent_movements=[StockMovementResponse.model_validate(m) for m in recent],
        )

    # ==== INTERNALS ==== #

    async def _get_or_create_stock(self, product_id: int, store_id: str) -> Stock:
        stock = await self.stock.for_product(product_id, store_id)
        if stock is None:
            stock = await self.stock.add(Stock(
                product_id=product_id,
                store_id=store_id,
                quantity=0,
                reserved_quantity=0,
                available_quantity=0,
            ))
        return stock

    @staticmethod
    def _set_quantity(stock: Stock, quantity: int) -> None:
        stock.quantity = quantity
        stock.available_quantity = quantity - (stock.reserved_quantity or 0)
        stock.updated_at = utcnow()
