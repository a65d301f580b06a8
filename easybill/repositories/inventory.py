"""Product catalogue and stock persistence."""

from typing import List, Optional

from sqlalchemy import func, or_, select

from easybill.repositories.base import TenantRepository
from easybill.storage.models import Brand, Category, Product, Stock, StockMovement


class ProductRepository(TenantRepository[Product]):
    model = Product

    async def by_barcode(self, barcode: str) -> Optional[Product]:
        return await self.first(Product.barcode == barcode)

    async def barcode_exists(self, barcode: str, exclude_id: Optional[int] = None) -> bool:
        criteria = [Product.barcode == barcode]
        if exclude_id is not None:
            criteria.append(Product.id != exclude_id)
        return await self.exists(*criteria)

    async def search(self, term: Optional[str], active_only: bool = True) -> List[Product]:
        criteria = []
        if term:
            pattern = f"%{term.lower()}%"
            criteria.append(or_(
                func.lower(Product.name).like(pattern),
                func.lower(Product.sku).like(pattern),
                func.lower(func.coalesce(Product.barcode, "")).like(pattern),
            ))
        if active_only:
            criteria.append(Product.is_active.is_(True))
        return await self.list(*criteria, order_by=(Product.name,))


class CategoryRepository(TenantRepository[Category]):
    model = Category

    async def active(self) -> List[Category]:
        return await self.list(Category.is_active.is_(True), order_by=(Category.name,))


class BrandRepository(TenantRepository[Brand]):
    model = Brand

    async def active(self) -> List[Brand]:
        return await self.list(Brand.is_active.is_(True), order_by=(Brand.name,))


class StockRepository(TenantRepository[Stock]):
    model = Stock

    async def for_product(self, product_id: int, store_id: str) -> Optional[Stock]:
        return await self.first(Stock.product_id == product_id, Stock.store_id == store_id)

    async def all_for_product(self, product_id: int) -> List[Stock]:
        return await self.list(Stock.product_id == product_id, order_by=(Stock.store_id,))

    async def stock_value(self) -> float:
        stmt = (
            select(func.coalesce(func.sum(Stock.quantity * Product.cost_price), 0))
            .select_from(Stock)
            .join(Product, Product.id == Stock.product_id)
            .where(Stock.tenant_id == self.tenant_id, Product.tenant_id == self.tenant_id)
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def with_products(self) -> List[tuple]:
        """(stock, product) pairs for every tracked active product."""
        stmt = (
            select(Stock, Product)
            .join(Product, Product.id == Stock.product_id)
            .where(
                Stock.tenant_id == self.tenant_id,
                Product.tenant_id == self.tenant_id,
                Product.is_active.is_(True),
                Product.track_stock.is_(True),
            )
            .order_by(Stock.available_quantity, Product.name)
        )
        return list((await self.session.execute(stmt)).all())


class StockMovementRepository(TenantRepository[StockMovement]):
    model = StockMovement

    async def recent(self, limit: int = 10) -> List[StockMovement]:
        stmt = self.scoped().order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit)
        return list((await self.session.execute(stmt)).scalars().all())

    async def for_reference(self, reference_id: str) -> List[StockMovement]:
        return await self.list(StockMovement.reference_id == reference_id, order_by=(StockMovement.id,))
