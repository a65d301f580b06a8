"""Supplier persistence."""

from typing import List

from sqlalchemy import func, or_

from easybill.repositories.base import TenantRepository
from easybill.storage.models import Supplier


class SupplierRepository(TenantRepository[Supplier]):
    model = Supplier

    async def search(self, term: str) -> List[Supplier]:
        pattern = f"%{term.lower()}%"
        return await self.list(
            or_(
                func.lower(Supplier.name).like(pattern),
                func.lower(func.coalesce(Supplier.email, "")).like(pattern),
                func.lower(func.coalesce(Supplier.phone, "")).like(pattern),
                func.lower(func.coalesce(Supplier.contact_person, "")).like(pattern),
            ),
            order_by=(Supplier.name,),
        )

    async def with_outstanding(self) -> List[Supplier]:
        return await self.list(
            Supplier.outstanding_balance > 0,
            order_by=(Supplier.outstanding_balance.desc(),),
        )
