# ==== TENANT-SCOPED REPOSITORY BASE ==== #

"""
Repository base class that scopes every query to one tenant.

Repositories are built per request with an explicit ``tenant_id`` and add
``Model.tenant_id == tenant_id`` to every statement they issue, independent
of the session-level row filter.
"""

from typing import Any, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.errors import ErrorCodes, ValidationError


ModelT = TypeVar("ModelT")


class TenantRepository(Generic[ModelT]):
    """CRUD helpers for one tenant-scoped model."""

    model: Type[ModelT]

    def __init__(self, session: AsyncSession, tenant_id: str):
        if not tenant_id:
            raise ValidationError("Tenant context is required", error_code=ErrorCodes.INVALID_REQUEST)
        self.session = session
        self.tenant_id = tenant_id

    # --► STATEMENT BUILDERS

    def scoped(self, *criteria: Any) -> Select:
        return select(self.model).where(self.model.tenant_id == self.tenant_id, *criteria)

    def _count_stmt(self, *criteria: Any) -> Select:
        return (
            select(func.count())
            .select_from(self.model)
            .where(self.model.tenant_id == self.tenant_id, *criteria)
        )

    # --► READS

    async def get(self, entity_id: Any) -> Optional[ModelT]:
        result = await self.session.execute(self.scoped(self.model.id == entity_id))
        return result.scalars().first()

    async def first(self, *criteria: Any) -> Optional[ModelT]:
        result = await self.session.execute(self.scoped(*criteria).limit(1))
        return result.scalars().first()

    async def list(self, *criteria: Any, order_by: Sequence[Any] = ()) -> List[ModelT]:
        result = await self.session.execute(self.scoped(*criteria).order_by(*order_by))
        return list(result.scalars().all())

    async def list_page(
        self,
        *criteria: Any,
        offset: int = 0,
        limit: int = 20,
        order_by: Sequence[Any] = (),
    ) -> Tuple[List[ModelT], int]:
        """Return one page of rows plus the total row count."""
        stmt = self.scoped(*criteria).order_by(*order_by).offset(offset).limit(limit)
        rows = (await self.session.execute(stmt)).scalars().all()
        total = await self.count(*criteria)
        return list(rows), total

    async def count(self, *criteria: Any) -> int:
        return (await self.session.execute(self._count_stmt(*criteria))).scalar_one()

    async def exists(self, *criteria: Any) -> bool:
        return await self.count(*criteria) > 0

    # --► WRITES

    async def add(self, entity: ModelT) -> ModelT:
        entity.tenant_id = self.tenant_id
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def save(self, entity: ModelT) -> ModelT:
        await self.session.flush()
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.session.delete(entity)
        await self.session.flush()
