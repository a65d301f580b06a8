"""Tenant records. Tenants are the isolation boundary, so this repository is global."""

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.storage.models import Tenant


class TenantRecordRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        result = await self.session.execute(select(Tenant).where(Tenant.id == tenant_id))
        return result.scalars().first()

    async def by_slug(self, slug: str) -> Optional[Tenant]:
        result = await self.session.execute(select(Tenant).where(Tenant.slug == slug))
        return result.scalars().first()

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(func.count()).select_from(Tenant).where(Tenant.slug == slug)
        return (await self.session.execute(stmt)).scalar_one() > 0

    async def list_page(self, offset: int = 0, limit: int = 20) -> Tuple[List[Tenant], int]:
        rows = await self.session.execute(
            select(Tenant).order_by(Tenant.created_at.desc(), Tenant.id).offset(offset).limit(limit)
        )
        total = (await self.session.execute(select(func.count()).select_from(Tenant))).scalar_one()
        return list(rows.scalars().all()), total

    async def search_by_name(self, name: str) -> List[Tenant]:
        pattern = f"%{name.lower()}%"
        result = await self.session.execute(
            select(Tenant).where(func.lower(Tenant.name).like(pattern)).order_by(Tenant.name)
        )
        return list(result.scalars().all())

    async def add(self, tenant: Tenant) -> Tenant:
        self.session.add(tenant)
        await self.session.flush()
        return tenant

    async def save(self, tenant: Tenant) -> Tenant:
        await self.session.flush()
        return tenant
