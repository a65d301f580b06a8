"""Notification persistence, including the cross-tenant retry scan."""

from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import NotificationStatus
from easybill.repositories.base import TenantRepository
from easybill.storage.models import Notification


class NotificationRepository(TenantRepository[Notification]):
    model = Notification

    async def retryable(self, max_retries: int) -> List[Notification]:
        return await self.list(
            Notification.status == NotificationStatus.FAILED.value,
            Notification.retry_count < max_retries,
            order_by=(Notification.created_at,),
        )

    async def count_by_status(self) -> Dict[str, int]:
        stmt = (
            select(Notification.status, func.count())
            .where(Notification.tenant_id == self.tenant_id)
            .group_by(Notification.status)
        )
        counts = {status.value: 0 for status in NotificationStatus}
        for status, total in (await self.session.execute(stmt)).all():
            counts[status] = total
        return counts


async def tenants_with_retryable(session: AsyncSession, max_retries: int) -> List[str]:
    """Distinct tenants owning failed notifications that may be retried."""
    stmt = (
        select(Notification.tenant_id)
        .where(
            Notification.status == NotificationStatus.FAILED.value,
            Notification.retry_count < max_retries,
        )
        .distinct()
        .order_by(Notification.tenant_id)
        .execution_options(skip_tenant_filter=True)
    )
    return list((await session.execute(stmt)).scalars().all())
