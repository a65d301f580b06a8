"""Invoice and held-invoice persistence."""

import datetime as dt
from typing import List, Optional, Tuple

from easybill.business.statuses import InvoiceStatus
from easybill.repositories.base import TenantRepository
from easybill.storage.models import HeldInvoice, Invoice


class InvoiceRepository(TenantRepository[Invoice]):
    model = Invoice

    async def count_created_since(self, since: dt.datetime) -> int:
        return await self.count(Invoice.created_at >= since)

    async def by_number(self, invoice_number: str) -> Optional[Invoice]:
        return await self.first(Invoice.invoice_number == invoice_number)

    async def newest_first(self, offset: int, limit: int) -> Tuple[List[Invoice], int]:
        return await self.list_page(
            offset=offset,
            limit=limit,
            order_by=(Invoice.created_at.desc(), Invoice.invoice_number.desc()),
        )

    async def completed_between(self, start: dt.datetime, end: dt.datetime) -> List[Invoice]:
        """COMPLETED invoices with ``start <= completed_at < end``, oldest first."""
        return await self.list(
            Invoice.status == InvoiceStatus.COMPLETED.value,
            Invoice.completed_at >= start,
            Invoice.completed_at < end,
            order_by=(Invoice.completed_at,),
        )


class HeldInvoiceRepository(TenantRepository[HeldInvoice]):
    model = HeldInvoice

    async def by_reference(self, hold_reference: str) -> Optional[HeldInvoice]:
        return await self.first(HeldInvoice.hold_reference == hold_reference)

    async def newest_first(self) -> List[HeldInvoice]:
        return await self.list(order_by=(HeldInvoice.held_at.desc(),))
