"""Supplier records, purchases, payments and credit terms."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.pricing import money
from easybill.errors import ResourceNotFoundError, ValidationError
from easybill.observability.logging import get_logger, log_business_event
from easybill.repositories.suppliers import SupplierRepository
from easybill.schemas.supplier import DueDateResponse, SupplierRequest
from easybill.storage.models import Supplier, utcnow


logger = get_logger(__name__)


class SupplierService:

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id
        self.suppliers = SupplierRepository(session, tenant_id)

    # ==== CRUD ==== #

    async def create(self, request: SupplierRequest) -> Supplier:
        fields = request.model_dump()
        fields["credit_days"] = fields.get("credit_days") or 0
        supplier = await self.suppliers.add(Supplier(
            **fields,
            total_purchases=Decimal("0.00"),
            outstanding_balance=Decimal("0.00"),
            purchase_count=0,
            is_active=True,
        ))
        logger.info("Supplier created", supplier_id=supplier.id)
        return supplier

    async def get(self, supplier_id: str) -> Supplier:
        supplier = await self.suppliers.get(supplier_id)
        if supplier is None:
            raise ResourceNotFoundError("Supplier", supplier_id)
        return supplier

    async def list_suppliers(self, page: int = 0, size: int = 20) -> Tuple[List[Supplier], int]:
        return await self.suppliers.list_page(
            offset=page * size, limit=size, order_by=(Supplier.name,)
        )

    async def search(self, term: str) -> List[Supplier]:
        return await self.suppliers.search(term)

    async def update(self, supplier_id: str, request: SupplierRequest) -> Supplier:
        supplier = await self.get(supplier_id)
        for key, value in request.model_dump(exclude_unset=True).items():
            if key == "credit_days" and value is None:
                continue
            setattr(supplier, key, value)
        return await self.suppliers.save(supplier)

    async def delete(self, supplier_id: str) -> None:
        await self.suppliers.delete(await self.get(supplier_id))

    async def deactivate(self, supplier_id: str) -> Supplier:
        supplier = await self.get(supplier_id)
        supplier.is_active = False
        return await self.suppliers.save(supplier)

    async def reactivate(self, supplier_id: str) -> Supplier:
        supplier = await self.get(supplier_id)
        supplier.is_active = True
        return await self.suppliers.save(supplier)

    async def update_credit_terms(self, supplier_id: str, credit_days: int) -> Supplier:
        if credit_days < 0:
            raise ValidationError("Credit days cannot be negative", field_errors={"credit_days": "must be >= 0"})
        supplier = await self.get(supplier_id)
        supplier.credit_days = credit_days
        return await self.suppliers.save(supplier)

    # ==== PURCHASES AND PAYMENTS ==== #

    async def record_purchase(self, supplier_id: str, amount: Decimal, is_paid: bool = False) -> Supplier:
        """Add a purchase; unpaid purchases raise the outstanding balance."""
        supplier = await self.get(supplier_id)
        amount = money(amount)
        supplier.total_purchases = money(supplier.total_purchases) + amount
        supplier.purchase_count = (supplier.purchase_count or 0) + 1
        supplier.last_purchase_date = utcnow()
        if not is_paid:
            supplier.outstanding_balance = money(supplier.outstanding_balance) + amount
        await self.suppliers.save(supplier)

        log_business_event(
            "supplier_purchase", self.tenant_id,
            supplier_id=supplier.id, amount=str(amount), is_paid=is_paid,
        )
        return supplier

    async def record_payment(self, supplier_id: str, amount: Decimal) -> Supplier:
        supplier = await self.get(supplier_id)
        amount = money(amount)
        if amount > money(supplier.outstanding_balance):
            raise ValidationError(
                "Payment amount exceeds outstanding balance",
                field_errors={"amount": f"outstanding balance is {money(supplier.outstanding_balance)}"},
            )
        supplier.outstanding_balance = money(supplier.outstanding_balance) - amount
        await self.suppliers.save(supplier)
        log_business_event("supplier_payment", self.tenant_id, supplier_id=supplier.id, amount=str(amount))
        return supplier

    async def list_with_outstanding(self) -> List[Supplier]:
        return await self.suppliers.with_outstanding()

    # ==== CREDIT TERMS ==== #

    @staticmethod
    def calculate_due_date(supplier: Supplier, now: Optional[dt.datetime] = None) -> dt.datetime:
        """Last purchase (or now) plus the supplier's credit days."""
        base = supplier.last_purchase_date or now or utcnow()
        return base + dt.timedelta(days=supplier.credit_days or 0)

    @classmethod
    def is_payment_overdue(cls, supplier: Supplier, now: Optional[dt.datetime] = None) -> bool:
        now = now or utcnow()
        if money(supplier.outstanding_balance) <= 0:
            return False
        return now > cls.calculate_due_date(supplier, now)

    async def due_date(self, supplier_id: str) -> DueDateResponse:
        supplier = await self.get(supplier_id)
        now = utcnow()
        return DueDateResponse(
            supplier_id=supplier.id,
            due_date=self.calculate_due_date(supplier, now),
            is_overdue=self.is_payment_overdue(supplier, now),
            outstanding_balance=money(supplier.outstanding_balance),
        )
