"""Customer and customer ledger persistence."""

from typing import List, Optional, Tuple

from sqlalchemy import func, or_

from easybill.repositories.base import TenantRepository
from easybill.storage.models import Customer, LoyaltyTransaction, WalletTransaction


class CustomerRepository(TenantRepository[Customer]):
    model = Customer

    async def by_phone(self, phone: str) -> Optional[Customer]:
        return await self.first(Customer.phone == phone)

    async def phone_exists(self, phone: str, exclude_id: Optional[str] = None) -> bool:
        criteria = [Customer.phone == phone]
        if exclude_id is not None:
            criteria.append(Customer.id != exclude_id)
        return await self.exists(*criteria)

    async def search_page(self, term: Optional[str], offset: int, limit: int) -> Tuple[List[Customer], int]:
        """Page of customers, filtered by name, phone or email when a term is given."""
        criteria = []
        if term:
            pattern = f"%{term.lower()}%"
            criteria.append(or_(
                func.lower(Customer.name).like(pattern),
                Customer.phone.like(pattern),
                func.lower(func.coalesce(Customer.email, "")).like(pattern),
            ))
        return await self.list_page(*criteria, offset=offset, limit=limit, order_by=(Customer.name,))

    async def in_segment(self, segment: str) -> List[Customer]:
        return await self.list(
            Customer.segment == segment, Customer.is_active.is_(True),
            order_by=(Customer.total_spent.desc(),),
        )


class WalletTransactionRepository(TenantRepository[WalletTransaction]):
    model = WalletTransaction

    async def for_customer(self, customer_id: str) -> List[WalletTransaction]:
        return await self.list(
            WalletTransaction.customer_id == customer_id,
            order_by=(WalletTransaction.created_at.desc(),),
        )


class LoyaltyTransactionRepository(TenantRepository[LoyaltyTransaction]):
    model = LoyaltyTransaction

    async def for_customer(self, customer_id: str) -> List[LoyaltyTransaction]:
        return await self.list(
            LoyaltyTransaction.customer_id == customer_id,
            order_by=(LoyaltyTransaction.created_at.desc(),),
        )
