"""
Customer records, purchase history, wallet balances and loyalty points.

Purchases earn one loyalty point per full 100 spent and move the customer
between segments by lifetime spend. Every wallet and loyalty change is
written to its ledger with the balance after the change.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.pricing import CENT, HUNDRED, ZERO, money
from easybill.business.statuses import CustomerSegment, LoyaltyTransactionType, WalletTransactionType
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError, ValidationError
from easybill.observability.logging import get_logger, log_business_event
from easybill.repositories.customers import (
    CustomerRepository,
    LoyaltyTransactionRepository,
    WalletTransactionRepository,
)
from easybill.schemas.customer import CustomerRequest, CustomerStatistics
from easybill.storage.models import Customer, LoyaltyTransaction, WalletTransaction, utcnow


logger = get_logger(__name__)


# Lifetime spend at which a customer enters each segment, highest first
SEGMENT_THRESHOLDS = (
    (Decimal("100000"), CustomerSegment.PREMIUM),
    (Decimal("50000"), CustomerSegment.VIP),
)

POINTS_PER_HUNDRED = 1


def loyalty_points_for(amount: Decimal) -> int:
    """One point per full 100 spent, remainder discarded."""
    hundreds = (money(amount) / HUNDRED).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return int(hundreds) * POINTS_PER_HUNDRED


def segment_for(total_spent: Decimal) -> CustomerSegment:
    for threshold, segment in SEGMENT_THRESHOLDS:
        if money(total_spent) >= threshold:
            return segment
    return CustomerSegment.REGULAR


def points_to_wallet_credit(points: int) -> Decimal:
    """100 points are worth 1.00 of wallet balance."""
    return money(Decimal(points) / HUNDRED)


class CustomerService:

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id
        self.customers = CustomerRepository(session, tenant_id)
        self.wallet_ledger = WalletTransactionRepository(session, tenant_id)
        self.loyalty_ledger = LoyaltyTransactionRepository(session, tenant_id)

    # ==== CRUD ==== #

    async def create(self, request: CustomerRequest) -> Customer:
        await self._check_phone(request.phone)
        customer = await self.customers.add(Customer(
            **request.model_dump(),
            segment=CustomerSegment.REGULAR.value,
            loyalty_points=0,
            wallet_balance=ZERO,
            total_spent=ZERO,
            visit_count=0,
            is_active=True,
        ))
        logger.info("Customer created", customer_id=customer.id)
        return customer

    async def get(self, customer_id: str) -> Customer:
        customer = await self.customers.get(customer_id)
        if customer is None:
            raise ResourceNotFoundError("Customer", customer_id, ErrorCodes.CUSTOMER_NOT_FOUND)
        return customer

    async def get_by_phone(self, phone: str) -> Customer:
        customer = await self.customers.by_phone(phone)
        if customer is None:
            raise ResourceNotFoundError("Customer", phone, ErrorCodes.CUSTOMER_NOT_FOUND)
        return customer

    async def list_customers(
        self, page: int = 0, size: int = 20, search: Optional[str] = None
    ) -> Tuple[List[Customer], int]:
        return await self.customers.search_page(search, offset=page * size, limit=size)

    async def list_by_segment(self, segment: CustomerSegment) -> List[Customer]:
        return await self.customers.in_segment(segment.value)

    async def update(self, customer_id: str, request: CustomerRequest) -> Customer:
        customer = await self.get(customer_id)
        if request.phone != customer.phone:
            await self._check_phone(request.phone, exclude_id=customer.id)
        for key, value in request.model_dump().items():
            setattr(customer, key, value)
        return await self.customers.save(customer)

    async def delete(self, customer_id: str) -> None:
        await self.customers.delete(await self.get(customer_id))

    async def deactivate(self, customer_id: str) -> Customer:
        customer = await self.get(customer_id)
        customer.is_active = False
        return await self.customers.save(customer)

    async def reactivate(self, customer_id: str) -> Customer:
        customer = await self.get(customer_id)
        customer.is_active = True
        return await self.customers.save(customer)

    async def _check_phone(self, phone: str, exclude_id: Optional[str] = None) -> None:
        if await self.customers.phone_exists(phone, exclude_id):
            raise BusinessError(
                ErrorCodes.DUPLICATE_RESOURCE, "Customer with phone %s already exists", phone
            )

    # ==== PURCHASES AND LOYALTY ==== #

    async def record_purchase(
        self, customer_id: str, amount: Decimal, invoice_id: Optional[str] = None
    ) -> Customer:
        """Add a purchase to lifetime spend, award points and re-evaluate the segment."""
        customer = await self.get(customer_id)
        amount = money(amount)
        customer.total_spent = money(customer.total_spent) + amount
        customer.visit_count = (customer.visit_count or 0) + 1
        customer.last_visit_date = utcnow()

        earned = loyalty_points_for(amount)
        if earned:
            customer.loyalty_points = (customer.loyalty_points or 0) + earned
            await self.loyalty_ledger.add(LoyaltyTransaction(
                customer_id=customer.id,
                type=LoyaltyTransactionType.EARNED.value,
                points=earned,
                amount=amount,
                balance_after=customer.loyalty_points,
                invoice_id=invoice_id,
            ))

        segment = segment_for(customer.total_spent)
        if segment.value != customer.segment:
            logger.info("Customer segment changed", customer_id=customer.id,
                        previous=customer.segment, segment=segment.value)
            customer.segment = segment.value
        await self.customers.save(customer)

        log_business_event(
            "customer_purchase", self.tenant_id,
            customer_id=customer.id, amount=str(amount), points_earned=earned,
        )
        return customer

    async def redeem_loyalty_points(self, customer_id: str, points: int) -> Customer:
        """Convert points into wallet balance at 100 points per 1.00."""
        customer = await self.get(customer_id)
        if points <= 0 or points > (customer.loyalty_points or 0):
            raise BusinessError(
                ErrorCodes.INSUFFICIENT_LOYALTY_POINTS,
                "Cannot redeem %s points, balance is %s", points, customer.loyalty_points,
            )

        credit = points_to_wallet_credit(points)
        customer.loyalty_points -= points
        await self.loyalty_ledger.add(LoyaltyTransaction(
            customer_id=customer.id,
            type=LoyaltyTransactionType.REDEEMED.value,
            points=points,
            amount=credit,
            balance_after=customer.loyalty_points,
        ))
        await self._post_wallet(customer, WalletTransactionType.CREDIT, credit,
                                description=f"Redeemed {points} loyalty points")

        log_business_event("loyalty_redeemed", self.tenant_id, customer_id=customer.id, points=points)
        return customer

    # ==== WALLET ==== #

    async def add_to_wallet(
        self, customer_id: str, amount: Decimal,
        invoice_id: Optional[str] = None, description: Optional[str] = None,
    ) -> Customer:
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Wallet amount must be positive", field_errors={"amount": "must be > 0"})
        customer = await self.get(customer_id)
        await self._post_wallet(customer, WalletTransactionType.CREDIT, amount, invoice_id, description)
        return customer

    async def deduct_from_wallet(
        self, customer_id: str, amount: Decimal,
        invoice_id: Optional[str] = None, description: Optional[str] = None,
    ) -> Customer:
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Wallet amount must be positive", field_errors={"amount": "must be > 0"})
        customer = await self.get(customer_id)
        if amount > money(customer.wallet_balance):
            raise BusinessError(
                ErrorCodes.INSUFFICIENT_WALLET_BALANCE,
                "Insufficient wallet balance: requested %s, available %s",
                amount, money(customer.wallet_balance),
            )
        await self._post_wallet(customer, WalletTransactionType.DEBIT, amount, invoice_id, description)
        return customer

    async def wallet_history(self, customer_id: str) -> List[WalletTransaction]:
        await self.get(customer_id)
        return await self.wallet_ledger.for_customer(customer_id)

    async def loyalty_history(self, customer_id: str) -> List[LoyaltyTransaction]:
        await self.get(customer_id)
        return await self.loyalty_ledger.for_customer(customer_id)

    async def _post_wallet(
        self,
        customer: Customer,
        kind: WalletTransactionType,
        amount: Decimal,
        invoice_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        balance = money(customer.wallet_balance)
        customer.wallet_balance = balance + amount if kind is WalletTransactionType.CREDIT else balance - amount
        await self.wallet_ledger.add(WalletTransaction(
            customer_id=customer.id,
            type=kind.value,
            amount=amount,
            balance_after=customer.wallet_balance,
            invoice_id=invoice_id,
            description=description,
        ))
        log_business_event(
            "wallet_transaction", self.tenant_id,
            customer_id=customer.id, transaction_type=kind.value, amount=str(amount),
        )

    # ==== STATISTICS ==== #

    async def statistics(self, customer_id: str) -> CustomerStatistics:
        customer = await self.get(customer_id)
        visits = customer.visit_count or 0
        average = ZERO
        if visits:
            average = (money(customer.total_spent) / visits).quantize(CENT, rounding=ROUND_HALF_UP)
        return CustomerStatistics(
            customer_id=customer.id,
            segment=customer.segment,
            total_spent=money(customer.total_spent),
            visit_count=visits,
            average_order_value=average,
            loyalty_points=customer.loyalty_points or 0,
            wallet_balance=money(customer.wallet_balance),
            last_visit_date=customer.last_visit_date,
        )
