"""Promotional offers: lifecycle, discount evaluation and usage tracking."""

import datetime as dt
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business import offers as rules
from easybill.business.pricing import money
from easybill.business.statuses import OfferStatus
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError
from easybill.observability.logging import get_logger, log_business_event
from easybill.repositories.offers import OfferRepository
from easybill.schemas.offer import CartRequest, OfferRequest
from easybill.storage.models import Offer, utcnow


logger = get_logger(__name__)


def as_naive_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(dt.timezone.utc).replace(tzinfo=None)


class OfferService:

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id
        self.offers = OfferRepository(session, tenant_id)

    # ==== CRUD AND LIFECYCLE ==== #

    async def create(self, request: OfferRequest) -> Offer:
        offer = Offer(status=OfferStatus.DRAFT.value, usage_count=0)
        self._apply(offer, request)
        offer = await self.offers.add(offer)
        logger.info("Offer created", offer_id=offer.id, offer_type=offer.type)
        return offer

    async def get(self, offer_id: str) -> Offer:
        offer = await self.offers.get(offer_id)
        if offer is None:
            raise ResourceNotFoundError("Offer", offer_id, ErrorCodes.OFFER_NOT_FOUND)
        return offer

    async def list_offers(
        self, page: int = 0, size: int = 20, status: Optional[OfferStatus] = None
    ) -> Tuple[List[Offer], int]:
        criteria = [] if status is None else [Offer.status == status.value]
        return await self.offers.list_page(
            *criteria, offset=page * size, limit=size,
            order_by=(Offer.priority.desc(), Offer.created_at.desc()),
        )

    async def active_offers(self, now: Optional[dt.datetime] = None) -> List[Offer]:
        return await self.offers.active_at(now or utcnow())

    async def update(self, offer_id: str, request: OfferRequest) -> Offer:
        offer = await self.get(offer_id)
        self._apply(offer, request)
        return await self.offers.save(offer)

    async def activate(self, offer_id: str) -> Offer:
        return await self._set_status(offer_id, OfferStatus.ACTIVE)

    async def pause(self, offer_id: str) -> Offer:
        return await self._set_status(offer_id, OfferStatus.PAUSED)

    async def delete(self, offer_id: str) -> None:
        await self.offers.delete(await self.get(offer_id))

    async def _set_status(self, offer_id: str, status: OfferStatus) -> Offer:
        offer = await self.get(offer_id)
        offer.status = status.value
        await self.offers.save(offer)
        log_business_event("offer_status_changed", self.tenant_id, offer_id=offer.id, status=status.value)
        return offer

    @staticmethod
    def _apply(offer: Offer, request: OfferRequest) -> None:
        fields = request.model_dump()
        fields["type"] = request.type.value
        fields["valid_from"] = as_naive_utc(request.valid_from)
        fields["valid_to"] = as_naive_utc(request.valid_to)
        for key, value in fields.items():
            setattr(offer, key, value)

    # ==== DISCOUNTS ==== #

    async def calculate_discount(
        self, offer_id: str, cart: CartRequest, now: Optional[dt.datetime] = None
    ) -> Decimal:
        """
        Discount one offer grants on a cart.

        Raises:
            BusinessError: ``OFFER_NOT_VALID`` when the offer is not ACTIVE
                or outside its validity window
        """
        offer = await self.get(offer_id)
        if not rules.is_offer_valid(offer, now or utcnow()):
            raise BusinessError(ErrorCodes.OFFER_NOT_VALID, "Offer %s is not valid", offer_id)
        return rules.discount_for(offer, cart.purchase_amount, cart.product_ids, cart.category_ids)

    async def apply_offer(self, offer_id: str, cart: CartRequest, now: Optional[dt.datetime] = None) -> Decimal:
        """Calculate the discount and count one use of the offer."""
        offer = await self.get(offer_id)
        if not rules.has_usage_left(offer):
            raise BusinessError(
                ErrorCodes.OFFER_USAGE_LIMIT_REACHED,
                "Offer %s reached its usage limit of %s", offer_id, offer.usage_limit,
            )
        discount = await self.calculate_discount(offer_id, cart, now)

        offer.usage_count = (offer.usage_count or 0) + 1
        await self.offers.save(offer)
        log_business_event(
            "offer_applied", self.tenant_id,
            offer_id=offer.id, discount=str(discount), usage_count=offer.usage_count,
        )
        return discount

    async def applicable_offers(self, cart: CartRequest, now: Optional[dt.datetime] = None) -> List[Offer]:
        """Valid offers that match the cart, meet their minimum and have uses left, by priority."""
        amount = money(cart.purchase_amount)
        return [
            offer for offer in await self.active_offers(now)
            if rules.is_offer_applicable(offer, cart.product_ids, cart.category_ids)
            and not rules.below_minimum(offer, amount)
            and rules.has_usage_left(offer)
        ]

    async def best_combination(self, cart: CartRequest, now: Optional[dt.datetime] = None) -> List[Offer]:
        candidates = await self.applicable_offers(cart, now)
        return rules.best_combination(candidates, cart.purchase_amount, cart.product_ids, cart.category_ids)
