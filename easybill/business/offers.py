# ==== OFFER ARITHMETIC ==== #

"""
Validity, applicability and discount rules for promotional offers.

An offer is valid while ACTIVE and ``valid_from <= now <= valid_to``. It
applies to a cart when it names no products and no categories, or when
the cart shares at least one product or category with it.

Discount:
    PERCENTAGE_DISCOUNT    amount × value / 100, HALF_UP to 2 places
    FIXED_AMOUNT_DISCOUNT  value
    MINIMUM_PURCHASE       value once amount reaches the minimum
    then capped at ``maximum_discount_amount`` and at the amount itself
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, List, Optional

from easybill.business.pricing import ZERO, money, percent_of
from easybill.business.statuses import OfferStatus, OfferType
from easybill.storage.models import Offer


def is_offer_valid(offer: Offer, now: dt.datetime) -> bool:
    if offer.status != OfferStatus.ACTIVE.value:
        return False
    return offer.valid_from <= now <= offer.valid_to


def is_offer_applicable(
    offer: Offer,
    product_ids: Optional[Iterable[int]] = None,
    category_ids: Optional[Iterable[int]] = None,
) -> bool:
    products = set(offer.applicable_products or ())
    categories = set(offer.applicable_categories or ())
    if not products and not categories:
        return True
    return bool(products & set(product_ids or ())) or bool(categories & set(category_ids or ()))


def has_usage_left(offer: Offer) -> bool:
    return offer.usage_limit is None or (offer.usage_count or 0) < offer.usage_limit


def below_minimum(offer: Offer, amount: Decimal) -> bool:
    return offer.minimum_purchase_amount is not None and money(amount) < money(offer.minimum_purchase_amount)


def discount_for(
    offer: Offer,
    amount: Decimal,
    product_ids: Optional[Iterable[int]] = None,
    category_ids: Optional[Iterable[int]] = None,
) -> Decimal:
    """Discount ``offer`` grants on a purchase of ``amount``; validity is not checked here."""
    amount = money(amount)
    if below_minimum(offer, amount) or not is_offer_applicable(offer, product_ids, category_ids):
        return ZERO

    if offer.type == OfferType.PERCENTAGE_DISCOUNT.value:
        discount = percent_of(amount, offer.discount_value)
    elif offer.type in (OfferType.FIXED_AMOUNT_DISCOUNT.value, OfferType.MINIMUM_PURCHASE.value):
        discount = money(offer.discount_value)
    else:
        discount = ZERO

    if offer.maximum_discount_amount is not None:
        discount = min(discount, money(offer.maximum_discount_amount))
    return min(discount, amount)


def best_combination(
    offers: List[Offer],
    amount: Decimal,
    product_ids: Optional[Iterable[int]] = None,
    category_ids: Optional[Iterable[int]] = None,
) -> List[Offer]:
    """
    Pick the offers to apply together.

    The best non-stackable offer wins on its own. Without one, every
    stackable offer applies. ``offers`` must already be valid and ordered
    by priority; ties keep that order.
    """
    product_ids = list(product_ids or ())
    category_ids = list(category_ids or ())
    applicable = [o for o in offers if is_offer_applicable(o, product_ids, category_ids)]

    exclusive = [o for o in applicable if not o.stackable]
    if exclusive:
        best = max(exclusive, key=lambda o: discount_for(o, amount, product_ids, category_ids))
        return [best]
    return [o for o in applicable if o.stackable]
