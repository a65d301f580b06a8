"""Unit tests for offer discount rules and the offer service."""

import datetime as dt
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError

from factories.data_factories import OfferFactory
from easybill.business.offers import best_combination, discount_for, is_offer_applicable, is_offer_valid
from easybill.business.statuses import OfferStatus
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError
from easybill.schemas.offer import CartRequest
from easybill.services.offers import OfferService
from easybill.storage.models import Offer


factory = OfferFactory()
NOW = factory.now


def offer(**overrides) -> Offer:
    fields = {
        "id": "offer-1",
        "name": "Offer",
        "type": "PERCENTAGE_DISCOUNT",
        "status": "ACTIVE",
        "discount_value": Decimal("10"),
        "minimum_purchase_amount": None,
        "maximum_discount_amount": None,
        "valid_from": NOW - dt.timedelta(days=1),
        "valid_to": NOW + dt.timedelta(days=1),
        "usage_limit": None,
        "usage_count": 0,
        "applicable_products": [],
        "applicable_categories": [],
        "stackable": False,
        "priority": 0,
    }
    fields.update(overrides)
    return Offer(**fields)


def cart(amount: str, products=(), categories=()) -> CartRequest:
    return CartRequest(purchase_amount=Decimal(amount), product_ids=list(products), category_ids=list(categories))


@pytest.fixture
def service(db_session, tenant) -> OfferService:
    return OfferService(db_session, tenant.id)


@pytest.mark.unit
class TestOfferRules:

    def test_validity_window_and_status(self):
        assert is_offer_valid(offer(), NOW)
        assert is_offer_valid(offer(valid_from=NOW, valid_to=NOW), NOW)
        assert not is_offer_valid(offer(status="PAUSED"), NOW)
        assert not is_offer_valid(offer(), NOW + dt.timedelta(days=2))

    def test_applicability(self):
        assert is_offer_applicable(offer(), [1], [])
        assert is_offer_applicable(offer(applicable_products=[1, 2]), [2, 9], [])
        assert is_offer_applicable(offer(applicable_categories=[5]), [9], [5])
        assert not is_offer_applicable(offer(applicable_products=[1]), [9], [5])
        assert not is_offer_applicable(offer(applicable_products=[1]))

    def test_percentage_rounds_half_up(self):
        assert discount_for(offer(discount_value=Decimal("12.5")), Decimal("99.99")) == Decimal("12.50")

    def test_fixed_amount_is_capped_by_purchase(self):
        assert discount_for(offer(type="FIXED_AMOUNT_DISCOUNT", discount_value=Decimal("150")),
                            Decimal("120")) == Decimal("120.00")

    def test_maximum_discount_cap(self):
        capped = offer(discount_value=Decimal("20"), maximum_discount_amount=Decimal("50"))

        assert discount_for(capped, Decimal("1000")) == Decimal("50.00")

    def test_below_minimum_or_not_applicable_is_zero(self):
        minimum = offer(type="MINIMUM_PURCHASE", discount_value=Decimal("100"),
                        minimum_purchase_amount=Decimal("1000"))

        assert discount_for(minimum, Decimal("999.99")) == Decimal("0.00")
        assert discount_for(minimum, Decimal("1000")) == Decimal("100.00")
        assert discount_for(offer(applicable_products=[1]), Decimal("500"), [2]) == Decimal("0.00")

    def test_best_non_stackable_offer_wins(self):
        small = offer(id="small", discount_value=Decimal("5"), priority=9)
        large = offer(id="large", discount_value=Decimal("15"))
        stack = offer(id="stack", stackable=True)

        assert [o.id for o in best_combination([small, large, stack], Decimal("1000"))] == ["large"]

    def test_stackable_offers_combine_without_exclusive_one(self):
        first = offer(id="first", stackable=True, priority=2)
        second = offer(id="second", stackable=True, type="FIXED_AMOUNT_DISCOUNT", discount_value=Decimal("20"))
        elsewhere = offer(id="elsewhere", applicable_categories=[7])

        assert [o.id for o in best_combination([first, second, elsewhere], Decimal("100"), [], [3])] == [
            "first", "second"
        ]

    def test_request_window_must_be_ordered(self):
        with pytest.raises(SchemaValidationError):
            factory.offer_request(valid_to=NOW - dt.timedelta(days=2))

    def test_percentage_request_above_hundred(self):
        with pytest.raises(SchemaValidationError):
            factory.offer_request(discount_value=Decimal("101"))


@pytest.mark.unit
class TestOfferLifecycle:

    async def test_create_as_draft(self, service):
        created = await service.create(factory.offer_request(applicable_products=[3]))

        assert created.status == "DRAFT"
        assert created.usage_count == 0
        assert created.applicable_products == [3]
        assert await service.active_offers(NOW) == []

    async def test_activate_pause_update_delete(self, service):
        created = await service.create(factory.offer_request())

        assert (await service.activate(created.id)).status == "ACTIVE"
        assert [o.id for o in await service.active_offers(NOW)] == [created.id]

        assert (await service.pause(created.id)).status == "PAUSED"
        assert await service.active_offers(NOW) == []

        updated = await service.update(created.id, factory.offer_request(name="Diwali", priority=4))
        assert (updated.name, updated.priority) == ("Diwali", 4)

        rows, total = await service.list_offers(status=OfferStatus.PAUSED)
        assert total == 1
        assert rows[0].id == created.id

        await service.delete(created.id)
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await service.get(created.id)
        assert exc_info.value.error_code == ErrorCodes.OFFER_NOT_FOUND

    async def test_aware_window_is_stored_as_utc(self, service):
        ist = dt.timezone(dt.timedelta(hours=5, minutes=30))
        created = await service.create(factory.offer_request(
            valid_from=dt.datetime(2026, 10, 17, 5, 30, tzinfo=ist),
            valid_to=dt.datetime(2026, 10, 18, 5, 30, tzinfo=ist),
        ))

        assert created.valid_from == dt.datetime(2026, 10, 17, 0, 0)
        assert created.valid_to.tzinfo is None


@pytest.mark.unit
class TestDiscounts:

    async def test_calculate_requires_valid_offer(self, service):
        created = await service.create(factory.offer_request())

        with pytest.raises(BusinessError) as exc_info:
            await service.calculate_discount(created.id, cart("500"), NOW)

        assert exc_info.value.error_code == ErrorCodes.OFFER_NOT_VALID

    async def test_apply_counts_usage_until_limit(self, service):
        created = await service.create(factory.offer_request(usage_limit=2))
        await service.activate(created.id)

        assert await service.apply_offer(created.id, cart("500"), NOW) == Decimal("50.00")
        assert await service.apply_offer(created.id, cart("200"), NOW) == Decimal("20.00")
        assert created.usage_count == 2

        with pytest.raises(BusinessError) as exc_info:
            await service.apply_offer(created.id, cart("500"), NOW)
        assert exc_info.value.error_code == ErrorCodes.OFFER_USAGE_LIMIT_REACHED
        assert created.usage_count == 2

    async def test_applicable_offers_filter_and_order(self, service):
        low = await service.create(factory.offer_request(name="low", priority=1))
        high = await service.create(factory.offer_request(name="high", priority=5))
        minimum = await service.create(factory.offer_request(
            name="min", type="MINIMUM_PURCHASE", discount_value=Decimal("100"),
            minimum_purchase_amount=Decimal("5000"),
        ))
        used_up = await service.create(factory.offer_request(name="used", usage_limit=1))
        other_category = await service.create(factory.offer_request(name="cat", applicable_categories=[42]))
        for created in (low, high, minimum, used_up, other_category):
            await service.activate(created.id)
        used_up.usage_count = 1

        applicable = await service.applicable_offers(cart("1000", categories=[7]), NOW)

        assert [o.name for o in applicable] == ["high", "low"]

    async def test_best_combination_picks_largest_exclusive_discount(self, service):
        percent = await service.create(factory.offer_request(name="percent"))
        flat = await service.create(factory.offer_request(
            name="flat", type="FIXED_AMOUNT_DISCOUNT", discount_value=Decimal("150"), priority=3,
        ))
        for created in (percent, flat):
            await service.activate(created.id)

        assert [o.name for o in await service.best_combination(cart("1000"), NOW)] == ["flat"]
        assert [o.name for o in await service.best_combination(cart("2000"), NOW)] == ["percent"]
