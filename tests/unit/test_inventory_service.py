"""Unit tests for the product catalogue and stock movements."""

import re
from decimal import Decimal

import pytest

from factories.data_factories import CatalogFactory
from easybill.business.statuses import AdjustmentType, MovementType
from easybill.errors import BusinessError, ErrorCodes, ResourceNotFoundError, ValidationError
from easybill.schemas.inventory import BrandRequest, CategoryRequest, ProductUpdateRequest
from easybill.services.inventory import InventoryService, generate_sku


catalog = CatalogFactory()


@pytest.fixture
def inventory(db_session, tenant) -> InventoryService:
    return InventoryService(db_session, tenant.id)


@pytest.mark.unit
class TestCatalogue:

    def test_generate_sku_format(self):
        assert re.fullmatch(r"SKU-\d{8}-\d{5}", generate_sku())

    async def test_create_and_fetch_product(self, inventory):
        product = await inventory.create_product(catalog.product_request(name="Basmati Rice 5kg", barcode="8901"))

        assert product.sku.startswith("SKU-")
        assert product.is_active
        assert (await inventory.get_product(product.id)).name == "Basmati Rice 5kg"
        assert (await inventory.get_by_barcode("8901")).id == product.id

    async def test_duplicate_barcode(self, inventory):
        await inventory.create_product(catalog.product_request(barcode="8901"))

        with pytest.raises(BusinessError) as exc_info:
            await inventory.create_product(catalog.product_request(barcode="8901"))

        assert exc_info.value.error_code == ErrorCodes.DUPLICATE_BARCODE

    async def test_barcodes_are_per_tenant(self, db_session, tenant, other_tenant):
        await InventoryService(db_session, tenant.id).create_product(catalog.product_request(barcode="8901"))

        other = await InventoryService(db_session, other_tenant.id).create_product(
            catalog.product_request(barcode="8901")
        )

        assert other.tenant_id == other_tenant.id

    async def test_unknown_category_or_brand(self, inventory):
        with pytest.raises(ResourceNotFoundError):
            await inventory.create_product(catalog.product_request(category_id=999))
        with pytest.raises(ResourceNotFoundError):
            await inventory.create_product(catalog.product_request(brand_id=999))

    async def test_missing_product(self, inventory):
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await inventory.get_product(12345)

        assert exc_info.value.error_code == ErrorCodes.PRODUCT_NOT_FOUND

    async def test_categories_and_brands(self, inventory):
        dairy = await inventory.create_category(CategoryRequest(name="Dairy"))
        await inventory.create_category(CategoryRequest(name="Cheese", parent_id=dairy.id))
        amul = await inventory.create_brand(BrandRequest(name="Amul"))

        product = await inventory.create_product(
            catalog.product_request(name="Butter", category_id=dairy.id, brand_id=amul.id)
        )

        assert [c.name for c in await inventory.list_categories()] == ["Cheese", "Dairy"]
        assert [b.name for b in await inventory.list_brands()] == ["Amul"]
        assert product.category_id == dairy.id

        with pytest.raises(ResourceNotFoundError):
            await inventory.create_category(CategoryRequest(name="Orphan", parent_id=999))

    async def test_update_product(self, inventory):
        first = await inventory.create_product(catalog.product_request(barcode="111"))
        second = await inventory.create_product(catalog.product_request(barcode="222"))

        updated = await inventory.update_product(second.id, ProductUpdateRequest(selling_price=Decimal("120.00")))
        assert updated.selling_price == Decimal("120.00")
        assert updated.barcode == "222"

        with pytest.raises(BusinessError):
            await inventory.update_product(second.id, ProductUpdateRequest(barcode=first.barcode))

    async def test_soft_delete_and_search(self, inventory):
        rice = await inventory.create_product(catalog.product_request(name="Basmati Rice"))
        await inventory.create_product(catalog.product_request(name="Brown Rice"))
        await inventory.create_product(catalog.product_request(name="Sugar"))

        await inventory.delete_product(rice.id)

        assert [p.name for p in await inventory.search_products("rice")] == ["Brown Rice"]
        assert len(await inventory.search_products("rice", active_only=False)) == 2
        assert (await inventory.get_product(rice.id)).is_active is False

        products, total = await inventory.list_products(page=0, size=2)
        assert total == 3
        assert len(products) == 2

    async def test_low_stock_search(self, inventory):
        low = await inventory.create_product(catalog.product_request(name="Ghee", low_stock_threshold=5))
        ok = await inventory.create_product(catalog.product_request(name="Oil", low_stock_threshold=5))
        await inventory.record_stock_movement(low.id, MovementType.IN, 2)
        await inventory.record_stock_movement(ok.id, MovementType.IN, 50)

        assert [p.name for p in await inventory.search_products(low_stock_only=True)] == ["Ghee"]


@pytest.mark.unit
class TestStockMovements:

    async def test_in_and_out(self, inventory):
        product = await inventory.create_product(catalog.product_request())

        await inventory.record_stock_movement(product.id, MovementType.IN, 10, reference_id="PO-1")
        movement = await inventory.record_stock_movement(product.id, "OUT", 4, reference_type="SALE")

        assert (movement.previous_quantity, movement.new_quantity) == (10, 6)
        [stock] = await inventory.get_stock_for_product(product.id)
        assert (stock.store_id, stock.quantity, stock.available_quantity) == ("MAIN", 6, 6)
        assert [m.movement_type for m in await inventory.movements.for_reference("PO-1")] == ["IN"]

    async def test_adjustment_adds(self, inventory):
        product = await inventory.create_product(catalog.product_request())

        movement = await inventory.record_stock_movement(product.id, MovementType.ADJUSTMENT, 3)

        assert movement.new_quantity == 3

    async def test_quantity_must_be_positive(self, inventory):
        product = await inventory.create_product(catalog.product_request())

        with pytest.raises(ValidationError):
            await inventory.record_stock_movement(product.id, MovementType.IN, 0)

    async def test_stock_cannot_go_negative(self, inventory):
        product = await inventory.create_product(catalog.product_request())
        await inventory.record_stock_movement(product.id, MovementType.IN, 2)

        with pytest.raises(BusinessError) as exc_info:
            await inventory.record_stock_movement(product.id, MovementType.OUT, 3)

        assert exc_info.value.error_code == ErrorCodes.INSUFFICIENT_STOCK
        assert (await inventory.get_stock_for_product(product.id))[0].quantity == 2

    async def test_stock_of_untracked_product(self, inventory):
        product = await inventory.create_product(catalog.product_request())

        [stock] = await inventory.get_stock_for_product(product.id)

        assert stock.quantity == 0
        assert stock.is_low_stock
        assert not await inventory.check_stock_availability(product.id, 1)

    async def test_check_availability(self, inventory):
        product = await inventory.create_product(catalog.product_request())
        await inventory.record_stock_movement(product.id, MovementType.IN, 5)

        assert await inventory.check_stock_availability(product.id, 5)
        assert not await inventory.check_stock_availability(product.id, 6)
        assert not await inventory.check_stock_availability(product.id, 1, "BRANCH-2")

    @pytest.mark.parametrize("adjustment,quantity,expected", [
        (AdjustmentType.INCREASE, 4, 14),
        (AdjustmentType.DECREASE, 4, 6),
        (AdjustmentType.SET, 3, 3),
    ])
    async def test_adjust_stock(self, inventory, adjustment, quantity, expected):
        product = await inventory.create_product(catalog.product_request())
        await inventory.record_stock_movement(product.id, MovementType.IN, 10)

        stock = await inventory.adjust_stock(product.id, adjustment, quantity, reason="cycle count")

        assert stock.quantity == expected

    async def test_adjust_below_zero(self, inventory):
        product = await inventory.create_product(catalog.product_request())

        with pytest.raises(BusinessError):
            await inventory.adjust_stock(product.id, AdjustmentType.DECREASE, 1)

    async def test_transfer(self, inventory):
        product = await inventory.create_product(catalog.product_request())
        await inventory.record_stock_movement(product.id, MovementType.IN, 10)

        source, dest = await inventory.transfer_stock(product.id, "MAIN", "BRANCH-2", 4)

        assert (source.store_id, source.quantity) == ("MAIN", 6)
        assert (dest.store_id, dest.quantity) == ("BRANCH-2", 4)

        recent = await inventory.movements.recent(2)
        assert {m.movement_type for m in recent} == {"TRANSFER", "IN"}
        assert all(m.reference_id.startswith("TRF-") for m in recent)

    async def test_transfer_rules(self, inventory):
        product = await inventory.create_product(catalog.product_request())
        await inventory.record_stock_movement(product.id, MovementType.IN, 2)

        with pytest.raises(ValidationError):
            await inventory.transfer_stock(product.id, "MAIN", "MAIN", 1)
        with pytest.raises(BusinessError) as exc_info:
            await inventory.transfer_stock(product.id, "MAIN", "BRANCH-2", 3)
        assert exc_info.value.error_code == ErrorCodes.INSUFFICIENT_STOCK

    async def test_deduct_and_reverse_never_raise(self, inventory):
        product = await inventory.create_product(catalog.product_request())
        await inventory.record_stock_movement(product.id, MovementType.IN, 1)

        assert await inventory.deduct_stock(product.id, 1, "MAIN", "INV-1")
        assert not await inventory.deduct_stock(product.id, 1, "MAIN", "INV-2")
        assert await inventory.reverse_stock_deduction(product.id, 1, "MAIN", "INV-1")
        assert not await inventory.reverse_stock_deduction(99999, 1, "MAIN", "INV-1")

    async def test_dashboard(self, inventory):
        low = await inventory.create_product(
            catalog.product_request(name="Ghee", cost_price=Decimal("50.00"), low_stock_threshold=5)
        )
        plenty = await inventory.create_product(
            catalog.product_request(name="Oil", cost_price=Decimal("10.00"), low_stock_threshold=5)
        )
        retired = await inventory.create_product(catalog.product_request(name="Old"))
        await inventory.record_stock_movement(low.id, MovementType.IN, 2)
        await inventory.record_stock_movement(plenty.id, MovementType.IN, 20)
        await inventory.delete_product(retired.id)

        dashboard = await inventory.dashboard()

        assert dashboard.total_products == 3
        assert dashboard.active_products == 2
        assert dashboard.low_stock_count == 1
        assert dashboard.low_stock_alerts[0].product_name == "Ghee"
        assert dashboard.total_stock_value == Decimal("300.00")
        assert len(dashboard.recent_movements) == 2
