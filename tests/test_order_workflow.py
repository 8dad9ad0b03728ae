"""Order workflow rules, exercised directly against an in-memory repository."""

import httpx
import pytest

from shared.repository import DocumentRepository
from shared.utils import EmptyCartException, InvalidStateException, NotFoundException
from services.order_service import workflow
from services.order_service.cart_client import CartClient
from services.order_service.models import OrderDB, PotionSize
from services.order_service.schemas import (
    CartSnapshot, CartSnapshotItem, OrderCreate, CustomerDetails, DriverDetails
)


class StubCartClient:
    def __init__(self, cart):
        self.cart = cart
        self.calls = []

    async def get_cart(self, customer_id, restaurant_id, request_id=None):
        self.calls.append((customer_id, restaurant_id, request_id))
        return self.cart


def snapshot(*items):
    return CartSnapshot(items=[CartSnapshotItem(**item) for item in items])


EXAMPLE_CART = snapshot(
    {"item_id": "i1", "item_name": "Burger", "quantity": 2, "potion_size": "Medium",
     "price": 10.0, "total_price": 20.0, "image": "burger.png"},
    {"item_id": "i2", "item_name": "Fries", "quantity": 1, "potion_size": "Large",
     "price": 5.0, "total_price": 5.0, "image": "fries.png"},
)


@pytest.fixture
def orders(mongo):
    return DocumentRepository(mongo["orders_db"]["orders"], OrderDB)


def order_request(**overrides):
    data = dict(
        customer_id="cust-1",
        restaurant_id="rest-1",
        customer_details=CustomerDetails(name="Ada", contact="0771234567", longitude=79.86, latitude=6.92),
        payment_type="CARD",
    )
    data.update(overrides)
    return OrderCreate(**data)


async def place(orders, cart=EXAMPLE_CART, **overrides):
    return await workflow.create_order(orders, StubCartClient(cart), order_request(**overrides))


class TestCreateOrder:
    async def test_example_cart_totals(self, orders):
        order = await place(orders)

        assert order.order_total == 25.0
        assert order.delivery_fee == 5.0
        assert order.total_amount == 30.0
        assert order.order_status == "Pending"

    async def test_order_is_persisted_with_snapshot_items(self, orders):
        order = await place(orders)

        stored = await orders.get(order.id)
        assert stored is not None
        assert [i.item_id for i in stored.cart_items] == ["i1", "i2"]
        assert [i.potion_size for i in stored.cart_items] == ["Medium", "Large"]
        assert stored.cart_items[0].image == "burger.png"
        assert stored.customer_details.name == "Ada"
        assert stored.created_at == stored.updated_at

    async def test_order_total_uses_line_totals_not_price_times_quantity(self, orders):
        # Line totals are taken as given from the cart
        cart = snapshot(
            {"item_id": "a", "quantity": 3, "price": 4.0, "total_price": 10.0},
            {"item_id": "b", "quantity": 1, "price": 2.5, "total_price": 2.5},
        )
        order = await place(orders, cart=cart)

        assert order.order_total == 12.5
        assert order.total_amount == 17.5

    async def test_each_order_gets_a_new_identity(self, orders):
        first = await place(orders)
        second = await place(orders)

        assert first.id != second.id
        assert await orders.count() == 2

    @pytest.mark.parametrize("cart", [None, CartSnapshot(items=[])])
    async def test_empty_or_missing_cart_is_rejected_without_persisting(self, orders, cart):
        with pytest.raises(EmptyCartException):
            await place(orders, cart=cart)

        assert await orders.count() == 0

    @pytest.mark.parametrize("body", [{"items": None}, {"success": True, "data": {"items": None}}])
    async def test_cart_with_null_items_is_empty(self, orders, body):
        client = CartClient(
            base_url="http://cart.test/cart",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
        )

        with pytest.raises(EmptyCartException):
            await workflow.create_order(orders, client, order_request())

        assert await orders.count() == 0

    async def test_customer_details_are_stored_escaped(self, orders):
        details = CustomerDetails(name="O'Brien <VIP>", contact=" 0771234567 ")
        order = await place(orders, customer_details=details)

        stored = await orders.get(order.id)
        assert stored.customer_details.name == "O&#x27;Brien &lt;VIP&gt;"
        assert stored.customer_details.contact == "0771234567"

    async def test_driver_details_are_copied_when_supplied(self, orders):
        driver = DriverDetails(driver_id="d-9", driver_name="Sam", vehicle_number="CAB-1234")
        order = await place(orders, driver_details=driver)

        assert order.driver_details.driver_id == "d-9"
        assert order.driver_details.vehicle_number == "CAB-1234"
        assert order.order_status == "Pending"

    async def test_cart_is_requested_for_customer_and_restaurant(self, orders):
        client = StubCartClient(EXAMPLE_CART)
        await workflow.create_order(orders, client, order_request(), request_id="req-1")

        assert client.calls == [("cust-1", "rest-1", "req-1")]


class TestPotionSizeMapping:
    @pytest.mark.parametrize("label, expected", [
        ("Small", PotionSize.SMALL),
        ("Medium", PotionSize.MEDIUM),
        ("Large", PotionSize.LARGE),
    ])
    def test_known_sizes(self, label, expected):
        assert workflow.map_potion_size(label) == expected

    @pytest.mark.parametrize("label", [None, "", "XL", "large"])
    def test_missing_or_unknown_sizes_default_to_small(self, label):
        assert workflow.map_potion_size(label) == PotionSize.SMALL

    async def test_null_size_in_cart_becomes_small(self, orders):
        cart = snapshot({"item_id": "x", "quantity": 1, "price": 3.0, "total_price": 3.0})
        order = await place(orders, cart=cart)

        assert order.cart_items[0].potion_size == "Small"


class TestCancelOrder:
    async def test_pending_order_is_cancelled(self, orders):
        order = await place(orders)

        cancelled = await workflow.cancel_order(orders, order.id)

        assert cancelled.order_status == "Cancelled"
        assert (await orders.get(order.id)).order_status == "Cancelled"

    @pytest.mark.parametrize("status", ["Cancelled", "Out for Delivery", "Delivered", "pending"])
    async def test_non_pending_order_is_left_untouched(self, orders, status):
        order = await place(orders)
        await workflow.update_order_status(orders, order.id, status)
        before = await orders.get(order.id)

        with pytest.raises(InvalidStateException):
            await workflow.cancel_order(orders, order.id)

        after = await orders.get(order.id)
        assert after.order_status == status
        assert after.updated_at == before.updated_at

    async def test_unknown_order(self, orders):
        with pytest.raises(NotFoundException):
            await workflow.cancel_order(orders, "missing")


class TestAssignDriver:
    @pytest.mark.parametrize("prior", ["Pending", "Cancelled", "Delivered", "Something Else"])
    async def test_forces_out_for_delivery_from_any_status(self, orders, prior):
        order = await place(orders)
        await workflow.update_order_status(orders, order.id, prior)

        driver = DriverDetails(driver_id="d-1", driver_name="Kim", vehicle_number="WP-42")
        updated = await workflow.assign_driver(orders, order.id, driver)

        assert updated.order_status == "Out for Delivery"
        assert updated.driver_details.driver_id == "d-1"
        assert updated.driver_details.driver_name == "Kim"
        assert updated.driver_details.vehicle_number == "WP-42"

    async def test_replaces_existing_driver(self, orders):
        order = await place(orders, driver_details=DriverDetails(driver_id="old"))

        updated = await workflow.assign_driver(orders, order.id, DriverDetails(driver_id="new"))

        assert updated.driver_details.driver_id == "new"
        assert updated.driver_details.driver_name is None

    async def test_unknown_order(self, orders):
        with pytest.raises(NotFoundException):
            await workflow.assign_driver(orders, "missing", DriverDetails(driver_id="d"))


class TestApplyDiscount:
    async def test_discount_is_subtracted(self, orders):
        order = await place(orders)

        updated = await workflow.apply_discount(orders, order.id, 7.5)

        assert updated.total_amount == 22.5
        assert updated.order_total == 25.0

    @pytest.mark.parametrize("amount", [30.0, 30.01, 999.0])
    async def test_total_never_goes_below_zero(self, orders, amount):
        order = await place(orders)

        updated = await workflow.apply_discount(orders, order.id, amount)

        assert updated.total_amount == 0

    async def test_discounts_accumulate_and_clamp(self, orders):
        order = await place(orders)
        await workflow.apply_discount(orders, order.id, 20.0)

        updated = await workflow.apply_discount(orders, order.id, 20.0)

        assert updated.total_amount == 0

    async def test_unknown_order(self, orders):
        with pytest.raises(NotFoundException):
            await workflow.apply_discount(orders, "missing", 1.0)


class TestStatusAndListing:
    async def test_status_update_is_unconstrained(self, orders):
        order = await place(orders)
        await workflow.cancel_order(orders, order.id)

        updated = await workflow.update_order_status(orders, order.id, "Pending")

        assert updated.order_status == "Pending"

    async def test_status_update_on_unknown_order(self, orders):
        with pytest.raises(NotFoundException):
            await workflow.update_order_status(orders, "missing", "Delivered")

    async def test_get_order_by_id(self, orders):
        order = await place(orders)

        found = await workflow.get_order_or_404(orders, order.id)

        assert found.id == order.id
        with pytest.raises(NotFoundException):
            await workflow.get_order_or_404(orders, "missing")

    async def test_listing_all_and_by_customer(self, orders):
        await place(orders, customer_id="c1")
        await place(orders, customer_id="c1")
        await place(orders, customer_id="c2")

        assert len(await workflow.get_all_orders(orders)) == 3
        by_customer = await workflow.get_orders_by_customer(orders, "c1")
        assert {o.customer_id for o in by_customer} == {"c1"}
        assert len(by_customer) == 2
        assert await workflow.get_orders_by_customer(orders, "nobody") == []

    async def test_response_mapping_uses_order_id(self, orders):
        order = await place(orders)

        response = workflow.to_order_response(order)
        body = response.model_dump(by_alias=True)

        assert body["orderId"] == order.id
        assert body["cartItems"][1]["potionSize"] == PotionSize.LARGE
        assert body["totalAmount"] == 30.0
