import logging
from datetime import datetime
from typing import List, Optional

from shared.repository import DocumentRepository
from shared.utils import (
    settings, NotFoundException, EmptyCartException, InvalidStateException
)
from services.order_service.cart_client import CartClient
from services.order_service.models import (
    OrderDB, OrderItemDB, CustomerDetailsDB, DriverDetailsDB,
    PotionSize, OrderStatus, is_allowed
)
from services.order_service.schemas import (
    OrderCreate, DriverDetails, OrderResponse, CartSnapshotItem
)

logger = logging.getLogger("order-service")

OrderRepository = DocumentRepository[OrderDB]


def map_potion_size(value: Optional[str]) -> PotionSize:
    """Map a cart size label onto the order's size enum.

    Missing or unrecognized labels fall back to Small. This hides bad
    upstream data, so every fallback is logged.
    """
    if value is not None:
        try:
            return PotionSize(value)
        except ValueError:
            pass
    logger.warning("Unrecognized potion size, defaulting to Small", extra={"potion_size": value})
    return PotionSize.SMALL


def to_order_item(item: CartSnapshotItem) -> OrderItemDB:
    return OrderItemDB(
        item_id=item.item_id,
        item_name=item.item_name,
        quantity=item.quantity,
        potion_size=map_potion_size(item.potion_size),
        price=item.price,
        total_price=item.total_price,
        image=item.image,
    )


def to_order_response(order: OrderDB) -> OrderResponse:
    data = order.dict()
    data["order_id"] = data.pop("id")
    return OrderResponse(**data)


async def get_order_or_404(orders: OrderRepository, order_id: str) -> OrderDB:
    order = await orders.get(order_id)
    if not order:
        raise NotFoundException("Order not found")
    return order


async def create_order(
    orders: OrderRepository,
    cart_client: CartClient,
    request: OrderCreate,
    request_id: Optional[str] = None,
) -> OrderDB:
    cart = await cart_client.get_cart(request.customer_id, request.restaurant_id, request_id)
    if cart is None or not cart.items:
        raise EmptyCartException("Cart is empty")

    order_total = sum(item.total_price for item in cart.items)
    delivery_fee = settings.DELIVERY_FEE
    now = datetime.utcnow()

    driver = None
    if request.driver_details:
        driver = DriverDetailsDB(**request.driver_details.dict())

    order = OrderDB(
        customer_id=request.customer_id,
        restaurant_id=request.restaurant_id,
        customer_details=CustomerDetailsDB(**request.customer_details.dict()),
        cart_items=[to_order_item(item) for item in cart.items],
        order_total=order_total,
        delivery_fee=delivery_fee,
        total_amount=order_total + delivery_fee,
        payment_type=request.payment_type,
        order_status=OrderStatus.PENDING.value,
        driver_details=driver,
        created_at=now,
        updated_at=now,
    )
    await orders.insert(order)

    logger.info("Order created", extra={
        "order_id": order.id,
        "customer_id": order.customer_id,
        "restaurant_id": order.restaurant_id,
        "request_id": request_id,
    })
    return order


async def get_all_orders(orders: OrderRepository) -> List[OrderDB]:
    return await orders.find(sort="created_at")


async def get_orders_by_customer(orders: OrderRepository, customer_id: str) -> List[OrderDB]:
    return await orders.find(sort="created_at", customer_id=customer_id)


async def update_order_status(orders: OrderRepository, order_id: str, status: str) -> OrderDB:
    # Free-form overwrite; transitions are not checked here
    order = await orders.update(order_id, {"order_status": status})
    if not order:
        raise NotFoundException("Order not found")
    logger.info("Order status updated", extra={"order_id": order_id, "order_status": status})
    return order


async def cancel_order(orders: OrderRepository, order_id: str) -> OrderDB:
    order = await get_order_or_404(orders, order_id)
    if not is_allowed("cancel", order.order_status):
        raise InvalidStateException("Cannot cancel an order that is not Pending")

    order = await orders.update(order_id, {"order_status": OrderStatus.CANCELLED.value})
    logger.info("Order cancelled", extra={"order_id": order_id})
    return order


async def assign_driver(orders: OrderRepository, order_id: str, driver: DriverDetails) -> OrderDB:
    current = await get_order_or_404(orders, order_id)
    if not is_allowed("assign_driver", current.order_status):
        raise InvalidStateException(f"Cannot assign a driver to a {current.order_status} order")

    order = await orders.update(order_id, {
        "driver_details": DriverDetailsDB(**driver.dict()).dict(),
        "order_status": OrderStatus.OUT_FOR_DELIVERY.value,
    })
    logger.info("Driver assigned", extra={"order_id": order_id, "order_status": order.order_status})
    return order


async def apply_discount(orders: OrderRepository, order_id: str, discount_amount: float) -> OrderDB:
    order = await get_order_or_404(orders, order_id)
    total_amount = max(0.0, order.total_amount - discount_amount)

    order = await orders.update(order_id, {"total_amount": total_amount})
    logger.info("Discount applied", extra={"order_id": order_id})
    return order
