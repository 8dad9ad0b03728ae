from fastapi import FastAPI, HTTPException, status, Query, Request
from datetime import datetime
from pymongo.errors import DuplicateKeyError
from typing import Optional, List

from shared.utils import (
    get_db_client, SuccessResponse, HealthResponse, NotFoundException, ConflictException,
    check_database
)
from shared.logging_config import setup_logging, RequestLoggingMiddleware
from shared.security_config import setup_edge_middleware, limiter, DEFAULT_LIMIT
from shared.repository import DocumentRepository

from services.cart_service.schemas import CartItemAdd, CartItemUpdate, CartResponse
from services.cart_service.models import CartDB, CartItemDB

SERVICE_NAME = "cart-service"

# Setup Logging
logger = setup_logging(SERVICE_NAME)

app = FastAPI(title="Cart Service")
setup_edge_middleware(app)
app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)

@app.on_event("startup")
async def startup_db_client():
    app.mongodb_client = get_db_client()
    app.mongodb = app.mongodb_client.cart_db
    # One cart per customer and restaurant
    await app.mongodb.carts.create_index(
        [("customer_id", 1), ("restaurant_id", 1)], unique=True
    )

@app.on_event("shutdown")
async def shutdown_db_client():
    app.mongodb_client.close()

def carts() -> DocumentRepository[CartDB]:
    return DocumentRepository(app.mongodb.carts, CartDB)

# --- Helpers ---
def recalculate(cart: CartDB) -> CartDB:
    for item in cart.items:
        item.total_price = item.price * item.quantity
    cart.total_price = sum(item.total_price for item in cart.items)
    cart.updated_at = datetime.utcnow()
    return cart

def matches(item: CartItemDB, item_id: str, potion_size: Optional[str]) -> bool:
    if item.item_id != item_id:
        return False
    return potion_size is None or item.potion_size == potion_size

def to_response(cart: CartDB) -> CartResponse:
    return CartResponse(**cart.dict())

async def get_cart_or_404(customer_id: str, restaurant_id: str) -> CartDB:
    cart = await carts().find_one(customer_id=customer_id, restaurant_id=restaurant_id)
    if not cart:
        raise NotFoundException("Cart not found")
    return cart

# --- Endpoints ---
@app.get("/cart/customer/{customer_id}", response_model=SuccessResponse[List[CartResponse]])
async def get_customer_carts(customer_id: str):
    found = await carts().find(sort="updated_at", customer_id=customer_id)
    return SuccessResponse(data=[to_response(c) for c in found])

@app.get("/cart/{customer_id}/{restaurant_id}", response_model=SuccessResponse[CartResponse])
@limiter.limit(DEFAULT_LIMIT)
async def get_cart(customer_id: str, restaurant_id: str, request: Request):
    cart = await get_cart_or_404(customer_id, restaurant_id)
    return SuccessResponse(data=to_response(cart))

@app.post("/cart/add", response_model=SuccessResponse[CartResponse])
@limiter.limit(DEFAULT_LIMIT)
async def add_to_cart(item: CartItemAdd, request: Request):
    repo = carts()
    cart = await repo.find_one(customer_id=item.customer_id, restaurant_id=item.restaurant_id)
    is_new = cart is None
    if is_new:
        cart = CartDB(customer_id=item.customer_id, restaurant_id=item.restaurant_id)

    size = item.potion_size.value if item.potion_size else None
    existing = next((i for i in cart.items if i.item_id == item.item_id and i.potion_size == size), None)
    if existing:
        existing.quantity += item.quantity
        # Latest price snapshot wins
        existing.price = item.price
        existing.item_name = item.item_name
        existing.image = item.image or existing.image
    else:
        cart.items.append(CartItemDB(
            item_id=item.item_id,
            item_name=item.item_name,
            quantity=item.quantity,
            potion_size=size,
            price=item.price,
            total_price=item.price * item.quantity,
            image=item.image,
        ))

    recalculate(cart)
    if is_new:
        try:
            await repo.insert(cart)
        except DuplicateKeyError:
            raise ConflictException("Cart was created concurrently, retry the request")
    else:
        await repo.replace(cart)

    logger.info("Item added to cart", extra={
        "customer_id": item.customer_id,
        "restaurant_id": item.restaurant_id,
        "item_id": item.item_id,
    })
    return SuccessResponse(data=to_response(cart), message="Item added to cart")

@app.put("/cart/update/{customer_id}/{restaurant_id}/{item_id}", response_model=SuccessResponse[CartResponse])
async def update_cart_item(
    customer_id: str,
    restaurant_id: str,
    item_id: str,
    update: CartItemUpdate,
    potion_size: Optional[str] = Query(None, alias="potionSize"),
):
    cart = await get_cart_or_404(customer_id, restaurant_id)
    targets = [i for i in cart.items if matches(i, item_id, potion_size)]
    if not targets:
        raise NotFoundException("Item not found in cart")

    for target in targets:
        target.quantity = update.quantity

    await carts().replace(recalculate(cart))
    return SuccessResponse(data=to_response(cart), message="Cart updated")

@app.delete("/cart/remove/{customer_id}/{restaurant_id}/{item_id}", response_model=SuccessResponse[CartResponse])
async def remove_cart_item(
    customer_id: str,
    restaurant_id: str,
    item_id: str,
    potion_size: Optional[str] = Query(None, alias="potionSize"),
):
    cart = await get_cart_or_404(customer_id, restaurant_id)
    remaining = [i for i in cart.items if not matches(i, item_id, potion_size)]
    if len(remaining) == len(cart.items):
        raise NotFoundException("Item not found in cart")

    cart.items = remaining
    await carts().replace(recalculate(cart))
    return SuccessResponse(data=to_response(cart), message="Item removed from cart")

@app.delete("/cart/clear/{customer_id}/{restaurant_id}", response_model=SuccessResponse[dict])
async def clear_cart(customer_id: str, restaurant_id: str):
    deleted = await carts().delete_where(customer_id=customer_id, restaurant_id=restaurant_id)
    if not deleted:
        raise NotFoundException("Cart not found")
    return SuccessResponse(message="Cart cleared")

@app.get("/health", response_model=HealthResponse)
async def health_check():
    db_status = await check_database(app.mongodb_client)
    if db_status != "connected":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Unhealthy"
        )

    return HealthResponse(
        service=SERVICE_NAME,
        status="healthy",
        timestamp=datetime.utcnow(),
        version="1.0.0",
        database=db_status
    )
