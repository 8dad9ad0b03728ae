from fastapi import FastAPI, Depends, HTTPException, status, Request
from datetime import datetime
from typing import List

from shared.utils import get_db_client, SuccessResponse, HealthResponse, check_database
from shared.logging_config import setup_logging, RequestLoggingMiddleware, get_request_id
from shared.security_config import setup_edge_middleware, limiter, DEFAULT_LIMIT
from shared.repository import DocumentRepository

from services.order_service import workflow
from services.order_service.cart_client import CartClient
from services.order_service.models import OrderDB
from services.order_service.schemas import (
    OrderCreate, OrderResponse, OrderStatusUpdate, DriverDetails, ApplyDiscountRequest
)

SERVICE_NAME = "order-service"

# Setup Logging
logger = setup_logging(SERVICE_NAME)

app = FastAPI(title="Order Service")
setup_edge_middleware(app)
app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)

@app.on_event("startup")
async def startup_db_client():
    app.mongodb_client = get_db_client()
    app.mongodb = app.mongodb_client.orders_db
    # Indexes
    await app.mongodb.orders.create_index("customer_id")
    await app.mongodb.orders.create_index("created_at")

@app.on_event("shutdown")
async def shutdown_db_client():
    app.mongodb_client.close()

# --- Dependencies ---
def get_orders() -> DocumentRepository[OrderDB]:
    return DocumentRepository(app.mongodb.orders, OrderDB)

def get_cart_client() -> CartClient:
    return CartClient()

# --- Endpoints ---
@app.post("/orders", response_model=SuccessResponse[OrderResponse])
@limiter.limit(DEFAULT_LIMIT)
async def create_order(
    order_in: OrderCreate,
    request: Request,
    orders: DocumentRepository[OrderDB] = Depends(get_orders),
    cart_client: CartClient = Depends(get_cart_client),
):
    order = await workflow.create_order(orders, cart_client, order_in, get_request_id(request))
    return SuccessResponse(data=workflow.to_order_response(order), message="Order created successfully")

@app.get("/orders", response_model=SuccessResponse[List[OrderResponse]])
@limiter.limit(DEFAULT_LIMIT)
async def get_all_orders(request: Request, orders: DocumentRepository[OrderDB] = Depends(get_orders)):
    found = await workflow.get_all_orders(orders)
    return SuccessResponse(data=[workflow.to_order_response(o) for o in found])

@app.get("/orders/customer/{customer_id}", response_model=SuccessResponse[List[OrderResponse]])
async def get_orders_by_customer(customer_id: str, orders: DocumentRepository[OrderDB] = Depends(get_orders)):
    found = await workflow.get_orders_by_customer(orders, customer_id)
    return SuccessResponse(data=[workflow.to_order_response(o) for o in found])

@app.get("/orders/{order_id}", response_model=SuccessResponse[OrderResponse])
async def get_order(order_id: str, orders: DocumentRepository[OrderDB] = Depends(get_orders)):
    order = await workflow.get_order_or_404(orders, order_id)
    return SuccessResponse(data=workflow.to_order_response(order))

@app.put("/orders/{order_id}/status", response_model=SuccessResponse[OrderResponse])
async def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    orders: DocumentRepository[OrderDB] = Depends(get_orders),
):
    order = await workflow.update_order_status(orders, order_id, status_update.status)
    return SuccessResponse(data=workflow.to_order_response(order), message="Order status updated")

@app.put("/orders/{order_id}/cancel", response_model=SuccessResponse[OrderResponse])
async def cancel_order(order_id: str, orders: DocumentRepository[OrderDB] = Depends(get_orders)):
    order = await workflow.cancel_order(orders, order_id)
    return SuccessResponse(data=workflow.to_order_response(order), message="Order cancelled")

@app.put("/orders/{order_id}/assign-driver", response_model=SuccessResponse[OrderResponse])
async def assign_driver(
    order_id: str,
    driver: DriverDetails,
    orders: DocumentRepository[OrderDB] = Depends(get_orders),
):
    order = await workflow.assign_driver(orders, order_id, driver)
    return SuccessResponse(data=workflow.to_order_response(order), message="Driver assigned")

@app.put("/orders/{order_id}/apply-discount", response_model=SuccessResponse[OrderResponse])
async def apply_discount(
    order_id: str,
    discount: ApplyDiscountRequest,
    orders: DocumentRepository[OrderDB] = Depends(get_orders),
):
    order = await workflow.apply_discount(orders, order_id, discount.discount_amount)
    return SuccessResponse(data=workflow.to_order_response(order), message="Discount applied")

@app.get("/health", response_model=HealthResponse)
async def health_check(cart_client: CartClient = Depends(get_cart_client)):
    db_status = await check_database(app.mongodb_client)
    cart_status = await cart_client.health()

    overall_status = "healthy" if (
        db_status == "connected" and cart_status == "healthy"
    ) else "unhealthy"

    if overall_status == "unhealthy":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service Unhealthy"
        )

    return HealthResponse(
        service=SERVICE_NAME,
        status=overall_status,
        timestamp=datetime.utcnow(),
        version="1.0.0",
        database=db_status,
        dependencies={"cart-service": cart_status}
    )
