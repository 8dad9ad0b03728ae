from pydantic import AliasChoices, Field, field_validator
from typing import Optional, List
from datetime import datetime

from shared.security_config import sanitize_input
from shared.utils import CamelModel
from services.order_service.models import PotionSize

# --- Cart snapshot (read from the cart service) ---
class CartSnapshotItem(CamelModel):
    item_id: str
    item_name: Optional[str] = None
    quantity: int
    # Kept raw: unknown sizes are resolved by the workflow, not rejected here
    potion_size: Optional[str] = Field(
        None, validation_alias=AliasChoices("potionSize", "size", "potion_size")
    )
    price: float
    total_price: float
    image: Optional[str] = None

class CartSnapshot(CamelModel):
    items: List[CartSnapshotItem] = []

# --- Requests ---
class CustomerDetailsResponse(CamelModel):
    name: str
    contact: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None

class CustomerDetails(CustomerDetailsResponse):
    """Inbound customer details. name and contact are HTML-escaped on input,
    so the escaped text is what gets stored and returned (O'Brien becomes
    O&#x27;Brien).
    """

    @field_validator('name', 'contact')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class DriverDetails(CamelModel):
    driver_id: str
    driver_name: Optional[str] = None
    vehicle_number: Optional[str] = None

class OrderCreate(CamelModel):
    customer_id: str
    restaurant_id: str
    customer_details: CustomerDetails
    payment_type: str
    driver_details: Optional[DriverDetails] = None

class OrderStatusUpdate(CamelModel):
    status: str = Field(..., min_length=1)

class ApplyDiscountRequest(CamelModel):
    discount_amount: float = Field(..., ge=0)

# --- Responses ---
class OrderItemResponse(CamelModel):
    item_id: str
    item_name: Optional[str] = None
    quantity: int
    potion_size: PotionSize
    price: float
    total_price: float
    image: Optional[str] = None

class OrderResponse(CamelModel):
    order_id: str
    customer_id: str
    restaurant_id: str
    customer_details: CustomerDetailsResponse
    cart_items: List[OrderItemResponse]
    order_total: float
    delivery_fee: float
    total_amount: float
    payment_type: str
    order_status: str
    driver_details: Optional[DriverDetails] = None
    created_at: datetime
    updated_at: datetime
