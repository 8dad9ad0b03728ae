from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field

from shared.utils import new_id

class PotionSize(str, Enum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"

class OrderStatus(str, Enum):
    PENDING = "Pending"
    CANCELLED = "Cancelled"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"

# Statuses each workflow action may start from; None means any status.
# order_status itself is stored as a free string and update_order_status bypasses this table.
ALLOWED_FROM = {
    "cancel": {OrderStatus.PENDING.value},
    "assign_driver": None,
}

def is_allowed(action: str, current_status: str) -> bool:
    allowed = ALLOWED_FROM[action]
    return allowed is None or current_status in allowed

class CustomerDetailsDB(BaseModel):
    name: str
    contact: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None

class OrderItemDB(BaseModel):
    item_id: str
    item_name: Optional[str] = None
    quantity: int
    potion_size: PotionSize = PotionSize.SMALL
    price: float
    total_price: float
    image: Optional[str] = None

    class Config:
        use_enum_values = True

class DriverDetailsDB(BaseModel):
    driver_id: str
    driver_name: Optional[str] = None
    vehicle_number: Optional[str] = None

class OrderDB(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    customer_id: str
    restaurant_id: str
    customer_details: CustomerDetailsDB
    cart_items: List[OrderItemDB]
    order_total: float
    delivery_fee: float
    total_amount: float
    payment_type: str
    order_status: str = OrderStatus.PENDING.value
    driver_details: Optional[DriverDetailsDB] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True
        use_enum_values = True
