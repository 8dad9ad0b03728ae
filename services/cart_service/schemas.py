from pydantic import AliasChoices, Field, field_validator
from typing import Optional, List
from datetime import datetime

from shared.security_config import sanitize_input
from shared.utils import CamelModel
from services.cart_service.models import PotionSize

class CartItemAdd(CamelModel):
    customer_id: str
    restaurant_id: str
    item_id: str
    item_name: str
    quantity: int = Field(..., gt=0)
    # "size" is accepted for clients that post the short key
    potion_size: Optional[PotionSize] = Field(
        None, validation_alias=AliasChoices("potionSize", "size", "potion_size")
    )
    price: float = Field(..., ge=0)
    image: Optional[str] = None

    @field_validator('item_name')
    def sanitize_name(cls, v):
        return sanitize_input(v)

class CartItemUpdate(CamelModel):
    quantity: int = Field(..., gt=0)

class CartItemResponse(CamelModel):
    item_id: str
    item_name: str
    quantity: int
    potion_size: Optional[PotionSize] = None
    price: float
    total_price: float
    image: Optional[str] = None

class CartResponse(CamelModel):
    id: str
    customer_id: str
    restaurant_id: str
    items: List[CartItemResponse]
    total_price: float
    created_at: datetime
    updated_at: datetime
