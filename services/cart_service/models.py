from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field

from shared.utils import new_id

class PotionSize(str, Enum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"

class CartItemDB(BaseModel):
    item_id: str
    item_name: str
    quantity: int
    potion_size: Optional[PotionSize] = None
    price: float
    total_price: float
    image: Optional[str] = None

    class Config:
        use_enum_values = True

class CartDB(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    customer_id: str
    restaurant_id: str
    items: List[CartItemDB] = []
    total_price: float = 0.0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True
        use_enum_values = True
