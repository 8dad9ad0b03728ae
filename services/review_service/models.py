from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from shared.utils import new_id

class TargetType(str, Enum):
    RESTAURANT = "RESTAURANT"
    DRIVER = "DRIVER"
    MENU_ITEM = "MENU_ITEM"

class ReviewDB(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    customer_id: str
    target_id: str
    target_type: TargetType
    rating: int
    review: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True
        use_enum_values = True
