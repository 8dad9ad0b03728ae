from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field

from shared.utils import new_id

class UserType(str, Enum):
    PENDING = "PENDING"
    CUSTOMER = "CUSTOMER"
    RESTAURANT_OWNER = "RESTAURANT_OWNER"
    DRIVER = "DRIVER"
    ADMIN = "ADMIN"

class AuthProvider(str, Enum):
    LOCAL = "local"
    GOOGLE = "google"

class RestaurantDocumentDB(BaseModel):
    name: str
    url: str

class RestaurantProfileDB(BaseModel):
    restaurant_name: str
    restaurant_address: str
    restaurant_license_number: Optional[str] = None
    restaurant_documents: List[RestaurantDocumentDB] = []

class UserDB(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    email: EmailStr
    user_type: UserType
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    profile_image: Optional[str] = None
    auth_provider: AuthProvider = AuthProvider.LOCAL
    google_id: Optional[str] = None
    password_hash: Optional[str] = None
    profile_complete: bool = False
    # Set only for restaurant owners
    restaurant: Optional[RestaurantProfileDB] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        populate_by_name = True
        use_enum_values = True
