from pydantic import EmailStr, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from shared.security_config import validate_password_strength, sanitize_input
from shared.utils import CamelModel
from services.user_service.models import UserType, AuthProvider

class UserRegister(CamelModel):
    email: EmailStr
    password: Optional[str] = None
    user_type: UserType = UserType.PENDING
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    profile_image: Optional[str] = None
    auth_provider: AuthProvider = AuthProvider.LOCAL
    google_id: Optional[str] = None

    @field_validator('password')
    def password_complexity(cls, v):
        if v is not None and not validate_password_strength(v):
            raise ValueError('Password must be at least 8 characters long and contain uppercase, lowercase, and numbers')
        return v

    @field_validator('first_name', 'last_name', 'address')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

    @model_validator(mode='after')
    def local_users_need_password(self):
        if self.auth_provider == AuthProvider.LOCAL and not self.password:
            raise ValueError('Password is required for local accounts')
        return self

class UserLogin(CamelModel):
    email: EmailStr
    password: str

class UserUpdate(CamelModel):
    user_type: Optional[UserType] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    profile_image: Optional[str] = None
    profile_complete: Optional[bool] = None

    @field_validator('first_name', 'last_name', 'address')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class RestaurantDocument(CamelModel):
    name: str
    url: str

class RestaurantProfile(CamelModel):
    restaurant_name: str = Field(..., min_length=1)
    restaurant_address: str = Field(..., min_length=1)
    restaurant_license_number: Optional[str] = None
    restaurant_documents: List[RestaurantDocument] = []

class UserResponse(CamelModel):
    id: str
    email: EmailStr
    user_type: UserType
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    profile_image: Optional[str] = None
    auth_provider: AuthProvider
    profile_complete: bool
    restaurant: Optional[RestaurantProfile] = None
    created_at: datetime
    updated_at: datetime
