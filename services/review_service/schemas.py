from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from shared.security_config import sanitize_input
from shared.utils import CamelModel
from services.review_service.models import TargetType

class ReviewCreate(CamelModel):
    customer_id: str
    target_id: str
    target_type: TargetType
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)

    @field_validator('review')
    def sanitize_review(cls, v):
        return sanitize_input(v)

class ReviewUpdate(CamelModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)

    @field_validator('review')
    def sanitize_review(cls, v):
        return sanitize_input(v)

class ReviewResponse(CamelModel):
    id: str
    customer_id: str
    target_id: str
    target_type: TargetType
    rating: int
    review: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class RatingSummary(CamelModel):
    target_id: str
    target_type: TargetType
    average_rating: float
    review_count: int
