from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from shared.security_config import sanitize_input
from shared.utils import CamelModel

class SessionCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    device_info: Optional[str] = None

    @field_validator('user_id', 'device_info')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class TokenVerifyRequest(CamelModel):
    token: str

class SessionResponse(CamelModel):
    session_id: str
    user_id: str
    device_info: Optional[str] = None
    token: str
    active: bool
    created_at: datetime
    expires_at: datetime
    revoked_at: Optional[datetime] = None
