from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from shared.utils import new_id

class SessionDB(BaseModel):
    id: str = Field(default_factory=new_id, alias="_id")
    user_id: str
    device_info: Optional[str] = None
    token: str
    active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime
    revoked_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
