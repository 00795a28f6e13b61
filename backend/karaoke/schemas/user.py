from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field

from karaoke.models.user import DEFAULT_AVATAR

class UserCreate(BaseModel):
    display_name: str = Field(..., max_length=50)
    avatar_emoji: str = DEFAULT_AVATAR

class UserRead(BaseModel):
    id: UUID
    display_name: str
    avatar_emoji: str
    created_at: datetime
    last_seen: datetime

    class Config:
        from_attributes = True
