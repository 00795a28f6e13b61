from datetime import datetime
from uuid import UUID
from typing import Optional, List
from pydantic import BaseModel, Field

from karaoke.schemas.user import UserRead


class SessionCreate(BaseModel):
    name: str = Field(..., max_length=100)


class SessionRead(BaseModel):
    id: UUID
    name: str
    code: str
    host_id: UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ParticipantRead(BaseModel):
    id: UUID
    session_id: UUID
    user_id: UUID
    joined_at: datetime
    invited_by: Optional[UUID] = None

    class Config:
        from_attributes = True


class SessionState(BaseModel):
    """What a client needs right after joining."""
    meta: SessionRead
    participants: List[UserRead]
    participant_count: int


class ShareLink(BaseModel):
    code: str
    url: str
