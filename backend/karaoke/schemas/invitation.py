from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, Field

from karaoke.schemas.session import SessionRead


class InvitationCreate(BaseModel):
    uses_remaining: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[datetime] = None


class InvitationRead(BaseModel):
    id: UUID
    session_id: UUID
    invited_by: UUID
    invitation_code: str
    uses_remaining: Optional[int] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    url: Optional[str] = None

    class Config:
        from_attributes = True


class RedeemResponse(BaseModel):
    session: SessionRead
    invitation: InvitationRead
