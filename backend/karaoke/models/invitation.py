from datetime import datetime
from uuid import UUID, uuid4
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from karaoke.utils.datetime_helpers import utcnow

class SessionInvitation(SQLModel, table=True):
    __tablename__ = "session_invitations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    session_id: UUID = Field(foreign_key="sessions.id", index=True)
    invited_by: UUID = Field(foreign_key="users.id")
    invitation_code: str = Field(unique=True, index=True, max_length=32)
    # None means unlimited
    uses_remaining: Optional[int] = None
    expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
