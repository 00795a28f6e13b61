from datetime import datetime
from uuid import UUID, uuid4
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel
from enum import Enum

from karaoke.utils.datetime_helpers import utcnow

class ChallengeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"

class Challenge(SQLModel, table=True):
    __tablename__ = "challenges"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    session_id: UUID = Field(foreign_key="sessions.id", index=True)
    challenger_id: UUID = Field(foreign_key="users.id")
    challenged_id: UUID = Field(foreign_key="users.id", index=True)
    song_id: UUID = Field(foreign_key="songs.id")
    queue_item_id: Optional[UUID] = Field(default=None, foreign_key="song_queue.id")
    status: ChallengeStatus = Field(default=ChallengeStatus.PENDING, index=True)
    message: Optional[str] = Field(default=None, max_length=280)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    responded_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
