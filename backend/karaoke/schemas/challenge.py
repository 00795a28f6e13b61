from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, Field

from karaoke.models.challenge import ChallengeStatus


class ChallengeCreate(BaseModel):
    challenged_id: UUID
    song_id: UUID
    message: Optional[str] = Field(default=None, max_length=280)


class ChallengeRespond(BaseModel):
    accept: bool


class ChallengeComplete(BaseModel):
    queue_item_id: UUID


class ChallengeRead(BaseModel):
    id: UUID
    session_id: UUID
    challenger_id: UUID
    challenged_id: UUID
    song_id: UUID
    queue_item_id: Optional[UUID] = None
    status: ChallengeStatus
    message: Optional[str] = None
    created_at: datetime
    responded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
