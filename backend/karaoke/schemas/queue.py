from datetime import datetime
from uuid import UUID
from typing import Optional, List
from pydantic import BaseModel, Field

from karaoke.models.song import QueueStatus
from karaoke.schemas.user import UserRead


class SongIn(BaseModel):
    """A track picked from search results, identified by its YouTube id."""
    youtube_id: str = Field(..., min_length=1, max_length=32)
    title: str = Field(..., min_length=1)
    artist: Optional[str] = None
    genre: Optional[str] = None
    decade: Optional[int] = None
    year: Optional[int] = None
    duration: Optional[int] = None  # seconds
    thumbnail_url: Optional[str] = None


class SongRead(SongIn):
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


class QueueAddRequest(BaseModel):
    song: SongIn
    is_challenge: bool = False
    challenged_user_id: Optional[UUID] = None


class QueueItemRead(BaseModel):
    id: UUID
    session_id: UUID
    song_id: UUID
    requested_by: UUID
    queue_position: int
    status: QueueStatus
    is_challenge: bool
    challenged_user_id: Optional[UUID] = None
    challenge_accepted: Optional[bool] = None
    created_at: datetime
    played_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QueueItemDetail(QueueItemRead):
    """Queue row joined with its catalog song and requester."""
    song: SongRead
    requester: UserRead


class QueueListResponse(BaseModel):
    """Full queue state for a session."""
    now_playing: Optional[QueueItemDetail] = None
    queue: List[QueueItemDetail]
    history: List[QueueItemDetail]


class FinishRequest(BaseModel):
    outcome: QueueStatus


class VoteSkipResponse(BaseModel):
    """Response after casting or retracting a skip vote."""
    voted: bool
    vote_count: int
    participant_count: int
    skipped: bool


class SkipTally(BaseModel):
    vote_count: int
    participant_count: int


class ReactionRequest(BaseModel):
    emoji: str


class ReactionRead(BaseModel):
    id: UUID
    queue_item_id: UUID
    user_id: UUID
    emoji: str
    created_at: datetime

    class Config:
        from_attributes = True
