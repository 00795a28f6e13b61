from datetime import datetime
from uuid import UUID, uuid4
from typing import Optional
from sqlalchemy import DateTime, Index, text
from sqlmodel import Field, SQLModel
from enum import Enum

from karaoke.utils.datetime_helpers import utcnow

class QueueStatus(str, Enum):
    QUEUED = "queued"
    PLAYING = "playing"
    COMPLETED = "completed"
    SKIPPED = "skipped"

TERMINAL_STATUSES = (QueueStatus.COMPLETED, QueueStatus.SKIPPED)

class Song(SQLModel, table=True):
    """Catalog entry shared by every session, keyed by YouTube video id."""
    __tablename__ = "songs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    youtube_id: str = Field(index=True, unique=True, max_length=32)
    title: str
    artist: Optional[str] = None
    genre: Optional[str] = None
    decade: Optional[int] = None
    year: Optional[int] = None
    duration: Optional[int] = Field(default=None, description="seconds")
    thumbnail_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class QueueItem(SQLModel, table=True):
    __tablename__ = "song_queue"
    __table_args__ = (
        # At most one playing item per session; enum columns store member names
        Index(
            "ix_song_queue_one_playing",
            "session_id",
            unique=True,
            postgresql_where=text("status = 'PLAYING'"),
            sqlite_where=text("status = 'PLAYING'"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    session_id: UUID = Field(foreign_key="sessions.id", index=True)
    song_id: UUID = Field(foreign_key="songs.id")
    requested_by: UUID = Field(foreign_key="users.id")
    queue_position: int = Field(default=0, index=True)
    status: QueueStatus = Field(default=QueueStatus.QUEUED, index=True)
    is_challenge: bool = Field(default=False)
    challenged_user_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    challenge_accepted: Optional[bool] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    played_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
