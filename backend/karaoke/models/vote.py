from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from karaoke.utils.datetime_helpers import utcnow

class SkipVote(SQLModel, table=True):
    __tablename__ = "skip_votes"
    __table_args__ = (
        UniqueConstraint("queue_item_id", "user_id", name="uq_skip_vote_item_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    queue_item_id: UUID = Field(foreign_key="song_queue.id", index=True)
    user_id: UUID = Field(foreign_key="users.id")
    session_id: UUID = Field(foreign_key="sessions.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Rating(SQLModel, table=True):
    """One emoji reaction per user per queue item."""
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("queue_item_id", "user_id", name="uq_rating_item_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    queue_item_id: UUID = Field(foreign_key="song_queue.id", index=True)
    user_id: UUID = Field(foreign_key="users.id")
    emoji: str = Field(max_length=16)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
