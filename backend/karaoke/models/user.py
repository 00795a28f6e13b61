from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from karaoke.utils.datetime_helpers import utcnow

DEFAULT_AVATAR = "🎤"

class User(SQLModel, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    display_name: str = Field(max_length=50)
    avatar_emoji: str = Field(default=DEFAULT_AVATAR, max_length=16)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    last_seen: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
