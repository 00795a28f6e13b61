from datetime import datetime
from uuid import UUID, uuid4
from typing import Optional
from sqlalchemy import DateTime, Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from karaoke.utils.datetime_helpers import utcnow

class Session(SQLModel, table=True):
    __tablename__ = "sessions"
    __table_args__ = (
        # Codes only need to be unique among open sessions
        Index(
            "ix_sessions_active_code",
            "code",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100)
    code: str = Field(max_length=8, description="8-char uppercase join code")
    host_id: UUID = Field(foreign_key="users.id")
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Participant(SQLModel, table=True):
    __tablename__ = "session_participants"
    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_participant_session_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    session_id: UUID = Field(foreign_key="sessions.id", index=True)
    user_id: UUID = Field(foreign_key="users.id", index=True)
    joined_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    invited_by: Optional[UUID] = Field(default=None, foreign_key="users.id")
